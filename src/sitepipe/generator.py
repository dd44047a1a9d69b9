"""
Static site generation by shelling out to hugo.
"""
from __future__ import annotations

import os
import typing as t

from .core import Action, Context
from .dependencies import WebExecDependency
from .exceptions import StageFailed
from .process import run_command

if t.TYPE_CHECKING:
    from collections.abc import Callable, Iterable


FAILURE_MESSAGE = 'Hugo build failed'
FAILURE_NOTICE = 'Hugo build failed :('
PREVIEW_OPTIONS = ('--buildDrafts', '--buildFuture')


class SiteGenerator(Action):
    """
    Action running the hugo binary against the site directory, writing into
    the output directory.
    """
    binary = 'hugo'

    def __init__(self, options: Iterable[str] = (), stage_name: str = 'hugo'):
        """
        @options are appended to the default arguments, e.g.
        `PREVIEW_OPTIONS` to include drafts and future posts. @stage_name
        labels failures.
        """
        self.options = list(options)
        self.stage_name = stage_name

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            WebExecDependency('hugo', 'https://gohugo.io/installation/', cls.binary),
        }

    def get_arguments(self, context: Context) -> list[str]:
        # hugo resolves the destination relative to the source directory.
        destination = os.path.relpath(context['output_dir'], context['site_dir'])
        return ['-d', destination, '-s', str(context['site_dir']), '-v', *self.options]

    def build(self, context: Context, done: Callable[[str | None], None]) -> int:
        """
        Run hugo and report the outcome through @done: `None` after a
        successful build, which also reloads connected browsers, or
        `FAILURE_MESSAGE` after a failed one, which shows a notice in them
        instead.
        """
        code = run_command([self.binary, *self.get_arguments(context)])
        if code == 0:
            context.reloader.reload()
            done(None)
        else:
            context.reloader.notify(FAILURE_NOTICE)
            done(FAILURE_MESSAGE)
        return code

    def __call__(self, context: Context):
        context.require(self)
        errors: list[str] = []

        def done(error: str | None):
            if error:
                errors.append(error)

        code = self.build(context, done)
        if errors:
            raise StageFailed(self.stage_name, errors[0], code)
