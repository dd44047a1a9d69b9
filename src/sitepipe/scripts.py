"""
Script bundling through webpack.
"""
from __future__ import annotations

import typing as t

from .core import Action, Context
from .dependencies import NpmDependency
from .exceptions import StageFailed
from .pretty_utils import log, print_with_style
from .process import capture_command

if t.TYPE_CHECKING:
    from collections.abc import Iterable


class WebpackAction(Action):
    """
    Runs webpack with the project's config file and relogs its stats. The
    reload is left to the surrounding stage.
    """
    binary = 'webpack'

    def __init__(self, args: Iterable[str] = ()):
        """
        @args are appended after the `--config` argument, for example
        `['--mode', 'production']`.
        """
        self.args = list(args)

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            NpmDependency('webpack', 'webpack webpack-cli', cls.binary),
        }

    def get_command(self, context: Context) -> list[str]:
        return [self.binary, '--config', str(context['webpack_config']), *self.args]

    def __call__(self, context: Context):
        context.require(self)
        result = capture_command(self.get_command(context))
        if result.returncode != 0:
            print_with_style(result.stdout, file='stderr', style='red')
            raise StageFailed('webpack', 'webpack build failed', result.returncode)
        log('[webpack]', result.stdout.rstrip())
