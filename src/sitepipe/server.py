"""
Development server: serves the output directory, reruns tasks when sources
change, and tells connected browsers to reload.
"""
from __future__ import annotations

import fnmatch
import logging
import typing as t

from .exceptions import StageFailed
from .pretty_utils import log

if t.TYPE_CHECKING:
    from .core import Context, ContextDir
    from .orchestrator import TaskRunner


class Reloader:
    """
    Receives reload and notification requests from tasks. The base class only
    logs them, which is all a one-off build needs.
    """
    def reload(self, path: str = '*'):
        log('[reload]', path, style='dim')

    def notify(self, message: str):
        log('[notify]', message, style='yellow')


class LiveReloader(Reloader):
    """
    Reloader pushing livereload protocol messages to every connected browser.
    """
    def __init__(self, handler_cls: t.Any = None):
        if handler_cls is None:
            from livereload.handlers import LiveReloadHandler
            handler_cls = LiveReloadHandler
        self.handler_cls = handler_cls

    def broadcast(self, message: dict[str, t.Any]):
        for waiter in list(self.handler_cls.waiters):
            waiter.write_message(message)

    def reload(self, path: str = '*'):
        super().reload(path)
        self.broadcast({
            'command': 'reload',
            'path': path,
            'liveCSS': True,
            'liveImg': True,
        })

    def notify(self, message: str):
        super().notify(message)
        self.broadcast({'command': 'alert', 'message': message})


class Watch(t.NamedTuple):
    """
    A source location to watch and the task to rerun when it changes. @path
    is relative to the context directory @root; a path containing `*` is
    watched as a glob, anything else as a whole directory, optionally limited
    to files matching @pattern.
    """
    root: ContextDir
    path: str
    task: str
    pattern: str | None = None


WATCHES = [
    Watch('source_dir', 'js', 'js', '*.js'),
    Watch('source_dir', 'css', 'css', '*.css'),
    Watch('source_dir', 'img', 'images'),
    Watch('source_dir', 'fonts', 'fonts'),
    Watch('source_dir', '*', 'src-root'),
    Watch('site_dir', '', 'hugo'),
]


def _rerun(runner: TaskRunner, task: str):
    def rerun():
        try:
            runner.run(task)
        except StageFailed as e:
            log('[server]', str(e), file='stderr', style='red')
    return rerun


def _ignore_except(pattern: str):
    def ignore(filename: str):
        return not fnmatch.fnmatch(filename, pattern)
    return ignore


def serve(context: Context,
          runner: TaskRunner,
          watches: t.Sequence[Watch] = tuple(WATCHES),
          port: int = 3000,
          host: str = 'localhost'):
    """
    Serve the output directory with live reload, rerunning the task of each
    @watches entry when its sources change. Blocks until interrupted.
    """
    from livereload import Server

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(message)s')
    context.reloader = LiveReloader()
    server = Server()
    for watch in watches:
        target = context[watch.root] / watch.path if watch.path else context[watch.root]
        ignore = _ignore_except(watch.pattern) if watch.pattern else None
        # Stages send their own reloads; 'forever' stops livereload adding one.
        server.watch(str(target), _rerun(runner, watch.task), delay='forever', ignore=ignore)
    log('[server]', f'Serving {context["output_dir"]} at http://{host}:{port}')
    server.serve(port=port, host=host, root=str(context['output_dir']))
