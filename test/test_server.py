import pathlib

import pytest

from sitepipe.core import BuildSettings, Context
from sitepipe.exceptions import StageFailed
from sitepipe.orchestrator import TaskRunner
from sitepipe.server import WATCHES, LiveReloader, Reloader, _ignore_except, _rerun, serve


class FakeWaiter:
    def __init__(self):
        self.messages = []

    def write_message(self, message):
        self.messages.append(message)


class FakeHandler:
    waiters: set = set()


@pytest.fixture
def waiters():
    FakeHandler.waiters = {FakeWaiter(), FakeWaiter()}
    return FakeHandler.waiters


def test_live_reload(waiters):
    LiveReloader(FakeHandler).reload()
    for waiter in waiters:
        assert waiter.messages == [
            {'command': 'reload', 'path': '*', 'liveCSS': True, 'liveImg': True},
        ]


def test_live_notify(waiters):
    LiveReloader(FakeHandler).notify('Hugo build failed :(')
    for waiter in waiters:
        assert waiter.messages == [{'command': 'alert', 'message': 'Hugo build failed :('}]


def test_default_reloader_is_quiet():
    reloader = Reloader()
    reloader.reload()
    reloader.notify('nothing listens')


def test_context_default_reloader(tmp_path: pathlib.Path):
    context = Context(BuildSettings(
        source_dir=tmp_path,
        site_dir=tmp_path,
        output_dir=tmp_path,
        working_dir=tmp_path,
        webpack_config=tmp_path / 'webpack.conf.js',
        style_engine='postcss',
        style_variables={},
    ))
    assert type(context.reloader) is Reloader


def test_watches_cover_stages():
    assert {w.task for w in WATCHES} == {'js', 'css', 'images', 'fonts', 'src-root', 'hugo'}


def test_ignore_except():
    ignore = _ignore_except('*.js')
    assert not ignore('app.js')
    assert ignore('app.js.map')


def test_rerun_survives_stage_failure(tmp_path: pathlib.Path):
    context = Context(BuildSettings(
        source_dir=tmp_path,
        site_dir=tmp_path,
        output_dir=tmp_path,
        working_dir=tmp_path,
        webpack_config=tmp_path / 'webpack.conf.js',
        style_engine='postcss',
        style_variables={},
    ))
    runner = TaskRunner(context)
    calls = []

    def broken(context):
        calls.append(context)
        raise StageFailed('hugo', 'Hugo build failed', 1)

    runner.add('hugo', broken)
    _rerun(runner, 'hugo')()
    assert calls == [context]


class RecordingServer:
    instances: list = []

    def __init__(self):
        self.watches = []
        self.served = None
        RecordingServer.instances.append(self)

    def watch(self, filepath, func=None, delay=None, ignore=None):
        self.watches.append((filepath, func, delay, ignore))

    def serve(self, **kw):
        self.served = kw


def test_serve(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    import livereload

    monkeypatch.setattr(livereload, 'Server', RecordingServer)
    context = Context(BuildSettings(
        source_dir=tmp_path / 'src',
        site_dir=tmp_path / 'site',
        output_dir=tmp_path / 'dist',
        working_dir=tmp_path / 'working',
        webpack_config=tmp_path / 'webpack.conf.js',
        style_engine='postcss',
        style_variables={},
    ))
    runner = TaskRunner(context)
    rerun = []
    for name in ['js', 'css', 'images', 'fonts', 'src-root', 'hugo']:
        runner.add(name, lambda context, name=name: rerun.append(name))

    serve(context, runner, port=4000, host='0.0.0.0')

    [server] = RecordingServer.instances[-1:]
    assert isinstance(context.reloader, LiveReloader)
    assert [(path, delay) for path, _, delay, _ in server.watches] == [
        (str(tmp_path / 'src' / 'js'), 'forever'),
        (str(tmp_path / 'src' / 'css'), 'forever'),
        (str(tmp_path / 'src' / 'img'), 'forever'),
        (str(tmp_path / 'src' / 'fonts'), 'forever'),
        (str(tmp_path / 'src' / '*'), 'forever'),
        (str(tmp_path / 'site'), 'forever'),
    ]
    js_ignore = server.watches[0][3]
    assert not js_ignore('app.js')
    assert js_ignore('app.js.map')
    assert server.watches[2][3] is None
    assert server.served == {'port': 4000, 'host': '0.0.0.0', 'root': str(tmp_path / 'dist')}

    for _, func, _, _ in server.watches:
        func()
    assert rerun == ['js', 'css', 'images', 'fonts', 'src-root', 'hugo']
