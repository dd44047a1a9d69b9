import pathlib
import threading

import pytest
from PIL import Image

from sitepipe.core import BuildSettings, Context
from sitepipe.pipeline import PARALLEL_STAGES, create_runner, js_stage, optimize_stage
from sitepipe.server import Reloader


EXAMPLE_PATH = pathlib.Path(__file__).parent.parent / 'examples' / 'starter'


class CountingReloader(Reloader):
    def __init__(self):
        self.reloads = 0

    def reload(self, path: str = '*'):
        self.reloads += 1


@pytest.fixture
def reloader():
    return CountingReloader()


@pytest.fixture
def context(tmp_path: pathlib.Path, reloader: CountingReloader):
    return Context(
        BuildSettings(
            source_dir=EXAMPLE_PATH / 'src',
            site_dir=EXAMPLE_PATH / 'site',
            output_dir=tmp_path / 'dist',
            working_dir=tmp_path / 'working',
            webpack_config=EXAMPLE_PATH / 'webpack.conf.js',
            style_engine='postcss',
            style_variables={'brand': '#0b6e4f'},
        ),
        reloader,
    )


def relative_files(root: pathlib.Path):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob('*') if p.is_file())


def test_task_names(context: Context):
    runner = create_runner(context)
    assert set(runner.names()) == {
        'css', 'js', 'fonts', 'src-root', 'images', 'hugo', 'hugo-preview',
        'optimize', 'build', 'build-preview', 'server',
    }
    assert runner.tasks['server'].deps == ['hugo', *PARALLEL_STAGES]
    runner.validate()


def test_copy_stages(context: Context, reloader: CountingReloader):
    runner = create_runner(context)
    runner.run_parallel(['fonts', 'src-root', 'images'])

    assert relative_files(context['output_dir']) == [
        'fonts/README.txt',
        'img/favicon/favicon.svg',
        'img/logo.svg',
        'robots.txt',
    ]
    assert reloader.reloads == 3


def test_js_copy_rules(context: Context):
    stage = js_stage()
    inputs = list(context.find_inputs(context['source_dir']))
    tasks = stage.match_paths(context, inputs)
    [copied] = tasks.values()
    assert [p.relative_to(context['source_dir']).as_posix() for p, _ in copied] == ['js/lib/ready.js']
    assert copied[0][1] == [context['output_dir'] / 'js' / 'lib' / 'ready.js']


@pytest.mark.parametrize('task,expected', [
    ('build', [*PARALLEL_STAGES, 'hugo', 'optimize']),
    ('build-preview', [*PARALLEL_STAGES, 'hugo-preview']),
])
def test_build_order(context: Context, task: str, expected: list[str]):
    runner = create_runner(context)
    events = []
    lock = threading.Lock()

    def record(name):
        def func(context):
            with lock:
                events.append(name)
        return func

    for name in [*PARALLEL_STAGES, 'hugo', 'hugo-preview', 'optimize']:
        runner.add(name, record(name))

    runner.run(task)

    assert sorted(events) == sorted(expected)
    if 'optimize' in expected:
        assert events[-1] == 'optimize'


def make_image(path: pathlib.Path, size: tuple[int, int], fmt: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new('RGB', size, (11, 110, 79)).save(path, format=fmt)


def test_optimize_stage(context: Context, reloader: CountingReloader):
    output = context['output_dir']
    make_image(output / 'img' / 'photo.jpg', (2000, 1000), 'JPEG')
    make_image(output / 'img' / 'icons' / 'small.png', (100, 50), 'PNG')
    make_image(output / 'img' / 'favicon' / 'icon.png', (64, 64), 'PNG')
    (output / 'index.html').write_text(
        '<!DOCTYPE html><html><body><img src="/img/photo.jpg"></body></html>'
    )
    (output / 'docs').mkdir()
    docs_page = '<!DOCTYPE html><html><body><img src="/img/photo.jpg"></body></html>'
    (output / 'docs' / 'index.html').write_text(docs_page)

    optimize_stage()(context)

    assert relative_files(output) == [
        'docs/index.html',
        'img/favicon/icon.png',
        'img/icons/small.png',
        'img/icons/small@2x.png',
        'img/icons/small@3x.png',
        'img/photo.jpg',
        'img/photo@2x.jpg',
        'img/photo@3x.jpg',
        'index.html',
    ]
    with Image.open(output / 'img' / 'photo.jpg') as img:
        assert img.size == (1170, 585)
    with Image.open(output / 'img' / 'photo@2x.jpg') as img:
        assert img.size == (2000, 1000)
    with Image.open(output / 'img' / 'icons' / 'small@3x.png') as img:
        assert img.size == (100, 50)

    html = (output / 'index.html').read_text()
    assert 'srcset="/img/photo.jpg 1x, /img/photo@2x.jpg 2x, /img/photo@3x.jpg 3x"' in html
    assert (output / 'docs' / 'index.html').read_text() == docs_page
    assert reloader.reloads == 1


def test_optimize_stage_is_repeatable(context: Context):
    output = context['output_dir']
    make_image(output / 'img' / 'photo.jpg', (3000, 1500), 'JPEG')

    optimize_stage()(context)
    optimize_stage()(context)

    assert relative_files(output) == ['img/photo.jpg', 'img/photo@2x.jpg', 'img/photo@3x.jpg']


def test_optimize_stage_empty_page(context: Context):
    output = context['output_dir']
    make_image(output / 'img' / 'photo.jpg', (2000, 1000), 'JPEG')
    (output / 'index.html').write_text('<html><body><img src="/img/photo.jpg"></body></html>')
    (output / 'empty.html').write_text('')

    optimize_stage()(context)

    assert (output / 'empty.html').read_text() == ''
    assert 'photo@3x.jpg 3x' in (output / 'index.html').read_text()


def test_optimize_stage_favicons(context: Context):
    output = context['output_dir']
    make_image(output / 'img' / 'favicon' / 'icon.png', (300, 300), 'PNG')
    favicon_svg = output / 'img' / 'favicon' / 'icon.svg'
    favicon_svg.write_text(
        '<?xml version="1.0"?>\n<!-- exported -->\n'
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10"><circle cx="5" cy="5" r="4"/></svg>\n'
    )

    optimize_stage()(context)

    assert relative_files(output) == ['img/favicon/icon.png', 'img/favicon/icon.svg']
    with Image.open(output / 'img' / 'favicon' / 'icon.png') as img:
        assert img.size == (300, 300)
    assert '<!--' not in favicon_svg.read_text()
    assert 'circle' in favicon_svg.read_text()
