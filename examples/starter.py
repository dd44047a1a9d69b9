from pathlib import Path

from sitepipe import InputBuildSettings, TaskRunner


STARTER = Path(__file__).parent / 'starter'

# Optional, and can be overridden with CLI arguments.
SETTINGS = InputBuildSettings(
    source_dir=STARTER / 'src',
    site_dir=STARTER / 'site',
    output_dir=Path('output/starter'),
    webpack_config=STARTER / 'webpack.conf.js',
    style_variables={
        'brand': '#0b6e4f',
        'text': '#1d1d1f',
        'max-width': '1170px',
    },
)


def configure(runner: TaskRunner):
    # A task of our own, listed by `sitepipe --list`.
    runner.add('assets', runner.sequence(['fonts', 'src-root', 'images']))
