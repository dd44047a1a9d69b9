"""
The declared build: which stages exist, which globs they consume and produce,
and the order they run in.
"""
from __future__ import annotations

import typing as t

from .core import Context, Rule, Stage
from .generator import PREVIEW_OPTIONS, SiteGenerator
from .images import (
    RESPONSIVE_SUFFIXES,
    GifsicleStep,
    ResponsiveImageStep,
    ScourStep,
)
from .orchestrator import TaskRunner
from .paths import DestPathCalc, GlobMatcher
from .rewrite import SrcsetStep
from .scripts import WebpackAction
from .simple import DirectCopyStep
from .styles import create_style_step


PARALLEL_STAGES = ['css', 'js', 'fonts', 'src-root', 'images']


def copy_stage(name: str, patterns: str | t.Sequence[str], dest: str = ''):
    """
    A Stage copying files matching @patterns from the source directory into
    @dest under the output directory, preserving paths below the glob base.
    """
    return Stage(name, [Rule(GlobMatcher(patterns), DestPathCalc(dest), DirectCopyStep())])


def css_stage(context: Context):
    return Stage('css', [
        Rule(GlobMatcher('css/*.css'), DestPathCalc('css'), create_style_step(context)),
    ])


def js_stage():
    copy = Rule(GlobMatcher(['js/**/*', '!js/app.js']), DestPathCalc('js'), DirectCopyStep())
    return Stage('js', [copy], actions=[WebpackAction()])


def optimize_stage():
    """
    Production pass over the output directory: responsive variants and
    recompression for images, then srcset attributes in the generated HTML.
    Existing variants are left untouched, and so are favicon JPEGs and PNGs,
    which keep their exact sizes. Favicon GIFs and SVGs are still recompressed.
    """
    skip = (
        GlobMatcher('img/favicon/**/*.{jpg,png}', parent_dir='output_dir')
        | GlobMatcher('img/**/*@{2,3}x.*', parent_dir='output_dir')
    )
    raster = GlobMatcher('img/**/*.{jpg,png}', parent_dir='output_dir')
    variants = [DestPathCalc('img', stem_suffix=suffix) for suffix in RESPONSIVE_SUFFIXES]
    return Stage('optimize', [
        Rule(skip, None),
        Rule(raster, variants, ResponsiveImageStep()),
        Rule(GlobMatcher('img/**/*.gif', parent_dir='output_dir'), DestPathCalc('img'), GifsicleStep()),
        Rule(GlobMatcher('img/**/*.svg', parent_dir='output_dir'), DestPathCalc('img'), ScourStep()),
        Rule(
            GlobMatcher(['**/*.html', '!docs/**'], parent_dir='output_dir'),
            DestPathCalc(),
            SrcsetStep()
        ),
    ], source='output_dir')


def create_runner(context: Context, port: int = 3000, host: str = 'localhost') -> TaskRunner:
    """
    Build the TaskRunner holding every stage of the pipeline plus the
    composite `build`, `build-preview` and `server` tasks.
    """
    runner = TaskRunner(context)

    runner.add('css', css_stage(context))
    runner.add('js', js_stage())
    runner.add('fonts', copy_stage('fonts', 'fonts/**/*', 'fonts'))
    runner.add('src-root', copy_stage('src-root', '*'))
    runner.add('images', copy_stage('images', 'img/**/*', 'img'))
    runner.add('hugo', SiteGenerator())
    runner.add('hugo-preview', SiteGenerator(PREVIEW_OPTIONS, stage_name='hugo-preview'))
    runner.add('optimize', optimize_stage())

    runner.add('build', runner.sequence([*PARALLEL_STAGES, 'hugo'], 'optimize'))
    runner.add('build-preview', runner.sequence([*PARALLEL_STAGES, 'hugo-preview']))

    def start_server(context: Context):
        from .server import serve
        serve(context, runner, port=port, host=host)

    runner.add('server', start_server, deps=['hugo', *PARALLEL_STAGES])
    return runner
