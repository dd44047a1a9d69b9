"""
Command line entry point: `sitepipe [task]`, plus the helpers it uses to
combine config files with command line flags.
"""
from __future__ import annotations

import argparse
import contextlib
import importlib
import runpy
import subprocess
import sys
import tempfile
import typing as t
from pathlib import Path

from .core import BuildSettings, Component, Context, InputBuildSettings
from .exceptions import StageFailed, StepUnavailableException
from .pipeline import create_runner
from .pretty_utils import print_with_style

if t.TYPE_CHECKING:
    from .core import StyleEngine
    from .orchestrator import TaskRunner


DEFAULT_CONFIG = Path('sitepipe_config.py')


class BuildNamespace:
    """
    Internal used to preserve typing between InputBuildSettings, argparse, and
    BuildSettings.
    """
    source_dir: Path
    site_dir: Path
    output_dir: Path
    working_dir: Path | None
    webpack_config: Path
    style_engine: StyleEngine
    style_variables: dict[str, str]

    def __init__(self, settings: InputBuildSettings | None = None):
        self.style_variables = {}
        if settings:
            self.__dict__.update(settings)

    def to_build_settings(self, resolved_working_dir: Path):
        """
        Convert this argparse-oriented namespace into a Context-ready
        BuildSettings.
        """
        return BuildSettings(
            source_dir=self.source_dir,
            site_dir=self.site_dir,
            output_dir=self.output_dir,
            working_dir=resolved_working_dir,
            webpack_config=self.webpack_config,
            style_engine=self.style_engine,
            style_variables=dict(self.style_variables),
        )


@contextlib.contextmanager
def _wrap_temp(path: Path | None):
    if path:
        path.mkdir(parents=True, exist_ok=True)
        yield path
    else:
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir)


def parse_settings_args(settings: InputBuildSettings | None = None,
                        argv: list[str] | None = None,
                        parser: argparse.ArgumentParser | None = None,
                        **kw):
    """
    Combine an instance of InputBuildSettings with CLI arguments to produce a
    BuildNamespace, which can be easily turned into BuildSettings. Values from
    @settings act as defaults; flags override them. The settings flags are
    added to @parser if given, otherwise to a new parser built with @kw.
    """
    settings = settings or InputBuildSettings()
    namespace = BuildNamespace(settings)

    parser = parser or argparse.ArgumentParser(**kw)
    parser.add_argument('-s', '--source',
                        help='source directory with styles, scripts, fonts and images',
                        type=Path,
                        dest='source_dir',
                        default=settings.get('source_dir', Path('src')))
    parser.add_argument('--site',
                        help='hugo site directory',
                        type=Path,
                        dest='site_dir',
                        default=settings.get('site_dir', Path('site')))
    parser.add_argument('-o', '--output',
                        help='output directory for the generated site',
                        type=Path,
                        dest='output_dir',
                        default=settings.get('output_dir', Path('dist')))

    group = parser.add_mutually_exclusive_group()
    group.add_argument('-w', '--working',
                       help='directory for intermediate files; defaults to a new temporary directory',
                       type=Path,
                       dest='working_dir',
                       default=settings.get('working_dir'))
    group.add_argument('--use-temporary',
                       help='force use of a temporary directory for intermediate files',
                       action='store_const',
                       dest='working_dir',
                       const=None)

    parser.add_argument('--webpack-config',
                        help='webpack config file',
                        type=Path,
                        default=settings.get('webpack_config', Path('webpack.conf.js')))
    parser.add_argument('--style-engine',
                        help='tool used to process stylesheets',
                        choices=['postcss', 'lightningcss'],
                        default=settings.get('style_engine', 'postcss'))

    return parser.parse_args(argv, namespace=namespace)


def pprint_component(component: t.Type[Component]):
    """
    Prettily display dependency information for the given Component class.
    """
    missing = [
        str(d) for d in component.get_dependencies()
        if d.needed and not d.satisfied
    ]
    if missing:
        text = ', '.join(missing)
        print_with_style(f'✗ {component.__name__} (missing: {text})', style='red')
    else:
        print_with_style(f'✓ {component.__name__}', style='green')


def pprint_missing_deps(component: Component | t.Type[Component]):
    """
    Prettily display an error for the given Component with missing
    dependencies.
    """
    print_with_style(
        f'{component} is unavailable due to missing dependencies!',
        file='stderr',
        style='red'
    )
    for dep in component.get_dependencies():
        missing = False
        if not dep.needed:
            style = None
        elif dep.satisfied:
            style = 'green'
        else:
            missing = True
            style = 'red'

        text = f'✗ {dep}: {dep.install_hint}' if missing else f'✓ {dep}'
        print_with_style(text, style=style)


def pprint_tasks(runner: TaskRunner):
    """
    List the runner's tasks with their dependencies.
    """
    for name, task in runner.tasks.items():
        deps = f' (after: {", ".join(task.deps)})' if task.deps else ''
        print_with_style(f'{name}{deps}')


def audit_components():
    available = set(Component.get_available_components())
    groups = {
        'Available components': available,
        'Unavailable components': set(Component.get_all_components()) - available,
    }
    for group_label, group in groups.items():
        print(f'{group_label} ({len(group)})')
        for component in sorted(group, key=lambda c: c.__name__):
            pprint_component(component)


def load_config(args: argparse.Namespace) -> dict[str, t.Any]:
    """
    Return the namespace of the config module or file selected by @args, or
    an empty one when no config is given and the default file is absent.
    """
    if args.module:
        return vars(importlib.import_module(args.module))
    if args.config_file:
        return runpy.run_path(str(args.config_file))
    if DEFAULT_CONFIG.exists():
        return runpy.run_path(str(DEFAULT_CONFIG))
    return {}


def _add_config_arguments(parser: argparse.ArgumentParser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-c', '--config',
                       help=f'file path to a config file (default: {DEFAULT_CONFIG} if present)',
                       type=Path,
                       dest='config_file',
                       default=None)
    group.add_argument('-m',
                       help='import path of a config module',
                       dest='module',
                       default=None)


def main(arguments: list[str] | None = None):
    """
    sitepipe main function. Loads an optional config file, combines it with
    command line arguments, then runs the requested task.
    """
    # The config supplies the defaults of the full parser, so find it first.
    preparser = argparse.ArgumentParser(add_help=False)
    _add_config_arguments(preparser)
    config_args, _ = preparser.parse_known_args(arguments)

    namespace = load_config(config_args)
    settings: InputBuildSettings | None = namespace.get('SETTINGS')
    configure: t.Callable[[TaskRunner], None] | None = namespace.get('configure')

    parser = argparse.ArgumentParser(prog='sitepipe', description='Build a static site.')
    parser.add_argument('task',
                        nargs='?',
                        help='task to run (default: build)',
                        default='build')
    _add_config_arguments(parser)
    parser.add_argument('-p', '--port',
                        help='port for the dev server',
                        type=int,
                        default=3000)
    parser.add_argument('--host',
                        help='host for the dev server',
                        default='localhost')
    parser.add_argument('--list',
                        help='list tasks instead of running one',
                        action='store_true')
    parser.add_argument('--audit-steps',
                        help='show which steps and actions have their external tools installed',
                        action='store_true')

    args = parse_settings_args(settings, arguments, parser)

    if args.audit_steps:
        audit_components()
        return

    with _wrap_temp(args.working_dir) as working_dir:
        context = Context(args.to_build_settings(working_dir))
        runner = create_runner(context, port=args.port, host=args.host)
        if configure:
            configure(runner)
        runner.validate()

        if args.list:
            pprint_tasks(runner)
            return
        if args.task not in runner.tasks:
            parser.error(f'unknown task {args.task!r}; choose from {", ".join(runner.names())}')

        try:
            runner.run(args.task)
        except StepUnavailableException as e:
            pprint_missing_deps(e.step)
            sys.exit(1)
        except StageFailed as e:
            print_with_style(str(e), file='stderr', style='red')
            sys.exit(e.returncode or 1)
        except subprocess.CalledProcessError as e:
            print_with_style(
                f'{e.cmd!r} exited with {e.returncode}',
                e.output.decode(errors='replace') if e.output else '',
                file='stderr',
                style='red'
            )
            sys.exit(e.returncode)
