"""
Steps handing stylesheets to external CSS processors.
"""
from __future__ import annotations

import json
import os
import typing as t
from pathlib import Path

from .core import Context
from .dependencies import NodeModuleDependency, NpmDependency, PipDependency, all_of
from .simple import BaseCommandStep, BaseStandardStep

if t.TYPE_CHECKING:
    from collections.abc import Sequence
    from _typeshed import StrOrBytesPath


POSTCSS_CONFIG_NAME = '.postcssrc.json'
POSTCSS_PLUGINS = (
    'postcss-import',
    'postcss-neat',
    'postcss-nested',
    'postcss-at2x',
    'postcss-simple-extend',
    'postcss-simple-vars-async',
    'postcss-colour-functions',
)


class PostCSSStep(BaseCommandStep):
    """
    Runs stylesheets through the postcss CLI with a fixed plugin chain. The
    plugins and their options are written to a postcss config file in the
    working directory before the first file is processed. postcss resolves
    plugins relative to that file, so the project's `node_modules` is put on
    `NODE_PATH` for the subprocess.
    """
    binary = 'postcss'

    def __init__(self,
                 variables: dict[str, str] | None = None,
                 import_from: Path | None = None,
                 node_modules: Path | None = None):
        """
        @variables are handed to the variables plugin; @import_from is the
        stylesheet the import plugin resolves relative to, defaulting to
        `css/main.css` in the source directory. @node_modules defaults to
        `node_modules` in the current directory.
        """
        self.variables = variables or {}
        self.import_from = import_from
        self.node_modules = node_modules

    @classmethod
    def get_dependencies(cls):
        plugins = all_of(NodeModuleDependency(name) for name in POSTCSS_PLUGINS)
        return super().get_dependencies() | {
            NpmDependency('postcss', 'postcss postcss-cli', cls.binary) & plugins,
        }

    @property
    def config_dir(self):
        return self.context['working_dir'] / 'postcss'

    def get_plugins(self) -> dict[str, dict[str, t.Any]]:
        """
        Return the plugin chain in execution order, mapped to plugin options.
        """
        import_from = self.import_from or self.context['source_dir'] / 'css' / 'main.css'
        options = {
            'postcss-import': {'from': str(import_from)},
            'postcss-simple-vars-async': {'variables': dict(self.variables)},
        }
        return {name: options.get(name, {}) for name in POSTCSS_PLUGINS}

    def write_config(self):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.config_dir / POSTCSS_CONFIG_NAME
        config_path.write_text(json.dumps({'plugins': self.get_plugins()}, indent=2), 'utf-8')
        return config_path

    def bind(self, context: Context):
        super().bind(context)
        self.write_config()

    def get_env(self):
        node_modules = (self.node_modules or Path.cwd() / 'node_modules').resolve()
        node_path = [str(node_modules)]
        if existing := os.environ.get('NODE_PATH'):
            node_path.append(existing)
        return {**os.environ, 'NODE_PATH': os.pathsep.join(node_path)}

    def get_command(self, input_path: Path, output_path: Path) -> list[StrOrBytesPath]:
        return [
            self.binary, input_path,
            '--config', self.config_dir,
            '--no-map',
            '-o', output_path,
        ]


class LightningCSSStep(BaseStandardStep):
    """
    In-process alternative to `PostCSSStep` using lightningcss, which lowers
    nesting and modern color functions for the targeted browsers. It has no
    equivalent to the variables or grid plugins.
    """
    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('lightningcss'),
        }

    def __init__(self,
                 browsers_list: Sequence[str] | None = ('defaults',),
                 minify: bool = False,
                 nesting: bool = True):
        self.browsers_list = list(browsers_list) if browsers_list else None
        self.minify = minify
        self.nesting = nesting

    def __call__(self, path: Path, output_paths: list[Path]):
        import lightningcss
        data = lightningcss.process_stylesheet(
            path.read_text(self.encoding),
            filename=str(path),
            parser_flags=lightningcss.calc_parser_flags(nesting=self.nesting),
            browsers_list=self.browsers_list,
            minify=self.minify
        )
        with self.ensure_outputs(output_paths):
            output_paths[0].write_text(data, self.encoding, newline=self.newline)


def create_style_step(context: Context):
    """
    Pick the style Step matching the context's `style_engine` setting.
    """
    engine = context['style_engine']
    if engine == 'postcss':
        return PostCSSStep(context['style_variables'])
    if engine == 'lightningcss':
        return LightningCSSStep()
    raise ValueError(f'Unknown style engine {engine!r}')
