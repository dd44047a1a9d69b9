"""
Checks for the external packages, binaries and node modules the pipeline
drives. Dependencies combine with `&` when a component needs several of them.
"""
from __future__ import annotations

import abc
import functools
import importlib.util
import operator
import os
import shutil
import typing as t
from pathlib import Path

if t.TYPE_CHECKING:
    from collections.abc import Iterable


class Dependency(abc.ABC):
    """
    Something a Component needs installed before it can run.
    """

    @property
    @abc.abstractmethod
    def satisfied(self) -> bool:
        """
        Whether the dependency is installed.
        """

    @property
    def needed(self) -> bool:
        """
        Whether the dependency matters on this platform.
        """
        return True

    @property
    @abc.abstractmethod
    def install_hint(self) -> str:
        """
        How to install the dependency, shown by `--audit-steps` and on failure.
        """

    def __repr__(self):
        return f'{self.__class__.__name__}({self}, needed={self.needed}, satisfied={self.satisfied})'

    def __and__(self, other: Dependency):
        return _AllDependency(self, other)


def all_of(dependencies: Iterable[Dependency]) -> Dependency:
    """
    Combine @dependencies with `&`.
    """
    return functools.reduce(operator.and_, dependencies)


class _AllDependency(Dependency):
    def __init__(self, left: Dependency, right: Dependency):
        self.left = left
        self.right = right

    def __str__(self):
        return f'{self.left} & {self.right}'

    @property
    def satisfied(self):
        return self.left.satisfied and self.right.satisfied

    @property
    def needed(self):
        return self.left.needed or self.right.needed

    @property
    def install_hint(self):
        hints = [
            d.install_hint for d in [self.left, self.right]
            if d.needed and not d.satisfied
        ]
        return '; '.join(hints)


class _NamedDependency(Dependency):
    def __init__(self,
                 name: str,
                 source: str | None = None,
                 check_name: str | None = None):
        self.name = name
        self.source = source or name
        self.check_name = check_name or name

    def __str__(self):
        return self.name


class PipDependency(_NamedDependency):
    """
    A Python package, looked up by import name without importing it.
    """
    @property
    def satisfied(self):
        return importlib.util.find_spec(self.check_name) is not None

    @property
    def install_hint(self):
        return f'pip install {self.source}'


class WebExecDependency(_NamedDependency):
    """
    An executable on PATH, such as hugo or optipng. @source is where to get
    it.
    """
    @property
    def satisfied(self):
        return bool(shutil.which(self.check_name))

    @property
    def install_hint(self):
        return self.source


class NpmDependency(WebExecDependency):
    """
    A Node.js command line tool installed globally from npm.
    """
    def __init__(self, name: str, package: str | None = None, check_name: str | None = None):
        super().__init__(name, f'npm install --global {package or name}', check_name)


def node_module_dirs() -> list[Path]:
    """
    Directories searched for node modules: `node_modules` in the current
    directory, then every entry of `NODE_PATH`.
    """
    extra = [Path(p) for p in os.environ.get('NODE_PATH', '').split(os.pathsep) if p]
    return [Path.cwd() / 'node_modules', *extra]


class NodeModuleDependency(_NamedDependency):
    """
    A node module loaded by another tool, such as a postcss plugin. It must be
    installed in the project's `node_modules` or on `NODE_PATH`.
    """
    @property
    def satisfied(self):
        return any((d / self.check_name).is_dir() for d in node_module_dirs())

    @property
    def install_hint(self):
        return f'npm install --save-dev {self.source}'
