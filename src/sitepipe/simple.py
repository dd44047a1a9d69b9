"""
Simple Steps and a base class for Steps that invoke external commandline tools.
"""
from __future__ import annotations

import abc
import contextlib
import shutil
import subprocess
import typing as t
from pathlib import Path

from .core import Step

if t.TYPE_CHECKING:
    from _typeshed import StrOrBytesPath


class DirectCopyStep(Step):
    """
    A simple Step which only copies a file to its output paths without
    renaming or extension changes.
    """
    def __call__(self, path: Path, output_paths: list[Path]):
        for target_path in output_paths:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(path, target_path)


class BaseStandardStep(Step):
    """
    A base class providing helper behaviors for typical steps creating one file
    and copying to others.
    """
    encoding = 'utf-8'
    newline = '\n'

    def ensure_output_dirs(self, output_paths: list[Path]):
        for o_path in output_paths:
            o_path.parent.mkdir(parents=True, exist_ok=True)

    def duplicate_output_paths(self, output_paths: list[Path]):
        for o_path in output_paths[1:]:
            shutil.copy(output_paths[0], o_path)

    @contextlib.contextmanager
    def ensure_outputs(self, output_paths: list[Path]):
        self.ensure_output_dirs(output_paths)
        yield
        self.duplicate_output_paths(output_paths)


class BaseCommandStep(Step):
    """
    A base class for steps that run an external command to generate a file.
    Input and output may be the same path for tools that work in place.
    """
    @abc.abstractmethod
    def get_command(self, input_path: Path, output_path: Path) -> StrOrBytesPath | list[StrOrBytesPath]:
        """
        Abstract method that must return a commandline ready for subprocess.
        """

    def group_outputs(self, output_paths: list[Path]) -> list[list[Path]]:
        """
        Overridable method which determines which outputs must be generated
        separately. Default behavior groups outputs by extension.
        """
        groups: dict[str, list[Path]] = {}
        for path in output_paths:
            groups.setdefault(path.suffix, []).append(path)
        return list(groups.values())

    def get_env(self) -> dict[str, str] | None:
        """
        Overridable method returning the environment for the command, or None
        to inherit the current one.
        """
        return None

    def run(self, input_path: Path, output_path: Path):
        """
        Run the command for a single input/output pair, raising
        `subprocess.CalledProcessError` with the tool's output on failure.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        subprocess.check_output(
            self.get_command(input_path, output_path),
            stderr=subprocess.STDOUT,
            env=self.get_env(),
        )

    def __call__(self, path: Path, output_paths: list[Path]):
        for egroup in self.group_outputs(output_paths):
            first = None
            for opath in egroup:
                if first:
                    opath.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy(first, opath)
                else:
                    self.run(path, opath)
                    first = opath
