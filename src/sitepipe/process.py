"""
Helpers for spawning the external binaries the pipeline is built around.
"""
from __future__ import annotations

import os
import shlex
import subprocess
import typing as t

from .pretty_utils import print_with_style

if t.TYPE_CHECKING:
    from _typeshed import StrOrBytesPath


def _describe(command: t.Sequence[StrOrBytesPath]):
    return shlex.join(os.fsdecode(part) for part in command)


def run_command(command: t.Sequence[StrOrBytesPath], cwd: StrOrBytesPath | None = None) -> int:
    """
    Run @command with the parent's stdio so its output streams straight to the
    terminal, and return its exit code. A missing executable raises
    `FileNotFoundError`.
    """
    print_with_style(f'$ {_describe(command)}', style='bold')
    with subprocess.Popen(command, cwd=cwd) as process:
        return process.wait()


def capture_command(command: t.Sequence[StrOrBytesPath],
                    cwd: StrOrBytesPath | None = None) -> subprocess.CompletedProcess[str]:
    """
    Run @command and collect its combined stdout and stderr as text.
    """
    print_with_style(f'$ {_describe(command)}', style='bold')
    return subprocess.run(
        command,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
