from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from .core import Component


class StepUnavailableException(Exception):
    """
    Exception raised when a step or action to be used is unavailable due to
    missing dependencies.
    """
    def __init__(self, step: Component | type[Component], *args: t.Any):
        self.step = step
        super().__init__(*args)


class StageFailed(Exception):
    """
    Exception raised when an external tool reports that a stage failed.
    """
    def __init__(self, stage: str, message: str, returncode: int | None = None):
        self.stage = stage
        self.message = message
        self.returncode = returncode
        super().__init__(f'{stage}: {message}')
