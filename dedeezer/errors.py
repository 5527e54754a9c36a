"""
Error taxonomy for the patcher.

Every error the pipeline raises on purpose derives from PatchError so the
orchestrator and the CLI can tell them apart from programming errors.
"""

from typing import List, Optional


class PatchError(RuntimeError):
    """Base class for patcher errors."""


class InstallationError(PatchError):
    """The target installation (archive, backup) is not where it should be."""


class UnsupportedPlatformError(PatchError):
    """No installation layout is known for this platform."""


class AmbiguousStateError(PatchError):
    """The archive is already patched and no pristine backup exists."""


class PatchCancelled(PatchError):
    """The user declined to continue."""


class StepError(PatchError):
    """An expected file was missing in the middle of the pipeline."""


class ToolError(PatchError):
    """An external tool could not be started or exited non-zero."""

    def __init__(self, message: str, command: Optional[List[str]] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
