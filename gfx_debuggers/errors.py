"""
Failure taxonomy for the acquisition and relaunch pipeline.
"""
from __future__ import annotations

from typing import Optional


class GfxDebuggersError(Exception):
    """Base class for every failure raised by this package."""


class AcquisitionUnavailable(GfxDebuggersError):
    """The OS refused to reveal the current command line."""


class ToolNotFound(GfxDebuggersError):
    def __init__(self, tool: str, hint: str = "") -> None:
        message = f"{tool} not found."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)
        self.tool = tool
        self.hint = hint


class ReplaceFailed(GfxDebuggersError):
    """The process-image replace call returned instead of replacing us."""

    def __init__(self, message: str, errno: Optional[int] = None) -> None:
        if errno is not None:
            message = f"{message} (errno {errno})"
        super().__init__(message)
        self.errno = errno


class ExternalLaunchFailed(GfxDebuggersError):
    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        if exit_code is not None:
            message = f"{message} (exit code {exit_code})"
        super().__init__(message)
        self.exit_code = exit_code


class TempFileError(GfxDebuggersError):
    """Creating or removing the temporary argument file failed."""


class InjectionSetupError(GfxDebuggersError):
    """
    A relaunched instance does not match its marker.

    This is the one condition that must stop the host: continuing would run
    without the debugger while the user believes it is attached.
    """
