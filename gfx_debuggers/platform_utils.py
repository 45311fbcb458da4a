"""
Process identity helpers: where the current process came from and how to
replace it.

Everything here reads the OS view of the process (``/proc/self/cmdline``,
``GetCommandLineW``) rather than ``sys.argv``, which the interpreter has
already rewritten.
"""
from __future__ import annotations

import ctypes
import logging
import os
import platform
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import psutil

from .cmdline import parse_windows_command_line
from .errors import AcquisitionUnavailable, ReplaceFailed

IS_WINDOWS = platform.system() == "Windows"
IS_LINUX = platform.system() == "Linux"

PROC_CMDLINE = "/proc/self/cmdline"

LOGGER = logging.getLogger(__name__)

@dataclass(frozen=True)
class Invocation:
    """The OS-observed launch of a process."""

    executable_path: str
    arguments: Tuple[str, ...] = ()
    program_name: str = ""
    raw_command_line: Optional[str] = None

    def argv(self) -> List[str]:
        return [self.program_name or self.executable_path, *self.arguments]


def check_platform_support(
    system: Optional[str] = None, machine: Optional[str] = None
) -> Optional[str]:
    """Return why this platform cannot host the debuggers, or None."""
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()
    if system not in ("Linux", "Windows"):
        return f"Unsupported OS: {system}"
    if "64" not in machine.lower():
        return f"Unsupported architecture: {machine}"
    return None


# ----- Acquisition ---------------------------------------------------------


def split_proc_cmdline(blob: bytes) -> List[str]:
    """Split a NUL separated argv blob, dropping the single trailing empty field."""
    if not blob:
        return []
    parts = blob.split(b"\x00")
    if parts and parts[-1] == b"":
        parts.pop()
    return [os.fsdecode(part) for part in parts]


def read_proc_cmdline(path: str = PROC_CMDLINE) -> List[str]:
    try:
        with open(path, "rb") as handle:
            blob = handle.read()
    except OSError as exc:
        raise AcquisitionUnavailable(f"Cannot read {path}: {exc}") from exc
    return split_proc_cmdline(blob)


def current_executable_path() -> str:
    """Resolve the running binary, following /proc/self/exe where available."""
    try:
        exe = psutil.Process().exe()
    except psutil.Error as exc:
        LOGGER.warning("Could not resolve the running executable (%s); using %s.", exc, sys.executable)
        return sys.executable
    return exe or sys.executable


def is_library_loaded(needle: str, pid: Optional[int] = None) -> bool:
    """Check whether a shared library whose path contains ``needle`` is mapped."""
    try:
        proc = psutil.Process(pid)
        for mmap in proc.memory_maps(grouped=True):
            if needle in (mmap.path or ""):
                return True
    except (psutil.AccessDenied, psutil.NoSuchProcess, NotImplementedError):
        return False
    return False


# ----- Platform capability -------------------------------------------------


class ProcessControl:
    """Native surface needed by the relaunch strategies."""

    name = "generic"

    def raw_command_line(self) -> Optional[str]:
        return None

    def read_argv(self) -> List[str]:
        raise AcquisitionUnavailable(f"Command line acquisition is not available on {self.name}.")

    def executable_path(self) -> str:
        return current_executable_path()

    def set_env(self, name: str, value: str) -> None:
        os.environ[name] = value

    def replace_process(self, path: str, argv: Sequence[str]) -> None:
        raise ReplaceFailed(f"Process replacement is not supported on {self.name}.")

    def load_library(self, path: str) -> None:
        ctypes.CDLL(path)

    def terminate(self, code: int) -> None:
        sys.exit(code)


class PosixProcessControl(ProcessControl):
    name = "posix"

    def __init__(self, cmdline_path: str = PROC_CMDLINE) -> None:
        self.cmdline_path = cmdline_path

    def read_argv(self) -> List[str]:
        return read_proc_cmdline(self.cmdline_path)

    def replace_process(self, path: str, argv: Sequence[str]) -> None:
        try:
            os.execv(path, list(argv))
        except OSError as exc:
            raise ReplaceFailed(f"execv of {path} failed: {exc.strerror}", exc.errno) from exc


class WindowsProcessControl(ProcessControl):
    name = "windows"

    def raw_command_line(self) -> Optional[str]:
        if not hasattr(ctypes, "windll"):
            return None
        from ctypes import wintypes

        get_command_line = ctypes.windll.kernel32.GetCommandLineW
        get_command_line.argtypes = []
        get_command_line.restype = wintypes.LPWSTR
        return get_command_line()

    def read_argv(self) -> List[str]:
        raw = self.raw_command_line()
        if raw is None:
            raise AcquisitionUnavailable("GetCommandLineW returned NULL.")
        return parse_windows_command_line(raw)

    def load_library(self, path: str) -> None:
        if not hasattr(ctypes, "WinDLL"):
            raise OSError("WinDLL unavailable; cannot load native libraries.")
        ctypes.WinDLL(path)


def default_process_control() -> ProcessControl:
    if IS_WINDOWS:
        return WindowsProcessControl()
    return PosixProcessControl()


def current_invocation(control: Optional[ProcessControl] = None) -> Invocation:
    """
    Capture the executable and argument vector of the running process.

    When the OS will not reveal the command line the invocation carries no
    arguments; callers treat that as a reason to take a fallback path.
    """
    control = control or default_process_control()
    raw = control.raw_command_line()
    try:
        argv = control.read_argv()
    except AcquisitionUnavailable as exc:
        LOGGER.warning("%s Continuing without the original arguments.", exc)
        argv = []
    program_name = argv[0] if argv else ""
    return Invocation(
        executable_path=control.executable_path(),
        arguments=tuple(argv[1:]),
        program_name=program_name,
        raw_command_line=raw,
    )


def current_arguments(control: Optional[ProcessControl] = None) -> List[str]:
    return list(current_invocation(control).arguments)
