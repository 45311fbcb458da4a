"""
Relaunch strategies that put a graphics debugger in front of the current
process.

Two ways in:

* preload re-exec (Linux): add the debugger library to ``LD_PRELOAD`` and
  replace the process image with an identical copy of itself;
* external launch: hand the reconstructed command line to Nsight Graphics'
  ``ngfx`` launcher, wait for it to start the game, then exit.

Both strategies report failures as a ``RelaunchOutcome`` instead of raising,
so the host keeps running unmodified when injection is not possible.
"""
from __future__ import annotations

import enum
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .cmdline import join_windows_command_line, strip_exe_from_command_line
from .errors import (
    AcquisitionUnavailable,
    ExternalLaunchFailed,
    GfxDebuggersError,
    ReplaceFailed,
    TempFileError,
)
from .platform_utils import IS_WINDOWS, Invocation, ProcessControl, current_invocation, default_process_control
from .quoting import CENSORED, censor_arg_list, shell_quote, write_arg_file
from .shim_filter import THESEUS_RULES, FilterRules, filter_java_args, strip_shim_from_args_string

LOGGER = logging.getLogger(__name__)

PRELOAD_ENV = "LD_PRELOAD"
PRELOAD_SEPARATOR = ":"
RENDERDOC_MARKER_ENV = "GFX_DEBUGGERS_RENDERDOC"
NSIGHT_MARKER_ENV = "GFX_DEBUGGERS_NSIGHT"
MARKER_VALUE = "1"

DEFAULT_FRAME_LIMIT = 5


class RelaunchState(enum.Enum):
    NOT_STARTED = "not-started"
    COLLECTING_INVOCATION = "collecting-invocation"
    FILTERING = "filtering"
    RE_EXECUTING = "re-executing"
    EXTERNAL_LAUNCHING = "external-launching"
    REPLACED = "replaced"
    TERMINATED = "terminated"
    FAILED = "failed"


class Strategy(enum.Enum):
    REEXEC = "reexec"
    EXTERNAL_TOOL = "external-tool"


class NgfxActivity(enum.Enum):
    GPU_TRACE = "GPU Trace Profiler"
    FRAME_DEBUGGER = "Frame Debugger"


@dataclass(frozen=True)
class RelaunchPlan:
    """
    A fully resolved relaunch.

    For ``REEXEC`` the arguments are the complete argv of the new image
    (argv[0] included); for ``EXTERNAL_TOOL`` they are the arguments passed to
    the tool binary.
    """

    strategy: Strategy
    target_executable: str
    target_arguments: Tuple[str, ...]
    environment_additions: Mapping[str, str] = field(default_factory=dict)


@dataclass
class RelaunchOutcome:
    state: RelaunchState
    error: Optional[GfxDebuggersError] = None
    exit_code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.state in (RelaunchState.REPLACED, RelaunchState.TERMINATED)


def prepend_preload(library: str, existing: Optional[str]) -> str:
    if existing:
        return f"{library}{PRELOAD_SEPARATOR}{existing}"
    return library


def plan_preload_relaunch(
    invocation: Invocation,
    library: str,
    marker_env: str = RENDERDOC_MARKER_ENV,
    environ: Optional[Mapping[str, str]] = None,
) -> RelaunchPlan:
    environ = os.environ if environ is None else environ
    return RelaunchPlan(
        strategy=Strategy.REEXEC,
        target_executable=invocation.executable_path,
        target_arguments=tuple(invocation.argv()),
        environment_additions={
            PRELOAD_ENV: prepend_preload(library, environ.get(PRELOAD_ENV)),
            marker_env: MARKER_VALUE,
        },
    )


def build_ngfx_command(
    ngfx: str,
    target_executable: str,
    activity: NgfxActivity,
    args_value: str,
    work_dir: str,
    marker_env: str = NSIGHT_MARKER_ENV,
    frame_limit: int = DEFAULT_FRAME_LIMIT,
    start_after_hotkey: bool = True,
) -> List[str]:
    """Assemble the ngfx command line; ``args_value`` is ``@<argfile>`` or an inline string."""
    cmd = [
        ngfx,
        f"--activity={activity.value}",
        f"--exe={target_executable}",
        f"--args={args_value}",
        f"--dir={work_dir}",
        f"--env={marker_env}={MARKER_VALUE}",
        "--launch-detached",
    ]
    if activity is NgfxActivity.GPU_TRACE:
        cmd += ["--limit-to-frames", str(frame_limit)]
        if start_after_hotkey:
            cmd.append("--start-after-hotkey")
    return cmd


def inline_arguments(args: Sequence[str], windows: bool = IS_WINDOWS) -> str:
    """Re-quote ``args`` into one string for tools that cannot read an argument file."""
    if windows:
        return join_windows_command_line(args)
    return " ".join(shell_quote(arg) for arg in args)


def display_command(cmd: Sequence[str]) -> str:
    """Printable command line with inline argument strings redacted."""
    shown = []
    for part in cmd:
        if part.startswith("--args=") and not part.startswith("--args=@"):
            part = f"--args={CENSORED}"
        shown.append(shell_quote(part))
    return " ".join(shown)


def delete_arg_file(path: Optional[Path]) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        LOGGER.error("Failed to delete temporary arg file %s: %s", path, exc)


class Relauncher:
    """Single-use driver for one relaunch attempt."""

    def __init__(
        self,
        control: Optional[ProcessControl] = None,
        rules: FilterRules = THESEUS_RULES,
        separator: str = os.pathsep,
        windows: bool = IS_WINDOWS,
    ) -> None:
        self.control = control or default_process_control()
        self.rules = rules
        self.separator = separator
        self.windows = windows
        self.state = RelaunchState.NOT_STARTED
        self.plan: Optional[RelaunchPlan] = None

    def _enter(self, state: RelaunchState) -> None:
        LOGGER.debug("Relaunch state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, error: GfxDebuggersError, exit_code: Optional[int] = None) -> RelaunchOutcome:
        self._enter(RelaunchState.FAILED)
        LOGGER.error("%s", error)
        return RelaunchOutcome(RelaunchState.FAILED, error=error, exit_code=exit_code)

    def _check_unused(self) -> None:
        if self.state is not RelaunchState.NOT_STARTED:
            raise RuntimeError(f"Relauncher already used (state {self.state.value}).")

    def _start(self, invocation: Optional[Invocation]) -> Invocation:
        self._enter(RelaunchState.COLLECTING_INVOCATION)
        return invocation if invocation is not None else current_invocation(self.control)

    # ------------------------------------------------------------------ preload re-exec
    def relaunch_with_preload(
        self,
        library: str,
        invocation: Optional[Invocation] = None,
        marker_env: str = RENDERDOC_MARKER_ENV,
        environ: Optional[Mapping[str, str]] = None,
    ) -> RelaunchOutcome:
        """
        Replace the process with itself plus ``library`` preloaded.

        The argv is passed through unfiltered. On success this never returns
        (outside of tests, where the control double records the call).
        """
        self._check_unused()
        try:
            invocation = self._start(invocation)
            if not invocation.program_name:
                raise AcquisitionUnavailable("Original command line unavailable; cannot re-exec.")
            self._enter(RelaunchState.FILTERING)
            self.plan = plan_preload_relaunch(invocation, library, marker_env, environ)

            self._enter(RelaunchState.RE_EXECUTING)
            for name, value in self.plan.environment_additions.items():
                self.control.set_env(name, value)
            LOGGER.info("Replacing process %s with %s", self.plan.target_executable, PRELOAD_ENV)
            LOGGER.debug("Re-exec argv: %s", censor_arg_list(self.plan.target_arguments))
            self.control.replace_process(self.plan.target_executable, self.plan.target_arguments)
        except GfxDebuggersError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._fail(ReplaceFailed(f"Re-exec failed: {exc}"))

        self._enter(RelaunchState.REPLACED)
        return RelaunchOutcome(RelaunchState.REPLACED)

    # ------------------------------------------------------------------ external tool
    def _resolve_target_arguments(self, invocation: Invocation) -> Tuple[List[str], Optional[str]]:
        """
        Return (filtered argument list, inline fallback string).

        An acquired argv may legitimately be empty; only a missing argv falls
        back to the raw command line.
        """
        if invocation.program_name:
            filtered = filter_java_args(invocation.arguments, self.rules, self.separator)
            LOGGER.info("Relaunch arguments: %s", censor_arg_list(filtered))
            return filtered, None
        if invocation.raw_command_line:
            LOGGER.warning("Tokenized arguments unavailable; filtering the raw command line instead.")
            stripped = strip_exe_from_command_line(invocation.raw_command_line)
            return [], strip_shim_from_args_string(stripped, self.rules, self.separator)
        raise AcquisitionUnavailable("No arguments could be recovered for the relaunch.")

    def launch_via_ngfx(
        self,
        ngfx: str,
        activity: NgfxActivity,
        invocation: Optional[Invocation] = None,
        work_dir: Optional[str] = None,
        marker_env: str = NSIGHT_MARKER_ENV,
        frame_limit: int = DEFAULT_FRAME_LIMIT,
        start_after_hotkey: bool = True,
    ) -> RelaunchOutcome:
        """
        Start a fresh copy of the target under ngfx and terminate this process.

        The temporary argument file is removed before termination on every
        path. A non-zero ngfx exit leaves this process running.
        """
        self._check_unused()
        arg_file: Optional[Path] = None
        try:
            invocation = self._start(invocation)
            self._enter(RelaunchState.FILTERING)
            args, inline = self._resolve_target_arguments(invocation)

            self._enter(RelaunchState.EXTERNAL_LAUNCHING)
            if inline is None:
                try:
                    arg_file = self._write_arg_file(args)
                    args_value = f"@{arg_file.absolute()}"
                except TempFileError as exc:
                    LOGGER.error("%s Passing arguments inline instead.", exc)
                    args_value = inline_arguments(args, self.windows)
            else:
                args_value = inline

            cmd = build_ngfx_command(
                ngfx,
                invocation.executable_path,
                activity,
                args_value,
                work_dir or os.getcwd(),
                marker_env=marker_env,
                frame_limit=frame_limit,
                start_after_hotkey=start_after_hotkey,
            )
            self.plan = RelaunchPlan(Strategy.EXTERNAL_TOOL, cmd[0], tuple(cmd[1:]))
            LOGGER.info("Running ngfx with command: %s", display_command(cmd))
            exit_code = self._run_and_drain(cmd)
        except GfxDebuggersError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._fail(ExternalLaunchFailed(f"Failed to launch with Nsight Graphics: {exc}"))
        finally:
            delete_arg_file(arg_file)

        if exit_code != 0:
            return self._fail(
                ExternalLaunchFailed("ngfx did not start the game; check the Nsight Graphics install", exit_code),
                exit_code,
            )

        LOGGER.info("Game re-launched via ngfx (exit code 0). Terminating current process.")
        self._enter(RelaunchState.TERMINATED)
        self.control.terminate(0)
        return RelaunchOutcome(RelaunchState.TERMINATED, exit_code=0)

    @staticmethod
    def _write_arg_file(args: Sequence[str]) -> Path:
        try:
            return write_arg_file(args)
        except OSError as exc:
            raise TempFileError(f"Failed to create argfile for ngfx: {exc}") from exc

    @staticmethod
    def _run_and_drain(cmd: Sequence[str]) -> int:
        try:
            process = subprocess.Popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise ExternalLaunchFailed(f"Failed to run ngfx: {exc}") from exc

        assert process.stdout is not None
        with process.stdout:
            for line in process.stdout:
                line = line.rstrip("\r\n")
                if line.strip():
                    LOGGER.info("%s", line)
        return process.wait()

