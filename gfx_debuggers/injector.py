"""
Pre-launch entrypoint: decide whether and how to put a debugger in front of
the running process.

Call ``pre_launch()`` as early as possible in the host. It returns normally
whenever injection is skipped or fails, so the host simply carries on
without a debugger. The only exception that escapes is
``InjectionSetupError``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .config import load_config
from .errors import GfxDebuggersError, InjectionSetupError, ToolNotFound
from .locators import find_ngfx_executable, find_renderdoc_library, ngfx_layout
from .platform_utils import (
    IS_WINDOWS,
    Invocation,
    ProcessControl,
    check_platform_support,
    default_process_control,
    is_library_loaded,
)
from .relaunch import (
    NSIGHT_MARKER_ENV,
    PRELOAD_ENV,
    RENDERDOC_MARKER_ENV,
    NgfxActivity,
    RelaunchOutcome,
    Relauncher,
    RelaunchState,
)
from .selection import DebuggerSelection, parse_selection

LOGGER = logging.getLogger(__name__)

RENDERDOC_LIBRARY_NEEDLE = "librenderdoc"

Picker = Callable[[], DebuggerSelection]
LibraryProbe = Callable[[str], bool]


def show_picker() -> DebuggerSelection:
    from .picker import pick_debugger

    return pick_debugger()


def resolve_selection(config: Mapping[str, Any], picker: Optional[Picker] = show_picker) -> DebuggerSelection:
    """Use the configured debugger if recognised, otherwise ask through the dialog."""
    choice = parse_selection(config.get("debugger"))
    if choice is not DebuggerSelection.NONE or picker is None:
        return choice
    try:
        return picker()
    except Exception as exc:
        LOGGER.error("Could not open the selection window (%s). Set the debugger setting instead.", exc)
        return DebuggerSelection.NONE


def check_relaunched_instance(environ: Mapping[str, str], library_probe: LibraryProbe = is_library_loaded) -> bool:
    """
    Return True when this process is already the relaunched copy.

    A RenderDoc marker without the library mapped means the preload silently
    failed; that raises instead of letting the host run undebugged.
    """
    if environ.get(RENDERDOC_MARKER_ENV):
        LOGGER.info("Process relaunched with RenderDoc marker. Checking if library is loaded...")
        if not library_probe(RENDERDOC_LIBRARY_NEEDLE):
            LOGGER.error("RenderDoc marker is set but the library is not loaded. The injection went wrong.")
            raise InjectionSetupError("RenderDoc injection failed: marker present but library not loaded.")
        LOGGER.info("RenderDoc library is loaded. Continuing with normal launch.")
        return True
    if environ.get(NSIGHT_MARKER_ENV):
        LOGGER.info("Process relaunched with Nsight Graphics marker. Continuing with normal launch.")
        return True
    return False


def _report(error: GfxDebuggersError) -> RelaunchOutcome:
    LOGGER.error("%s", error)
    return RelaunchOutcome(RelaunchState.FAILED, error=error)


def inject_renderdoc(
    config: Mapping[str, Any],
    control: ProcessControl,
    environ: Mapping[str, str],
    windows: bool = IS_WINDOWS,
    library_probe: LibraryProbe = is_library_loaded,
    invocation: Optional[Invocation] = None,
) -> Optional[RelaunchOutcome]:
    LOGGER.info("Injecting RenderDoc...")
    library = find_renderdoc_library(config.get("renderdoc_path"), environ=environ, windows=windows)
    if library is None:
        return _report(
            ToolNotFound(
                "RenderDoc library",
                "Set renderdoc_path in the config or the RENDERDOC_PATH env var to your RenderDoc install.",
            )
        )
    LOGGER.info("Found RenderDoc at: %s", library)

    if windows:
        try:
            control.load_library(str(library))
        except OSError as exc:
            return _report(GfxDebuggersError(f"Failed to load {library}: {exc}"))
        LOGGER.info("RenderDoc loaded successfully.")
        return None

    if library_probe(RENDERDOC_LIBRARY_NEEDLE):
        LOGGER.info("RenderDoc is already loaded, no re-exec needed.")
        return None

    outcome = Relauncher(control).relaunch_with_preload(str(library), invocation, environ=environ)
    if not outcome.succeeded:
        LOGGER.error("Re-exec with %s failed.", PRELOAD_ENV)
        LOGGER.error("Try launching the game manually with this environment variable set: %s=%s", PRELOAD_ENV, library)
    return outcome


def expected_ngfx_location(windows: bool = IS_WINDOWS) -> str:
    exe_name, host_dir = ngfx_layout(windows)
    if windows:
        return str(Path("Program Files", "NVIDIA Corporation", "Nsight Graphics *", "host", host_dir, exe_name))
    return str(Path("~", "nvidia", "NVIDIA-Nsight-Graphics-*", "host", host_dir, exe_name))


def launch_nsight(
    config: Mapping[str, Any],
    control: ProcessControl,
    activity: NgfxActivity,
    environ: Mapping[str, str],
    windows: bool = IS_WINDOWS,
    invocation: Optional[Invocation] = None,
) -> RelaunchOutcome:
    LOGGER.info("Launching game via ngfx CLI for %s...", activity.value)
    ngfx = find_ngfx_executable(config.get("ngfx_path"), environ=environ, windows=windows)
    if ngfx is None:
        return _report(ToolNotFound("Nsight Graphics ngfx executable", f"Expected at: {expected_ngfx_location(windows)}"))
    LOGGER.info("Found ngfx at: %s", ngfx)

    return Relauncher(control, windows=windows).launch_via_ngfx(
        str(ngfx.absolute()),
        activity,
        invocation,
        frame_limit=config.get("gpu_trace_frame_limit", 5),
        start_after_hotkey=bool(config.get("start_after_hotkey", True)),
    )


def pre_launch(
    config: Optional[Dict[str, Any]] = None,
    control: Optional[ProcessControl] = None,
    picker: Optional[Picker] = show_picker,
    environ: Optional[Mapping[str, str]] = None,
    library_probe: LibraryProbe = is_library_loaded,
    windows: bool = IS_WINDOWS,
) -> Optional[RelaunchOutcome]:
    """Run the injection flow; returns the relaunch outcome, or None when nothing was relaunched."""
    config = load_config() if config is None else config
    environ = os.environ if environ is None else environ

    reason = check_platform_support()
    if reason:
        LOGGER.error("%s", reason)
        return None

    if check_relaunched_instance(environ, library_probe):
        return None

    choice = resolve_selection(config, picker)
    if choice is DebuggerSelection.NONE:
        LOGGER.warning("Injection skipped! No debugger will be injected and the game will launch normally.")
        return None

    control = control or default_process_control()
    if choice is DebuggerSelection.RENDERDOC:
        return inject_renderdoc(config, control, environ, windows, library_probe)
    return launch_nsight(config, control, choice.activity, environ, windows)
