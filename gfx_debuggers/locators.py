"""
Find installed debugger tools on disk.

Every lookup honours an explicit override first, then an environment
variable, then the conventional install locations. Nothing found is not an
error; the caller decides what an absent tool means.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .platform_utils import IS_WINDOWS

LOGGER = logging.getLogger(__name__)

NGFX_ENV = "NGFX_PATH"
RENDERDOC_ENV = "RENDERDOC_PATH"
RENDERDOC_LIB_ENV = "RENDERDOC_LIB_PATH"

RENDERDOC_SO = "librenderdoc.so"
RENDERDOC_DLL = "renderdoc.dll"
RENDERDOC_SYSTEM_PATHS = (
    "/usr/lib64/renderdoc/librenderdoc.so",
    "/usr/lib64/librenderdoc.so",
    "/usr/lib/librenderdoc.so",
    "/usr/lib/x86_64-linux-gnu/librenderdoc.so",
    "/usr/lib/renderdoc/librenderdoc.so",
    "/usr/local/lib/librenderdoc.so",
    "/usr/local/lib64/librenderdoc.so",
)


def ngfx_layout(windows: bool) -> tuple:
    """Return (executable name, host directory) of an Nsight Graphics install."""
    if windows:
        return "ngfx.exe", "windows-desktop-nomad-x64"
    return "ngfx", "linux-desktop-nomad-x64"


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _greatest_child(root: Path, prefix: str) -> Optional[Path]:
    """Pick the lexicographically greatest directory under ``root`` named ``prefix*``."""
    try:
        candidates = [p for p in root.iterdir() if p.is_dir() and p.name.startswith(prefix)]
    except OSError as exc:
        LOGGER.error("Failed to search for installations under %s: %s", root, exc)
        return None
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.name)


def resolve_ngfx(location: str, windows: bool = IS_WINDOWS) -> Optional[Path]:
    """Accept the binary itself, an install root, or the directory holding the binary."""
    exe_name, host_dir = ngfx_layout(windows)
    path = Path(location)
    if is_executable_file(path):
        return path
    for candidate in (path / "host" / host_dir / exe_name, path / exe_name):
        if is_executable_file(candidate):
            return candidate
    return None


def _program_files_roots(environ: Mapping[str, str]) -> Iterable[Path]:
    roots = [environ.get("ProgramFiles") or "C:\\Program Files"]
    if environ.get("ProgramFiles(x86)"):
        roots.append(environ["ProgramFiles(x86)"])
    return [Path(root) for root in roots]


def find_ngfx_executable(
    override: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    windows: bool = IS_WINDOWS,
) -> Optional[Path]:
    """Locate the Nsight Graphics ``ngfx`` command-line launcher."""
    environ = os.environ if environ is None else environ
    exe_name, host_dir = ngfx_layout(windows)

    for source, value in (("ngfx_path setting", override), (f"{NGFX_ENV} env var", environ.get(NGFX_ENV))):
        if not value:
            continue
        resolved = resolve_ngfx(value, windows)
        if resolved is not None:
            return resolved
        LOGGER.warning("%s set to '%s' but the ngfx executable was not found there.", source, value)

    if windows:
        search = [(root / "NVIDIA Corporation", "Nsight Graphics ") for root in _program_files_roots(environ)]
    else:
        home = home if home is not None else Path.home()
        search = [(home / "nvidia", "NVIDIA-Nsight-Graphics-")]

    for base, prefix in search:
        if not base.is_dir():
            continue
        newest = _greatest_child(base, prefix)
        if newest is None:
            continue
        candidate = newest / "host" / host_dir / exe_name
        if is_executable_file(candidate):
            return candidate
    return None


def _resolve_renderdoc_so(location: str) -> Optional[Path]:
    path = Path(location)
    if path.is_file():
        return path.absolute()
    inside = path / RENDERDOC_SO
    if inside.is_file():
        return inside.absolute()
    return None


def _resolve_renderdoc_dll(location: str) -> Optional[Path]:
    path = Path(location)
    if path.is_file() and path.name.lower() == RENDERDOC_DLL:
        return path.absolute()
    if path.is_dir() and (path / RENDERDOC_DLL).is_file():
        return (path / RENDERDOC_DLL).absolute()
    return None


def find_renderdoc_library(
    override: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    windows: bool = IS_WINDOWS,
    system_paths: Iterable[str] = RENDERDOC_SYSTEM_PATHS,
) -> Optional[Path]:
    """Locate ``librenderdoc.so`` (Linux) or ``renderdoc.dll`` (Windows)."""
    environ = os.environ if environ is None else environ
    resolve = _resolve_renderdoc_dll if windows else _resolve_renderdoc_so
    library = RENDERDOC_DLL if windows else RENDERDOC_SO

    for source, value in (("renderdoc_path setting", override), (f"{RENDERDOC_ENV} env var", environ.get(RENDERDOC_ENV))):
        if not value:
            continue
        resolved = resolve(value)
        if resolved is not None:
            return resolved
        LOGGER.warning("%s set to '%s' but %s was not found there.", source, value, library)

    home = home if home is not None else Path.home()
    if windows:
        return _search_renderdoc_windows(environ, home)

    lib_path = environ.get(RENDERDOC_LIB_ENV)
    if lib_path and Path(lib_path).is_file():
        return Path(lib_path)

    for candidate in system_paths:
        if Path(candidate).exists():
            return Path(candidate)

    local = home / ".local" / "lib" / RENDERDOC_SO
    if local.exists():
        return local.absolute()
    return None


def _search_renderdoc_windows(environ: Mapping[str, str], home: Path) -> Optional[Path]:
    roots = [Path(environ[key]) for key in ("ProgramFiles", "ProgramFiles(x86)") if environ.get(key)]
    for root in roots:
        direct = _resolve_renderdoc_dll(str(root / "RenderDoc"))
        if direct is not None:
            return direct
        if not root.is_dir():
            continue
        try:
            installs = sorted(
                (p for p in root.iterdir() if p.is_dir() and p.name.lower().startswith("renderdoc")),
                key=lambda p: p.name,
                reverse=True,
            )
        except OSError:
            continue
        for install in installs:
            if (install / RENDERDOC_DLL).exists():
                return (install / RENDERDOC_DLL).absolute()

    return _resolve_renderdoc_dll(str(home / "RenderDoc"))
