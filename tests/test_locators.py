from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from gfx_debuggers.locators import (
    find_ngfx_executable,
    find_renderdoc_library,
    ngfx_layout,
    resolve_ngfx,
)


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755)
    return path


def make_file(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x7fELF")
    return path


class NgfxLocatorTests(unittest.TestCase):
    def test_layout(self) -> None:
        self.assertEqual(ngfx_layout(False), ("ngfx", "linux-desktop-nomad-x64"))
        self.assertEqual(ngfx_layout(True), ("ngfx.exe", "windows-desktop-nomad-x64"))

    def test_override_accepts_binary_root_or_bin_dir(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td) / "NVIDIA-Nsight-Graphics-2024.1"
            exe = make_executable(root / "host" / "linux-desktop-nomad-x64" / "ngfx")
            self.assertEqual(resolve_ngfx(str(exe), windows=False), exe)
            self.assertEqual(resolve_ngfx(str(root), windows=False), exe)
            self.assertEqual(resolve_ngfx(str(exe.parent), windows=False), exe)
            self.assertIsNone(resolve_ngfx(str(Path(td) / "missing"), windows=False))

    def test_override_wins_over_environment(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            first = make_executable(Path(td) / "a" / "ngfx")
            second = make_executable(Path(td) / "b" / "ngfx")
            found = find_ngfx_executable(str(first), environ={"NGFX_PATH": str(second)}, home=Path(td), windows=False)
            self.assertEqual(found, first)

    def test_bad_override_falls_through_to_environment(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            env_exe = make_executable(Path(td) / "env" / "ngfx")
            with self.assertLogs("gfx_debuggers.locators", level="WARNING"):
                found = find_ngfx_executable(
                    str(Path(td) / "nowhere"), environ={"NGFX_PATH": str(env_exe)}, home=Path(td), windows=False
                )
            self.assertEqual(found, env_exe)

    def test_newest_home_install_chosen(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            home = Path(td)
            for version in ("2023.3", "2024.1"):
                make_executable(home / "nvidia" / f"NVIDIA-Nsight-Graphics-{version}" / "host" / "linux-desktop-nomad-x64" / "ngfx")
            found = find_ngfx_executable(environ={}, home=home, windows=False)
            self.assertEqual(found.parent.parent.parent.name, "NVIDIA-Nsight-Graphics-2024.1")

    def test_newest_install_without_binary_is_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            home = Path(td)
            make_executable(home / "nvidia" / "NVIDIA-Nsight-Graphics-2023.3" / "host" / "linux-desktop-nomad-x64" / "ngfx")
            (home / "nvidia" / "NVIDIA-Nsight-Graphics-2024.1").mkdir(parents=True)
            self.assertIsNone(find_ngfx_executable(environ={}, home=home, windows=False))

    def test_non_executable_file_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            plain = make_file(Path(td) / "ngfx")
            plain.chmod(0o644)
            if os.access(plain, os.X_OK):
                self.skipTest("running with permissions that make every file executable")
            self.assertIsNone(find_ngfx_executable(str(plain), environ={}, home=Path(td), windows=False))

    def test_nothing_installed(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertIsNone(find_ngfx_executable(environ={}, home=Path(td), windows=False))

    def test_windows_program_files_search(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            program_files = Path(td)
            exe = make_executable(
                program_files / "NVIDIA Corporation" / "Nsight Graphics 2024.2" / "host" / "windows-desktop-nomad-x64" / "ngfx.exe"
            )
            found = find_ngfx_executable(environ={"ProgramFiles": str(program_files)}, windows=True)
            self.assertEqual(found, exe)


class RenderdocLocatorTests(unittest.TestCase):
    def test_override_file_or_directory(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            lib = make_file(Path(td) / "renderdoc" / "librenderdoc.so")
            self.assertEqual(find_renderdoc_library(str(lib), environ={}, home=Path(td), windows=False, system_paths=()), lib.absolute())
            self.assertEqual(
                find_renderdoc_library(str(lib.parent), environ={}, home=Path(td), windows=False, system_paths=()),
                lib.absolute(),
            )

    def test_environment_variables(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            lib = make_file(Path(td) / "rd" / "librenderdoc.so")
            self.assertEqual(
                find_renderdoc_library(environ={"RENDERDOC_PATH": str(lib.parent)}, home=Path(td), windows=False, system_paths=()),
                lib.absolute(),
            )
            self.assertEqual(
                find_renderdoc_library(environ={"RENDERDOC_LIB_PATH": str(lib)}, home=Path(td), windows=False, system_paths=()),
                lib,
            )

    def test_system_paths_then_home(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            system_lib = make_file(Path(td) / "usr" / "lib" / "librenderdoc.so")
            local_lib = make_file(Path(td) / "home" / ".local" / "lib" / "librenderdoc.so")
            found = find_renderdoc_library(
                environ={}, home=Path(td) / "home", windows=False, system_paths=(str(Path(td) / "missing.so"), str(system_lib))
            )
            self.assertEqual(found, system_lib)
            found = find_renderdoc_library(environ={}, home=Path(td) / "home", windows=False, system_paths=())
            self.assertEqual(found, local_lib.absolute())

    def test_nothing_installed(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertIsNone(find_renderdoc_library(environ={}, home=Path(td), windows=False, system_paths=()))

    def test_windows_dll_search(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            dll = make_file(Path(td) / "RenderDoc" / "renderdoc.dll")
            found = find_renderdoc_library(environ={"ProgramFiles": td}, home=Path(td) / "home", windows=True)
            self.assertEqual(found, dll.absolute())

    def test_windows_override_must_name_the_dll(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            other = make_file(Path(td) / "other.dll")
            self.assertIsNone(find_renderdoc_library(str(other), environ={}, home=Path(td), windows=True))


if __name__ == "__main__":
    unittest.main()
