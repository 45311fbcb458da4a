from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from typing import List, Optional
from unittest import mock

from gfx_debuggers.errors import AcquisitionUnavailable, ReplaceFailed
from gfx_debuggers.platform_utils import (
    Invocation,
    PosixProcessControl,
    ProcessControl,
    WindowsProcessControl,
    check_platform_support,
    current_arguments,
    current_invocation,
    read_proc_cmdline,
    split_proc_cmdline,
)


class StaticControl(ProcessControl):
    name = "static"

    def __init__(self, argv: Optional[List[str]], raw: Optional[str] = None) -> None:
        self.argv = argv
        self.raw = raw

    def raw_command_line(self) -> Optional[str]:
        return self.raw

    def read_argv(self) -> List[str]:
        if self.argv is None:
            raise AcquisitionUnavailable("argv hidden")
        return list(self.argv)

    def executable_path(self) -> str:
        return "/opt/jdk/bin/java"


class ProcCmdlineTests(unittest.TestCase):
    def test_split_drops_single_trailing_terminator(self) -> None:
        self.assertEqual(split_proc_cmdline(b"java\x00-Xmx4G\x00-jar\x00game.jar\x00"), ["java", "-Xmx4G", "-jar", "game.jar"])
        self.assertEqual(split_proc_cmdline(b""), [])

    def test_split_keeps_empty_arguments(self) -> None:
        self.assertEqual(split_proc_cmdline(b"prog\x00\x00x\x00\x00"), ["prog", "", "x", ""])

    def test_read_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "cmdline"
            path.write_bytes(b"/usr/bin/java\x00--username\x00Player One\x00")
            self.assertEqual(read_proc_cmdline(str(path)), ["/usr/bin/java", "--username", "Player One"])
            self.assertEqual(PosixProcessControl(str(path)).read_argv(), ["/usr/bin/java", "--username", "Player One"])

    def test_missing_file_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(AcquisitionUnavailable):
                read_proc_cmdline(os.path.join(td, "missing"))


class InvocationTests(unittest.TestCase):
    def test_current_invocation_from_control(self) -> None:
        control = StaticControl(["java", "-Xmx4G", "net.minecraft.Main"], raw="java -Xmx4G net.minecraft.Main")
        invocation = current_invocation(control)
        self.assertEqual(invocation.executable_path, "/opt/jdk/bin/java")
        self.assertEqual(invocation.program_name, "java")
        self.assertEqual(invocation.arguments, ("-Xmx4G", "net.minecraft.Main"))
        self.assertEqual(invocation.raw_command_line, "java -Xmx4G net.minecraft.Main")
        self.assertEqual(invocation.argv(), ["java", "-Xmx4G", "net.minecraft.Main"])
        self.assertEqual(current_arguments(control), ["-Xmx4G", "net.minecraft.Main"])

    def test_unavailable_argv_gives_empty_invocation(self) -> None:
        with self.assertLogs("gfx_debuggers.platform_utils", level="WARNING"):
            invocation = current_invocation(StaticControl(None))
        self.assertEqual(invocation.arguments, ())
        self.assertEqual(invocation.program_name, "")
        self.assertEqual(invocation.argv(), ["/opt/jdk/bin/java"])

    def test_argv_falls_back_to_executable(self) -> None:
        self.assertEqual(Invocation("/bin/game", ("-x",)).argv(), ["/bin/game", "-x"])


class PlatformSupportTests(unittest.TestCase):
    def test_supported(self) -> None:
        self.assertIsNone(check_platform_support("Linux", "x86_64"))
        self.assertIsNone(check_platform_support("Windows", "AMD64"))
        self.assertIsNone(check_platform_support("Linux", "aarch64"))

    def test_unsupported(self) -> None:
        self.assertIn("Darwin", check_platform_support("Darwin", "arm64"))
        self.assertIn("i686", check_platform_support("Linux", "i686"))


class ReplaceProcessTests(unittest.TestCase):
    def test_generic_control_cannot_replace(self) -> None:
        with self.assertRaises(ReplaceFailed):
            ProcessControl().replace_process("/bin/true", ["/bin/true"])

    def test_exec_failure_carries_errno(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ReplaceFailed) as ctx:
                PosixProcessControl().replace_process(os.path.join(td, "missing"), ["missing"])
        self.assertIsNotNone(ctx.exception.errno)
        self.assertIn("errno", str(ctx.exception))


class NativeLibraryTests(unittest.TestCase):
    def test_load_library_goes_through_ctypes(self) -> None:
        with mock.patch("gfx_debuggers.platform_utils.ctypes.CDLL") as cdll:
            ProcessControl().load_library("/rd/librenderdoc.so")
        cdll.assert_called_once_with("/rd/librenderdoc.so")

    @unittest.skipIf(os.name == "nt", "GetCommandLineW is available on Windows")
    def test_windows_command_line_absent_elsewhere(self) -> None:
        control = WindowsProcessControl()
        self.assertIsNone(control.raw_command_line())
        with self.assertRaises(AcquisitionUnavailable):
            control.read_argv()
        with self.assertRaises(OSError):
            control.load_library("renderdoc.dll")


if __name__ == "__main__":
    unittest.main()
