#!/usr/bin/env python3
"""
Command-line front end: launch a program under a graphics debugger, or inspect
how a command line would be rebuilt for a relaunch.
"""
from __future__ import annotations

import argparse
import os
import shutil
import sys
import textwrap
from typing import List, Optional, Sequence

from gfx_debuggers import config as settings
from gfx_debuggers.cmdline import parse_windows_command_line
from gfx_debuggers.injector import inject_renderdoc, launch_nsight, resolve_selection, show_picker
from gfx_debuggers.locators import find_ngfx_executable, find_renderdoc_library
from gfx_debuggers.platform_utils import IS_WINDOWS, Invocation, default_process_control
from gfx_debuggers.quoting import censor_arg_list, censor_args, quote_for_arg_file, read_arg_file, shell_quote
from gfx_debuggers.selection import DebuggerSelection, parse_selection
from gfx_debuggers.shim_filter import filter_java_args

DEBUGGER_CHOICES = [choice.value for choice in DebuggerSelection]


def build_invocation(command: Sequence[str]) -> Invocation:
    """Describe a user-supplied command the way acquisition describes our own process."""
    program = command[0]
    executable = shutil.which(program) or os.path.abspath(program)
    return Invocation(executable_path=executable, arguments=tuple(command[1:]), program_name=program)


def print_tokens(raw: str) -> None:
    tokens = parse_windows_command_line(raw)
    print(f"{len(tokens)} token(s):")
    for idx, token in enumerate(tokens, 1):
        print(f"  [{idx:02d}] {shell_quote(token)}")


def print_locations(config: dict) -> None:
    ngfx = find_ngfx_executable(config.get("ngfx_path"))
    renderdoc = find_renderdoc_library(config.get("renderdoc_path"))
    print(f"ngfx:      {ngfx or '(not found)'}")
    print(f"RenderDoc: {renderdoc or '(not found)'}")


def print_relaunch_preview(invocation: Invocation) -> None:
    filtered = filter_java_args(invocation.arguments)
    print(f"Executable: {invocation.executable_path}")
    print(f"Arguments:  {censor_arg_list(invocation.arguments)}")
    print(f"Filtered:   {censor_arg_list(filtered)}")
    removed = len(invocation.arguments) - len(filtered)
    if removed:
        print(f"  ({removed} launcher shim argument(s) removed)")
    print("\nArgument file lines:")
    for line in (quote_for_arg_file(arg) for arg in censor_args(filtered)):
        print(f"  {line}")


def run_command(invocation: Invocation, choice: DebuggerSelection, config: dict) -> int:
    control = default_process_control()
    environ = os.environ
    if choice is DebuggerSelection.NONE:
        print("No debugger selected; starting the program unmodified.")
        os.execv(invocation.executable_path, invocation.argv())
        return 0
    if choice is DebuggerSelection.RENDERDOC:
        if IS_WINDOWS:
            print("RenderDoc wrapping of other programs is only supported on Linux.")
            return 2
        outcome = inject_renderdoc(
            config, control, environ, windows=False, library_probe=lambda needle: False, invocation=invocation
        )
    else:
        outcome = launch_nsight(config, control, choice.activity, environ, invocation=invocation)
    if outcome is not None and outcome.error is not None:
        print(f"Launch failed: {outcome.error}")
        return 1
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Launch a program under RenderDoc or Nsight Graphics, or preview a relaunch.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """\
Examples:
  python gfx_launcher.py --debugger renderdoc -- java -Xmx4G -cp lib/mc.jar net.minecraft.client.Main
  python gfx_launcher.py --debugger nsight-frame --args-file launch.args
  python gfx_launcher.py --show -- java -javaagent:/tmp/theseus.jar --accessToken abc
  python gfx_launcher.py --tokenize '"C:\\Program Files\\java.exe" -jar test.jar'
  python gfx_launcher.py --locate
"""
        ),
    )
    parser.add_argument("--debugger", choices=DEBUGGER_CHOICES, help="Debugger to launch under.")
    parser.add_argument("--config", help="Path to gfx_debuggers.json to override defaults.")
    parser.add_argument("--args-file", help="Read the command to launch from an argument file.")
    parser.add_argument("--show", action="store_true", help="Print the rebuilt command line instead of launching.")
    parser.add_argument("--tokenize", metavar="STRING", help="Split a Windows command line and print the tokens.")
    parser.add_argument("--locate", action="store_true", help="Print where ngfx and RenderDoc were found.")
    parser.add_argument("--no-dialog", action="store_true", help="Never open the selection window.")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Program and arguments, after '--'.")
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = settings.load_config(args.config)
    settings.configure_logging(config.get("log_level", "INFO"), config.get("log_path"))

    if args.tokenize is not None:
        print_tokens(args.tokenize)
        return 0
    if args.locate:
        print_locations(config)
        return 0

    command: List[str] = list(args.command)
    if args.args_file:
        command += read_arg_file(args.args_file)
    if not command:
        print("Nothing to launch. Pass a command after '--' or use --args-file.")
        return 2

    invocation = build_invocation(command)
    if args.show:
        print_relaunch_preview(invocation)
        return 0

    if args.debugger:
        choice = parse_selection(args.debugger)
    else:
        choice = resolve_selection(config, None if args.no_dialog else show_picker)
    return run_command(invocation, choice, config)


def entrypoint() -> None:
    try:
        sys.exit(main())
    except Exception as exc:  # pragma: no cover - last-resort guardrail
        print(f"Fatal error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    entrypoint()
