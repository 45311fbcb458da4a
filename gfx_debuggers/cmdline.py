"""
Windows command-line tokenizing helpers.

Windows hands a process its command line as one string; splitting it back into
arguments follows the backslash/double-quote rules of CommandLineToArgvW.
"""
from __future__ import annotations

import subprocess
from typing import List, Optional, Sequence

WHITESPACE = (" ", "\t")


def parse_windows_command_line(command_line: Optional[str]) -> List[str]:
    """
    Split a raw Windows command line into argument tokens.

    Backslashes are literal unless a double quote follows them. A run of N
    backslashes before a quote yields N // 2 backslashes; with an odd N the
    quote is a literal character, with an even N it toggles quoting.

    An empty quoted argument ("") standing alone is dropped rather than
    emitted as an empty token.
    """
    args: List[str] = []
    if not command_line:
        return args

    current = ""
    in_quotes = False
    length = len(command_line)
    i = 0
    while i < length:
        char = command_line[i]
        if char == "\\":
            start = i
            while i < length and command_line[i] == "\\":
                i += 1
            count = i - start
            if i < length and command_line[i] == '"':
                current += "\\" * (count // 2)
                if count % 2 == 1:
                    current += '"'
                    i += 1
            else:
                current += "\\" * count
            continue

        if char == '"':
            in_quotes = not in_quotes
        elif char in WHITESPACE and not in_quotes:
            if current:
                args.append(current)
                current = ""
        else:
            current += char
        i += 1

    if current:
        args.append(current)
    return args


def strip_exe_from_command_line(command_line: Optional[str]) -> str:
    """Drop the leading executable token and return the remaining arguments."""
    if not command_line:
        return ""
    stripped = command_line.lstrip()
    if not stripped:
        return ""

    if stripped.startswith('"'):
        closing = stripped.find('"', 1)
        if closing == -1:
            return ""
        return stripped[closing + 1 :].strip()

    for idx, char in enumerate(stripped):
        if char in WHITESPACE:
            return stripped[idx:].strip()
    return ""


def join_windows_command_line(args: Sequence[str]) -> str:
    """Build a Windows command line that parses back into ``args``."""
    return subprocess.list2cmdline(list(args))
