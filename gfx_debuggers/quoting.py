"""
Encoders for handing arguments to other consumers, and a redactor for logs.
"""
from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence

SAFE_SHELL_PATTERN = re.compile(r"[A-Za-z0-9._/=:@%,+\-]+")

ARG_FILE_PREFIX = "gfx-debuggers-"
ARG_FILE_SUFFIX = ".args"
ARG_FILE_SPECIALS = frozenset('"\'\\#')

CENSORED = "<censored>"
SENSITIVE_FLAGS = frozenset(
    {
        "--accessToken",
        "--uuid",
        "--username",
        "--xuid",
        "--clientId",
    }
)


def shell_quote(arg: str) -> str:
    """Quote for a POSIX shell, leaving obviously safe words untouched."""
    if not arg:
        return "''"
    if SAFE_SHELL_PATTERN.fullmatch(arg):
        return arg
    return "'" + arg.replace("'", "'\\''") + "'"


def quote_for_arg_file(arg: str) -> str:
    """Quote one argument for a Java-style ``@argfile`` line."""
    if not arg:
        return '""'
    if not any(char.isspace() or char in ARG_FILE_SPECIALS for char in arg):
        return arg
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def censor_args(args: Iterable[str]) -> List[str]:
    """Copy of ``args`` with the values of credential flags replaced by a marker."""
    censored: List[str] = []
    censor_next = False
    for arg in args:
        # a flag in the value slot keeps its name and censors what follows it
        if arg in SENSITIVE_FLAGS:
            censored.append(arg)
            censor_next = True
            continue
        flag, sep, _ = arg.partition("=")
        if sep and flag in SENSITIVE_FLAGS:
            censored.append(f"{flag}={CENSORED}")
            censor_next = False
        elif censor_next:
            censored.append(CENSORED)
            censor_next = False
        else:
            censored.append(arg)
    return censored


def censor_arg_list(args: Iterable[str]) -> str:
    """Render ``args`` for display, e.g. ``[--accessToken, <censored>]``."""
    return "[" + ", ".join(censor_args(args)) + "]"


# ----- Argument files ------------------------------------------------------


def write_arg_file(args: Sequence[str], directory: str | None = None) -> Path:
    """Persist ``args`` one quoted argument per line and return the file path."""
    fd, name = tempfile.mkstemp(prefix=ARG_FILE_PREFIX, suffix=ARG_FILE_SUFFIX, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            for arg in args:
                handle.write(quote_for_arg_file(arg))
                handle.write("\n")
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    return path


def parse_arg_file(text: str) -> List[str]:
    """
    Tokenize argument-file content.

    Arguments are separated by whitespace. Single or double quotes group
    characters (line breaks included), and inside quotes a backslash makes the
    next character literal. A ``#`` that starts an unquoted token comments out
    the rest of the line.
    """
    args: List[str] = []
    current: str | None = None
    quote: str | None = None
    length = len(text)
    i = 0
    while i < length:
        char = text[i]
        if quote:
            if char == "\\" and i + 1 < length:
                current += text[i + 1]
                i += 2
                continue
            if char == quote:
                quote = None
            else:
                current += char
        elif char.isspace():
            if current is not None:
                args.append(current)
                current = None
        elif char == "#" and current is None:
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
            continue
        elif char in "\"'":
            quote = char
            current = current or ""
        else:
            current = (current or "") + char
        i += 1

    if current is not None:
        args.append(current)
    return args


def read_arg_file(path: str | os.PathLike) -> List[str]:
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return parse_arg_file(handle.read())
