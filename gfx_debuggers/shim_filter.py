"""
Remove the arguments a foreign launcher shim injected into a JVM command line.

The Modrinth launcher starts the game through its own agent and main class
("theseus"). Those entries must not be handed to a debugger that relaunches
the game directly.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import List, Pattern, Sequence, Tuple


@dataclass(frozen=True)
class FilterRules:
    agent_pattern: Pattern[str]
    entry_point: str
    property_prefix: str
    archive_name: str
    classpath_flags: Tuple[str, ...] = ("-cp", "-classpath")


THESEUS_RULES = FilterRules(
    agent_pattern=re.compile(r"-javaagent:.*theseus\.jar(=.*)?", re.DOTALL),
    entry_point="com.modrinth.theseus.MinecraftLaunch",
    property_prefix="-Dmodrinth.internal.",
    archive_name="theseus.jar",
)

CLASSPATH_FLAG_PATTERN = r"(-cp|-{1,2}classpath|--class-path)"


def strip_classpath_entries(classpath: str, archive_name: str, separator: str) -> str:
    kept = [entry for entry in classpath.split(separator) if archive_name not in entry]
    return separator.join(kept)


def is_shim_argument(arg: str, rules: FilterRules = THESEUS_RULES) -> bool:
    return (
        rules.agent_pattern.fullmatch(arg) is not None
        or arg == rules.entry_point
        or arg.startswith(rules.property_prefix)
    )


def filter_java_args(
    args: Sequence[str],
    rules: FilterRules = THESEUS_RULES,
    separator: str = os.pathsep,
) -> List[str]:
    """Return ``args`` without the shim's agent, main class, properties and classpath jar."""
    filtered: List[str] = []
    idx = 0
    while idx < len(args):
        arg = args[idx]
        if is_shim_argument(arg, rules):
            idx += 1
            continue
        filtered.append(arg)
        if arg in rules.classpath_flags and idx + 1 < len(args):
            filtered.append(strip_classpath_entries(args[idx + 1], rules.archive_name, separator))
            idx += 2
            continue
        idx += 1
    return filtered


def strip_shim_from_args_string(
    text: str,
    rules: FilterRules = THESEUS_RULES,
    separator: str = os.pathsep,
) -> str:
    """
    Textual counterpart of filter_java_args for an untokenized command line.

    Substitution works on whitespace-delimited words, so a quoted path with
    spaces or an unrelated file that merely contains the archive name is
    mangled the same way the tokenized filter would not be.
    """
    if not text:
        return ""
    archive = re.escape(rules.archive_name)
    sep = re.escape(separator)
    result = re.sub(r"-javaagent:\S*" + archive + r"(=\S*)?", "", text)
    result = result.replace(rules.entry_point, "")
    result = re.sub(re.escape(rules.property_prefix) + r"\S*", "", result)
    result = re.sub(sep + r"?[^\s" + sep + r"]*" + archive + r"[^\s" + sep + r"]*", "", result)
    result = re.sub(r"::+", ":", result)
    result = re.sub(r";;+", ";", result)
    result = re.sub(CLASSPATH_FLAG_PATTERN + r"(\s+)[:;]", r"\1\2", result)
    result = re.sub(r"\s{2,}", " ", result)
    return result.strip()
