"""Chat command parsing.

``parse_command`` turns a raw chat line into a Command. The per-command
argument grammars live here too so they can be tested without a transport.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

COMMAND_PREFIX = "!"

_GIVE_PATTERN = re.compile(r"(\S+)\s(\d+)?")
_SIGNED_INT_PATTERN = re.compile(r"(-?\d+)")


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = ()


def parse_command(text: str) -> Command | None:
    """Return the command in ``text``, or None if it isn't one."""
    if not text or not text.startswith(COMMAND_PREFIX):
        return None
    tokens = text.split()
    return Command(name=tokens[0], args=tuple(tokens[1:]))


def parse_give_args(args: tuple[str, ...] | list[str]) -> tuple[str, int] | None:
    """``<target> <amount>`` → (target, amount), or None if either is missing."""
    match = _GIVE_PATTERN.search(" ".join(args))
    if not match or not match.group(1) or not match.group(2):
        return None
    target = match.group(1).lstrip("@")
    if not target:
        return None
    return target, int(match.group(2))


def parse_wager_amount(args: tuple[str, ...] | list[str], default: int = 1) -> int:
    """Leading signed integer of the first argument, else ``default``."""
    if not args:
        return default
    match = _SIGNED_INT_PATTERN.search(args[0])
    if not match:
        return default
    return int(match.group(1))
