"""
Terminal prompting used by strategy selection and keystore decryption.

Kept behind small functions so callers (and tests) never touch stdin directly.
"""

from __future__ import annotations

import getpass
import sys
from typing import List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stderr.isatty()


def prompt_secret(message: str) -> str:
    return getpass.getpass(f"{message} ")


def prompt_text(message: str, default: Optional[str] = None) -> str:
    """
    Ask for a non-empty line. An empty answer returns `default` when one is given.
    """
    suffix = f" ({default})" if default else ""
    while True:
        value = input(f"{message}{suffix} ").strip()
        if value:
            return value
        if default:
            return default


def prompt_select(message: str, choices: Sequence[Tuple[str, T]]) -> T:
    """
    Numbered menu on stderr; returns the value of the chosen entry.
    """
    if not choices:
        raise ValueError("prompt_select requires at least one choice")
    options: List[Tuple[str, T]] = list(choices)
    print(message, file=sys.stderr)
    for i, (label, _) in enumerate(options, start=1):
        print(f"  {i}) {label}", file=sys.stderr)
    while True:
        raw = input(f"Choice [1-{len(options)}]: ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1][1]
        print(f"Please enter a number between 1 and {len(options)}.", file=sys.stderr)
