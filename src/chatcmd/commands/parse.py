from __future__ import annotations

import re
from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .configuration import CommandConfiguration


class SplitPolicy(StrEnum):
    KEEP_EMPTY = "keep_empty"
    DROP_EMPTY = "drop_empty"


@lru_cache(maxsize=32)
def _separator_pattern(separators: frozenset[str]) -> re.Pattern[str]:
    chars = "".join(re.escape(char) for char in sorted(separators))
    return re.compile(f"[{chars}]")


def canonical_separator(separators: frozenset[str]) -> str:
    if " " in separators:
        return " "
    return min(separators)


def strip_prefix(text: str, prefix: str) -> str | None:
    if not text.startswith(prefix):
        return None
    return text[len(prefix) :]


def skip_separators(text: str, config: CommandConfiguration) -> str:
    """Drop the separator(s) in front of the next token.

    With ``drop_empty`` the whole run is removed; with ``keep_empty`` only one
    separator is, so that doubled separators still yield an empty token.
    """
    if config.split_policy is SplitPolicy.DROP_EMPTY:
        return text.lstrip("".join(config.separators))
    if text and text[0] in config.separators:
        return text[1:]
    return text


def is_boundary(text: str, index: int, config: CommandConfiguration) -> bool:
    return index >= len(text) or text[index] in config.separators


def take_token(text: str, config: CommandConfiguration) -> tuple[str, str] | None:
    if config.split_policy is SplitPolicy.DROP_EMPTY:
        text = skip_separators(text, config)
    if not text:
        return None
    match = _separator_pattern(config.separators).search(text)
    if match is None:
        return text, ""
    return text[: match.start()], skip_separators(text[match.start() :], config)


def split_first(text: str, config: CommandConfiguration) -> tuple[str, str]:
    taken = take_token(text, config)
    if taken is None:
        return "", ""
    return taken


def split_arguments(text: str, config: CommandConfiguration) -> list[str]:
    if not text:
        return []
    parts = _separator_pattern(config.separators).split(text)
    if config.split_policy is SplitPolicy.DROP_EMPTY:
        return [part for part in parts if part]
    return parts


def count_tokens(text: str, config: CommandConfiguration) -> int:
    return len(split_arguments(text, config))
