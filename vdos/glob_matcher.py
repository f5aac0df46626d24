"""DOS-style wildcard matching used by ``find`` and namespace searches."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Any, Pattern

MATCHER_CACHE_SIZE = 128


def _translate(pattern: str) -> str:
    pieces = []
    for char in pattern:
        if char == "*":
            pieces.append(".*")
        elif char == "?":
            pieces.append(".")
        else:
            pieces.append(re.escape(char))
    return "".join(pieces)


@dataclass(frozen=True)
class Matcher:
    """A compiled wildcard pattern."""

    pattern: str
    regex: Pattern[str]

    def test(self, name: str) -> bool:
        return self.regex.fullmatch(name) is not None


@functools.lru_cache(maxsize=MATCHER_CACHE_SIZE)
def _compile(pattern: str) -> Matcher:
    regex = re.compile(_translate(pattern), re.IGNORECASE | re.DOTALL)
    return Matcher(pattern=pattern, regex=regex)


class GlobMatcher:
    """Compile ``*`` / ``?`` wildcard patterns into case-insensitive matchers.

    Only the two wildcards are special. Every other character, ``.``
    included, matches itself, and a literal ``*`` or ``?`` cannot be
    expressed. Compiled matchers are kept in a bounded LRU cache.
    """

    @staticmethod
    def compile(pattern: str) -> Matcher:
        return _compile(pattern)

    @staticmethod
    def cache_info() -> Any:
        return _compile.cache_info()


def matches(name: str, pattern: str) -> bool:
    return GlobMatcher.compile(pattern).test(name)


__all__ = ["GlobMatcher", "MATCHER_CACHE_SIZE", "Matcher", "matches"]
