# src/archive/filters.py — v1
"""Ant-style glob matching for workspace include/exclude patterns.

Patterns are matched against root-relative POSIX paths:
    **   any number of directories, including none
    *    any characters within one path segment
    ?    exactly one character within one path segment
A trailing '/' is shorthand for '/**'. Matching is case-sensitive.
"""

from __future__ import annotations

import re
from functools import lru_cache

from cxscan.core.models import CombinedFilter


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    for ch in segment:
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
    return "".join(out)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile one Ant-style pattern (without '!' prefix) into a regex."""
    normalized = pattern.strip().replace("\\", "/")
    if normalized.endswith("/"):
        normalized += "**"
    normalized = normalized.lstrip("/")
    segments = [s for s in normalized.split("/") if s]
    if not segments:
        raise ValueError(f"Empty filter pattern: {pattern!r}")

    parts: list[str] = []
    last = len(segments) - 1
    for i, segment in enumerate(segments):
        if segment == "**":
            parts.append(".*" if i == last else "(?:.*/)?")
        else:
            parts.append(_translate_segment(segment) + ("" if i == last else "/"))
    return re.compile("".join(parts))


def match_path(pattern: str, rel_path: str) -> bool:
    """Return True if a root-relative path matches an Ant-style pattern."""
    return compile_pattern(pattern).fullmatch(rel_path.replace("\\", "/")) is not None


class PathFilter:
    """Applies a CombinedFilter: any include must match, no exclude may match."""

    def __init__(self, combined: CombinedFilter) -> None:
        self._includes = [
            compile_pattern(p) for p in combined.include_patterns if p.strip()
        ]
        self._excludes = [
            compile_pattern(p) for p in combined.exclude_patterns if p.strip()
        ]

    def accepts(self, rel_path: str) -> bool:
        path = rel_path.replace("\\", "/")
        if not any(rx.fullmatch(path) for rx in self._includes):
            return False
        return not any(rx.fullmatch(path) for rx in self._excludes)
