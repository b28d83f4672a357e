from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple


_WHITESPACE = re.compile(r"\s+")


def split_terms(text: str | None) -> List[str]:
    """Split a query on runs of whitespace, dropping empty tokens."""

    if not text:
        return []
    return [t for t in _WHITESPACE.split(text.strip()) if t]


def join_fragments(fragments: Sequence[str] | None, separator: str = " ... ") -> Optional[str]:
    """Join highlight fragments for display; ``None`` when there is nothing to show."""

    parts = [f for f in (fragments or []) if f]
    if not parts:
        return None
    return separator.join(parts)


def highlight_segments(text: str | None, tag: str = "***") -> List[Tuple[str, bool]]:
    """Split highlighted text into ``(segment, is_match)`` pairs.

    Matches are the spans the search engine wrapped in ``tag`` on both sides,
    e.g. ``"a ***b*** c"`` -> ``[("a ", False), ("b", True), (" c", False)]``.
    Unbalanced markers are left in the plain text.
    """

    if not text:
        return []

    marker = re.escape(tag)
    pattern = re.compile(f"{marker}(.+?){marker}", re.DOTALL)

    segments: List[Tuple[str, bool]] = []
    pos = 0
    for m in pattern.finditer(text):
        if m.start() > pos:
            segments.append((text[pos:m.start()], False))
        segments.append((m.group(1), True))
        pos = m.end()
    if pos < len(text):
        segments.append((text[pos:], False))
    return segments
