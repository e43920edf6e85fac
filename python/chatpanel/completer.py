"""
chatpanel/completer.py

Name completion helpers: token boundaries, cycle ordering and the name-lookup
collaborators.  No I/O, no prompt_toolkit.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional, Sequence

# A lookup returns None when no completion source is available, and an empty
# sequence when the source has no match for the prefix.
NameLookup = Callable[[str], Awaitable[Optional[Sequence[str]]]]


# ──────────────────────────────────────────────────────────────────────────────
# Token boundary
# ──────────────────────────────────────────────────────────────────────────────


def token_start(text: str, caret: int) -> int:
    """
    Offset where the word under the caret begins: just past the last
    whitespace character before the caret, or 0.

        token_start("hi al", 5)  → 3
        token_start("al", 2)     → 0
    """
    caret = max(0, min(caret, len(text)))
    for i in range(caret - 1, -1, -1):
        if text[i].isspace():
            return i + 1
    return 0


# ──────────────────────────────────────────────────────────────────────────────
# Cycle order
# ──────────────────────────────────────────────────────────────────────────────


def order_candidates(candidates: Iterable[str]) -> list[str]:
    """Alphabetical order ignoring case; ties broken case-sensitively."""
    return sorted(candidates, key=lambda s: (s.casefold(), s))


def pick_next_candidate(
    candidates: Iterable[str], last_selection: Optional[str] = None
) -> Optional[str]:
    """
    Next candidate in the cycle.

    Candidates are ordered alphabetically ignoring case, then filtered to
    those greater than last_selection under the same compare.  When nothing
    is greater the cycle wraps to the first candidate.  Returns None when
    there are no candidates at all.

        pick_next_candidate(["Alice", "bob", "Carol"])           → "Alice"
        pick_next_candidate(["Alice", "bob", "Carol"], "Alice")  → "bob"
        pick_next_candidate(["Alice", "bob", "Carol"], "bob")    → "Carol"
        pick_next_candidate(["Alice", "bob", "Carol"], "Carol")  → "Alice"
    """
    ordered = order_candidates(candidates)
    if not ordered:
        return None
    if last_selection:
        floor = last_selection.casefold()
        for candidate in ordered:
            if candidate.casefold() > floor:
                return candidate
    return ordered[0]


# ──────────────────────────────────────────────────────────────────────────────
# Name sources
# ──────────────────────────────────────────────────────────────────────────────


class RosterNameSource:
    """
    In-memory roster.  Matches names that start with the prefix, ignoring
    case and a leading "@" mention marker.
    """

    def __init__(self, names: Iterable[str] = (), latency: float = 0.0) -> None:
        self._names: tuple[str, ...] = tuple(names)
        self._latency = latency

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def set_names(self, names: Iterable[str]) -> None:
        self._names = tuple(names)

    def matches(self, prefix: str) -> list[str]:
        needle = prefix.lstrip("@").casefold()
        return [n for n in self._names if n.casefold().startswith(needle)]

    async def lookup(self, prefix: str) -> Optional[Sequence[str]]:
        if self._latency:
            await asyncio.sleep(self._latency)
        return self.matches(prefix)

    __call__ = lookup


async def no_name_source(prefix: str) -> Optional[Sequence[str]]:
    """Lookup used when a panel has no completion source."""
    return None
