"""
chatpanel/tea/model.py

Immutable autocomplete state.
No I/O. No prompt_toolkit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Phase(Enum):
    IDLE = "idle"
    LOOKUP = "lookup"      # a name lookup is outstanding
    CYCLING = "cycling"


@dataclass(frozen=True)
class Lookup:
    """The outstanding lookup and the text it will be substituted into."""

    lookup_id: int
    boundary: int          # token start in the text captured at trigger time
    search_prefix: str
    token: str             # freshly typed token; becomes fixed_prefix on success
    existing_text: str     # text[:boundary], kept verbatim


@dataclass(frozen=True)
class CompletionState:
    phase: Phase = Phase.IDLE

    # ── Cycling session ─────────────────────────────────────────────────────
    # anchor_index and fixed_prefix are set together on the first successful
    # step and cleared together on reset.
    anchor_index: Optional[int] = None
    fixed_prefix: Optional[str] = None
    last_selection: Optional[str] = None

    # ── In flight ───────────────────────────────────────────────────────────
    lookup: Optional[Lookup] = None

    @property
    def in_progress(self) -> bool:
        return self.phase is Phase.LOOKUP

    @property
    def cycling(self) -> bool:
        return self.fixed_prefix is not None


IDLE = CompletionState()
