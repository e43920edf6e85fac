"""
chatpanel/tea/msg.py  — all Msg variants (inputs / async results)
                      — all Cmd variants (effect descriptors)

Kept in one file to avoid circular imports; split into msg/cmd sections.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


# ══════════════════════════════════════════════════════════════════════════════
# MSG — events flowing INTO Update
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Trigger:
    text:      str
    caret:     int
    lookup_id: int   # id the lookup will carry if one is started

@dataclass(frozen=True)
class CandidatesLoaded:
    lookup_id:  int
    candidates: Optional[tuple[str, ...]]   # None = no completion source

@dataclass(frozen=True)
class LookupFailed:
    lookup_id: int
    detail:    str

@dataclass(frozen=True)
class TextEdited:
    pass

@dataclass(frozen=True)
class SubstitutionFailed:
    detail: str


Msg = Trigger | CandidatesLoaded | LookupFailed | TextEdited | SubstitutionFailed


# ══════════════════════════════════════════════════════════════════════════════
# CMD — side-effect descriptors returned by Update
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FetchCandidates:
    lookup_id: int
    prefix:    str

@dataclass(frozen=True)
class ReplaceText:
    text:  str
    caret: int


Cmd = FetchCandidates | ReplaceText
