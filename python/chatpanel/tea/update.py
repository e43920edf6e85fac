"""
chatpanel/tea/update.py

Pure update function: (CompletionState, Msg) → (CompletionState, list[Cmd])

No I/O. No awaiting. No text mutation. 100% unit-testable.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from chatpanel.completer import pick_next_candidate, token_start
from chatpanel.tea.model import IDLE, CompletionState, Lookup, Phase
from chatpanel.tea.msg import (
    CandidatesLoaded, LookupFailed, Msg, SubstitutionFailed, TextEdited, Trigger,
)
from chatpanel.tea.msg import FetchCandidates, ReplaceText

log = logging.getLogger(__name__)

# (chosen candidate, search prefix) → text to insert
Translate = Callable[[str, str], str]


def identity_translate(selection: str, search: str) -> str:
    return selection


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def update(
    state: CompletionState,
    msg: Msg,
    translate: Translate = identity_translate,
) -> tuple[CompletionState, list]:
    """
    Pure state transition.  Returns (new_state, list[Cmd]).
    The engine executes the Cmd list as side effects.
    """
    if isinstance(msg, Trigger):
        return _handle_trigger(state, msg)

    if isinstance(msg, CandidatesLoaded):
        return _handle_candidates(state, msg, translate)

    if isinstance(msg, LookupFailed):
        if _is_current(state, msg.lookup_id):
            log.debug("name lookup %d failed: %s", msg.lookup_id, msg.detail)
            return IDLE, []
        return state, []

    if isinstance(msg, (TextEdited, SubstitutionFailed)):
        return IDLE, []

    return state, []


# ──────────────────────────────────────────────────────────────────────────────
# Trigger
# ──────────────────────────────────────────────────────────────────────────────

def _handle_trigger(state: CompletionState, msg: Trigger) -> tuple[CompletionState, list]:
    # Only one lookup at a time; a second trigger is dropped, not queued.
    if state.in_progress:
        return state, []

    text = msg.text
    if state.anchor_index is not None:
        if state.anchor_index > len(text):
            return IDLE, []
        boundary = state.anchor_index
        token = text[boundary:]
    else:
        caret = max(0, min(msg.caret, len(text)))
        boundary = token_start(text, caret)
        token = text[boundary:caret]

    search = state.fixed_prefix if state.fixed_prefix is not None else token
    if not search:
        return state, []

    lookup = Lookup(
        lookup_id=msg.lookup_id,
        boundary=boundary,
        search_prefix=search,
        token=token,
        existing_text=text[:boundary],
    )
    return (
        replace(state, phase=Phase.LOOKUP, lookup=lookup),
        [FetchCandidates(lookup_id=msg.lookup_id, prefix=search)],
    )


# ──────────────────────────────────────────────────────────────────────────────
# Lookup result
# ──────────────────────────────────────────────────────────────────────────────

def _handle_candidates(
    state: CompletionState,
    msg: CandidatesLoaded,
    translate: Translate,
) -> tuple[CompletionState, list]:
    # Stale: the session was reset (or restarted) while the lookup was out.
    if not _is_current(state, msg.lookup_id):
        return state, []

    if msg.candidates is None:
        return IDLE, []

    lookup = state.lookup
    try:
        choice = pick_next_candidate(msg.candidates, state.last_selection)
        if choice is None:
            return IDLE, []
        new_text = lookup.existing_text + translate(choice, lookup.search_prefix)
    except Exception as exc:
        log.debug("discarding completion results: %s", exc)
        return IDLE, []

    first_step = state.fixed_prefix is None
    new_state = CompletionState(
        phase=Phase.CYCLING,
        anchor_index=lookup.boundary if first_step else state.anchor_index,
        fixed_prefix=lookup.token if first_step else state.fixed_prefix,
        last_selection=choice,
        lookup=None,
    )
    return new_state, [ReplaceText(text=new_text, caret=len(new_text))]


def _is_current(state: CompletionState, lookup_id: int) -> bool:
    return state.in_progress and state.lookup is not None and state.lookup.lookup_id == lookup_id
