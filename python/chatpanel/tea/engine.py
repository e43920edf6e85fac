"""
chatpanel/tea/engine.py

AutoCompleteEngine: the effectful shell around update().
Runs name lookups as asyncio tasks and applies text substitutions to the
entry control.  Must be driven from the presentation thread (the event loop
the entry control lives on).
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Optional, Protocol

from chatpanel.completer import NameLookup, no_name_source
from chatpanel.tea.model import IDLE, CompletionState
from chatpanel.tea.msg import (
    CandidatesLoaded, LookupFailed, Msg, SubstitutionFailed, TextEdited, Trigger,
)
from chatpanel.tea.msg import FetchCandidates, ReplaceText
from chatpanel.tea.update import Translate, identity_translate, update

log = logging.getLogger(__name__)


class EntryControl(Protocol):
    """The text-entry control the engine reads from and substitutes into."""

    @property
    def text(self) -> str: ...

    @property
    def cursor_position(self) -> int: ...

    def set_text(self, text: str, caret: int) -> None: ...


class AutoCompleteEngine:
    """
    Responsibilities:
      - Feed Trigger / TextEdited / lookup results through update()
      - Execute FetchCandidates (await the lookup, never blocking the loop)
      - Execute ReplaceText while suppressing the resulting text-change reset
    """

    def __init__(
        self,
        entry: EntryControl,
        lookup: Optional[NameLookup] = None,
        translate: Translate = identity_translate,
    ) -> None:
        self._entry = entry
        self._lookup = lookup or no_name_source
        self._translate = translate
        self._state: CompletionState = IDLE
        self._ids = itertools.count(1)
        self._substituting = False

    # ── Public ───────────────────────────────────────────────────────────────

    @property
    def state(self) -> CompletionState:
        return self._state

    def trigger(self) -> Optional[asyncio.Task]:
        """
        Start (or continue) a cycling session from the entry's current text.
        Returns the lookup task, or None when nothing was started.
        """
        return self._dispatch(Trigger(
            text=self._entry.text,
            caret=self._entry.cursor_position,
            lookup_id=next(self._ids),
        ))

    def text_changed(self) -> None:
        """Entry text changed.  Ignored while the engine itself is substituting."""
        if self._substituting:
            return
        self._dispatch(TextEdited())

    # ── Dispatch loop ────────────────────────────────────────────────────────

    def _dispatch(self, msg: Msg) -> Optional[asyncio.Task]:
        self._state, cmds = update(self._state, msg, self._translate)
        task = None
        for cmd in cmds:
            task = self._execute(cmd) or task
        return task

    def _execute(self, cmd: Any) -> Optional[asyncio.Task]:
        if isinstance(cmd, FetchCandidates):
            loop = asyncio.get_running_loop()
            return loop.create_task(self._fetch(cmd))

        if isinstance(cmd, ReplaceText):
            self._substitute(cmd)
            return None

        return None

    # ── Effects ──────────────────────────────────────────────────────────────

    async def _fetch(self, cmd: FetchCandidates) -> None:
        try:
            result = await self._lookup(cmd.prefix)
            candidates = None if result is None else tuple(result)
        except asyncio.CancelledError:
            self._dispatch(LookupFailed(lookup_id=cmd.lookup_id, detail="cancelled"))
            raise
        except Exception as exc:
            self._dispatch(LookupFailed(
                lookup_id=cmd.lookup_id, detail=f"{type(exc).__name__}: {exc}"
            ))
            return
        # Anything may have happened while suspended; update() re-validates.
        self._dispatch(CandidatesLoaded(lookup_id=cmd.lookup_id, candidates=candidates))

    def _substitute(self, cmd: ReplaceText) -> None:
        self._substituting = True
        try:
            self._entry.set_text(cmd.text, cmd.caret)
        except Exception as exc:
            log.debug("completion substitution failed: %s", exc)
            self._dispatch(SubstitutionFailed(detail=str(exc)))
        finally:
            self._substituting = False
