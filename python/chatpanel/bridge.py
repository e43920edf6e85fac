"""
chatpanel/bridge.py

CommandBridge: turns chat events into remote-procedure call expressions and
executes them against the rendering surface on the presentation thread.
Commands issued before the surface is ready are queued and replayed, in
submission order, exactly once.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
import threading
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from functools import partial
from typing import Any, Optional

from chatpanel.presenter import Presenter

log = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_NAMESPACE_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")


class CommandEncodeError(ValueError):
    """An argument could not be encoded as JSON (cyclic or unsupported value)."""


# ──────────────────────────────────────────────────────────────────────────────
# Encoding
# ──────────────────────────────────────────────────────────────────────────────


def _to_json(value: Any) -> Any:
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_argument(value: Any) -> str:
    try:
        return json.dumps(
            value, default=_to_json, separators=(",", ":"), allow_nan=False
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise CommandEncodeError(f"cannot encode argument {value!r:.60}: {exc}") from exc


def build_call_script(
    name: str, args: tuple[Any, ...] = (), namespace: Optional[str] = None
) -> str:
    """
    Build `name(json1, json2, ...)`, each argument encoded on its own.

        build_call_script("setTopic", ("hi",))            → 'setTopic("hi")'
        build_call_script("setMarker", (), "JabbR")       → 'JabbR.setMarker()'
    """
    if not _NAME_RE.match(name or ""):
        raise ValueError(f"invalid procedure name: {name!r}")
    encoded = [encode_argument(a) for a in args]
    target = f"{namespace}.{name}" if namespace else name
    return f"{target}({', '.join(encoded)})"


def parse_call_script(script: str) -> tuple[str, list[Any]]:
    """
    Inverse of build_call_script.  The namespace, if any, is dropped.

        'JabbR.addHistory([], true)' → ("addHistory", [[], True])
    """
    text = script.strip().rstrip(";").rstrip()
    open_at = text.find("(")
    if open_at < 0 or not text.endswith(")"):
        raise ValueError(f"not a call expression: {script!r}")
    target = text[:open_at].strip()
    if not _NAMESPACE_RE.match(target):
        raise ValueError(f"invalid call target: {target!r}")
    name = target.rsplit(".", 1)[-1]

    body = text[open_at + 1 : -1]
    decoder = json.JSONDecoder()
    args: list[Any] = []
    pos = 0
    while True:
        while pos < len(body) and body[pos].isspace():
            pos += 1
        if pos >= len(body):
            break
        value, pos = decoder.raw_decode(body, pos)
        args.append(value)
        while pos < len(body) and body[pos].isspace():
            pos += 1
        if pos < len(body):
            if body[pos] != ",":
                raise ValueError(f"malformed argument list: {body!r}")
            pos += 1
    return name, args


# ──────────────────────────────────────────────────────────────────────────────
# Bridge
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PendingCommand:
    name: str
    args: tuple[Any, ...]
    script: str  # encoded when queued so encoding errors reach the caller


class CommandBridge:
    """
    surface   – anything with execute(script: str)
    presenter – the presentation thread all executions run on
    namespace – optional object prefix for call targets, e.g. "JabbR"

    One lock guards both critical sections:
      enqueue-or-dispatch  (send_command)
      flip-and-drain       (mark_ready)
    """

    def __init__(
        self,
        surface: Any,
        presenter: Presenter,
        namespace: Optional[str] = None,
    ) -> None:
        if namespace is not None and not _NAMESPACE_RE.match(namespace):
            raise ValueError(f"invalid script namespace: {namespace!r}")
        self._surface = surface
        self._presenter = presenter
        self._namespace = namespace
        self._lock = threading.RLock()
        self._ready = False
        self._queue: list[PendingCommand] = []

    # ── Public ───────────────────────────────────────────────────────────────

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._ready

    def pending(self) -> tuple[PendingCommand, ...]:
        with self._lock:
            return tuple(self._queue)

    def send_command(self, name: str, *args: Any) -> None:
        """Deferrable form: queued until ready, then posted without blocking."""
        script = build_call_script(name, args, self._namespace)
        with self._lock:
            if not self._ready:
                self._queue.append(PendingCommand(name, args, script))
                log.debug("queued %s (%d pending)", name, len(self._queue))
                return
            # Posted under the lock: cross-thread order == lock order.
            self._presenter.post(partial(self._execute, script))

    def send_command_direct(self, name: str, *args: Any) -> None:
        """Immediate form: runs synchronously on the presentation thread."""
        script = build_call_script(name, args, self._namespace)
        self._presenter.invoke(partial(self._execute, script))

    def mark_ready(self) -> None:
        self._presenter.invoke(self._flip_and_drain)

    # ── Internals ────────────────────────────────────────────────────────────

    def _flip_and_drain(self) -> None:
        with self._lock:
            if self._ready:
                log.warning("mark_ready called on a bridge that is already ready")
                return
            self._ready = True
            log.debug("surface ready, replaying %d command(s)", len(self._queue))
            try:
                for cmd in self._queue:
                    self._presenter.invoke(partial(self._execute, cmd.script))
            finally:
                self._queue.clear()

    def _execute(self, script: str) -> None:
        self._surface.execute(script)
