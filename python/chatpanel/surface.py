"""
chatpanel/surface.py

Rendering-surface sinks.

The panel only needs two things from a surface:
  execute(script)     run a call expression against the hosted document
  on_ready(callback)  callback fired once, after the initial load
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

from chatpanel.bridge import parse_call_script
from chatpanel.view.transcript import (
    view_content_update, view_marker, view_message, view_notification, view_topic,
)

log = logging.getLogger(__name__)


class RenderingSurface(Protocol):
    def execute(self, script: str) -> None: ...

    def on_ready(self, callback: Callable[[], None]) -> None: ...


class SurfaceBase:
    """One-shot ready signal shared by the concrete surfaces."""

    def __init__(self) -> None:
        self._ready_lock = threading.Lock()
        self._ready_callbacks: list[Callable[[], None]] = []
        self._loaded = False

    def on_ready(self, callback: Callable[[], None]) -> None:
        with self._ready_lock:
            if not self._loaded:
                self._ready_callbacks.append(callback)
                return
        callback()

    def signal_ready(self) -> bool:
        """Fire the ready callbacks.  Returns False if already fired."""
        with self._ready_lock:
            if self._loaded:
                return False
            self._loaded = True
            callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            callback()
        return True

    def execute(self, script: str) -> None:
        raise NotImplementedError


# ──────────────────────────────────────────────────────────────────────────────
# Recording
# ──────────────────────────────────────────────────────────────────────────────


class RecordingSurface(SurfaceBase):
    """Keeps every executed script, in execution order."""

    def __init__(self) -> None:
        super().__init__()
        self.scripts: list[str] = []
        self.threads: list[str] = []

    def execute(self, script: str) -> None:
        self.scripts.append(script)
        self.threads.append(threading.current_thread().name)

    def calls(self) -> list[tuple[str, list[Any]]]:
        return [parse_call_script(s) for s in self.scripts]

    def names(self) -> list[str]:
        return [parse_call_script(s)[0] for s in self.scripts]


# ──────────────────────────────────────────────────────────────────────────────
# Transcript
# ──────────────────────────────────────────────────────────────────────────────


class TranscriptSurface(SurfaceBase):
    """
    Minimal hosted document for terminal use: decodes each call expression
    and keeps a list of rendered transcript lines plus the room topic.

    on_change is called after every executed script (the runtime uses it to
    invalidate the prompt_toolkit application).
    """

    def __init__(self, on_change: Optional[Callable[[], None]] = None) -> None:
        super().__init__()
        self.lines: list[str] = []
        self.topic: str = ""
        self.loading = False
        self.settings: dict[str, Any] = {}
        self._on_change = on_change

    def set_on_change(self, on_change: Optional[Callable[[], None]]) -> None:
        self._on_change = on_change

    def text(self) -> str:
        return "\n".join(self.lines)

    def execute(self, script: str) -> None:
        name, args = parse_call_script(script)
        handler = getattr(self, f"_do_{name}", None)
        if handler is None:
            log.debug("surface ignoring unknown procedure %s", name)
            return
        handler(*args)
        if self._on_change:
            self._on_change()

    # ── Procedures ───────────────────────────────────────────────────────────

    def _do_addMessage(self, message: dict) -> None:
        self.lines.append(view_message(message))

    def _do_addHistory(self, messages: list, should_scroll: bool = False) -> None:
        # History arrives older-than-everything; prepend in chronological order.
        self.lines[:0] = [view_message(m) for m in messages]

    def _do_setTopic(self, topic: Optional[str]) -> None:
        self.topic = topic or ""
        self.lines.append(view_topic(self.topic))

    def _do_addNotification(self, notification: dict, allow_collapsing: bool = False) -> None:
        line = view_notification(notification)
        if allow_collapsing and self.lines and self.lines[-1] == line:
            return
        self.lines.append(line)

    def _do_addMessageContent(self, content: dict) -> None:
        self.lines.append(view_content_update(content))

    def _do_setMarker(self) -> None:
        self.lines.append(view_marker())

    def _do_beginLoad(self) -> None:
        self.loading = True

    def _do_finishLoad(self) -> None:
        self.loading = False

    def _do_settings(self, options: dict) -> None:
        self.settings.update(options or {})
