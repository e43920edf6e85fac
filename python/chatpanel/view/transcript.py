"""
chatpanel/view/transcript.py

Pure render functions for the terminal transcript. Return strings (or
prompt_toolkit style/text tuples). No I/O.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


# ──────────────────────────────────────────────────────────────────────────────
# Transcript lines
# ──────────────────────────────────────────────────────────────────────────────

def view_message(message: Any) -> str:
    if not isinstance(message, dict):
        return str(message)
    user    = message.get("user") or "?"
    content = message.get("content") or ""
    ts      = _clock(message.get("when"))
    return f"{ts}  <{user}> {content}" if ts else f"<{user}> {content}"


def view_notification(notification: Any) -> str:
    if isinstance(notification, dict):
        content = notification.get("content") or ""
    else:
        content = str(notification)
    return f"  * {content}"


def view_topic(topic: str) -> str:
    return f"  ✎  topic: {topic}" if topic else "  ✎  topic cleared"


def view_content_update(content: Any) -> str:
    if isinstance(content, dict):
        return f"  ↳ [{content.get('id', '?')}] {content.get('content', '')}"
    return f"  ↳ {content}"


def view_marker() -> str:
    return "  " + "─" * 20 + " new " + "─" * 20


def view_banner(room: str, nick: str, n_names: int) -> str:
    return (
        f"  💬  #{room} as {nick}  ·  {n_names} name(s) for Tab completion"
        "  ·  Enter=send  Ctrl-C=quit"
    )


# ──────────────────────────────────────────────────────────────────────────────
# Status bar
# ──────────────────────────────────────────────────────────────────────────────

def view_status_tokens(
    room: str, topic: str, ready: bool, pending: int
) -> list[tuple[str, str]]:
    parts: list[tuple[str, str]] = [("class:status.room", f" #{room} ")]
    if topic:
        parts.append(("class:status.topic", f" {topic[:60]} "))
    if not ready:
        parts.append(("class:status.loading", f" loading… {pending} queued "))
    return parts


def _clock(when: Optional[str]) -> str:
    if not when:
        return ""
    try:
        return datetime.fromisoformat(when).strftime("%H:%M")
    except (TypeError, ValueError):
        return ""
