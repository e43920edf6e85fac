"""
chatpanel/schema/models.py

Frozen value types for the events the panel forwards to the surface.
The bridge only needs them to be JSON-encodable: to_json() returns the
camelCase shape the hosted document consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


def _when(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ──────────────────────────────────────────────────────────────────────────────
# Messages
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChannelMessage:
    id: str
    content: str
    user: str
    when: Optional[datetime] = None
    html_encoded: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "user": self.user,
            "when": _when(self.when),
            "htmlEncoded": self.html_encoded,
        }


@dataclass(frozen=True)
class NotificationMessage:
    content: str
    when: Optional[datetime] = None
    kind: str = "info"

    def to_json(self) -> dict[str, Any]:
        return {"content": self.content, "when": _when(self.when), "kind": self.kind}


@dataclass(frozen=True)
class MessageContent:
    """Rich content attached to an already-posted message."""

    id: str
    content: str

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "content": self.content}


def message_id(message: Any) -> Optional[str]:
    """Identifier of a message given as a model object or a plain mapping."""
    if isinstance(message, Mapping):
        return message.get("id")
    return getattr(message, "id", None)
