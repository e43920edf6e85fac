"""
chatpanel/panel.py

MessagePanel: a rendering surface plus a text-entry control.

  - chat events → CommandBridge → surface (queued until the surface is ready)
  - Enter       → process_command(text)
  - Tab         → AutoCompleteEngine (when supports_autocomplete)
  - text change → user_typing() + autocomplete reset
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from chatpanel.bridge import CommandBridge
from chatpanel.completer import NameLookup
from chatpanel.presenter import Presenter
from chatpanel.schema.models import message_id
from chatpanel.tea.engine import AutoCompleteEngine, EntryControl

log = logging.getLogger(__name__)


class MessagePanel:
    supports_autocomplete: bool = False
    allow_notification_collapsing: bool = False

    def __init__(
        self,
        surface: Any,
        presenter: Presenter,
        entry: EntryControl,
        names: Optional[NameLookup] = None,
        settings: Optional[Mapping[str, Any]] = None,
        script_namespace: Optional[str] = None,
    ) -> None:
        self._surface = surface
        self._presenter = presenter
        self._entry = entry
        self._names = names
        self._settings = dict(settings) if settings else None
        self._last_history_marker: Optional[str] = None

        self.bridge = CommandBridge(surface, presenter, namespace=script_namespace)
        self.engine = AutoCompleteEngine(
            entry,
            lookup=self.get_autocomplete_names,
            translate=self.translate_autocomplete_text,
        )
        surface.on_ready(self._handle_surface_ready)

    @property
    def title_label(self) -> str:
        return ""

    @property
    def entry(self) -> EntryControl:
        return self._entry

    @property
    def last_history_marker(self) -> Optional[str]:
        """Id of the oldest message appended by add_history, for back-paging."""
        return self._last_history_marker

    # ── Chat events ──────────────────────────────────────────────────────────

    def add_message(self, message: Any) -> None:
        self.bridge.send_command("addMessage", message)

    def add_history(self, messages: Iterable[Any], should_scroll: bool = False) -> None:
        batch = list(messages)
        self.bridge.send_command("addHistory", batch, should_scroll)
        if batch:
            self._last_history_marker = message_id(batch[0])

    def set_topic(self, topic: Optional[str]) -> None:
        self.bridge.send_command("setTopic", topic)

    def add_notification(self, notification: Any) -> None:
        self.bridge.send_command(
            "addNotification", notification, self.allow_notification_collapsing
        )

    def add_message_content(self, content: Any) -> None:
        self.bridge.send_command("addMessageContent", content)

    def set_marker(self) -> None:
        self.bridge.send_command("setMarker")

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def begin_load(self) -> None:
        self.bridge.send_command_direct("beginLoad")

    def finish_load(self) -> None:
        self.bridge.send_command_direct("finishLoad")

    def _handle_surface_ready(self) -> None:
        self._presenter.post(self.start_live)

    def start_live(self) -> None:
        log.debug("surface loaded, going live")
        if self._settings:
            self.bridge.send_command_direct("settings", self._settings)
        self.bridge.mark_ready()

    # ── Entry control ────────────────────────────────────────────────────────

    def submit(self) -> None:
        text = self._entry.text
        self._entry.set_text("", 0)
        self.process_command(text)

    def trigger_autocomplete(self):
        if not self.supports_autocomplete:
            return None
        return self.engine.trigger()

    def text_changed(self) -> None:
        self.user_typing()
        self.engine.text_changed()

    # ── Hooks ────────────────────────────────────────────────────────────────

    def process_command(self, text: str) -> None:
        raise NotImplementedError

    def user_typing(self) -> None:
        pass

    async def get_autocomplete_names(self, search: str) -> Optional[Sequence[str]]:
        if self._names is None:
            return None
        return await self._names(search)

    def translate_autocomplete_text(self, selection: str, search: str) -> str:
        return selection


# ──────────────────────────────────────────────────────────────────────────────
# Channel
# ──────────────────────────────────────────────────────────────────────────────


class ChannelPanel(MessagePanel):
    """
    A chat room.  Plain text goes to on_send, "/command args" to on_command;
    both are supplied by the application (transport is not our concern).
    """

    supports_autocomplete = True
    allow_notification_collapsing = True

    def __init__(
        self,
        room: str,
        surface: Any,
        presenter: Presenter,
        entry: EntryControl,
        on_send: Callable[[str], None],
        on_command: Optional[Callable[[str, str], None]] = None,
        on_typing: Optional[Callable[[], None]] = None,
        **kwargs: Any,
    ) -> None:
        self.room = room
        self._on_send = on_send
        self._on_command = on_command
        self._on_typing = on_typing
        super().__init__(surface, presenter, entry, **kwargs)

    @property
    def title_label(self) -> str:
        return f"#{self.room}"

    def process_command(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        if text.startswith("/") and self._on_command is not None:
            verb, _, rest = text[1:].partition(" ")
            self._on_command(verb, rest.strip())
            return
        self._on_send(text)

    def user_typing(self) -> None:
        if self._on_typing is not None:
            self._on_typing()

    def translate_autocomplete_text(self, selection: str, search: str) -> str:
        # Keep the mention marker the user started the word with.
        if search.startswith("@") and not selection.startswith("@"):
            return "@" + selection
        return selection
