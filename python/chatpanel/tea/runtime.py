"""
chatpanel/tea/runtime.py

PanelRuntime: owns the prompt_toolkit application and its event loop, which
is the presentation thread for the panel.  This is the only module that
touches prompt_toolkit layout or the terminal.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from datetime import datetime
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl

from chatpanel.completer import RosterNameSource
from chatpanel.config import PanelConfig
from chatpanel.panel import ChannelPanel
from chatpanel.presenter import LoopPresenter
from chatpanel.schema.models import ChannelMessage, NotificationMessage
from chatpanel.surface import TranscriptSurface
from chatpanel.view.style import build_key_bindings, panel_style
from chatpanel.view.transcript import view_banner, view_status_tokens

log = logging.getLogger(__name__)


class BufferEntry:
    """EntryControl over a prompt_toolkit Buffer."""

    def __init__(self, buffer: Buffer) -> None:
        self._buffer = buffer

    @property
    def text(self) -> str:
        return self._buffer.text

    @property
    def cursor_position(self) -> int:
        return self._buffer.cursor_position

    def set_text(self, text: str, caret: int) -> None:
        self._buffer.set_document(Document(text, caret), bypass_readonly=True)


class PanelRuntime:
    """
    Outer shell of the panel.
    Responsibilities (only this class):
      - Run the prompt_toolkit application (the presentation thread)
      - Simulate the asynchronous load of the transcript surface
      - Feed demo history from a background thread, echo sent messages
    """

    def __init__(self, config: PanelConfig) -> None:
        self._config = config
        self._roster = RosterNameSource(config.names, latency=config.lookup_latency)
        self._app: Optional[Application] = None
        self._panel: Optional[ChannelPanel] = None
        self._surface: Optional[TranscriptSurface] = None
        self._transcript = Buffer(read_only=True)
        self._entry = Buffer(multiline=False)

    # ──────────────────────────────────────────────────────────────────────
    # Public
    # ──────────────────────────────────────────────────────────────────────

    def run(self) -> None:
        asyncio.run(self._main())

    # ──────────────────────────────────────────────────────────────────────
    # Bootstrap
    # ──────────────────────────────────────────────────────────────────────

    async def _main(self) -> None:
        cfg = self._config
        presenter = LoopPresenter(asyncio.get_running_loop())
        self._surface = TranscriptSurface()

        self._panel = ChannelPanel(
            cfg.room,
            self._surface,
            presenter,
            BufferEntry(self._entry),
            on_send=self._send,
            on_command=self._command,
            names=self._roster.lookup,
            settings=cfg.settings or None,
            script_namespace=cfg.script_namespace,
        )
        self._entry.on_text_changed += lambda _buf: self._panel.text_changed()

        self._app = Application(
            layout=self._build_layout(),
            key_bindings=build_key_bindings(self._panel, exit_fn=self._exit),
            style=panel_style,
            full_screen=True,
        )
        self._surface.set_on_change(self._refresh_transcript)

        self._panel.begin_load()
        if cfg.topic:
            self._panel.set_topic(cfg.topic)
        threading.Thread(target=self._feed_history, daemon=True).start()
        loader = asyncio.get_running_loop().create_task(self._load_surface(presenter))

        try:
            await self._app.run_async()
        finally:
            loader.cancel()

    async def _load_surface(self, presenter: LoopPresenter) -> None:
        await asyncio.sleep(self._config.load_delay)
        self._surface.signal_ready()
        presenter.post(self._panel.finish_load)
        presenter.post(self._invalidate)

    def _feed_history(self) -> None:
        """Runs on a worker thread, typically before the surface is ready."""
        cfg = self._config
        now = datetime.now()
        batch = [
            ChannelMessage(
                id=f"h{i}",
                content=f"earlier message {i + 1}",
                user=cfg.names[i % len(cfg.names)] if cfg.names else "someone",
                when=now,
            )
            for i in range(cfg.history)
        ]
        self._panel.add_history(batch, should_scroll=True)
        self._panel.add_notification(NotificationMessage(f"{cfg.nick} joined #{cfg.room}"))
        log.debug("history fed, marker=%s", self._panel.last_history_marker)

    # ──────────────────────────────────────────────────────────────────────
    # Layout
    # ──────────────────────────────────────────────────────────────────────

    def _build_layout(self) -> Layout:
        cfg = self._config
        banner = Window(
            FormattedTextControl(
                lambda: FormattedText([("class:status", view_banner(
                    cfg.room, cfg.nick, len(self._roster.names)
                ))])
            ),
            height=1,
        )
        transcript = Window(
            BufferControl(self._transcript),
            wrap_lines=True,
            style="class:transcript",
        )
        status = Window(
            FormattedTextControl(self._status_tokens),
            height=1,
            style="class:status",
        )
        entry_window = Window(BufferControl(self._entry), style="class:entry")
        entry = VSplit([
            Window(
                FormattedTextControl(FormattedText([("class:entry.prompt", f"{cfg.nick}> ")])),
                width=len(cfg.nick) + 2,
            ),
            entry_window,
        ])
        return Layout(
            HSplit([banner, transcript, status, Window(height=1, char="─", style="class:separator"), entry]),
            focused_element=entry_window,
        )

    def _status_tokens(self) -> FormattedText:
        bridge = self._panel.bridge
        return FormattedText(view_status_tokens(
            self._config.room,
            self._surface.topic if self._surface else "",
            bridge.ready,
            len(bridge.pending()),
        ))

    def _refresh_transcript(self) -> None:
        text = self._surface.text()
        self._transcript.set_document(Document(text, len(text)), bypass_readonly=True)
        self._invalidate()

    def _invalidate(self) -> None:
        if self._app is not None:
            self._app.invalidate()

    # ──────────────────────────────────────────────────────────────────────
    # Entry handlers
    # ──────────────────────────────────────────────────────────────────────

    def _send(self, text: str) -> None:
        self._panel.add_message(ChannelMessage(
            id=uuid.uuid4().hex[:12],
            content=text,
            user=self._config.nick,
            when=datetime.now(),
        ))

    def _command(self, verb: str, rest: str) -> None:
        panel = self._panel
        if verb == "topic":
            panel.set_topic(rest)
        elif verb == "me":
            panel.add_notification(NotificationMessage(f"{self._config.nick} {rest}"))
        elif verb == "marker":
            panel.set_marker()
        elif verb == "names":
            panel.add_notification(NotificationMessage(", ".join(self._roster.names)))
        elif verb in ("quit", "exit"):
            self._exit()
        else:
            panel.add_notification(NotificationMessage(f"Unknown command: /{verb}", kind="error"))

    def _exit(self) -> None:
        if self._app is not None and self._app.is_running:
            self._app.exit()
