"""Tests for MessagePanel / ChannelPanel: chat events, lifecycle, entry wiring."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from chatpanel.bridge import CommandEncodeError
from chatpanel.completer import RosterNameSource
from chatpanel.panel import ChannelPanel, MessagePanel
from chatpanel.presenter import ThreadPresenter
from chatpanel.schema.models import ChannelMessage, MessageContent, NotificationMessage
from chatpanel.surface import RecordingSurface
from chatpanel.tea.model import IDLE, Phase


class Entry:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cursor_position = len(text)

    def set_text(self, text: str, caret: int) -> None:
        self.text, self.cursor_position = text, caret


@pytest.fixture
def presenter():
    p = ThreadPresenter()
    yield p
    p.close()


@pytest.fixture
def surface():
    return RecordingSurface()


def _channel(surface, presenter, entry=None, **kwargs):
    kwargs.setdefault("on_send", MagicMock())
    return ChannelPanel("lobby", surface, presenter, entry or Entry(), **kwargs)


def _go_live(surface, presenter):
    surface.signal_ready()
    presenter.flush()


# ═══════════════════════════════════════════════════════════════════════════
# Chat events
# ═══════════════════════════════════════════════════════════════════════════


class TestChatEvents:
    def test_events_queue_until_surface_ready(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_message(ChannelMessage(id="1", content="hi", user="bob"))
        panel.set_topic("rust vs go")
        panel.add_notification(NotificationMessage("bob joined"))
        panel.add_message_content(MessageContent(id="1", content="<img>"))
        panel.set_marker()
        presenter.flush()
        assert surface.scripts == []

        _go_live(surface, presenter)
        assert surface.names() == [
            "addMessage", "setTopic", "addNotification", "addMessageContent", "setMarker",
        ]

    def test_notification_collapsing_hint(self, surface, presenter):
        plain = MessagePanel(surface, presenter, Entry())
        channel = _channel(surface, presenter)
        plain.add_notification({"content": "x"})
        channel.add_notification({"content": "x"})
        _go_live(surface, presenter)
        assert [args[1] for _, args in surface.calls()] == [False, True]

    def test_history_arguments(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_history([{"id": "a"}], should_scroll=True)
        _go_live(surface, presenter)
        assert surface.calls() == [("addHistory", [[{"id": "a"}], True])]

    def test_after_ready_events_are_not_queued(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        _go_live(surface, presenter)
        panel.set_marker()
        assert panel.bridge.pending() == ()
        presenter.flush()
        assert surface.names() == ["setMarker"]


class TestHistoryMarker:
    def test_marker_is_first_message_of_batch(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_history([
            ChannelMessage(id="old", content="", user="a"),
            ChannelMessage(id="newer", content="", user="b"),
        ])
        assert panel.last_history_marker == "old"

    def test_empty_batch_keeps_marker(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_history([{"id": "m7"}])
        panel.add_history([])
        assert panel.last_history_marker == "m7"

    def test_generator_batches_are_materialized(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_history({"id": str(i)} for i in range(3))
        _go_live(surface, presenter)
        assert panel.last_history_marker == "0"
        assert surface.calls()[0][1][0] == [{"id": "0"}, {"id": "1"}, {"id": "2"}]

    def test_failed_append_keeps_marker(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.add_history([{"id": "m1"}])
        with pytest.raises(CommandEncodeError):
            panel.add_history([{"id": "m2", "blob": object()}])
        assert panel.last_history_marker == "m1"


# ═══════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════════════════════


class TestLifecycle:
    def test_load_signals_are_immediate(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        panel.set_marker()
        panel.begin_load()
        panel.finish_load()
        assert surface.names() == ["beginLoad", "finishLoad"]
        assert len(panel.bridge.pending()) == 1

    def test_settings_go_out_before_replay(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry(), settings={"html5video": False})
        panel.set_topic("t")
        _go_live(surface, presenter)
        assert surface.calls() == [("settings", [{"html5video": False}]), ("setTopic", ["t"])]

    def test_surface_already_loaded(self, surface, presenter):
        surface.signal_ready()
        panel = MessagePanel(surface, presenter, Entry())
        presenter.flush()
        assert panel.bridge.ready is True

    def test_ready_fires_once(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry())
        assert surface.signal_ready() is True
        assert surface.signal_ready() is False
        presenter.flush()
        assert panel.bridge.ready is True

    def test_namespace_applies_to_all_calls(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry(), script_namespace="JabbR")
        panel.begin_load()
        panel.set_marker()
        _go_live(surface, presenter)
        assert surface.scripts == ["JabbR.beginLoad()", "JabbR.setMarker()"]


# ═══════════════════════════════════════════════════════════════════════════
# Entry control
# ═══════════════════════════════════════════════════════════════════════════


class TestEntry:
    def test_submit_sends_and_clears(self, surface, presenter):
        on_send = MagicMock()
        entry = Entry("hello there")
        panel = _channel(surface, presenter, entry, on_send=on_send)
        panel.submit()
        on_send.assert_called_once_with("hello there")
        assert entry.text == ""

    def test_slash_commands(self, surface, presenter):
        on_send, on_command = MagicMock(), MagicMock()
        panel = _channel(
            surface, presenter, Entry("/topic  new topic "),
            on_send=on_send, on_command=on_command,
        )
        panel.submit()
        on_command.assert_called_once_with("topic", "new topic")
        on_send.assert_not_called()

    def test_blank_input_ignored(self, surface, presenter):
        on_send = MagicMock()
        panel = _channel(surface, presenter, Entry("   "), on_send=on_send)
        panel.submit()
        on_send.assert_not_called()

    def test_base_panel_requires_process_command(self, surface, presenter):
        panel = MessagePanel(surface, presenter, Entry("x"))
        with pytest.raises(NotImplementedError):
            panel.submit()

    def test_text_change_notifies_typing_and_resets(self, surface, presenter):
        on_typing = MagicMock()
        panel = _channel(surface, presenter, on_typing=on_typing)
        panel.text_changed()
        on_typing.assert_called_once_with()
        assert panel.engine.state == IDLE

    def test_titles(self, surface, presenter):
        assert _channel(surface, presenter).title_label == "#lobby"
        assert MessagePanel(surface, presenter, Entry()).title_label == ""


class TestAutocomplete:
    @pytest.mark.asyncio
    async def test_message_panel_does_not_autocomplete(self, surface, presenter):
        panel = MessagePanel(
            surface, presenter, Entry("a"), names=RosterNameSource(["Alice"]).lookup
        )
        assert panel.trigger_autocomplete() is None

    @pytest.mark.asyncio
    async def test_channel_completes_from_names(self, surface, presenter):
        entry = Entry("ping a")
        panel = _channel(surface, presenter, entry, names=RosterNameSource(["Alice", "bob"]).lookup)
        await panel.trigger_autocomplete()
        assert entry.text == "ping Alice"
        assert panel.engine.state.phase is Phase.CYCLING

    @pytest.mark.asyncio
    async def test_mention_marker_is_kept(self, surface, presenter):
        entry = Entry("@b")
        panel = _channel(surface, presenter, entry, names=RosterNameSource(["Alice", "bob"]).lookup)
        await panel.trigger_autocomplete()
        assert entry.text == "@bob"

    @pytest.mark.asyncio
    async def test_no_names_configured(self, surface, presenter):
        entry = Entry("a")
        panel = _channel(surface, presenter, entry)
        await panel.trigger_autocomplete()
        assert entry.text == "a"
        assert panel.engine.state == IDLE
