"""Tests for CommandBridge: encoding, pre-ready queueing, replay and ordering."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import pytest

from chatpanel.bridge import (
    CommandBridge,
    CommandEncodeError,
    PendingCommand,
    build_call_script,
    encode_argument,
    parse_call_script,
)
from chatpanel.presenter import ThreadPresenter
from chatpanel.schema.models import ChannelMessage
from chatpanel.surface import RecordingSurface


@pytest.fixture
def presenter():
    p = ThreadPresenter()
    yield p
    p.close()


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def bridge(surface, presenter):
    return CommandBridge(surface, presenter)


# ═══════════════════════════════════════════════════════════════════════════
# Call expressions
# ═══════════════════════════════════════════════════════════════════════════


class TestBuildCallScript:
    def test_no_arguments(self):
        assert build_call_script("setMarker") == "setMarker()"

    def test_each_argument_encoded_independently(self):
        script = build_call_script("addHistory", ([{"id": "1"}], True))
        assert script == 'addHistory([{"id":"1"}], true)'

    def test_namespace_prefix(self):
        assert build_call_script("setTopic", ("hi",), "JabbR") == 'JabbR.setTopic("hi")'

    def test_strings_are_escaped(self):
        script = build_call_script("setTopic", ('say "hi"\n</script>',))
        assert parse_call_script(script) == ("setTopic", ['say "hi"\n</script>'])

    def test_model_objects_use_to_json(self):
        msg = ChannelMessage(id="m1", content="yo", user="bob", when=datetime(2024, 1, 2, 3, 4))
        _, args = parse_call_script(build_call_script("addMessage", (msg,)))
        assert args == [{
            "id": "m1",
            "content": "yo",
            "user": "bob",
            "when": "2024-01-02T03:04:00",
            "htmlEncoded": False,
        }]

    def test_plain_dataclasses_and_enums(self):
        class Kind(Enum):
            INFO = "info"

        @dataclass
        class Note:
            text: str
            kind: Kind

        assert encode_argument(Note("x", Kind.INFO)) == '{"text":"x","kind":"info"}'

    def test_invalid_name_rejected(self):
        with pytest.raises(ValueError):
            build_call_script("alert(1);x")

    def test_cyclic_value_raises(self):
        loop: list = []
        loop.append(loop)
        with pytest.raises(CommandEncodeError):
            build_call_script("addMessage", (loop,))

    def test_unencodable_value_raises(self):
        with pytest.raises(CommandEncodeError):
            build_call_script("addMessage", (object(),))

    def test_nan_rejected(self):
        with pytest.raises(CommandEncodeError):
            encode_argument(float("nan"))


class TestParseCallScript:
    def test_namespace_dropped(self):
        assert parse_call_script('JabbR.addNotification({"a":1}, false);') == (
            "addNotification", [{"a": 1}, False],
        )

    def test_string_containing_comma_and_paren(self):
        assert parse_call_script('setTopic("a, b)")') == ("setTopic", ["a, b)"])

    def test_not_a_call(self):
        with pytest.raises(ValueError):
            parse_call_script("setMarker")


# ═══════════════════════════════════════════════════════════════════════════
# Queueing and replay
# ═══════════════════════════════════════════════════════════════════════════


class TestBeforeReady:
    def test_send_command_is_queued(self, bridge, surface, presenter):
        bridge.send_command("setTopic", "hello")
        presenter.flush()
        assert surface.scripts == []
        assert bridge.pending() == (PendingCommand("setTopic", ("hello",), 'setTopic("hello")'),)

    def test_encoding_error_surfaces_before_queueing(self, bridge):
        with pytest.raises(CommandEncodeError):
            bridge.send_command("addMessage", object())
        assert bridge.pending() == ()

    def test_direct_executes_immediately_and_never_queues(self, bridge, surface):
        bridge.send_command("setTopic", "later")
        bridge.send_command_direct("beginLoad")
        assert surface.scripts == ["beginLoad()"]
        assert [c.name for c in bridge.pending()] == ["setTopic"]

    def test_direct_runs_on_presentation_thread(self, bridge, surface):
        bridge.send_command_direct("finishLoad")
        assert surface.threads == ["presentation"]


class TestMarkReady:
    def test_replays_in_submission_order(self, bridge, surface, presenter):
        for i in range(10):
            bridge.send_command("addMessage", {"id": str(i)})
        bridge.mark_ready()
        presenter.flush()
        assert [args[0]["id"] for _, args in surface.calls()] == [str(i) for i in range(10)]
        assert bridge.pending() == ()
        assert bridge.ready is True

    def test_after_ready_commands_dispatch_without_queueing(self, bridge, surface, presenter):
        bridge.mark_ready()
        bridge.send_command("setMarker")
        assert bridge.pending() == ()
        presenter.flush()
        assert surface.scripts == ["setMarker()"]

    def test_post_ready_commands_follow_replayed_ones(self, bridge, surface, presenter):
        bridge.send_command("setTopic", "a")
        bridge.mark_ready()
        bridge.send_command("setTopic", "b")
        presenter.flush()
        assert surface.scripts == ['setTopic("a")', 'setTopic("b")']

    def test_second_mark_ready_is_a_no_op(self, bridge, surface, presenter):
        bridge.send_command("setMarker")
        bridge.mark_ready()
        bridge.mark_ready()
        presenter.flush()
        assert surface.scripts == ["setMarker()"]

    def test_mark_ready_from_presentation_thread(self, bridge, surface, presenter):
        bridge.send_command("setMarker")
        presenter.invoke(bridge.mark_ready)
        presenter.flush()
        assert surface.scripts == ["setMarker()"]

    def test_replay_uses_namespace(self, surface, presenter):
        bridge = CommandBridge(surface, presenter, namespace="JabbR")
        bridge.send_command("setMarker")
        bridge.mark_ready()
        presenter.flush()
        assert surface.scripts == ["JabbR.setMarker()"]

    def test_invalid_namespace(self, surface, presenter):
        with pytest.raises(ValueError):
            CommandBridge(surface, presenter, namespace="a b")


class TestConcurrency:
    def test_concurrent_senders_lose_and_duplicate_nothing(self, bridge, surface, presenter):
        n_threads, per_thread = 8, 50
        start = threading.Barrier(n_threads)

        def _worker(t: int) -> None:
            start.wait()
            for i in range(per_thread):
                bridge.send_command("addMessage", {"id": f"{t}-{i}"})

        threads = [threading.Thread(target=_worker, args=(t,)) for t in range(n_threads)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()

        assert len(bridge.pending()) == n_threads * per_thread
        bridge.mark_ready()
        presenter.flush()

        ids = [args[0]["id"] for _, args in surface.calls()]
        assert len(ids) == n_threads * per_thread
        assert len(set(ids)) == len(ids)
        # Per-thread program order survives.
        for t in range(n_threads):
            mine = [i for i in ids if i.startswith(f"{t}-")]
            assert mine == [f"{t}-{i}" for i in range(per_thread)]

    def test_senders_racing_mark_ready(self, bridge, surface, presenter):
        total = 400
        go = threading.Event()

        def _sender() -> None:
            go.wait()
            for i in range(total):
                bridge.send_command("addMessage", {"id": i})

        th = threading.Thread(target=_sender)
        th.start()
        go.set()
        bridge.mark_ready()
        th.join()
        presenter.flush()

        ids = [args[0]["id"] for _, args in surface.calls()]
        assert ids == list(range(total))
        assert bridge.pending() == ()
