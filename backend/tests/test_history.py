"""Tests for the bounded history log and the session registry."""
import pytest

from chat_relay.chat.events import JoinedEvent, MessageEvent
from chat_relay.chat.history import HistoryLog
from chat_relay.chat.registry import SessionRegistry


def _message(n: int) -> MessageEvent:
    return MessageEvent(
        connectionId=f"conn-{n}",
        displayName="alice",
        body=f"message {n}",
        timestamp="10:00",
    )


# =============================================================================
# HistoryLog
# =============================================================================


class TestHistoryLog:
    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            HistoryLog(0)
        with pytest.raises(ValueError):
            HistoryLog(-3)

    def test_default_capacity(self):
        assert HistoryLog().capacity == 100

    def test_append_keeps_insertion_order(self):
        log = HistoryLog(5)
        events = [_message(i) for i in range(3)]
        for event in events:
            log.append(event)
        assert list(log.snapshot()) == events

    def test_overflow_evicts_oldest_first(self):
        """Capacity 2 with appends [A, B, C] leaves [B, C]."""
        log = HistoryLog(2)
        a, b, c = _message(1), _message(2), _message(3)
        for event in (a, b, c):
            log.append(event)
        assert log.snapshot() == (b, c)

    def test_length_never_exceeds_capacity(self):
        capacity = 7
        log = HistoryLog(capacity)
        appended = []
        for i in range(50):
            appended.append(log.append(_message(i)))
            assert len(log) <= capacity
            # oldest survivor is the (k - N + 1)-th appended event
            expected_oldest = appended[max(0, len(appended) - capacity)]
            assert log.snapshot()[0] == expected_oldest

    def test_snapshot_is_immutable_copy(self):
        log = HistoryLog(3)
        log.append(_message(1))
        snapshot = log.snapshot()
        log.append(_message(2))
        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)

    def test_snapshot_twice_is_equal(self):
        log = HistoryLog(3)
        log.append(_message(1))
        log.append(_message(2))
        assert log.snapshot() == log.snapshot()

    def test_events_are_frozen(self):
        event = _message(1)
        with pytest.raises(Exception):
            event.body = "edited"

    def test_clear(self):
        log = HistoryLog(3)
        log.append(_message(1))
        log.clear()
        assert len(log) == 0
        assert log.snapshot() == ()


# =============================================================================
# SessionRegistry
# =============================================================================


class TestSessionRegistry:
    def test_register_and_lookup(self):
        registry = SessionRegistry()
        registry.register("c1", "alice")
        assert registry.lookup("c1") == "alice"
        assert registry.lookup("c2") is None

    def test_register_overwrites(self):
        registry = SessionRegistry()
        registry.register("c1", "alice")
        registry.register("c1", "alicia")
        assert registry.lookup("c1") == "alicia"
        assert len(registry) == 1

    def test_remove_returns_name_and_is_idempotent(self):
        registry = SessionRegistry()
        registry.register("c1", "alice")
        assert registry.remove("c1") == "alice"
        assert registry.remove("c1") is None
        assert registry.lookup("c1") is None

    def test_name_in_use(self):
        registry = SessionRegistry()
        assert registry.name_in_use("alice") is False
        registry.register("c1", "alice")
        assert registry.name_in_use("alice") is True
        assert registry.name_in_use("bob") is False

    def test_name_in_use_with_exclude(self):
        registry = SessionRegistry()
        registry.register("c1", "alice")
        assert registry.name_in_use("alice", exclude="c1") is False
        registry.register("c2", "alice")
        assert registry.name_in_use("alice", exclude="c1") is True

    def test_duplicate_names_under_different_connections(self):
        registry = SessionRegistry()
        registry.register("c1", "alice")
        registry.register("c2", "alice")
        assert registry.entries() == [("c1", "alice"), ("c2", "alice")]
        registry.remove("c1")
        assert registry.name_in_use("alice") is True

    def test_joined_event_can_be_stored(self):
        log = HistoryLog(1)
        joined = JoinedEvent(
            connectionId="c1",
            displayName="alice",
            message="alice joined the chat",
            timestamp="10:00",
        )
        log.append(joined)
        assert log.snapshot()[0].type == "user_joined"
