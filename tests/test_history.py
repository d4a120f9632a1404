"""
Tests for the per-session history buffer.
"""
import pytest

from suggestion_pipeline.history import HistoryBuffer
from suggestion_pipeline.models import Role, Turn


def test_append_exchange_keeps_user_then_assistant_order():
    history = HistoryBuffer(max_history=10)
    history.append_exchange("How much does it cost?", "Ask which budget range they planned.")

    snapshot = history.snapshot()
    assert [t.role for t in snapshot] == [Role.USER, Role.ASSISTANT]
    assert snapshot[0].text == "How much does it cost?"


def test_cap_is_twice_max_history_and_length_stays_even():
    history = HistoryBuffer(max_history=10)
    for i in range(25):
        history.append_exchange(f"user {i}", f"assistant {i}")
        assert len(history) % 2 == 0
        assert len(history) <= 20

    snapshot = history.snapshot()
    assert len(snapshot) == 20
    # Oldest pairs evicted, most recent last
    assert snapshot[0] == Turn(Role.USER, "user 15")
    assert snapshot[-1] == Turn(Role.ASSISTANT, "assistant 24")


def test_trim_drops_whole_pairs():
    history = HistoryBuffer(max_history=1)
    history.append(Turn(Role.USER, "a"))
    history.append(Turn(Role.ASSISTANT, "b"))
    history.append(Turn(Role.USER, "c"))
    history.append(Turn(Role.ASSISTANT, "d"))
    history.trim()

    assert [t.text for t in history.snapshot()] == ["c", "d"]


def test_trim_after_bare_append_leaves_even_length():
    history = HistoryBuffer(max_history=10)
    for i in range(21):
        history.append(Turn(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"t{i}"))
    assert len(history) == 21

    history.trim()

    assert len(history) == 20
    assert history.snapshot()[-1].text == "t20"
    assert history.snapshot()[0].text == "t1"


def test_snapshot_last_and_is_a_copy():
    history = HistoryBuffer()
    for i in range(4):
        history.append_exchange(f"u{i}", f"a{i}")

    last_six = history.snapshot(last=6)
    assert [t.text for t in last_six] == ["u1", "a1", "u2", "a2", "u3", "a3"]
    assert history.snapshot(last=0) == ()

    history.clear()
    assert len(history) == 0
    assert len(last_six) == 6


def test_invalid_max_history():
    with pytest.raises(ValueError):
        HistoryBuffer(max_history=0)
