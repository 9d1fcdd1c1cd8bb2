import random

import pytest

from shared.errors import QueueEmptyError
from shared.models import RepeatMode
from player.queue_manager import QueueManager
from conftest import make_track


@pytest.fixture
def queue(tracks):
    return QueueManager(tracks, rng=random.Random(3))


def test_sequential_next_wraps(queue, tracks):
    a, b, c = tracks
    assert queue.get_next(a) == b
    assert queue.get_next(b) == c
    assert queue.get_next(c) == a


def test_sequential_previous_wraps(queue, tracks):
    a, b, c = tracks
    assert queue.get_previous(a) == c
    assert queue.get_previous(c) == b


def test_sequential_is_cyclic_from_any_start(queue, tracks):
    for start in tracks:
        current = start
        for _ in range(len(tracks)):
            current = queue.get_next(current)
        assert current.id == start.id


def test_next_without_current_starts_at_first(queue, tracks):
    assert queue.get_next(None) == tracks[0]
    assert queue.get_previous(None) == tracks[-1]


def test_unknown_current_starts_at_first(queue, tracks):
    assert queue.get_next(make_track("Z")) == tracks[0]


def test_repeat_all_also_wraps(queue, tracks):
    queue.set_repeat_mode(RepeatMode.ALL)
    assert queue.get_next(tracks[-1]) == tracks[0]


def test_empty_catalog_raises():
    queue = QueueManager()
    with pytest.raises(QueueEmptyError):
        queue.get_next(None)
    with pytest.raises(QueueEmptyError):
        queue.get_previous(None)


def test_manual_queue_consumed_once(queue, tracks):
    a, b, c = tracks
    queue.enqueue(c)
    assert queue.get_next(a) == c
    assert queue.manual_queue == []
    assert queue.get_next(a) == b


def test_manual_queue_beats_shuffle(queue, tracks):
    a, _, c = tracks
    queue.toggle_shuffle(a)
    queue.enqueue(c)
    assert queue.get_next(a) == c
    assert queue.manual_queue == []


def test_manual_queue_works_on_empty_catalog():
    queue = QueueManager()
    x = make_track("X")
    queue.enqueue(x)
    assert queue.get_next(None) == x


def test_enqueue_same_track_twice_keeps_one_entry(queue, tracks):
    assert queue.enqueue(tracks[1]) is True
    assert queue.enqueue(tracks[1]) is False
    assert [t.id for t in queue.manual_queue] == ["B"]


def test_dequeue_by_index(queue, tracks):
    queue.enqueue(tracks[1])
    queue.enqueue(tracks[2])
    assert queue.dequeue(0) is True
    assert [t.id for t in queue.manual_queue] == ["C"]
    assert queue.dequeue(5) is False


def test_move_and_clear(queue, tracks):
    for t in tracks:
        queue.enqueue(t)
    assert queue.move(2, 0) is True
    assert [t.id for t in queue.manual_queue] == ["C", "A", "B"]
    assert queue.move(0, 9) is False
    assert queue.peek().id == "C"
    queue.clear()
    assert queue.peek() is None


def test_repeat_one_replays_only_on_automatic_advance(queue, tracks):
    a, b, _ = tracks
    queue.set_repeat_mode(RepeatMode.ONE)
    assert queue.get_next(a, automatic=True) == a
    assert queue.get_next(a) == b


def test_repeat_one_wins_over_manual_queue(queue, tracks):
    a, _, c = tracks
    queue.enqueue(c)
    queue.set_repeat_mode(RepeatMode.ONE)
    assert queue.get_next(a, automatic=True) == a
    assert [t.id for t in queue.manual_queue] == ["C"]


def test_cycle_repeat_order(queue):
    assert queue.repeat_mode == RepeatMode.OFF
    assert queue.cycle_repeat() == RepeatMode.ALL
    assert queue.cycle_repeat() == RepeatMode.ONE
    assert queue.cycle_repeat() == RepeatMode.OFF


def test_shuffle_order_excludes_current(queue, tracks):
    a = tracks[0]
    assert queue.toggle_shuffle(a) is True
    order = queue.state.shuffle_order
    assert sorted(t.id for t in order) == ["B", "C"]


def test_shuffle_pass_has_no_repeats(tracks):
    catalog = tracks + [make_track(i) for i in "DEFG"]
    queue = QueueManager(catalog, rng=random.Random(11))
    current = catalog[0]
    queue.toggle_shuffle(current)
    seen = [current.id]
    for _ in range(len(catalog) - 1):
        current = queue.get_next(current)
        seen.append(current.id)
    assert sorted(seen) == sorted(t.id for t in catalog)


def test_shuffle_exhaustion_never_repeats_current(queue, tracks):
    current = tracks[0]
    queue.toggle_shuffle(current)
    for _ in range(20):
        following = queue.get_next(current)
        assert following.id != current.id
        current = following


def test_shuffle_single_track_catalog_returns_it():
    only = make_track("A")
    queue = QueueManager([only])
    queue.toggle_shuffle(only)
    assert queue.get_next(only) == only


def test_toggle_shuffle_off_clears_order(queue, tracks):
    queue.toggle_shuffle(tracks[0])
    assert queue.toggle_shuffle(tracks[0]) is False
    assert queue.state.shuffle_order == []


def test_set_catalog_prunes_shuffle_order(queue, tracks):
    queue.toggle_shuffle(tracks[0])
    queue.set_catalog(tracks[:2])
    assert [t.id for t in queue.state.shuffle_order] == ["B"]


def test_reset_restores_default_modes(queue, tracks):
    queue.enqueue(tracks[1])
    queue.toggle_shuffle(tracks[0])
    queue.set_repeat_mode(RepeatMode.ALL)
    queue.reset()
    state = queue.state
    assert state.manual_queue == []
    assert state.shuffle_order == []
    assert state.shuffle_enabled is False
    assert state.repeat_mode == RepeatMode.OFF
    assert queue.get_next(tracks[0]).id == "B"


def test_change_callbacks(queue, tracks):
    calls = []
    queue.add_change_callback(lambda: calls.append(1))
    queue.enqueue(tracks[0])
    queue.dequeue(0)
    assert len(calls) == 2


def test_failing_callback_does_not_break_queue(queue, tracks):
    def boom():
        raise RuntimeError("boom")
    queue.add_change_callback(boom)
    assert queue.enqueue(tracks[0]) is True
