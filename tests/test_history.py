from player.history import HistoryTracker
from conftest import make_track


def test_record_is_most_recent_first():
    history = HistoryTracker()
    for i in "ABC":
        history.record(make_track(i))
    assert [t.id for t in history.history] == ["C", "B", "A"]


def test_record_same_track_twice_keeps_one_entry_at_front():
    history = HistoryTracker()
    history.record(make_track("A"))
    history.record(make_track("B"))
    history.record(make_track("A"))
    assert [t.id for t in history.history] == ["A", "B"]
    assert len(history) == 2


def test_caps():
    history = HistoryTracker(max_entries=50, recent_entries=6)
    for i in range(60):
        history.record(make_track(str(i)))
    assert len(history.history) == 50
    assert history.history[0].id == "59"
    assert [t.id for t in history.recently_played] == [str(i) for i in range(59, 53, -1)]


def test_clear():
    history = HistoryTracker()
    history.record(make_track("A"))
    history.clear()
    assert history.history == []
    assert history.recently_played == []
