from unittest.mock import MagicMock

import pytest

from shared.errors import NotFound
from player.library import LibraryManager
from conftest import make_track


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def catalog():
    return [
        make_track("1", title="Blue Monday", artist="New Order", genre="Synthpop", created_at="2024-01-01"),
        make_track("2", title="Karma Police", artist="Radiohead", genre="Rock", created_at="2024-03-01"),
        make_track("3", title="Paranoid Android", artist="Radiohead", genre="rock", created_at="2024-02-01"),
    ]


@pytest.fixture
def api(catalog):
    api = MagicMock()
    api.list_songs.return_value = catalog
    return api


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def library(api, clock):
    return LibraryManager(api, ttl=300, clock=clock)


def test_catalog_is_cached(library, api, clock):
    library.list_tracks()
    library.list_tracks()
    assert api.list_songs.call_count == 1

    clock.now = 301
    library.list_tracks()
    assert api.list_songs.call_count == 2


def test_force_refetches(library, api):
    library.list_tracks()
    library.list_tracks(force=True)
    assert api.list_songs.call_count == 2


def test_invalidate(library, api):
    library.list_tracks()
    library.invalidate()
    library.list_tracks()
    assert api.list_songs.call_count == 2


def test_get_track_uses_cache_then_api(library, api):
    library.list_tracks()
    assert library.get_track("2").title == "Karma Police"
    api.get_song.assert_not_called()

    api.get_song.return_value = make_track("9")
    assert library.get_track("9").id == "9"
    api.get_song.assert_called_once_with("9")


def test_get_track_not_found(library, api):
    api.get_song.side_effect = NotFound("Song not found")
    with pytest.raises(NotFound):
        library.get_track("missing")


def test_search_matches_title_artist_and_genre(library):
    assert [t.id for t in library.search("radiohead")] == ["2", "3"]
    assert [t.id for t in library.search("MONDAY")] == ["1"]
    assert [t.id for t in library.search("synth")] == ["1"]
    assert len(library.search("  ")) == 3


def test_recently_added(library):
    assert [t.id for t in library.recently_added()] == ["2", "3", "1"]
    assert [t.id for t in library.recently_added(limit=1, newest_first=False)] == ["1"]


def test_by_genre_and_genres(library):
    assert [t.id for t in library.by_genre("ROCK")] == ["2", "3"]
    assert library.genres() == ["Synthpop", "Rock"]
