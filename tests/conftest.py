"""
Shared fixtures: a scriptable in-memory audio resource and a small catalog.
"""

import asyncio
import random
from typing import List, Optional

import pytest

from shared.models import Track
from player.coordinator import create_coordinator
from player.persistence import LocalStore, PersistenceBridge
from player.resource import AudioResource


class FakeAudioResource(AudioResource):
    """
    AudioResource that never touches a sound device.

    ``fail_with`` makes the next play() raise; ``hold`` makes play() wait on a
    future the test resolves through ``pending``.
    """

    def __init__(self):
        super().__init__()
        self.loads: List[tuple] = []
        self.play_calls = 0
        self.pause_calls = 0
        self.stop_calls = 0
        self.volume = None
        self.muted = False
        self.paused = True
        self.fail_with: Optional[Exception] = None
        self.hold = False
        self.pending: List[asyncio.Future] = []
        self._position = 0.0
        self._duration = 0.0

    def load(self, url, start=0.0):
        self.loads.append((url, start))
        self._position = start
        self._duration = 0.0

    async def play(self):
        self.play_calls += 1
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            await future
        self.paused = False

    def pause(self):
        self.pause_calls += 1
        self.paused = True

    def stop(self):
        self.stop_calls += 1
        self.paused = True

    def set_position(self, seconds):
        self._position = seconds

    def set_volume(self, volume):
        self.volume = volume

    def set_muted(self, muted):
        self.muted = muted

    @property
    def position(self):
        return self._position

    @property
    def duration(self):
        return self._duration

    # Simulated native events

    def tick(self, position):
        self._position = position
        self.emit_time_update(position)

    def set_duration(self, duration):
        self._duration = duration
        self.emit_duration_change(duration)

    def finish(self):
        self.emit_ended()

    @property
    def loaded_urls(self):
        return [url for url, _ in self.loads]


def make_track(track_id, title=None, artist="Artist", genre="Pop", created_at=None):
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        genre=genre,
        audio_url=f"https://cdn.example.com/songs/{track_id}.mp3",
        cover_url=f"https://cdn.example.com/covers/{track_id}.jpg",
        created_at=created_at or "2024-01-01T00:00:00",
    )


async def settle(rounds: int = 10):
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def tracks():
    return [make_track("A"), make_track("B"), make_track("C")]


@pytest.fixture
def resource():
    return FakeAudioResource()


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "player_state.json")


@pytest.fixture
def bridge(store):
    return PersistenceBridge(store)


@pytest.fixture
def coordinator(resource, store, tracks):
    coord = create_coordinator(resource, store=store, rng=random.Random(7))
    coord.set_catalog(tracks)
    return coord
