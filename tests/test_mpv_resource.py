"""
MpvResource against a stand-in for mpv.MPV.

``FakeMpv.fire`` plays the part of mpv's event thread: it calls the observer,
which posts the event onto the loop with call_soon_threadsafe.
"""

import asyncio

import pytest

from player.coordinator import create_coordinator
from player.resource import ResourceListener
from conftest import settle

try:
    from player import mpv_resource
except (ImportError, OSError) as e:
    pytest.skip(f"libmpv unavailable: {e}", allow_module_level=True)


class FakeMpv:
    def __init__(self, **options):
        self.options = options
        self.pause = True
        self.volume = 100
        self.mute = False
        self.observers = {}
        self.loaded = []
        self.seeks = []
        self.stopped = 0
        self.terminated = False

    def observe_property(self, name, handler):
        self.observers[name] = handler

    def loadfile(self, url, **options):
        self.loaded.append((url, options))

    def seek(self, amount, reference="relative"):
        self.seeks.append((amount, reference))

    def stop(self):
        self.stopped += 1

    def terminate(self):
        self.terminated = True

    def fire(self, name, value):
        self.observers[name](name, value)


class Recorder(ResourceListener):
    def __init__(self):
        self.times = []
        self.durations = []
        self.ended = 0
        self.errors = []

    def on_time_update(self, position):
        self.times.append(position)

    def on_duration_change(self, duration):
        self.durations.append(duration)

    def on_ended(self):
        self.ended += 1

    def on_error(self, error):
        self.errors.append(error)


@pytest.fixture
def player(monkeypatch):
    created = []

    def factory(**options):
        instance = FakeMpv(**options)
        created.append(instance)
        return instance

    monkeypatch.setattr(mpv_resource.mpv, "MPV", factory)
    return created


@pytest.fixture
def resource(player):
    return mpv_resource.MpvResource(start_timeout=1.0)


@pytest.fixture
def recorder(resource):
    listener = Recorder()
    resource.subscribe(listener)
    return listener


async def start(resource, mpv, url):
    resource.load(url)
    task = asyncio.ensure_future(resource.play())
    await settle()
    mpv.fire("core-idle", False)
    await task


@pytest.mark.asyncio
async def test_play_resolves_when_mpv_starts(resource, player):
    mpv = player[0]
    assert mpv.options["vo"] == "null"
    await start(resource, mpv, "https://cdn.example.com/a.mp3")
    assert mpv.pause is False
    assert mpv.loaded == [("https://cdn.example.com/a.mp3", {})]


@pytest.mark.asyncio
async def test_load_with_start_offset(resource, player):
    resource.load("https://cdn.example.com/a.mp3", start=12.5)
    assert player[0].loaded == [("https://cdn.example.com/a.mp3", {"start": "12.500"})]
    assert resource.position == 12.5


@pytest.mark.asyncio
async def test_play_times_out(player):
    resource = mpv_resource.MpvResource(start_timeout=0.01)
    resource.load("https://cdn.example.com/a.mp3")
    with pytest.raises(RuntimeError):
        await resource.play()


@pytest.mark.asyncio
async def test_source_that_never_opens_fails_play(resource, player):
    mpv = player[0]
    resource.load("https://cdn.example.com/missing.mp3")
    task = asyncio.ensure_future(resource.play())
    await settle()
    mpv.fire("idle-active", True)
    with pytest.raises(RuntimeError):
        await task


@pytest.mark.asyncio
async def test_end_of_file_is_reported(resource, player, recorder):
    mpv = player[0]
    await start(resource, mpv, "https://cdn.example.com/a.mp3")
    mpv.fire("duration", 200.0)
    mpv.fire("time-pos", 199.5)
    await settle()
    mpv.fire("eof-reached", True)
    mpv.fire("idle-active", True)
    await settle()

    assert recorder.durations == [200.0]
    assert recorder.times == [199.5]
    assert recorder.ended == 1
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_events_from_previous_file_are_dropped(resource, player, recorder):
    mpv = player[0]
    await start(resource, mpv, "https://cdn.example.com/a.mp3")
    mpv.fire("duration", 200.0)
    await settle()

    async def switch():
        # Raised for the old file, still queued when the next file starts
        mpv.fire("time-pos", 150.0)
        mpv.fire("eof-reached", True)
        resource.load("https://cdn.example.com/b.mp3")
        await resource.play()

    task = asyncio.ensure_future(switch())
    await settle()
    assert not task.done()

    mpv.fire("core-idle", False)
    await task
    await settle()

    assert recorder.ended == 0
    assert recorder.errors == []
    assert recorder.times == []
    assert resource.position == 0.0
    assert resource.duration == 0.0


@pytest.mark.asyncio
async def test_stop_drops_pending_events(resource, player, recorder):
    mpv = player[0]
    await start(resource, mpv, "https://cdn.example.com/a.mp3")
    mpv.fire("duration", 200.0)
    await settle()

    mpv.fire("eof-reached", True)
    resource.stop()
    await settle()

    assert mpv.stopped == 1
    assert recorder.ended == 0


@pytest.mark.asyncio
async def test_volume_and_mute(resource, player):
    resource.set_volume(0.25)
    resource.set_muted(True)
    assert player[0].volume == 25.0
    assert player[0].mute is True
    resource.set_volume(3)
    assert player[0].volume == 100.0


@pytest.mark.asyncio
async def test_skip_is_not_hijacked_by_previous_track_ending(player, store, tracks):
    resource = mpv_resource.MpvResource(start_timeout=1.0)
    mpv = player[0]
    coordinator = create_coordinator(resource, store=store)
    coordinator.set_catalog(tracks)
    a, b, _ = tracks

    task = asyncio.ensure_future(coordinator.play(a))
    await settle()
    mpv.fire("core-idle", False)
    assert await task
    mpv.fire("duration", 200.0)
    await settle()

    async def skip_to_b():
        # mpv reports the end of A in the same instant the user picks B
        mpv.fire("eof-reached", True)
        return await coordinator.play(b)

    task = asyncio.ensure_future(skip_to_b())
    await settle()
    mpv.fire("core-idle", False)
    assert await task
    await settle()

    snapshot = coordinator.snapshot()
    assert snapshot.current_track.id == "B"
    assert snapshot.is_playing
    assert snapshot.error is None
    assert [url for url, _ in mpv.loaded] == [a.audio_url, b.audio_url]
