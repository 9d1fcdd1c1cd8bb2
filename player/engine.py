"""
Core playback engine.
Owns the single AudioResource, turns intents into resource operations and
resource events into PlaybackState changes.
"""

import dataclasses
import logging
from typing import Callable, List, Optional

from shared.constants import DEFAULT_VOLUME
from shared.errors import PlaybackError
from shared.models import PlaybackState, Track
from player.history import HistoryTracker
from player.persistence import PersistenceBridge
from player.resource import AudioResource, ResourceListener

logger = logging.getLogger(__name__)


class _PlaybackSession(ResourceListener):
    """
    Listener bound to one load of one track.

    Detached sessions go inert, so late events from an abandoned source never
    reach the engine, and ``ended`` is delivered at most once.
    """

    def __init__(self, engine: 'PlaybackEngine', track: Track):
        self.engine = engine
        self.track = track
        self.active = True
        self.ended = False

    def on_time_update(self, position: float) -> None:
        if self.active and not self.ended:
            self.engine._handle_time_update(position)

    def on_duration_change(self, duration: float) -> None:
        if self.active:
            self.engine._handle_duration_change(duration)

    def on_ended(self) -> None:
        if self.active and not self.ended:
            self.ended = True
            self.engine._handle_ended(self.track)

    def on_error(self, error: Exception) -> None:
        if self.active:
            self.engine._handle_resource_error(self.track, error)


class PlaybackEngine:
    """Playback state machine around one AudioResource."""

    def __init__(self, resource: AudioResource,
                 history: Optional[HistoryTracker] = None,
                 persistence: Optional[PersistenceBridge] = None):
        self.resource = resource
        self.history = history
        self.persistence = persistence

        self._state = PlaybackState(volume=DEFAULT_VOLUME)
        self.error: Optional[PlaybackError] = None
        self._session: Optional[_PlaybackSession] = None
        # Bumped by every intent that retargets the engine; stale play() resolutions compare against it
        self._generation = 0
        self._seeking = False
        self._last_saved_second = -1

        self._progress_callbacks: List[Callable[[float, float], None]] = []
        self._ended_callbacks: List[Callable[[Track], None]] = []
        self._error_callbacks: List[Callable[[PlaybackError], None]] = []
        self._state_callbacks: List[Callable[[PlaybackState], None]] = []

        self.resource.set_volume(self._state.volume)

    # --- State ---

    @property
    def state(self) -> PlaybackState:
        """Copy of the current playback state."""
        return dataclasses.replace(self._state)

    @property
    def current_track(self) -> Optional[Track]:
        return self._state.current_track

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def is_seeking(self) -> bool:
        return self._seeking

    # --- Intents ---

    async def play(self, track: Track) -> bool:
        """
        Play ``track``, or resume it if it is already the current track.

        Never raises for playback failures: they end up in ``error`` with
        ``is_playing`` false. Returns True if playback actually began.
        """
        current = self._state.current_track
        resumable = (
            current is not None
            and current.id == track.id
            and self.error is None
            and self._session is not None
            and not self._session.ended
        )
        if not resumable:
            self._switch(track)
        self._state.is_playing = True
        self._notify_state()
        return await self._begin(track)

    def pause(self) -> None:
        """Pause playback. Idempotent."""
        self._generation += 1
        if self._state.current_track is not None:
            self.resource.pause()
        if self._state.is_playing:
            self._state.is_playing = False
            self._save_position(force=True)
            self._notify_state()

    def seek(self, seconds: float) -> float:
        """Move to ``seconds`` clamped to [0, duration]. Returns the applied position."""
        if self._state.current_track is None:
            return 0.0
        position = max(0.0, float(seconds))
        duration = self._state.duration or self.resource.duration
        if duration > 0:
            position = min(position, duration)
        self.resource.set_position(position)
        self._state.position = position
        self._notify_progress()
        self._save_position(force=True)
        return position

    def begin_seek(self) -> None:
        """A drag-seek started: mute rather than pause while scrubbing."""
        if not self._seeking:
            self._seeking = True
            self.resource.set_muted(True)

    def end_seek(self, seconds: Optional[float] = None) -> None:
        if seconds is not None:
            self.seek(seconds)
        if self._seeking:
            self._seeking = False
            self.resource.set_muted(False)

    def set_volume(self, volume: float) -> float:
        volume = max(0.0, min(1.0, float(volume)))
        self.resource.set_volume(volume)
        self._state.volume = volume
        if self.persistence:
            self.persistence.save_volume(volume)
        self._notify_state()
        return volume

    async def restart(self) -> bool:
        """Replay the current track from zero (repeat-one)."""
        track = self._state.current_track
        if track is None:
            return False
        self._attach(track)
        self.resource.load(track.audio_url)
        self._state.position = 0.0
        self._state.is_playing = True
        self._save_position(force=True)
        self._notify_state()
        return await self._begin(track)

    def restore(self, track: Optional[Track], position: float = 0.0,
                volume: float = DEFAULT_VOLUME) -> None:
        """Rehydrate from a previous run: load paused at ``position``, never auto-play."""
        volume = max(0.0, min(1.0, float(volume)))
        self.resource.set_volume(volume)
        self._state.volume = volume
        if track is not None:
            self._attach(track)
            self.resource.load(track.audio_url, start=position)
            self._state.current_track = track
            self._state.position = max(0.0, float(position))
            self._state.duration = 0.0
            self._state.is_playing = False
        self._notify_state()

    def stop(self) -> None:
        """Unload the current track."""
        self._generation += 1
        self._detach()
        self.resource.stop()
        self._state.current_track = None
        self._state.is_playing = False
        self._state.position = 0.0
        self._state.duration = 0.0
        self._notify_state()

    # --- Internals ---

    def _attach(self, track: Track) -> None:
        self._detach()
        self._session = _PlaybackSession(self, track)
        self.resource.subscribe(self._session)

    def _detach(self) -> None:
        if self._session is not None:
            self._session.active = False
            self.resource.unsubscribe(self._session)
            self._session = None

    def _switch(self, track: Track) -> None:
        self._generation += 1
        self._detach()
        self.resource.stop()
        self._state.current_track = track
        self._state.position = 0.0
        self._state.duration = 0.0
        self._last_saved_second = 0
        self._attach(track)
        self.resource.load(track.audio_url)
        logger.info(f"Loading {track.title} by {track.artist} ({track.id})")
        if self.history:
            self.history.record(track)
        if self.persistence:
            self.persistence.save_track(track)

    async def _begin(self, track: Track) -> bool:
        self._generation += 1
        generation = self._generation
        try:
            await self.resource.play()
        except Exception as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failure of superseded play for {track.id}: {e}")
                return False
            self._fail(track, e)
            return False

        if generation != self._generation:
            # Retargeted while the resource was starting
            return False
        if self.error is not None:
            logger.info(f"Playback recovered for {track.id}")
            self.error = None
            self._notify_state()
        return True

    def _fail(self, track: Track, exc: Exception) -> None:
        self._generation += 1
        error = exc if isinstance(exc, PlaybackError) else PlaybackError(track.id, str(exc) or type(exc).__name__)
        self.error = error
        self._state.is_playing = False
        logger.error(str(error))
        try:
            self.resource.pause()
        except Exception as e:
            logger.debug(f"Could not pause failed resource: {e}")
        self._fire(self._error_callbacks, error)
        self._notify_state()

    def _save_position(self, force: bool = False) -> None:
        if not self.persistence or self._state.current_track is None:
            return
        second = int(self._state.position)
        if force or second != self._last_saved_second:
            self._last_saved_second = second
            self.persistence.save_position(self._state.position)

    # --- Resource events (via the active session) ---

    def _handle_time_update(self, position: float) -> None:
        self._state.position = position
        self._notify_progress()
        self._save_position()

    def _handle_duration_change(self, duration: float) -> None:
        self._state.duration = duration
        self._notify_progress()

    def _handle_ended(self, track: Track) -> None:
        logger.debug(f"Track ended: {track.id}")
        self._state.is_playing = False
        if self._state.duration > 0:
            self._state.position = self._state.duration
        self._notify_state()
        self._fire(self._ended_callbacks, track)

    def _handle_resource_error(self, track: Track, error: Exception) -> None:
        self._fail(track, error)

    # --- Callbacks ---

    def add_progress_callback(self, callback: Callable[[float, float], None]) -> None:
        """Called with (position, duration) on every time update and seek."""
        if callback not in self._progress_callbacks:
            self._progress_callbacks.append(callback)

    def add_ended_callback(self, callback: Callable[[Track], None]) -> None:
        if callback not in self._ended_callbacks:
            self._ended_callbacks.append(callback)

    def add_error_callback(self, callback: Callable[[PlaybackError], None]) -> None:
        if callback not in self._error_callbacks:
            self._error_callbacks.append(callback)

    def add_state_callback(self, callback: Callable[[PlaybackState], None]) -> None:
        if callback not in self._state_callbacks:
            self._state_callbacks.append(callback)

    def _notify_progress(self) -> None:
        self._fire(self._progress_callbacks, self._state.position, self._state.duration)

    def _notify_state(self) -> None:
        self._fire(self._state_callbacks, self.state)

    @staticmethod
    def _fire(callbacks, *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in playback callback {callback}: {e}")
