"""
Playback & queue coordinator.

One PlaybackCoordinator is built per listening session and handed to the UI.
It wires the engine, queue, history, persistence, likes and playlists together
and is the only surface the presentation layer talks to.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Tuple

from shared.config import LIKE_SYNC_INTERVAL
from shared.errors import PlaybackError, QueueEmptyError
from shared.models import RepeatMode, Track, UserRecord
from player.api_client import ApiClient
from player.engine import PlaybackEngine
from player.favourites_manager import FavouritesManager
from player.history import HistoryTracker
from player.library import LibraryManager
from player.persistence import LocalStore, PersistenceBridge, RestoredSession
from player.playlists import PlaylistManager
from player.queue_manager import QueueManager
from player.resource import AudioResource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoordinatorSnapshot:
    """Immutable view of everything the UI renders."""
    current_track: Optional[Track]
    is_playing: bool
    position: float
    duration: float
    volume: float
    manual_queue: Tuple[Track, ...]
    shuffle_enabled: bool
    repeat_mode: RepeatMode
    liked: FrozenSet[str]
    history: Tuple[Track, ...]
    recently_played: Tuple[Track, ...]
    error: Optional[PlaybackError] = None
    no_track: bool = False
    user: Optional[str] = None
    seeking: bool = field(default=False)


class PlaybackCoordinator:
    def __init__(self, engine: PlaybackEngine, queue: QueueManager, history: HistoryTracker,
                 persistence: PersistenceBridge, favourites: FavouritesManager,
                 library: Optional[LibraryManager] = None,
                 playlists: Optional[PlaylistManager] = None,
                 api: Optional[ApiClient] = None):
        self.engine = engine
        self.queue = queue
        self.history = history
        self.persistence = persistence
        self.favourites = favourites
        self.library = library
        self.playlists = playlists
        self.api = api

        self._no_track = False
        self._advance_task: Optional[asyncio.Task] = None
        self._sync_task: Optional[asyncio.Task] = None
        self._change_callbacks: List[Callable[[], None]] = []

        self.engine.add_ended_callback(self._on_track_ended)
        self.engine.add_state_callback(lambda _state: self._notify_change())
        self.queue.add_change_callback(self._notify_change)
        self.favourites.add_change_callback(self._notify_change)

    # --- Catalog ---

    async def load_catalog(self, force: bool = False) -> List[Track]:
        """
        Fetch the catalog and hand it to the queue.

        Raises:
            RuntimeError: If the coordinator was built without a library
            ServiceError: If the backend call fails
        """
        if self.library is None:
            raise RuntimeError("No library configured")
        tracks = await asyncio.to_thread(self.library.list_tracks, force)
        self.queue.set_catalog(tracks)
        return tracks

    def set_catalog(self, tracks: List[Track]) -> None:
        self.queue.set_catalog(tracks)

    # --- Transport ---

    async def play(self, track: Track) -> bool:
        self._no_track = False
        return await self.engine.play(track)

    def pause(self) -> None:
        self.engine.pause()

    async def toggle_playback(self) -> bool:
        """Pause if playing, otherwise resume the current track or start the next one."""
        if self.engine.is_playing:
            self.engine.pause()
            return False
        current = self.engine.current_track
        if current is not None:
            return await self.play(current)
        return await self.next() is not None

    def seek(self, seconds: float) -> float:
        return self.engine.seek(seconds)

    def begin_seek(self) -> None:
        self.engine.begin_seek()

    def end_seek(self, seconds: Optional[float] = None) -> None:
        self.engine.end_seek(seconds)

    def set_volume(self, volume: float) -> float:
        return self.engine.set_volume(volume)

    async def next(self) -> Optional[Track]:
        """Skip ahead. Returns the track now loaded, or None when there is nothing to play."""
        return await self._advance(automatic=False)

    async def previous(self) -> Optional[Track]:
        current = self.engine.current_track
        try:
            track = self.queue.get_previous(current)
        except QueueEmptyError:
            return self._mark_no_track()
        await self._start(track, current)
        return track

    async def _advance(self, automatic: bool) -> Optional[Track]:
        current = self.engine.current_track
        try:
            track = self.queue.get_next(current, automatic=automatic)
        except QueueEmptyError:
            return self._mark_no_track()
        await self._start(track, current)
        return track

    async def _start(self, track: Track, current: Optional[Track]) -> None:
        if current is not None and track.id == current.id:
            # Same track again (repeat-one or a one-track catalog): from the top
            self._no_track = False
            await self.engine.restart()
        else:
            await self.play(track)

    def _mark_no_track(self) -> None:
        logger.info("Nothing to play: catalog and queue are empty")
        self._no_track = True
        self._notify_change()
        return None

    def _on_track_ended(self, track: Track) -> None:
        self._advance_task = asyncio.ensure_future(self._advance(automatic=True))
        self._advance_task.add_done_callback(self._log_task_failure)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Automatic advance failed: {task.exception()}")

    # --- Queue ---

    def enqueue(self, track: Track) -> bool:
        return self.queue.enqueue(track)

    def dequeue(self, index: int) -> bool:
        return self.queue.dequeue(index)

    def toggle_shuffle(self) -> bool:
        return self.queue.toggle_shuffle(self.engine.current_track)

    def cycle_repeat(self) -> RepeatMode:
        return self.queue.cycle_repeat()

    # --- Likes ---

    async def toggle_like(self, track_id: str) -> bool:
        """Raises ServiceError if the server rejected the change; the liked set is already reverted."""
        return await self.favourites.toggle(track_id)

    def is_liked(self, track_id: str) -> bool:
        return self.favourites.is_favourite(track_id)

    # --- Accounts ---

    async def login(self, username: str, password: str) -> UserRecord:
        user = await asyncio.to_thread(self._require_api().login, username, password)
        self._start_account(user)
        return user

    async def register(self, username: str, password: str) -> UserRecord:
        user = await asyncio.to_thread(self._require_api().register, username, password)
        self._start_account(user)
        return user

    def _require_api(self) -> ApiClient:
        if self.api is None:
            raise RuntimeError("No API client configured")
        return self.api

    def _start_account(self, user: UserRecord) -> None:
        logger.info(f"Logged in as {user.username}")
        self.favourites.load(user.liked_songs, user.username)
        self.persistence.save_user(user.username)
        if self.playlists is not None:
            self.playlists.set_user(user.username, user.playlists)

    def logout(self) -> None:
        """Reset account and session state. Device-level track, position and volume survive."""
        logger.info(f"Logging out {self.favourites.username}")
        self.engine.pause()
        self.queue.reset()
        self.history.clear()
        self.favourites.clear()
        if self.playlists is not None:
            self.playlists.clear()
        self.persistence.clear_account()
        self._no_track = False
        self._notify_change()

    # --- Lifecycle ---

    def restore(self) -> RestoredSession:
        """Rehydrate from local storage. Loads the last track paused; never starts playback."""
        session = self.persistence.load()
        self.engine.restore(session.current_track, session.position, session.volume)
        self.favourites.load(session.liked, session.user)
        if self.playlists is not None:
            self.playlists.set_user(session.user)
        if session.current_track:
            logger.info(f"Restored {session.current_track.title} at {session.position:.0f}s")
        return session

    def start_background_sync(self, interval: float = LIKE_SYNC_INTERVAL) -> asyncio.Task:
        """Start the periodic liked-set pull. Requires a running event loop."""
        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.ensure_future(self.favourites.run_sync_loop(interval))
        return self._sync_task

    async def close(self) -> None:
        """Pause, persist position and stop background work."""
        self.engine.pause()
        for task in (self._sync_task, self._advance_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sync_task = None
        self._advance_task = None

    # --- State ---

    def snapshot(self) -> CoordinatorSnapshot:
        state = self.engine.state
        queue_state = self.queue.state
        return CoordinatorSnapshot(
            current_track=state.current_track,
            is_playing=state.is_playing,
            position=state.position,
            duration=state.duration,
            volume=state.volume,
            manual_queue=tuple(queue_state.manual_queue),
            shuffle_enabled=queue_state.shuffle_enabled,
            repeat_mode=queue_state.repeat_mode,
            liked=frozenset(self.favourites.get_all()),
            history=tuple(self.history.history),
            recently_played=tuple(self.history.recently_played),
            error=self.engine.error,
            no_track=self._no_track,
            user=self.favourites.username,
            seeking=self.engine.is_seeking,
        )

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Called whenever anything in the snapshot may have changed."""
        if callback not in self._change_callbacks:
            self._change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in coordinator change callback: {e}")


def create_coordinator(resource: AudioResource, api: Optional[ApiClient] = None,
                       store: Optional[LocalStore] = None,
                       rng: Optional[random.Random] = None) -> PlaybackCoordinator:
    """Build one fully wired coordinator for a listening session."""
    persistence = PersistenceBridge(store)
    history = HistoryTracker()
    engine = PlaybackEngine(resource, history=history, persistence=persistence)
    queue = QueueManager(rng=rng)
    favourites = FavouritesManager(api, persistence)
    library = LibraryManager(api) if api is not None else None
    playlists = PlaylistManager(api) if api is not None else None
    return PlaybackCoordinator(engine, queue, history, persistence, favourites,
                               library=library, playlists=playlists, api=api)
