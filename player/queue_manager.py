"""
Queue Manager for Music Player.
Decides what plays next from the manual queue, the shuffle order and the catalog.
"""

import logging
import random
from typing import List, Optional, Callable

from shared.errors import QueueEmptyError
from shared.models import Track, RepeatMode, QueueState

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Session-scoped queue state: a FIFO manual queue with unique entries, a
    precomputed shuffle permutation of the catalog and the repeat mode.

    get_next/get_previous only mutate queue state by consuming entries; the
    caller is responsible for playing the returned track.
    """

    def __init__(self, catalog: Optional[List[Track]] = None, rng: Optional[random.Random] = None):
        self._catalog: List[Track] = list(catalog or [])
        self._manual_queue: List[Track] = []
        self._shuffle_order: List[Track] = []
        self._repeat_mode = RepeatMode.OFF
        self._shuffle_enabled = False
        self._rng = rng or random.Random()
        self._on_change_callbacks: List[Callable[[], None]] = []

    # --- Catalog ---

    def set_catalog(self, tracks: List[Track]) -> None:
        """Replace the catalog used for sequential and shuffled advance."""
        self._catalog = list(tracks)
        ids = {t.id for t in self._catalog}
        self._shuffle_order = [t for t in self._shuffle_order if t.id in ids]
        self._notify_change()

    @property
    def catalog(self) -> List[Track]:
        return list(self._catalog)

    # --- Navigation ---

    def get_next(self, current: Optional[Track], automatic: bool = False) -> Track:
        """
        Resolve the track that follows ``current``.

        Args:
            current: Track playing now, if any
            automatic: True when advancing because the track ended; only then
                does repeat-one replay the current track

        Raises:
            QueueEmptyError: If there is nothing to play
        """
        if automatic and self._repeat_mode == RepeatMode.ONE and current is not None:
            return current

        if self._manual_queue:
            track = self._manual_queue.pop(0)
            logger.debug(f"Dequeued: {track.title}")
            self._notify_change()
            return track

        if not self._catalog:
            raise QueueEmptyError("Catalog is empty")

        if self._shuffle_enabled:
            return self._next_shuffled(current)
        return self._neighbour(current, 1)

    def get_previous(self, current: Optional[Track]) -> Track:
        """Resolve the track before ``current``. Raises QueueEmptyError on an empty catalog."""
        if not self._catalog:
            raise QueueEmptyError("Catalog is empty")
        if self._shuffle_enabled:
            return self._random_pick(current)
        return self._neighbour(current, -1)

    def _neighbour(self, current: Optional[Track], step: int) -> Track:
        index = self._index_of(current)
        if index is None:
            return self._catalog[0] if step > 0 else self._catalog[-1]
        # Both repeat off and repeat all wrap at the catalog boundary
        return self._catalog[(index + step) % len(self._catalog)]

    def _next_shuffled(self, current: Optional[Track]) -> Track:
        current_id = current.id if current else None
        while self._shuffle_order:
            track = self._shuffle_order.pop(0)
            if track.id != current_id:
                self._notify_change()
                return track
        return self._random_pick(current)

    def _random_pick(self, current: Optional[Track]) -> Track:
        current_id = current.id if current else None
        candidates = [t for t in self._catalog if t.id != current_id]
        if not candidates:
            return self._catalog[0]
        return self._rng.choice(candidates)

    def _index_of(self, track: Optional[Track]) -> Optional[int]:
        if track is None:
            return None
        for i, t in enumerate(self._catalog):
            if t.id == track.id:
                return i
        return None

    # --- Manual queue ---

    def enqueue(self, track: Track) -> bool:
        """
        Append a track to the manual queue.
        Returns False (and changes nothing) if the track is already queued.
        """
        if any(t.id == track.id for t in self._manual_queue):
            return False
        self._manual_queue.append(track)
        logger.info(f"Added to queue: {track.title} by {track.artist}")
        self._notify_change()
        return True

    def dequeue(self, index: int) -> bool:
        """
        Remove the track at the specified index.
        Returns True if successful, False if index out of range.
        """
        if 0 <= index < len(self._manual_queue):
            removed = self._manual_queue.pop(index)
            logger.info(f"Removed from queue: {removed.title}")
            self._notify_change()
            return True
        return False

    def move(self, from_index: int, to_index: int) -> bool:
        """
        Move a track from one position to another in the queue.
        Returns True if successful, False otherwise.
        """
        if 0 <= from_index < len(self._manual_queue) and 0 <= to_index < len(self._manual_queue):
            track = self._manual_queue.pop(from_index)
            self._manual_queue.insert(to_index, track)
            self._notify_change()
            return True
        return False

    def clear(self) -> None:
        """Clear all tracks from the manual queue."""
        count = len(self._manual_queue)
        self._manual_queue.clear()
        logger.info(f"Queue cleared ({count} tracks removed)")
        self._notify_change()

    def peek(self) -> Optional[Track]:
        return self._manual_queue[0] if self._manual_queue else None

    @property
    def manual_queue(self) -> List[Track]:
        return list(self._manual_queue)

    # --- Modes ---

    def toggle_shuffle(self, current: Optional[Track] = None) -> bool:
        """
        Flip shuffle. Turning it on draws a fresh permutation of the catalog
        without the current track. Returns the new state.
        """
        self._shuffle_enabled = not self._shuffle_enabled
        if self._shuffle_enabled:
            current_id = current.id if current else None
            order = [t for t in self._catalog if t.id != current_id]
            self._rng.shuffle(order)
            self._shuffle_order = order
        else:
            self._shuffle_order = []
        logger.info(f"Shuffle {'on' if self._shuffle_enabled else 'off'}")
        self._notify_change()
        return self._shuffle_enabled

    def cycle_repeat(self) -> RepeatMode:
        """Advance off -> all -> one -> off and return the new mode."""
        self.set_repeat_mode(self._repeat_mode.next())
        return self._repeat_mode

    def set_repeat_mode(self, mode: RepeatMode) -> None:
        self._repeat_mode = RepeatMode(mode)
        self._notify_change()

    @property
    def repeat_mode(self) -> RepeatMode:
        return self._repeat_mode

    @property
    def shuffle_enabled(self) -> bool:
        return self._shuffle_enabled

    @property
    def state(self) -> QueueState:
        return QueueState(
            manual_queue=list(self._manual_queue),
            shuffle_order=list(self._shuffle_order),
            repeat_mode=self._repeat_mode,
            shuffle_enabled=self._shuffle_enabled,
        )

    def reset(self) -> None:
        """Back to a fresh session: empty queue, shuffle off, repeat off. The catalog stays."""
        self._manual_queue.clear()
        self._shuffle_order.clear()
        self._shuffle_enabled = False
        self._repeat_mode = RepeatMode.OFF
        self._notify_change()

    # --- Callbacks ---

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when the queue changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._on_change_callbacks:
            self._on_change_callbacks.remove(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in queue change callback: {e}")
