"""
Favourites Manager for Music Player.
Owns the liked set locally and keeps it in step with the user's server record.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from shared.errors import ServiceError
from shared.models import UserRecord
from player.api_client import ApiClient
from player.optimistic import OptimisticUpdate
from player.persistence import PersistenceBridge

logger = logging.getLogger(__name__)


class FavouritesManager:
    """
    Liked track ids for the current user.

    Toggles are optimistic: the set changes at once and is rolled back if the
    server rejects the change. Without a logged-in user, likes are local only.
    """

    def __init__(self, api: Optional[ApiClient] = None,
                 persistence: Optional[PersistenceBridge] = None):
        self.api = api
        self.persistence = persistence
        self.username: Optional[str] = None
        self._favourites: Set[str] = set()
        self._pending: Dict[str, OptimisticUpdate] = {}
        self._on_change_callbacks: List[Callable[[], None]] = []

    def load(self, track_ids: Iterable[str], username: Optional[str] = None) -> None:
        """Replace the liked set, e.g. from a restored session or a login response."""
        self._favourites = set(track_ids)
        self.username = username
        self._save()
        self._notify_change()

    def clear(self) -> None:
        """Forget the user and their likes (logout)."""
        self._favourites.clear()
        self._pending.clear()
        self.username = None
        self._notify_change()

    def is_favourite(self, track_id: str) -> bool:
        return track_id in self._favourites

    def get_all(self) -> List[str]:
        return sorted(self._favourites)

    def size(self) -> int:
        return len(self._favourites)

    def is_pending(self, track_id: str) -> bool:
        return track_id in self._pending

    async def toggle(self, track_id: str) -> bool:
        """
        Toggle favourite status of a track.
        Returns True if now favourited, False if unfavourited.

        Raises:
            ServiceError: If the server rejected the change (local state is reverted)
        """
        liking = track_id not in self._favourites

        if not self.username or self.api is None:
            self._set(track_id, liking)
            return liking

        username = self.username
        update = OptimisticUpdate(
            apply=lambda: self._set(track_id, liking),
            revert=lambda: self._set(track_id, not liking),
            description=f"{'like' if liking else 'unlike'} of {track_id} for {username}",
        )
        self._pending[track_id] = update
        try:
            user = await update.run(
                lambda: asyncio.to_thread(self.api.toggle_like, username, track_id, liking)
            )
        finally:
            if self._pending.get(track_id) is update:
                del self._pending[track_id]

        if self.username == username:
            self._merge_server(user)
        return track_id in self._favourites

    async def sync(self) -> bool:
        """Pull the server's liked set. Returns False if there is no user or the pull failed."""
        if not self.username or self.api is None:
            return False
        username = self.username
        try:
            user = await asyncio.to_thread(self.api.get_user, username)
        except ServiceError as e:
            logger.warning(f"Like sync failed for {username}: {e.message}")
            return False
        if self.username != username:
            return False
        self._merge_server(user)
        return True

    async def run_sync_loop(self, interval: float) -> None:
        """Pull periodically until cancelled."""
        while True:
            await asyncio.sleep(interval)
            await self.sync()

    def _merge_server(self, user: UserRecord) -> None:
        # The server is authoritative except for ids with an update still in flight
        liked = set(user.liked_songs)
        for track_id in self._pending:
            if track_id in self._favourites:
                liked.add(track_id)
            else:
                liked.discard(track_id)
        if liked != self._favourites:
            self._favourites = liked
            self._save()
            self._notify_change()

    def _set(self, track_id: str, liked: bool) -> None:
        if liked:
            self._favourites.add(track_id)
        else:
            self._favourites.discard(track_id)
        logger.debug(f"Toggled {'ON' if liked else 'OFF'} favourite: {track_id}")
        self._save()
        self._notify_change()

    def _save(self) -> None:
        if self.persistence:
            self.persistence.save_liked(self._favourites)

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when favourites change."""
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
                logger.error(f"Error in favourites change callback: {e}")
