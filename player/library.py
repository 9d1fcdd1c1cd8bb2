"""
Catalog access for the player.
Caches the song list from the backend and answers lookups, search and browse queries.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from shared.constants import CATALOG_CACHE_TTL_SECONDS, RECENTLY_ADDED_LIMIT
from shared.errors import NotFound
from shared.models import Track
from player.api_client import ApiClient

logger = logging.getLogger(__name__)


class LibraryManager:
    """Song catalog with a short-lived in-memory cache."""

    def __init__(self, api: ApiClient, ttl: float = CATALOG_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.api = api
        self.ttl = ttl
        self._clock = clock
        self._tracks: List[Track] = []
        self._by_id: Dict[str, Track] = {}
        self._fetched_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self.ttl

    def list_tracks(self, force: bool = False) -> List[Track]:
        """
        Return the catalog in backend order.

        Args:
            force: Skip the cache and refetch

        Raises:
            ServiceError: If the backend cannot be reached and nothing is cached
        """
        if force or not self._is_fresh():
            tracks = self.api.list_songs()
            self._tracks = tracks
            self._by_id = {t.id: t for t in tracks}
            self._fetched_at = self._clock()
            logger.info(f"Catalog loaded: {len(tracks)} tracks")
        return list(self._tracks)

    def get_track(self, track_id: str) -> Track:
        """Cache first, then the backend. Raises NotFound for unknown ids."""
        track = self._by_id.get(track_id)
        if track is not None:
            return track
        track = self.api.get_song(track_id)
        if track is None:
            raise NotFound("Song not found")
        self._by_id[track.id] = track
        return track

    def search(self, query: str) -> List[Track]:
        """Case-insensitive match on title, artist or genre."""
        query = query.strip().lower()
        tracks = self.list_tracks()
        if not query:
            return tracks
        return [
            t for t in tracks
            if query in t.title.lower() or query in t.artist.lower() or query in t.genre.lower()
        ]

    def recently_added(self, limit: int = RECENTLY_ADDED_LIMIT, newest_first: bool = True) -> List[Track]:
        tracks = sorted(self.list_tracks(), key=lambda t: t.created_at or "", reverse=newest_first)
        return tracks[:limit]

    def by_genre(self, genre: str, limit: Optional[int] = None) -> List[Track]:
        genre = genre.strip().lower()
        tracks = [t for t in self.list_tracks() if t.genre.lower() == genre]
        return tracks[:limit] if limit is not None else tracks

    def genres(self) -> List[str]:
        """Distinct genres in first-seen order."""
        seen: Dict[str, str] = {}
        for t in self.list_tracks():
            seen.setdefault(t.genre.lower(), t.genre)
        return list(seen.values())

    def invalidate(self) -> None:
        self._fetched_at = None
