"""
Playlist management for the logged-in user.
Every edit is applied locally first and rolled back if the backend rejects it.
"""

import asyncio
import logging
import uuid
from typing import Callable, List, Optional

from shared.errors import NotFound, ServiceError
from shared.models import Playlist, Track
from player.api_client import ApiClient
from player.optimistic import OptimisticUpdate

logger = logging.getLogger(__name__)


class PlaylistManager:
    def __init__(self, api: ApiClient):
        self.api = api
        self.username: Optional[str] = None
        self._playlists: List[Playlist] = []
        self._on_change_callbacks: List[Callable[[], None]] = []

    # --- Session ---

    def set_user(self, username: Optional[str], playlists: Optional[List[Playlist]] = None) -> None:
        self.username = username
        self._playlists = list(playlists or [])
        self._notify_change()

    def clear(self) -> None:
        self.set_user(None)

    @property
    def playlists(self) -> List[Playlist]:
        return list(self._playlists)

    def get(self, playlist_id: str) -> Playlist:
        for playlist in self._playlists:
            if playlist.id == playlist_id:
                return playlist
        raise NotFound("Playlist not found")

    def _require_user(self) -> str:
        if not self.username:
            raise ServiceError("Log in to manage playlists", 401)
        return self.username

    def _replace(self, playlist_id: str, playlist: Playlist) -> None:
        for i, p in enumerate(self._playlists):
            if p.id == playlist_id:
                self._playlists[i] = playlist
                break
        self._notify_change()

    async def refresh(self) -> List[Playlist]:
        username = self._require_user()
        self._playlists = await asyncio.to_thread(self.api.get_playlists, username)
        self._notify_change()
        return self.playlists

    # --- Edits ---

    async def create(self, name: str) -> Playlist:
        username = self._require_user()
        placeholder = Playlist(id=f"pending-{uuid.uuid4().hex}", name=name)

        def apply():
            self._playlists.append(placeholder)
            self._notify_change()

        def revert():
            self._playlists.remove(placeholder)
            self._notify_change()

        update = OptimisticUpdate(apply, revert, f"create playlist '{name}'")
        playlist = await update.run(lambda: asyncio.to_thread(self.api.create_playlist, username, name))
        self._replace(placeholder.id, playlist)
        return playlist

    async def rename(self, playlist_id: str, name: str) -> Playlist:
        username = self._require_user()
        playlist = self.get(playlist_id)
        old_name = playlist.name

        def apply():
            playlist.name = name
            self._notify_change()

        def revert():
            playlist.name = old_name
            self._notify_change()

        update = OptimisticUpdate(apply, revert, f"rename playlist {playlist_id}")
        renamed = await update.run(
            lambda: asyncio.to_thread(self.api.rename_playlist, username, playlist_id, name)
        )
        self._replace(playlist_id, renamed)
        return renamed

    async def delete(self, playlist_id: str) -> None:
        username = self._require_user()
        playlist = self.get(playlist_id)
        index = self._playlists.index(playlist)

        def apply():
            self._playlists.remove(playlist)
            self._notify_change()

        def revert():
            self._playlists.insert(index, playlist)
            self._notify_change()

        update = OptimisticUpdate(apply, revert, f"delete playlist {playlist_id}")
        await update.run(lambda: asyncio.to_thread(self.api.delete_playlist, username, playlist_id))

    async def add_song(self, playlist_id: str, track: Track) -> Playlist:
        username = self._require_user()
        playlist = self.get(playlist_id)
        if playlist.has_song(track.id):
            return playlist

        def apply():
            playlist.songs.append(track)
            self._notify_change()

        def revert():
            playlist.songs[:] = [s for s in playlist.songs if s.id != track.id]
            self._notify_change()

        update = OptimisticUpdate(apply, revert, f"add {track.id} to playlist {playlist_id}")
        updated = await update.run(
            lambda: asyncio.to_thread(self.api.add_song_to_playlist, username, playlist_id, track.id)
        )
        self._replace(playlist_id, updated)
        return updated

    async def remove_song(self, playlist_id: str, track_id: str) -> Playlist:
        username = self._require_user()
        playlist = self.get(playlist_id)
        index = next((i for i, s in enumerate(playlist.songs) if s.id == track_id), None)
        if index is None:
            return playlist
        removed = playlist.songs[index]

        def apply():
            playlist.songs.pop(index)
            self._notify_change()

        def revert():
            playlist.songs.insert(index, removed)
            self._notify_change()

        update = OptimisticUpdate(apply, revert, f"remove {track_id} from playlist {playlist_id}")
        updated = await update.run(
            lambda: asyncio.to_thread(self.api.remove_song_from_playlist, username, playlist_id, track_id)
        )
        self._replace(playlist_id, updated)
        return updated

    # --- Callbacks ---

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in playlist change callback: {e}")
