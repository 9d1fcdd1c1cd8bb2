"""
HTTP client for the Revify REST API.
Used by the player (catalog, likes, playlists) and the admin tool (uploads).
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, List, Optional

import requests

from shared.config import API_URL
from shared.constants import DEFAULT_NETWORK_TIMEOUT
from shared.errors import NotFound, ServiceError
from shared.models import Playlist, Track, UserRecord

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin, blocking wrapper over the backend's JSON endpoints."""

    def __init__(self, base_url: str = API_URL, timeout: float = DEFAULT_NETWORK_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            adapter = requests.adapters.HTTPAdapter(pool_connections=10, pool_maxsize=10, max_retries=2)
            session.mount('https://', adapter)
            session.mount('http://', adapter)
        self.session = session

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ServiceError(f"Network error: {e}") from e

        if not response.ok:
            message = self._error_message(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            if response.status_code == 404:
                raise NotFound(message)
            raise ServiceError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
            if isinstance(data, dict) and data.get('message'):
                return str(data['message'])
        except ValueError:
            pass
        return response.reason or f"HTTP {response.status_code}"

    # --- Status ---

    def check_status(self) -> bool:
        """True if the backend answers its root endpoint."""
        try:
            self._request('GET', '/')
            return True
        except ServiceError:
            return False

    # --- Songs ---

    def list_songs(self) -> List[Track]:
        return [Track.from_dict(s) for s in self._request('GET', '/api/songs') or []]

    def get_song(self, song_id: str) -> Track:
        """Raises NotFound if the song does not exist."""
        return Track.from_dict(self._request('GET', f'/api/songs/{song_id}'))

    def create_song(self, title: str, artist: str, genre: str,
                    audio_url: str, cover_url: str) -> Track:
        data = self._request('POST', '/api/songs', json={
            'title': title,
            'artist': artist,
            'genre': genre,
            'audioUrl': audio_url,
            'coverUrl': cover_url,
        })
        return Track.from_dict(data)

    def delete_song(self, song_id: str) -> None:
        self._request('DELETE', f'/api/songs/{song_id}')

    # --- Uploads ---

    def upload_file(self, path: str) -> str:
        """Upload a file from disk. Returns its public URL."""
        file_path = Path(path)
        content_type = mimetypes.guess_type(file_path.name)[0] or 'application/octet-stream'
        with open(file_path, 'rb') as f:
            data = self._request('POST', '/api/upload', files={'file': (file_path.name, f, content_type)})
        return data['url']

    def upload_bytes(self, data: bytes, filename: str, content_type: str) -> str:
        result = self._request('POST', '/api/upload', files={'file': (filename, data, content_type)})
        return result['url']

    def upload_image_data(self, data_url: str) -> str:
        """Upload an image given as a ``data:`` URL."""
        return self._request('POST', '/api/upload', json={'data': data_url})['url']

    # --- Accounts ---

    def register(self, username: str, password: str) -> UserRecord:
        try:
            data = self._request('POST', '/api/auth/register',
                                 json={'username': username, 'password': password})
        except ServiceError as e:
            if e.status == 409:
                raise ServiceError("Username already exists", 409) from e
            raise
        return UserRecord.from_dict(data)

    def login(self, username: str, password: str) -> UserRecord:
        try:
            data = self._request('POST', '/api/auth/login',
                                 json={'username': username, 'password': password})
        except ServiceError as e:
            if e.status == 401:
                raise ServiceError("Invalid username or password", 401) from e
            raise
        return UserRecord.from_dict(data)

    def get_user(self, username: str) -> UserRecord:
        return UserRecord.from_dict(self._request('GET', f'/api/users/{username}'))

    def toggle_like(self, username: str, song_id: str, liking: bool) -> UserRecord:
        """Like or unlike, then re-read the user so the caller gets the server's view."""
        method = 'POST' if liking else 'DELETE'
        self._request(method, f'/api/users/{username}/likes/{song_id}')
        return self.get_user(username)

    # --- Playlists ---

    def get_playlists(self, username: str) -> List[Playlist]:
        data = self._request('GET', f'/api/users/{username}/playlists') or []
        return [Playlist.from_dict(p) for p in data]

    def get_playlist(self, username: str, playlist_id: str) -> Playlist:
        return Playlist.from_dict(self._request('GET', f'/api/users/{username}/playlists/{playlist_id}'))

    def create_playlist(self, username: str, name: str) -> Playlist:
        data = self._request('POST', f'/api/users/{username}/playlists', json={'name': name})
        return Playlist.from_dict(data)

    def rename_playlist(self, username: str, playlist_id: str, name: str) -> Playlist:
        data = self._request('PUT', f'/api/users/{username}/playlists/{playlist_id}', json={'name': name})
        return Playlist.from_dict(data)

    def delete_playlist(self, username: str, playlist_id: str) -> None:
        self._request('DELETE', f'/api/users/{username}/playlists/{playlist_id}')

    def add_song_to_playlist(self, username: str, playlist_id: str, song_id: str) -> Playlist:
        data = self._request('POST', f'/api/users/{username}/playlists/{playlist_id}/songs',
                             json={'songId': song_id})
        return Playlist.from_dict(data)

    def remove_song_from_playlist(self, username: str, playlist_id: str, song_id: str) -> Playlist:
        data = self._request('DELETE', f'/api/users/{username}/playlists/{playlist_id}/songs/{song_id}')
        return Playlist.from_dict(data)
