"""
Data models for tracks, users, playlists and player state.

This module defines the core data structures used throughout the platform.
Tracks travel over the wire in the backend's camelCase shape (``_id``,
``audioUrl``, ...) and are stored locally in snake_case; ``from_dict`` accepts both.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any
from enum import Enum
import uuid
from datetime import datetime


class StorageProvider(Enum):
    """Supported hosts for uploaded media."""
    CLOUDFLARE_R2 = "r2"
    LOCAL = "local"


class RepeatMode(Enum):
    """Repeat behaviour of the queue. Cycles off -> all -> one -> off."""
    OFF = "off"
    ALL = "all"
    ONE = "one"

    def next(self) -> 'RepeatMode':
        order = [RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE]
        return order[(order.index(self) + 1) % len(order)]


_TRACK_WIRE_KEYS = {
    "_id": "id",
    "audioUrl": "audio_url",
    "coverUrl": "cover_url",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class Track:
    """
    A playable song from the catalog.

    Attributes:
        id: Unique identifier assigned by the backend
        title: Song title
        artist: Artist name
        genre: Music genre
        audio_url: Public URL of the audio file on the asset host
        cover_url: Public URL of the cover image
        created_at: ISO-8601 timestamp of when the song was added
    """
    id: str
    title: str
    artist: str
    genre: str
    audio_url: str
    cover_url: str
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @staticmethod
    def generate_id() -> str:
        """Generate a unique track ID."""
        return uuid.uuid4().hex

    def to_dict(self) -> Dict[str, Any]:
        """Convert track to dictionary."""
        return asdict(self)

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert track to the backend's JSON shape."""
        return {
            "_id": self.id,
            "title": self.title,
            "artist": self.artist,
            "genre": self.genre,
            "audioUrl": self.audio_url,
            "coverUrl": self.cover_url,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        """Create Track from either the local or the wire shape, ignoring unknown keys."""
        import dataclasses
        normalized = {_TRACK_WIRE_KEYS.get(k, k): v for k, v in data.items()}
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in normalized.items() if k in field_names}
        if filtered_data.get("created_at") is None:
            filtered_data.pop("created_at", None)
        return cls(**filtered_data)


@dataclass
class Playlist:
    """A user's named, ordered list of tracks."""
    id: str
    name: str
    songs: List[Track] = field(default_factory=list)
    created_at: Optional[str] = None

    def has_song(self, song_id: str) -> bool:
        return any(s.id == song_id for s in self.songs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Playlist':
        songs = [Track.from_dict(s) for s in data.get("songs", []) if isinstance(s, dict)]
        return cls(
            id=str(data.get("_id") or data.get("id")),
            name=data.get("name", ""),
            songs=songs,
            created_at=data.get("createdAt") or data.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "songs": [s.to_api_dict() for s in self.songs],
            "createdAt": self.created_at,
        }


@dataclass
class UserRecord:
    """Server-side view of a user: identity, liked songs and playlists."""
    username: str
    liked_songs: List[str] = field(default_factory=list)
    playlists: List[Playlist] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecord':
        liked = []
        for entry in data.get("likedSongs", data.get("liked_songs", [])):
            # The backend may return populated song documents or bare ids
            liked.append(str(entry.get("_id") or entry.get("id")) if isinstance(entry, dict) else str(entry))
        playlists = [Playlist.from_dict(p) for p in data.get("playlists", []) if isinstance(p, dict)]
        return cls(username=data["username"], liked_songs=liked, playlists=playlists)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "likedSongs": list(self.liked_songs),
            "playlists": [p.to_dict() for p in self.playlists],
        }


@dataclass
class PlaybackState:
    """
    What the engine is doing right now.

    Mutated only by PlaybackEngine. Only current_track, position and volume
    outlive the session (through PersistenceBridge).
    """
    current_track: Optional[Track] = None
    is_playing: bool = False
    position: float = 0.0
    duration: float = 0.0
    volume: float = 1.0


@dataclass
class QueueState:
    """Manual queue, shuffle projection and repeat mode. Mutated only by QueueManager."""
    manual_queue: List[Track] = field(default_factory=list)
    shuffle_order: List[Track] = field(default_factory=list)
    repeat_mode: RepeatMode = RepeatMode.OFF
    shuffle_enabled: bool = False
