"""
SQLite Database Manager for the Revify backend.
Persists songs, users, likes and playlists behind plain CRUD calls.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from shared.models import Track, Playlist, UserRecord
from shared.config import DATABASE_PATH


class DatabaseManager:
    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path is not None else DATABASE_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            # Enable WAL mode for concurrent readers
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS songs (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    artist TEXT NOT NULL,
                    genre TEXT NOT NULL,
                    audio_url TEXT NOT NULL,
                    cover_url TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    username TEXT PRIMARY KEY,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS likes (
                    username TEXT NOT NULL REFERENCES users(username) ON DELETE CASCADE,
                    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
                    liked_at TEXT NOT NULL,
                    PRIMARY KEY (username, song_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS playlists (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL REFERENCES users(username) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS playlist_songs (
                    playlist_id TEXT NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
                    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (playlist_id, song_id)
                )
            """)

    # --- Songs ---

    def add_song(self, title: str, artist: str, genre: str,
                 audio_url: str, cover_url: str) -> Track:
        track = Track(
            id=Track.generate_id(),
            title=title,
            artist=artist,
            genre=genre,
            audio_url=audio_url,
            cover_url=cover_url,
            created_at=datetime.utcnow().isoformat(),
        )
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO songs (id, title, artist, genre, audio_url, cover_url, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (track.id, track.title, track.artist, track.genre,
                  track.audio_url, track.cover_url, track.created_at))
        return track

    def get_all_songs(self) -> List[Track]:
        """Fetch all songs in insertion order."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT * FROM songs ORDER BY created_at, rowid")
            return [Track.from_dict(dict(row)) for row in cursor.fetchall()]

    def get_song(self, song_id: str) -> Optional[Track]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM songs WHERE id = ?", (song_id,)).fetchone()
            return Track.from_dict(dict(row)) if row else None

    def delete_song(self, song_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM songs WHERE id = ?", (song_id,))
            return cursor.rowcount > 0

    # --- Users ---

    def create_user(self, username: str, password_hash: str) -> bool:
        """Create a user. Returns False if the username is taken."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT INTO users (username, password_hash, created_at) VALUES (?, ?, ?)",
                    (username, password_hash, datetime.utcnow().isoformat()),
                )
            return True
        except sqlite3.IntegrityError:
            return False

    def get_password_hash(self, username: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT password_hash FROM users WHERE username = ?", (username,)
            ).fetchone()
            return row["password_hash"] if row else None

    def user_exists(self, username: str) -> bool:
        return self.get_password_hash(username) is not None

    def get_user(self, username: str) -> Optional[UserRecord]:
        """Fetch a user with liked song ids and populated playlists."""
        if not self.user_exists(username):
            return None
        return UserRecord(
            username=username,
            liked_songs=self.get_liked_song_ids(username),
            playlists=self.get_playlists(username),
        )

    # --- Likes ---

    def add_like(self, username: str, song_id: str) -> bool:
        """Like a song. Returns False if the user or song does not exist."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO likes (username, song_id, liked_at) VALUES (?, ?, ?)",
                    (username, song_id, datetime.utcnow().isoformat()),
                )
            return True
        except sqlite3.IntegrityError:
            return False

    def remove_like(self, username: str, song_id: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM likes WHERE username = ? AND song_id = ?", (username, song_id))

    def get_liked_song_ids(self, username: str) -> List[str]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT song_id FROM likes WHERE username = ? ORDER BY liked_at, rowid",
                (username,),
            )
            return [row["song_id"] for row in cursor.fetchall()]

    # --- Playlists ---

    def create_playlist(self, username: str, name: str) -> Playlist:
        playlist = Playlist(id=uuid.uuid4().hex, name=name, songs=[],
                            created_at=datetime.utcnow().isoformat())
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO playlists (id, username, name, created_at) VALUES (?, ?, ?, ?)",
                (playlist.id, username, playlist.name, playlist.created_at),
            )
        return playlist

    def get_playlists(self, username: str) -> List[Playlist]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM playlists WHERE username = ? ORDER BY created_at, rowid",
                (username,),
            ).fetchall()
            return [self._row_to_playlist(conn, row) for row in rows]

    def get_playlist(self, username: str, playlist_id: str) -> Optional[Playlist]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM playlists WHERE id = ? AND username = ?",
                (playlist_id, username),
            ).fetchone()
            return self._row_to_playlist(conn, row) if row else None

    def rename_playlist(self, username: str, playlist_id: str, name: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE playlists SET name = ? WHERE id = ? AND username = ?",
                (name, playlist_id, username),
            )
            return cursor.rowcount > 0

    def delete_playlist(self, username: str, playlist_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM playlists WHERE id = ? AND username = ?",
                (playlist_id, username),
            )
            return cursor.rowcount > 0

    def add_song_to_playlist(self, playlist_id: str, song_id: str) -> bool:
        """Append a song; adding a song already in the playlist is a no-op."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM playlist_songs WHERE playlist_id = ?",
                    (playlist_id,),
                ).fetchone()
                conn.execute(
                    "INSERT OR IGNORE INTO playlist_songs (playlist_id, song_id, position) VALUES (?, ?, ?)",
                    (playlist_id, song_id, row["next"]),
                )
            return True
        except sqlite3.IntegrityError:
            return False

    def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "DELETE FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
                (playlist_id, song_id),
            )

    def _row_to_playlist(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Playlist:
        cursor = conn.execute("""
            SELECT s.* FROM playlist_songs ps
            JOIN songs s ON s.id = ps.song_id
            WHERE ps.playlist_id = ?
            ORDER BY ps.position
        """, (row["id"],))
        songs = [Track.from_dict(dict(song)) for song in cursor.fetchall()]
        return Playlist(id=row["id"], name=row["name"], songs=songs, created_at=row["created_at"])
