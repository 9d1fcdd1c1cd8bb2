"""
Durable local state for the player.

Mirrors the current track, playback position, volume, liked set and logged-in
user to a JSON file so a restarted player picks up where it left off.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set, Union

from shared.config import CONFIG_DIR
from shared.constants import DEFAULT_VOLUME, LOCAL_STATE_FILENAME
from shared.errors import PersistenceError
from shared.models import Track

logger = logging.getLogger(__name__)

KEY_CURRENT_TRACK = "current_track"
KEY_POSITION = "position"
KEY_VOLUME = "volume"
KEY_LIKED = "liked"
KEY_USER = "user"


class LocalStore:
    """Key/value document kept in a single JSON file, replaced atomically on write."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else CONFIG_DIR / LOCAL_STATE_FILENAME

    def read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Invalid state file format: {self.path}")
        return data

    def write(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e


@dataclass
class RestoredSession:
    """What survived the last run."""
    current_track: Optional[Track] = None
    position: float = 0.0
    volume: float = DEFAULT_VOLUME
    liked: Set[str] = field(default_factory=set)
    user: Optional[str] = None


class PersistenceBridge:
    """
    Write-through mirror between coordinator state and a LocalStore.

    Storage failures never propagate: they are logged, kept in ``last_error``
    and the in-memory state stays authoritative for the session.
    """

    def __init__(self, store: Optional[LocalStore] = None):
        self.store = store or LocalStore()
        self.last_error: Optional[PersistenceError] = None
        self._data: Optional[Dict[str, Any]] = None

    def _snapshot(self) -> Dict[str, Any]:
        if self._data is None:
            try:
                self._data = self.store.read()
            except PersistenceError as e:
                self._report(e)
                self._data = {}
        return self._data

    def _report(self, error: PersistenceError) -> None:
        self.last_error = error
        logger.warning(f"Persistence failure: {error}")

    def _write(self, updates: Dict[str, Any], removals: Iterable[str] = ()) -> bool:
        data = self._snapshot()
        data.update(updates)
        for key in removals:
            data.pop(key, None)
        try:
            self.store.write(data)
        except PersistenceError as e:
            self._report(e)
            return False
        self.last_error = None
        return True

    # --- Write-through ---

    def save_track(self, track: Optional[Track]) -> bool:
        if track is None:
            return self._write({}, removals=[KEY_CURRENT_TRACK, KEY_POSITION])
        return self._write({KEY_CURRENT_TRACK: track.to_dict(), KEY_POSITION: 0.0})

    def save_position(self, position: float) -> bool:
        return self._write({KEY_POSITION: round(float(position), 3)})

    def save_volume(self, volume: float) -> bool:
        return self._write({KEY_VOLUME: float(volume)})

    def save_liked(self, liked: Iterable[str]) -> bool:
        return self._write({KEY_LIKED: sorted(liked)})

    def save_user(self, username: Optional[str]) -> bool:
        if username is None:
            return self._write({}, removals=[KEY_USER])
        return self._write({KEY_USER: username})

    def clear_account(self) -> bool:
        """Forget the liked set and user; device preferences stay."""
        return self._write({}, removals=[KEY_LIKED, KEY_USER])

    # --- Rehydration ---

    def load(self) -> RestoredSession:
        """Read every tracked field, falling back to defaults for anything missing or corrupt."""
        self._data = None
        data = self._snapshot()
        session = RestoredSession()

        track_data = data.get(KEY_CURRENT_TRACK)
        if isinstance(track_data, dict):
            try:
                session.current_track = Track.from_dict(track_data)
            except TypeError as e:
                logger.warning(f"Ignoring corrupt saved track: {e}")

        if session.current_track is not None:
            position = data.get(KEY_POSITION)
            if isinstance(position, (int, float)) and position >= 0:
                session.position = float(position)

        volume = data.get(KEY_VOLUME)
        if isinstance(volume, (int, float)) and 0.0 <= volume <= 1.0:
            session.volume = float(volume)

        liked = data.get(KEY_LIKED)
        if isinstance(liked, list):
            session.liked = {str(i) for i in liked}

        user = data.get(KEY_USER)
        if isinstance(user, str) and user:
            session.user = user

        return session
