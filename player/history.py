"""
Play history for the session.
"""

from typing import List

from shared.constants import HISTORY_MAX_ENTRIES, RECENTLY_PLAYED_MAX_ENTRIES
from shared.models import Track


class HistoryTracker:
    """
    Two most-recent-first lists of started tracks, deduplicated by id:
    the full history and the short "recently played" view.
    """

    def __init__(self, max_entries: int = HISTORY_MAX_ENTRIES,
                 recent_entries: int = RECENTLY_PLAYED_MAX_ENTRIES):
        self.max_entries = max_entries
        self.recent_entries = recent_entries
        self._history: List[Track] = []
        self._recent: List[Track] = []

    def record(self, track: Track) -> None:
        """Move ``track`` to the front of both lists."""
        self._history = self._push(self._history, track, self.max_entries)
        self._recent = self._push(self._recent, track, self.recent_entries)

    @staticmethod
    def _push(entries: List[Track], track: Track, cap: int) -> List[Track]:
        return ([track] + [t for t in entries if t.id != track.id])[:cap]

    @property
    def history(self) -> List[Track]:
        return list(self._history)

    @property
    def recently_played(self) -> List[Track]:
        return list(self._recent)

    def clear(self) -> None:
        self._history.clear()
        self._recent.clear()

    def __len__(self) -> int:
        return len(self._history)
