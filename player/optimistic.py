"""
Two-phase local updates for likes and playlists.

The local change is applied first so the UI reacts immediately, then the
remote call decides whether it sticks.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from shared.errors import ServiceError

logger = logging.getLogger(__name__)


class UpdateStatus(Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class OptimisticUpdate:
    """
    pending -> committed | rolled_back

    ``apply`` runs as soon as ``run`` is awaited; ``revert`` runs only if the
    remote call raises ServiceError, which is then re-raised to the caller.
    """

    def __init__(self, apply: Callable[[], None], revert: Callable[[], None], description: str = ""):
        self._apply = apply
        self._revert = revert
        self.description = description
        self.status = UpdateStatus.PENDING
        self.error: Optional[ServiceError] = None

    async def run(self, remote: Callable[[], Awaitable[Any]]) -> Any:
        if self.status is not UpdateStatus.PENDING:
            raise RuntimeError(f"Update already {self.status.value}: {self.description}")

        self._apply()
        try:
            result = await remote()
        except ServiceError as e:
            self._revert()
            self.status = UpdateStatus.ROLLED_BACK
            self.error = e
            logger.warning(f"Rolled back {self.description}: {e.message}")
            raise
        self.status = UpdateStatus.COMMITTED
        return result

    @property
    def is_pending(self) -> bool:
        return self.status is UpdateStatus.PENDING
