"""
Audio output abstraction.

PlaybackEngine drives exactly one AudioResource and observes it through
ResourceListener objects, so the backend (mpv, or a fake in tests) is swappable.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

logger = logging.getLogger(__name__)


class ResourceListener:
    """Receiver of resource events. All methods are optional no-ops."""

    def on_time_update(self, position: float) -> None:
        pass

    def on_duration_change(self, duration: float) -> None:
        pass

    def on_ended(self) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass


class AudioResource(ABC):
    """
    A single playable output.

    Implementations must deliver listener callbacks on the event loop thread
    that owns the engine.
    """

    def __init__(self):
        self._listeners: List[ResourceListener] = []

    def subscribe(self, listener: ResourceListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ResourceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> List[ResourceListener]:
        return list(self._listeners)

    def emit_time_update(self, position: float) -> None:
        for listener in self.listeners:
            listener.on_time_update(position)

    def emit_duration_change(self, duration: float) -> None:
        for listener in self.listeners:
            listener.on_duration_change(duration)

    def emit_ended(self) -> None:
        for listener in self.listeners:
            listener.on_ended()

    def emit_error(self, error: Exception) -> None:
        for listener in self.listeners:
            listener.on_error(error)

    @abstractmethod
    def load(self, url: str, start: float = 0.0) -> None:
        """Swap the source to ``url`` without starting playback."""
        pass

    @abstractmethod
    async def play(self) -> None:
        """
        Start or resume playback of the loaded source.

        Returns once the output has acknowledged that playback began.

        Raises:
            Exception: If the source cannot be played (network, codec...)
        """
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Unload the source."""
        pass

    @abstractmethod
    def set_position(self, seconds: float) -> None:
        pass

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Set output volume in the range 0.0 - 1.0."""
        pass

    @abstractmethod
    def set_muted(self, muted: bool) -> None:
        pass

    @property
    @abstractmethod
    def position(self) -> float:
        pass

    @property
    @abstractmethod
    def duration(self) -> float:
        pass
