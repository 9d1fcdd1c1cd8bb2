"""
AudioResource backed by python-mpv.
mpv reports property changes on its own event thread; they are handed over to
the asyncio loop before any listener sees them.
"""

import asyncio
import logging
from typing import Optional

import mpv

from shared.constants import PLAY_START_TIMEOUT
from player.resource import AudioResource

logger = logging.getLogger(__name__)


class MpvResource(AudioResource):
    """Wrapper around MPV for audio-only playback."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None,
                 start_timeout: float = PLAY_START_TIMEOUT):
        super().__init__()
        self._loop = loop
        self.start_timeout = start_timeout

        # vo='null' because we are audio-only; we provide direct URLs
        self.player = mpv.MPV(vo='null', ytdl=False, idle=True)
        self.player.pause = True
        self.player.volume = 100

        self._loaded = False
        self._active = False
        # Bumped on every load/stop; events carry the value current when mpv raised them
        self._token = 0
        self._position = 0.0
        self._duration = 0.0
        self._started: Optional[asyncio.Future] = None

        self.player.observe_property('time-pos', self._handle_time_update)
        self.player.observe_property('duration', self._handle_duration)
        self.player.observe_property('core-idle', self._handle_core_idle)
        self.player.observe_property('eof-reached', self._handle_eof)
        self.player.observe_property('idle-active', self._handle_idle)

    # --- Thread hand-off ---

    def _dispatch(self, fn, *args):
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(fn, *args)

    def _settle_start(self, error: Optional[Exception] = None):
        future = self._started
        if future is None or future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(None)

    # --- AudioResource ---

    def load(self, url: str, start: float = 0.0) -> None:
        self._settle_start()
        self._token += 1
        self._active = False
        self._position = float(start)
        self._duration = 0.0
        self.player.pause = True
        if start > 0:
            self.player.loadfile(url, start=f"{start:.3f}")
        else:
            self.player.loadfile(url)
        self._loaded = True

    async def play(self) -> None:
        if not self._loaded:
            raise RuntimeError("No source loaded")
        self._loop = asyncio.get_running_loop()
        self._settle_start()
        self._started = self._loop.create_future()
        self._active = True
        self.player.pause = False
        try:
            await asyncio.wait_for(self._started, timeout=self.start_timeout)
        except asyncio.TimeoutError:
            raise RuntimeError(f"Playback did not start within {self.start_timeout}s")

    def pause(self) -> None:
        self._settle_start()
        self.player.pause = True

    def stop(self) -> None:
        self._settle_start()
        self._token += 1
        self._active = False
        self._loaded = False
        self.player.pause = True
        self.player.stop()

    def set_position(self, seconds: float) -> None:
        try:
            self.player.seek(seconds, reference='absolute')
            self._position = seconds
        except SystemError as e:
            # mpv refuses seeks while nothing is loaded
            logger.debug(f"Seek ignored: {e}")

    def set_volume(self, volume: float) -> None:
        self.player.volume = max(0.0, min(1.0, volume)) * 100

    def set_muted(self, muted: bool) -> None:
        self.player.mute = muted

    @property
    def position(self) -> float:
        return self._position

    @property
    def duration(self) -> float:
        return self._duration

    def terminate(self) -> None:
        self.player.terminate()

    # --- mpv observers (mpv event thread) ---

    def _handle_time_update(self, name, value):
        if value is not None:
            self._dispatch(self._on_time_update, self._token, float(value))

    def _handle_duration(self, name, value):
        if value is not None:
            self._dispatch(self._on_duration, self._token, float(value))

    def _handle_core_idle(self, name, value):
        if value is False:
            self._dispatch(self._on_started, self._token)

    def _handle_eof(self, name, value):
        if value:
            self._dispatch(self._on_finished, self._token)

    def _handle_idle(self, name, value):
        if value:
            self._dispatch(self._on_finished, self._token)

    # --- loop side ---

    def _on_time_update(self, token: int, position: float):
        if token != self._token:
            return
        self._position = position
        self.emit_time_update(position)

    def _on_duration(self, token: int, duration: float):
        if token != self._token:
            return
        self._duration = duration
        self.emit_duration_change(duration)

    def _on_started(self, token: int):
        if token == self._token:
            self._settle_start()

    def _on_finished(self, token: int):
        if token != self._token or not self._active:
            return
        self._active = False
        if self._duration <= 0:
            # Went idle without ever reporting a duration: the file never opened
            error = RuntimeError("Could not open audio source")
            if self._started is not None and not self._started.done():
                self._settle_start(error)
            else:
                self.emit_error(error)
        else:
            self.emit_ended()
