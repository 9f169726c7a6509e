"""
Playback Controller
===================
Keeps the playback position in sync with a media engine while handling
discrete transport events: load, play, pause, seek, rate changes and the
periodic position tick.

State machine:
    IDLE -(load)-> LOADING -(metadata ok)-> READY -(play)-> PLAYING
    PLAYING -(pause)-> READY
    PLAYING -(tick, position >= duration, engine stopped)-> ENDED
    ENDED -(seek)-> READY, ENDED -(play)-> PLAYING from the start
    LOADING -(metadata failed)-> IDLE with error
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import replace
from typing import Optional

from docucast.app.events import PlaybackState, PlayState
from docucast.concurrency import StateStream, Subscription
from docucast.errors import (
    DocucastError,
    PlaybackBusyError,
    PlaybackError,
    PlaybackErrorKind,
)
from docucast.playback.engine import MediaEngine

logger = logging.getLogger(__name__)


class PlaybackController:
    """
    Owns one media handle and its position state.

    Example:
        controller = PlaybackController(SoundDeviceEngine())
        if await controller.load(completed.audio_url):
            controller.play()

        async for state in controller.observe_state():
            render(state.position, state.duration)
    """

    def __init__(
        self,
        engine: MediaEngine,
        tick_interval: float = 0.5,
        skip_seconds: float = 15.0,
        auto_tick: bool = True,
    ):
        """
        Initialize the controller.

        Args:
            engine: Media engine that produces audio
            tick_interval: Seconds between position refreshes while playing
            skip_seconds: Jump size for skip_forward()/skip_back()
            auto_tick: Run the periodic tick in a background task. When
                False the owner calls tick() itself.
        """
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self.engine = engine
        self.tick_interval = tick_interval
        self.skip_seconds = skip_seconds
        self.auto_tick = auto_tick

        self._stream: StateStream[PlaybackState] = StateStream(PlaybackState())
        self._ticker: Optional[asyncio.Task] = None
        self._generation = 0
        self._released = False

    # ==================== Observation ====================

    @property
    def state(self) -> PlaybackState:
        return self._stream.value

    def observe_state(self) -> Subscription[PlaybackState]:
        """Subscribe to playback states, starting with the current one."""
        return self._stream.subscribe()

    def _update(self, **changes) -> PlaybackState:
        new_state = replace(self.state, **changes)
        if new_state != self.state:
            self._stream.publish(new_state)
        return new_state

    # ==================== Transport ====================

    async def load(self, source: str) -> bool:
        """
        Open an audio asset and resolve its duration.

        Returns:
            True once READY, False if loading failed or was superseded

        Raises:
            PlaybackBusyError: If another load is still pending
        """
        if self._released:
            logger.warning("load() called after release()")
            return False
        if self.state.play_state is PlayState.LOADING:
            raise PlaybackBusyError(source)

        self._stop_ticker()
        if self.state.play_state is PlayState.PLAYING:
            self.engine.pause()

        self._generation += 1
        generation = self._generation
        self._update(
            play_state=PlayState.LOADING,
            position=0.0,
            duration=None,
            source=source,
            error=None,
        )

        error_message = None
        duration = None
        try:
            duration = await self.engine.load(source)
        except (DocucastError, OSError) as e:
            error_message = getattr(e, "message", None) or str(e)
        except Exception as e:
            logger.exception(f"Media engine crashed while loading {source}")
            error_message = f"Unexpected error: {e}"

        if generation != self._generation or self._released:
            logger.debug(f"Discarding superseded load result for {source}")
            return False

        if error_message is None and (duration is None or not math.isfinite(duration) or duration < 0):
            error_message = f"Audio reports no usable duration ({duration!r})"

        if error_message is not None:
            logger.warning(f"Audio load failed for {source}: {error_message}")
            self._update(
                play_state=PlayState.IDLE,
                error=PlaybackError(PlaybackErrorKind.LOAD_FAILED, error_message),
            )
            return False

        self.engine.set_rate(self.state.rate)
        self._update(play_state=PlayState.READY, duration=float(duration), position=0.0)
        logger.info(f"Loaded {source} ({duration:.1f}s)")
        return True

    def play(self) -> bool:
        """
        Start playback. Valid from READY or ENDED; ENDED restarts at 0.

        Returns:
            False if the call was a no-op
        """
        state = self.state
        if state.play_state not in (PlayState.READY, PlayState.ENDED):
            return False

        position = state.position
        if state.play_state is PlayState.ENDED or position >= state.duration:
            position = 0.0
            self.engine.seek(position)

        self.engine.play()
        self._update(play_state=PlayState.PLAYING, position=position)
        self._start_ticker()
        return True

    def pause(self) -> bool:
        """
        Pause playback. Position stays at the last tick.

        Returns:
            False if not playing
        """
        if self.state.play_state is not PlayState.PLAYING:
            return False
        self.engine.pause()
        self._stop_ticker()
        self._update(play_state=PlayState.READY)
        return True

    def toggle(self) -> bool:
        if self.state.play_state is PlayState.PLAYING:
            return self.pause()
        return self.play()

    def seek(self, seconds: float) -> bool:
        """
        Move the playhead, clamped into [0, duration].

        Play state is kept, except that seeking before the end leaves ENDED
        for READY.

        Returns:
            False (no-op) while the duration is unknown
        """
        state = self.state
        duration = state.duration
        if duration is None or state.play_state in (PlayState.IDLE, PlayState.LOADING):
            logger.debug(f"Ignoring seek to {seconds!r}: {PlaybackErrorKind.INVALID_SEEK_TARGET.value}")
            return False
        if seconds is None or math.isnan(seconds):
            logger.debug(f"Ignoring seek to {seconds!r}: not a number")
            return False

        target = min(max(0.0, float(seconds)), duration)
        self.engine.seek(target)

        changes = {"position": target}
        if state.play_state is PlayState.ENDED and target < duration:
            changes["play_state"] = PlayState.READY
        self._update(**changes)
        return True

    def skip(self, delta: float) -> bool:
        """Seek relative to the current position."""
        return self.seek(self.state.position + delta)

    def skip_forward(self) -> bool:
        return self.skip(self.skip_seconds)

    def skip_back(self) -> bool:
        return self.skip(-self.skip_seconds)

    def set_rate(self, rate: float) -> None:
        """
        Change the playback speed without touching the play state.

        Raises:
            ValueError: If rate is not a positive number
        """
        if rate is None or not rate > 0 or math.isinf(rate):
            raise ValueError(f"Playback rate must be a positive number, got {rate!r}")
        self.engine.set_rate(rate)
        self._update(rate=float(rate))

    def tick(self) -> PlaybackState:
        """
        Refresh the position from the engine.

        Moves PLAYING to ENDED once the position reaches the duration and
        the engine reports that output stopped.
        """
        state = self.state
        if state.play_state is not PlayState.PLAYING or state.duration is None:
            return state

        duration = state.duration
        position = min(max(0.0, self.engine.current_position()), duration)
        if position >= duration and not self.engine.is_playing:
            logger.info("Playback reached the end")
            return self._update(play_state=PlayState.ENDED, position=duration)
        return self._update(position=position)

    def release(self) -> None:
        """Tear down: stop ticking, free the media handle, end the stream."""
        if self._released:
            return
        self._released = True
        self._generation += 1
        self._stop_ticker()
        if self.state.play_state is PlayState.PLAYING:
            self.engine.pause()
        self.engine.release()
        self._stream.publish(PlaybackState(rate=self.state.rate))
        self._stream.complete()

    # ==================== Ticker ====================

    def _start_ticker(self) -> None:
        if not self.auto_tick:
            return
        if self._ticker is not None and not self._ticker.done():
            return
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())

    def _stop_ticker(self) -> None:
        task = self._ticker
        self._ticker = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    async def _tick_loop(self) -> None:
        while self.state.play_state is PlayState.PLAYING:
            await asyncio.sleep(self.tick_interval)
            if self.state.play_state is not PlayState.PLAYING:
                break
            self.tick()
