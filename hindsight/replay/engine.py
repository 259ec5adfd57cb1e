"""Replay playback: a virtual clock advanced by a cooperative tick loop."""

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Callable
from enum import StrEnum

from hindsight.config import Settings, get_settings
from hindsight.replay.frames import ReplayFrame, build_frame
from hindsight.replay.index import ReplayIndex
from hindsight.summary.models import EncounterSummary
from hindsight.utils import format_duration

logger = logging.getLogger(__name__)

FrameCallback = Callable[[ReplayFrame], None]


class ReplayState(StrEnum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class ReplayEngine:
    """Plays back one encounter's replay index.

    The virtual clock counts whole steps of ``clock_resolution_secs``. Each
    tick converts real elapsed time (scaled by the playback speed) into
    steps; the fractional remainder is carried to the next tick so slow
    speeds still advance. At most one tick task exists per engine, and
    reaching the end of the timeline clamps the clock and returns to IDLE.
    """

    def __init__(
        self,
        source: EncounterSummary | ReplayIndex,
        on_frame: FrameCallback | None = None,
        *,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        cfg = self.settings.replay
        if isinstance(source, ReplayIndex):
            self.index = source
        else:
            self.index = ReplayIndex.from_encounter(source)
        self._on_frame = on_frame
        self._clock = clock
        self._resolution = cfg.clock_resolution_secs
        self._tick_interval = cfg.tick_interval_ms / 1000
        self._interpolate_hp = cfg.interpolate_hp
        self._speeds = list(cfg.speeds)
        self._speed_idx = self._speeds.index(cfg.default_speed)
        self._max_position = max(round(self.index.duration_secs / self._resolution), 0)
        self._position = 0
        self._accumulator = 0.0
        self._last_tick = 0.0
        self._state = ReplayState.IDLE
        self._task: asyncio.Task | None = None
        self.last_frame: ReplayFrame | None = None
        self.loops_started = 0
        self.loops_cancelled = 0

    # --- Introspection ---

    @property
    def state(self) -> ReplayState:
        return self._state

    @property
    def speed(self) -> float:
        return self._speeds[self._speed_idx]

    @property
    def current_time(self) -> float:
        return self._position * self._resolution

    @property
    def end_time(self) -> float:
        return self._max_position * self._resolution

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def frame_at(self, t: float) -> ReplayFrame:
        return build_frame(self.index, t, interpolate_hp=self._interpolate_hp)

    # --- Speed ---

    def cycle_speed(self) -> float:
        """Step to the next configured speed, wrapping around."""
        self._speed_idx = (self._speed_idx + 1) % len(self._speeds)
        logger.debug("Replay speed set to %sx", self.speed)
        return self.speed

    def set_speed(self, speed: float) -> None:
        if speed not in self._speeds:
            raise ValueError(
                f"Unsupported replay speed {speed}; choose one of {self._speeds}"
            )
        self._speed_idx = self._speeds.index(speed)

    # --- Transport controls ---

    def play(self) -> None:
        """Start or resume playback (must be called inside a running event loop)."""
        if self._state is ReplayState.PLAYING:
            return
        self._start_loop()
        if self._position >= self._max_position:
            self._position = 0
            self._accumulator = 0.0
        self._state = ReplayState.PLAYING
        self._last_tick = self._clock()
        logger.info(
            "Replay of %r playing from %s at %sx",
            self.index.name, format_duration(self.current_time), self.speed,
        )

    def pause(self) -> None:
        if self._state is not ReplayState.PLAYING:
            return
        self._state = ReplayState.PAUSED
        self._cancel_loop()
        logger.info(
            "Replay of %r paused at %s",
            self.index.name, format_duration(self.current_time),
        )

    def toggle(self) -> ReplayState:
        if self._state is ReplayState.PLAYING:
            self.pause()
        else:
            self.play()
        return self._state

    def seek(self, t: float) -> ReplayFrame:
        """Jump straight to ``t`` (clamped); playback state is left as-is."""
        position = round(t / self._resolution)
        self._position = min(max(position, 0), self._max_position)
        self._accumulator = 0.0
        self._last_tick = self._clock()
        return self._emit()

    async def stop(self) -> None:
        """Cancel the tick loop, wait for it to exit, and return to IDLE."""
        task = self._task
        self._cancel_loop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._state = ReplayState.IDLE
        self._accumulator = 0.0

    # --- Clock ---

    def advance(self, real_elapsed: float) -> ReplayFrame | None:
        """Apply ``real_elapsed`` seconds of wall time to the virtual clock.

        Returns the emitted frame, or ``None`` when not playing or when the
        accumulated time is still below one clock step.
        """
        if self._state is not ReplayState.PLAYING:
            return None
        self._accumulator += real_elapsed * self.speed / self._resolution
        steps = math.floor(self._accumulator)
        if steps <= 0:
            return None
        self._accumulator -= steps

        position = self._position + steps
        if position >= self._max_position:
            position = self._max_position
            self._state = ReplayState.IDLE
            self._accumulator = 0.0
            logger.info(
                "Replay of %r reached the end (%s)",
                self.index.name, format_duration(self.end_time),
            )
        self._position = position
        return self._emit()

    def _emit(self) -> ReplayFrame:
        frame = self.frame_at(self.current_time)
        self.last_frame = frame
        if self._on_frame is not None:
            self._on_frame(frame)
        return frame

    # --- Tick loop ---

    def _start_loop(self) -> None:
        if self.is_running:
            return
        # Raises RuntimeError outside an event loop, before any state changes
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._tick_loop())
        self.loops_started += 1

    def _cancel_loop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.loops_cancelled += 1
        self._task = None

    async def _tick_loop(self) -> None:
        while self._state is ReplayState.PLAYING:
            await asyncio.sleep(self._tick_interval)
            now = self._clock()
            elapsed = now - self._last_tick
            self._last_tick = now
            try:
                self.advance(elapsed)
            except Exception:
                logger.exception(
                    "Replay frame callback failed for %r, stopping playback",
                    self.index.name,
                )
                self._state = ReplayState.IDLE
                return

    def get_status(self) -> dict:
        return {
            "encounter": self.index.name,
            "state": str(self._state),
            "time": round(self.current_time, 3),
            "end_time": round(self.end_time, 3),
            "speed": self.speed,
            "running": self.is_running,
            "loops_started": self.loops_started,
            "loops_cancelled": self.loops_cancelled,
        }


class ReplayController:
    """Owns the single active replay of a view.

    ``start()`` fully stops the previous engine before building the next,
    so no two tick loops ever coexist; ``close()`` tears down on view
    disposal. Both run one at a time, even when called concurrently.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self._clock = clock
        self._engine: ReplayEngine | None = None
        self._closed = False
        self._lock = asyncio.Lock()
        self.replays_started = 0

    @property
    def engine(self) -> ReplayEngine | None:
        return self._engine

    async def start(
        self,
        source: EncounterSummary | ReplayIndex,
        on_frame: FrameCallback | None = None,
        *,
        autoplay: bool = False,
    ) -> ReplayEngine:
        async with self._lock:
            if self._closed:
                raise RuntimeError("ReplayController is closed")
            previous = self._engine
            if previous is not None:
                self._engine = None
                await previous.stop()
                logger.info(
                    "Stopped replay of %r before starting a new one",
                    previous.index.name,
                )

            engine = ReplayEngine(
                source, on_frame, settings=self.settings, clock=self._clock,
            )
            self._engine = engine
            self.replays_started += 1
            engine.seek(0)
            if autoplay:
                engine.play()
            return engine

    async def close(self) -> None:
        async with self._lock:
            if self._engine is not None:
                await self._engine.stop()
                self._engine = None
            self._closed = True

    async def __aenter__(self) -> "ReplayController":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
