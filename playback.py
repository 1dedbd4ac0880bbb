"""
Rugby Play Board — Playback Scheduler
Layer 2: frame-paced keyframe replay.

The scheduler owns only the cursor, speed and frame-callback handle. Applying
a keyframe to the entity model is delegated to the controller through the
``apply_frame(index)`` callback, so the scheduler never touches GameState.

Frame sources provide a requestAnimationFrame-style API:
  source.now()                      — current time in seconds
  source.request_frame(callback)    — schedule callback(now) for the next frame
  source.cancel_frame(handle)       — drop a scheduled callback
"""

import asyncio
import enum
import itertools
import time
from typing import Callable, Dict, Optional


class PlaybackStatus(enum.Enum):
    STOPPED = 0
    PLAYING = 1
    PAUSED = 2


# ──────────────────────────────────────────────────────────────────────────────
# Frame sources
# ──────────────────────────────────────────────────────────────────────────────

class ManualFrameSource:
    """Headless frame source driven explicitly by ``advance(dt)``."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._ids = itertools.count(1)
        self._pending: Dict[int, Callable[[float], None]] = {}

    def now(self) -> float:
        return self._now

    def request_frame(self, callback: Callable[[float], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def advance(self, dt: float) -> None:
        """Move time forward by ``dt`` and fire every callback queued before."""
        self._now += dt
        due = list(self._pending.items())
        self._pending.clear()
        for _, cb in due:
            cb(self._now)

    def run_frames(self, n: int, dt: float) -> None:
        for _ in range(n):
            self.advance(dt)


class AsyncioFrameSource:
    """Frame source ticking on the running asyncio loop at ``fps``."""

    def __init__(self, fps: int = 60, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.frame_dt = 1.0 / fps
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.perf_counter()

    def request_frame(self, callback: Callable[[float], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(
            self.frame_dt, lambda: callback(time.perf_counter())
        )

    def cancel_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


# ──────────────────────────────────────────────────────────────────────────────
# Scheduler
# ──────────────────────────────────────────────────────────────────────────────

class PlaybackScheduler:
    """Advances a cursor through ``frame_count`` keyframes on a fixed cadence."""

    TARGET_FPS = 60
    BASE_INTERVAL = 1.0 / TARGET_FPS
    MIN_PLAYBACK_SPEED = 0.001
    SUPPORTED_SPEEDS = (1.0, 0.1, 0.05, 0.01)

    def __init__(self, apply_frame: Callable[[int], None], frame_source=None):
        self._apply_frame = apply_frame
        self.frame_source = frame_source if frame_source is not None else ManualFrameSource()
        self.frame_count = 0
        self.cursor = 0
        self.speed = 1.0
        self.last_advance = 0.0
        self._handle = None

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def status(self) -> PlaybackStatus:
        if self.running:
            return PlaybackStatus.PLAYING
        if 0 < self.cursor < self.frame_count:
            return PlaybackStatus.PAUSED
        return PlaybackStatus.STOPPED

    @property
    def finished(self) -> bool:
        return self.cursor >= self.frame_count

    def is_active(self) -> bool:
        return self.running and not self.finished

    @property
    def interval(self) -> float:
        return self.BASE_INTERVAL / self.speed

    # ── Control ──────────────────────────────────────────────────────────────

    def load(self, frame_count: int) -> None:
        self.pause()
        self.frame_count = int(frame_count)
        self.cursor = 0

    def set_speed(self, factor: float) -> None:
        self.speed = max(float(factor), self.MIN_PLAYBACK_SPEED)

    def start(self) -> None:
        if self._handle is not None or self.finished:
            return
        self.last_advance = self.frame_source.now()
        self._handle = self.frame_source.request_frame(self._on_frame)
        print(f"[PLAY] start cursor={self.cursor}/{self.frame_count} speed={self.speed}")

    def pause(self) -> None:
        if self._handle is None:
            return
        self.frame_source.cancel_frame(self._handle)
        self._handle = None
        print(f"[PLAY] paused at {self.cursor}/{self.frame_count}")

    def rewind(self) -> None:
        self.pause()
        self.cursor = 0

    # ── Per-frame callback ───────────────────────────────────────────────────

    def _on_frame(self, now: float) -> None:
        self._handle = None
        if self.finished:
            return

        if now - self.last_advance >= self.interval:
            self._apply_frame(self.cursor)
            self.cursor += 1
            self.last_advance = now

        if self.finished:
            print(f"[PLAY] finished {self.frame_count} frame(s)")
            return
        self._handle = self.frame_source.request_frame(self._on_frame)
