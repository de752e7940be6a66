"""Fixed-rate tick scheduler driving the shared stage runner."""

from __future__ import annotations

from logging import getLogger
import os
import threading
import time
from typing import Any, Callable, Optional
import uuid

from .runner import _RUNNER, _RUNNER_LOCK, StageRunner, _utc_now, stage_runner

logger = getLogger("swapstudio_core.sim.scheduler")

DEFAULT_TICK_INTERVAL_MS = 100
TickListener = Callable[[dict[str, Any]], None]


def _truthy_env(name: str, default: bool = False) -> bool:
    raw = str(os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def tick_interval_from_env() -> float:
    raw = str(os.environ.get("SWAPSTUDIO_TICK_INTERVAL_MS") or "").strip()
    try:
        interval_ms = int(raw) if raw else DEFAULT_TICK_INTERVAL_MS
    except ValueError:
        interval_ms = DEFAULT_TICK_INTERVAL_MS
    interval_ms = max(10, min(5000, interval_ms))
    return interval_ms / 1000.0


class StageScheduler:
    """Runs ``StageRunner.tick`` on a background thread at a fixed period.

    start/stop/reset/tick are safe to call in any state; calls that do not
    apply to the current state return ``False``/``None`` instead of raising.
    """

    def __init__(
        self,
        *,
        runner: StageRunner | None = None,
        lock: Any = None,
        tick_interval_seconds: float | None = None,
        auto_collide: bool | None = None,
        on_tick: Optional[TickListener] = None,
    ) -> None:
        self._runner = runner if runner is not None else _RUNNER
        self._lock = lock if lock is not None else _RUNNER_LOCK
        self._explicit_interval = tick_interval_seconds
        self._explicit_auto_collide = auto_collide
        self._on_tick = on_tick
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._last_tick_at: str | None = None
        self._last_error: str | None = None
        self._ticks_fired = 0
        self._scheduler_instance_id = f"scheduler-{uuid.uuid4().hex[:12]}"

    @property
    def tick_interval_seconds(self) -> float:
        if self._explicit_interval is not None:
            return max(0.001, float(self._explicit_interval))
        return tick_interval_from_env()

    @property
    def auto_collide(self) -> bool:
        if self._explicit_auto_collide is not None:
            return bool(self._explicit_auto_collide)
        return _truthy_env("SWAPSTUDIO_AUTO_COLLIDE", default=False)

    def _runner_guard(self):
        if self._runner is _RUNNER:
            return stage_runner()
        return _LockedRunner(self._runner, self._lock)

    def is_running(self) -> bool:
        with self._state_lock:
            return bool(self._thread and self._thread.is_alive())

    def start(self) -> bool:
        with self._state_lock:
            if self._thread and self._thread.is_alive():
                return False
            with self._runner_guard() as runner:
                if not runner.start_session():
                    return False
            self._stop_event.clear()
            thread = threading.Thread(
                target=self._run_loop,
                name="swapstudio-stage-scheduler",
                daemon=True,
            )
            thread.start()
            self._thread = thread
            logger.info("[SCHEDULER] Stage scheduler started (interval=%.3fs)", self.tick_interval_seconds)
            return True

    def stop(self, *, join_timeout_seconds: float = 3.0) -> bool:
        with self._state_lock:
            thread = self._thread
            with self._runner_guard() as runner:
                stopped = runner.stop_session()
            if not thread:
                return stopped
            self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=max(0.1, float(join_timeout_seconds)))
        with self._state_lock:
            # A thread still finishing a long tick stays recorded so start() waits for it.
            if self._thread is thread and not thread.is_alive():
                self._thread = None
        logger.info("[SCHEDULER] Stage scheduler stopped")
        return True

    def reset(self) -> None:
        self.stop()
        with self._runner_guard() as runner:
            runner.reset()

    def tick(self) -> dict[str, Any] | None:
        """Run one tick now; ``None`` when the stage is stopped."""
        with self._lock:
            result = self._runner.tick()
            if result is None:
                return None
            if self.auto_collide:
                swaps: list[list[str]] = []
                for actor_a, actor_b in self._runner.detect_collisions():
                    if self._runner.resolve_collision(actor_a, actor_b):
                        swaps.append([actor_a, actor_b])
                result["collisions"] = swaps
        self._ticks_fired += 1
        self._last_tick_at = _utc_now()
        if self._on_tick is not None:
            self._on_tick(result)
        return result

    def status(self) -> dict[str, object]:
        with self._state_lock:
            running = bool(self._thread and self._thread.is_alive())
            thread_name = self._thread.name if self._thread else None
        return {
            "running": running,
            "thread_name": thread_name,
            "instance_id": self._scheduler_instance_id,
            "tick_interval_ms": int(round(self.tick_interval_seconds * 1000)),
            "auto_collide": self.auto_collide,
            "ticks_fired": self._ticks_fired,
            "last_tick_at": self._last_tick_at,
            "last_error": self._last_error,
        }

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception as exc:
                self._last_error = f"{exc.__class__.__name__}: {exc}"
                logger.exception("[SCHEDULER] Tick failed: %s", exc)
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, self.tick_interval_seconds - elapsed))


class _LockedRunner:
    """Context manager pairing a private runner with its own lock."""

    def __init__(self, runner: StageRunner, lock: Any) -> None:
        self._runner = runner
        self._lock = lock

    def __enter__(self) -> StageRunner:
        self._lock.acquire()
        return self._runner

    def __exit__(self, *exc_info: object) -> None:
        self._lock.release()
