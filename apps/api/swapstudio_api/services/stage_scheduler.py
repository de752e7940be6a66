"""Process-wide stage scheduler used by the API."""

from __future__ import annotations

from packages.swapstudio_core.sim.scheduler import StageScheduler


_SCHEDULER = StageScheduler()


def start_stage_scheduler() -> bool:
    return _SCHEDULER.start()


def stop_stage_scheduler() -> bool:
    return _SCHEDULER.stop()


def reset_stage_scheduler() -> None:
    _SCHEDULER.reset()


def tick_stage_once() -> dict[str, object] | None:
    return _SCHEDULER.tick()


def stage_scheduler_status() -> dict[str, object]:
    return _SCHEDULER.status()
