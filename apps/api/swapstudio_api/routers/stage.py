"""Stage lifecycle, pose and collision endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from packages.swapstudio_core.sim.runner import (
    get_all_poses,
    get_stage_state,
    resolve_collisions,
)

from ..services.stage_scheduler import (
    reset_stage_scheduler,
    stage_scheduler_status,
    start_stage_scheduler,
    stop_stage_scheduler,
    tick_stage_once,
)


logger = logging.getLogger("swapstudio_api.stage")
router = APIRouter(prefix="/api/v1/stage", tags=["stage"])


class CollisionReportRequest(BaseModel):
    pairs: list[list[str]] = Field(default_factory=list, max_length=500)


def _normalize_pairs(raw_pairs: list[list[str]]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for raw in raw_pairs:
        if len(raw) != 2:
            continue
        actor_a = str(raw[0] or "").strip()
        actor_b = str(raw[1] or "").strip()
        if not actor_a or not actor_b:
            continue
        pairs.append((actor_a, actor_b))
    return pairs


@router.get("/state")
def stage_state() -> dict[str, Any]:
    return {"ok": True, "state": get_stage_state(), "scheduler": stage_scheduler_status()}


@router.get("/poses")
def stage_poses() -> dict[str, Any]:
    poses = get_all_poses()
    return {"count": len(poses), "poses": poses}


@router.post("/start")
def start_stage() -> dict[str, Any]:
    started = start_stage_scheduler()
    logger.info("[STAGE] Start request: started=%s", started)
    return {"ok": True, "started": started, "scheduler": stage_scheduler_status()}


@router.post("/stop")
def stop_stage() -> dict[str, Any]:
    stopped = stop_stage_scheduler()
    logger.info("[STAGE] Stop request: stopped=%s", stopped)
    return {"ok": True, "stopped": stopped, "scheduler": stage_scheduler_status()}


@router.post("/reset")
def reset_stage() -> dict[str, Any]:
    logger.info("[STAGE] Reset request")
    reset_stage_scheduler()
    return {"ok": True, "state": get_stage_state()}


@router.post("/tick")
def tick_stage() -> dict[str, Any]:
    tick = tick_stage_once()
    return {"ok": True, "ticked": tick is not None, "tick": tick}


@router.post("/collisions")
def report_collisions(req: CollisionReportRequest) -> dict[str, Any]:
    pairs = _normalize_pairs(req.pairs)
    outcomes = resolve_collisions(pairs)
    swapped = sum(1 for outcome in outcomes if outcome["swapped"])
    logger.info("[STAGE] Collision report: pairs=%d, swapped=%d", len(pairs), swapped)
    return {"ok": True, "swapped_count": swapped, "results": outcomes}


@router.get("/scheduler")
def scheduler_status() -> dict[str, Any]:
    return {"ok": True, "scheduler": stage_scheduler_status()}
