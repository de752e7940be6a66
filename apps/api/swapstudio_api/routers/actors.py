"""Actor roster, script editing and pose endpoints."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from packages.swapstudio_core.blocks.model import InvalidBlockError, Script, script_from_dicts, script_to_dicts
from packages.swapstudio_core.sim.runner import (
    DEFAULT_ACTOR_COLOR,
    DEFAULT_ACTOR_SIZE,
    ActorNotFoundError,
    StageRunner,
    list_actor_summaries,
    stage_runner,
)

logger = logging.getLogger("swapstudio_api.actors")


router = APIRouter(prefix="/api/v1/actors", tags=["actors"])
BLOCK_TYPE_PATTERN = "^(move|turn|goto|say|think|repeat)$"
SHAPE_PATTERN = "^(square|circle)$"
COLOR_PATTERN = "^#[0-9a-fA-F]{6}$"


class BlockRequest(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=120)
    type: str = Field(pattern=BLOCK_TYPE_PATTERN)
    category: Optional[str] = None
    params: dict[str, Any] = Field(default_factory=dict)
    children: list[BlockRequest] = Field(default_factory=list)


BlockRequest.model_rebuild()


class CreateActorRequest(BaseModel):
    actor_id: Optional[str] = Field(default=None, min_length=1, max_length=120)
    name: str = Field(default="", max_length=120)
    color: str = Field(default=DEFAULT_ACTOR_COLOR, pattern=COLOR_PATTERN)
    shape: str = Field(default="square", pattern=SHAPE_PATTERN)
    width: float = Field(default=DEFAULT_ACTOR_SIZE, gt=0, le=1000)
    height: float = Field(default=DEFAULT_ACTOR_SIZE, gt=0, le=1000)
    script: list[BlockRequest] = Field(default_factory=list)


class UpdateActorRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    shape: Optional[str] = Field(default=None, pattern=SHAPE_PATTERN)
    width: Optional[float] = Field(default=None, gt=0, le=1000)
    height: Optional[float] = Field(default=None, gt=0, le=1000)


class ReplaceScriptRequest(BaseModel):
    script: list[BlockRequest] = Field(default_factory=list)


def _parse_script(blocks: list[BlockRequest]) -> Script:
    try:
        return script_from_dicts([block.model_dump() for block in blocks])
    except InvalidBlockError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _actor_payload(runner: StageRunner, actor_id: str) -> dict[str, Any]:
    actor = runner.get_actor(actor_id)
    if actor is None:
        raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}")
    pose = runner.pose_for(actor_id)
    out = actor.to_dict()
    out["pose"] = pose.to_dict() if pose is not None else None
    return out


@router.get("")
@router.get("/")
def list_actors() -> dict[str, Any]:
    logger.info("[ACTORS] List actors request")
    actors = list_actor_summaries()
    return {"count": len(actors), "actors": actors}


@router.post("")
def create_actor(req: CreateActorRequest) -> dict[str, Any]:
    script = _parse_script(req.script)
    with stage_runner() as runner:
        try:
            actor = runner.add_actor(
                actor_id=req.actor_id,
                name=req.name,
                color=req.color,
                shape=req.shape,
                width=req.width,
                height=req.height,
                script=script,
            )
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"ok": True, "actor": _actor_payload(runner, actor.actor_id)}


@router.get("/{actor_id}")
def get_actor(actor_id: str) -> dict[str, Any]:
    with stage_runner() as runner:
        return {"actor": _actor_payload(runner, actor_id)}


@router.patch("/{actor_id}")
def update_actor(actor_id: str, req: UpdateActorRequest) -> dict[str, Any]:
    logger.info("[ACTORS] Update request: actor_id='%s'", actor_id)
    with stage_runner() as runner:
        try:
            runner.update_actor(
                actor_id,
                name=req.name,
                color=req.color,
                shape=req.shape,
                width=req.width,
                height=req.height,
            )
        except ActorNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}") from exc
        return {"ok": True, "actor": _actor_payload(runner, actor_id)}


@router.delete("/{actor_id}")
def delete_actor(actor_id: str) -> dict[str, Any]:
    logger.info("[ACTORS] Delete request: actor_id='%s'", actor_id)
    with stage_runner() as runner:
        if not runner.remove_actor(actor_id):
            raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}")
    return {"ok": True, "actor_id": actor_id}


@router.get("/{actor_id}/script")
def get_actor_script(actor_id: str) -> dict[str, Any]:
    with stage_runner() as runner:
        try:
            script = runner.get_script(actor_id)
        except ActorNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}") from exc
        original = runner.original_script(actor_id)
        return {
            "actor_id": actor_id,
            "running": runner.is_running,
            "script": script_to_dicts(script),
            "original_script": script_to_dicts(original) if original is not None else None,
        }


@router.put("/{actor_id}/script")
def replace_actor_script(actor_id: str, req: ReplaceScriptRequest) -> dict[str, Any]:
    script = _parse_script(req.script)
    logger.info("[ACTORS] Script replace request: actor_id='%s', blocks=%d", actor_id, len(script))
    with stage_runner() as runner:
        try:
            actor = runner.replace_script(actor_id, script)
        except ActorNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}") from exc
        return {"ok": True, "actor_id": actor.actor_id, "script": script_to_dicts(actor.script)}


@router.get("/{actor_id}/pose")
def get_actor_pose(actor_id: str) -> dict[str, Any]:
    with stage_runner() as runner:
        pose = runner.pose_for(actor_id)
        if pose is None:
            raise HTTPException(status_code=404, detail=f"Actor not found: {actor_id}")
        return {"actor_id": actor_id, "tick": runner.tick_count, "pose": pose.to_dict()}
