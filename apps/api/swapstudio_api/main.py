"""FastAPI entrypoint for Swap Studio."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from packages.swapstudio_core.sim.runner import StageBusyError, stage_runner

from .routers.actors import router as actors_router
from .routers.blocks import router as blocks_router
from .routers.stage import router as stage_router
from .services.stage_scheduler import stop_stage_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("swapstudio_api")


def _truthy_env(name: str, default: bool = False) -> bool:
    raw = str(os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}

app = FastAPI(title="Swap Studio API", version="0.1.0")

_cors_origins = [o.strip() for o in os.environ.get("SWAPSTUDIO_CORS_ORIGINS", "*").split(",")]
_cors_allow_credentials = "*" not in _cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(actors_router)
app.include_router(blocks_router)
app.include_router(stage_router)


@app.exception_handler(StageBusyError)
async def _stage_busy_handler(request: Request, exc: StageBusyError):
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
        headers={"Retry-After": "1"},
    )


def _seed_default_actor() -> None:
    """Put a first sprite on an empty stage, the way a fresh editor opens."""
    with stage_runner() as runner:
        if runner.list_actors():
            return
        actor = runner.add_actor(name="Sprite 1")
    logger.info("[SEED] Empty stage - seeded default actor '%s'", actor.actor_id)


@app.on_event("startup")
def startup() -> None:
    logger.info("[STARTUP] Swap Studio API starting up at %s", datetime.now(timezone.utc).isoformat())
    if _truthy_env("SWAPSTUDIO_SEED_DEFAULT_ACTOR", default=True):
        _seed_default_actor()
    logger.info("[STARTUP] Swap Studio API startup complete")


@app.on_event("shutdown")
def shutdown() -> None:
    stop_stage_scheduler()
    logger.info("[SHUTDOWN] Stage scheduler stopped")


@app.get("/healthz")
def healthz() -> dict[str, str]:
    logger.debug("[HEALTH] Health check requested")
    return {"status": "ok"}
