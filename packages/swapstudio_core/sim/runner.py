"""In-memory stage runtime: actor roster, poses, sessions and collision swaps."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from logging import getLogger
import os
import threading
from typing import Any, Iterable, Iterator, Optional
import uuid

from packages.swapstudio_core.blocks.model import Script, script_to_dicts

from .collision import boxes_for, overlapping_pairs, swap_motion_blocks
from .interpreter import interpret
from .pose import PoseState, rest_pose

logger = getLogger("swapstudio_core.sim.runner")

DEFAULT_ACTOR_COLOR = "#4C97FF"
DEFAULT_ACTOR_SIZE = 50.0
ALLOWED_SHAPES = ("square", "circle")
_DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StageBusyError(RuntimeError):
    """The stage lock could not be acquired in time."""


class ActorNotFoundError(KeyError):
    """An edit referenced an actor that is not on the stage."""


@dataclass
class Actor:
    """One sprite: identity, display attributes and its current script."""

    actor_id: str
    name: str
    color: str = DEFAULT_ACTOR_COLOR
    shape: str = "square"
    width: float = DEFAULT_ACTOR_SIZE
    height: float = DEFAULT_ACTOR_SIZE
    script: Script = ()
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "name": self.name,
            "color": self.color,
            "shape": self.shape,
            "width": self.width,
            "height": self.height,
            "block_count": len(self.script),
            "created_at": self.created_at,
            "script": script_to_dicts(self.script),
        }


def _normalize_shape(value: Any) -> str:
    shape = str(value or "square").strip().lower()
    if shape not in ALLOWED_SHAPES:
        return "square"
    return shape


def _normalize_size(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return DEFAULT_ACTOR_SIZE
    if parsed != parsed or parsed <= 0:
        return DEFAULT_ACTOR_SIZE
    return parsed


class StageRunner:
    """Owns every actor's script and pose, and the running/stopped session.

    Not thread-safe on its own; the module-level helpers and the scheduler
    serialise access through ``_RUNNER_LOCK``.
    """

    def __init__(self) -> None:
        self._actors: dict[str, Actor] = {}
        self._poses: dict[str, PoseState] = {}
        self._original_scripts: dict[str, Script] | None = None
        self._running = False
        self._tick_count = 0
        self._collision_count = 0
        self._last_collision: tuple[str, str] | None = None
        self._session_started_at: str | None = None

    def clear(self) -> None:
        self._actors.clear()
        self._poses.clear()
        self._original_scripts = None
        self._running = False
        self._tick_count = 0
        self._collision_count = 0
        self._last_collision = None
        self._session_started_at = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    # -- roster ---------------------------------------------------------

    def add_actor(
        self,
        *,
        name: str,
        color: str = DEFAULT_ACTOR_COLOR,
        shape: str = "square",
        width: float = DEFAULT_ACTOR_SIZE,
        height: float = DEFAULT_ACTOR_SIZE,
        script: Iterable = (),
        actor_id: str | None = None,
    ) -> Actor:
        new_id = str(actor_id or "").strip() or f"sprite-{uuid.uuid4().hex[:12]}"
        if new_id in self._actors:
            raise ValueError(f"Actor already exists: {new_id}")
        actor = Actor(
            actor_id=new_id,
            name=str(name or "").strip() or f"Sprite {len(self._actors) + 1}",
            color=str(color or DEFAULT_ACTOR_COLOR),
            shape=_normalize_shape(shape),
            width=_normalize_size(width),
            height=_normalize_size(height),
            script=tuple(script),
        )
        self._actors[new_id] = actor
        self._poses[new_id] = rest_pose()
        logger.info("[STAGE] Actor added: actor_id='%s', name='%s'", new_id, actor.name)
        return actor

    def _require_actor(self, actor_id: str) -> Actor:
        actor = self._actors.get(str(actor_id))
        if actor is None:
            raise ActorNotFoundError(actor_id)
        return actor

    def update_actor(
        self,
        actor_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
        shape: Optional[str] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Actor:
        actor = self._require_actor(actor_id)
        if name is not None and str(name).strip():
            actor.name = str(name).strip()
        if color is not None:
            actor.color = str(color)
        if shape is not None:
            actor.shape = _normalize_shape(shape)
        if width is not None:
            actor.width = _normalize_size(width)
        if height is not None:
            actor.height = _normalize_size(height)
        return actor

    def remove_actor(self, actor_id: str) -> bool:
        actor = self._actors.pop(str(actor_id), None)
        if actor is None:
            return False
        self._poses.pop(actor.actor_id, None)
        logger.info("[STAGE] Actor removed: actor_id='%s'", actor.actor_id)
        return True

    def get_actor(self, actor_id: str) -> Actor | None:
        return self._actors.get(str(actor_id))

    def list_actors(self) -> list[Actor]:
        return list(self._actors.values())

    def get_script(self, actor_id: str) -> Script:
        return self._require_actor(actor_id).script

    def replace_script(self, actor_id: str, script: Iterable) -> Actor:
        actor = self._require_actor(actor_id)
        actor.script = tuple(script)
        logger.debug("[STAGE] Script replaced: actor_id='%s', blocks=%d", actor.actor_id, len(actor.script))
        return actor

    def original_script(self, actor_id: str) -> Script | None:
        if self._original_scripts is None:
            return None
        return self._original_scripts.get(str(actor_id))

    def pose_for(self, actor_id: str) -> PoseState | None:
        return self._poses.get(str(actor_id))

    def poses(self) -> dict[str, PoseState]:
        return dict(self._poses)

    # -- session --------------------------------------------------------

    def start_session(self) -> bool:
        if self._running:
            return False
        self._original_scripts = {actor.actor_id: actor.script for actor in self._actors.values()}
        self._running = True
        self._session_started_at = _utc_now()
        logger.info("[STAGE] Session started with %d actors", len(self._original_scripts))
        return True

    def stop_session(self) -> bool:
        if not self._running:
            return False
        self._running = False
        self._original_scripts = None
        logger.info("[STAGE] Session stopped after %d ticks", self._tick_count)
        return True

    def reset(self) -> None:
        """Stop any session and put every actor back at the rest pose.

        Scripts keep whatever swapped state they reached.
        """
        self.stop_session()
        self._poses = {actor_id: rest_pose() for actor_id in self._actors}
        self._tick_count = 0
        self._collision_count = 0
        self._last_collision = None
        self._session_started_at = None
        logger.info("[STAGE] Poses reset for %d actors", len(self._poses))

    def tick(self) -> dict[str, Any] | None:
        """Advance every actor by one tick and commit all poses together."""
        if not self._running:
            return None
        next_poses: dict[str, PoseState] = {}
        for actor in self._actors.values():
            pose = self._poses.get(actor.actor_id) or rest_pose()
            pose = replace(pose, display=pose.display.countdown())
            next_poses[actor.actor_id] = interpret(pose, actor.script)
        self._poses = next_poses
        self._tick_count += 1
        logger.debug("[STAGE] Tick %d committed for %d actors", self._tick_count, len(next_poses))
        return {
            "tick": self._tick_count,
            "actor_count": len(next_poses),
            "poses": {actor_id: pose.to_dict() for actor_id, pose in next_poses.items()},
        }

    # -- collisions -----------------------------------------------------

    def resolve_collision(self, actor_a: str, actor_b: str) -> bool:
        """Swap motion blocks between two actors from the session's original scripts."""
        if not self._running or self._original_scripts is None:
            return False
        id_a, id_b = str(actor_a), str(actor_b)
        if id_a == id_b:
            return False
        original_a = self._original_scripts.get(id_a)
        original_b = self._original_scripts.get(id_b)
        if original_a is None or original_b is None:
            return False
        first = self._actors.get(id_a)
        second = self._actors.get(id_b)
        if first is None or second is None:
            return False
        first.script, second.script = swap_motion_blocks(original_a, original_b)
        self._collision_count += 1
        self._last_collision = (id_a, id_b)
        logger.info("[STAGE] %s and %s collided! Motion blocks swapped.", first.name, second.name)
        return True

    def detect_collisions(self) -> list[tuple[str, str]]:
        return overlapping_pairs(boxes_for(self._actors.values(), self._poses))

    # -- snapshots ------------------------------------------------------

    def state(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "tick": self._tick_count,
            "session_started_at": self._session_started_at,
            "actor_count": len(self._actors),
            "collision_count": self._collision_count,
            "last_collision": list(self._last_collision) if self._last_collision else None,
            "actors": [
                {
                    **actor.to_dict(),
                    "pose": (self._poses.get(actor.actor_id) or rest_pose()).to_dict(),
                }
                for actor in self._actors.values()
            ],
        }


_RUNNER = StageRunner()
_RUNNER_LOCK = threading.RLock()


def _lock_timeout_seconds() -> float:
    raw = str(os.environ.get("SWAPSTUDIO_LOCK_TIMEOUT_SECONDS") or "").strip()
    if not raw:
        return _DEFAULT_LOCK_TIMEOUT_SECONDS
    try:
        parsed = float(raw)
    except ValueError:
        return _DEFAULT_LOCK_TIMEOUT_SECONDS
    return max(0.01, min(60.0, parsed))


def _acquire_or_raise(timeout: float | None = None) -> None:
    wait = _lock_timeout_seconds() if timeout is None else max(0.0, float(timeout))
    if not _RUNNER_LOCK.acquire(timeout=wait):
        raise StageBusyError(f"Stage is busy; lock not acquired within {wait:.2f}s")


@contextmanager
def stage_runner(timeout: float | None = None) -> Iterator[StageRunner]:
    """Yield the shared runner while holding the stage lock."""
    _acquire_or_raise(timeout=timeout)
    try:
        yield _RUNNER
    finally:
        _RUNNER_LOCK.release()


def reset_stage_for_tests() -> None:
    with _RUNNER_LOCK:
        _RUNNER.clear()


def get_stage_state() -> dict[str, Any]:
    with stage_runner() as runner:
        return runner.state()


def list_actor_summaries() -> list[dict[str, Any]]:
    with stage_runner() as runner:
        return [actor.to_dict() for actor in runner.list_actors()]


def get_all_poses() -> dict[str, dict[str, Any]]:
    with stage_runner() as runner:
        return {actor_id: pose.to_dict() for actor_id, pose in runner.poses().items()}


def resolve_collisions(pairs: Iterable[tuple[str, str]]) -> list[dict[str, Any]]:
    """Apply a batch of reported pairs in order; each swap reads the frozen snapshot."""
    outcomes: list[dict[str, Any]] = []
    with stage_runner() as runner:
        for actor_a, actor_b in pairs:
            swapped = runner.resolve_collision(actor_a, actor_b)
            outcomes.append({"actor_a": actor_a, "actor_b": actor_b, "swapped": swapped})
    return outcomes
