"""Stage simulation helpers for Swap Studio."""

from .collision import BoundingBox, overlapping_pairs, partition_script, swap_motion_blocks
from .interpreter import apply_block, interpret, normalize_direction
from .pose import DisplayState, PoseState, rest_pose
from .runner import (
    Actor,
    ActorNotFoundError,
    StageBusyError,
    StageRunner,
    get_stage_state,
    reset_stage_for_tests,
    resolve_collisions,
    stage_runner,
)
from .scheduler import StageScheduler

__all__ = [
    "Actor",
    "ActorNotFoundError",
    "BoundingBox",
    "DisplayState",
    "PoseState",
    "StageBusyError",
    "StageRunner",
    "StageScheduler",
    "apply_block",
    "get_stage_state",
    "interpret",
    "normalize_direction",
    "overlapping_pairs",
    "partition_script",
    "reset_stage_for_tests",
    "resolve_collisions",
    "rest_pose",
    "stage_runner",
    "swap_motion_blocks",
]
