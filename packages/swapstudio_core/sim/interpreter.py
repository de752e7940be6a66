"""Block-tree interpreter: one pass over a script per tick."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
import math
from typing import Any, Iterable

from packages.swapstudio_core.blocks.model import (
    MAX_REPEAT_TIMES,
    Block,
    GotoBlock,
    MoveBlock,
    RepeatBlock,
    SayBlock,
    ThinkBlock,
    TurnBlock,
)

from .pose import DISPLAY_SAY, DISPLAY_THINK, DisplayState, PoseState

logger = getLogger("swapstudio_core.sim.interpreter")


def _finite(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(parsed):
        return 0.0
    return parsed


def _non_negative(value: Any) -> float:
    return max(0.0, _finite(value))


def _repeat_count(value: Any) -> int:
    return min(MAX_REPEAT_TIMES, math.ceil(_non_negative(value)))


def normalize_direction(direction: float) -> float:
    """Fold a heading into [0, 360)."""
    folded = math.fmod(_finite(direction), 360.0)
    if folded < 0:
        folded += 360.0
    # Adding 360 to a tiny negative remainder can round up to exactly 360.
    if folded >= 360.0:
        folded = 0.0
    return folded + 0.0


def _move(pose: PoseState, steps: float) -> PoseState:
    distance = _finite(steps)
    if distance == 0:
        return pose
    radians = math.radians(pose.direction - 90.0)
    x = pose.x + distance * math.cos(radians)
    y = pose.y + distance * math.sin(radians)
    # An overflowing coordinate stays where it was.
    return replace(
        pose,
        x=x if math.isfinite(x) else pose.x,
        y=y if math.isfinite(y) else pose.y,
    )


def apply_block(pose: PoseState, block: Block) -> PoseState:
    if isinstance(block, MoveBlock):
        return _move(pose, block.steps)
    if isinstance(block, TurnBlock):
        return replace(pose, direction=normalize_direction(pose.direction + _finite(block.degrees)))
    if isinstance(block, GotoBlock):
        return replace(pose, x=_finite(block.x), y=_finite(block.y))
    if isinstance(block, SayBlock):
        return replace(
            pose,
            display=DisplayState(mode=DISPLAY_SAY, text=block.text, ticks_remaining=_non_negative(block.seconds)),
        )
    if isinstance(block, ThinkBlock):
        return replace(
            pose,
            display=DisplayState(mode=DISPLAY_THINK, text=block.text, ticks_remaining=_non_negative(block.seconds)),
        )
    if isinstance(block, RepeatBlock):
        for _ in range(_repeat_count(block.times)):
            pose = interpret(pose, block.children)
        return pose
    logger.debug("[INTERPRETER] Ignoring unknown block: %r", block)
    return pose


def interpret(pose: PoseState, script: Iterable[Block]) -> PoseState:
    """Apply every block of ``script`` in order and return the resulting pose."""
    for block in script:
        pose = apply_block(pose, block)
    return pose
