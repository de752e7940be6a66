"""Collision handling: motion-block swaps and bounding-box overlap checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from packages.swapstudio_core.blocks.model import Script, is_motion

from .pose import PoseState


def partition_script(script: Sequence) -> tuple[Script, Script]:
    """Split ``script`` into (motion, non_motion), each keeping its relative order.

    Only top-level blocks are classified; a repeat block is control and keeps
    its children whatever their category.
    """
    motion = tuple(block for block in script if is_motion(block))
    non_motion = tuple(block for block in script if not is_motion(block))
    return motion, non_motion


def swap_motion_blocks(original_a: Sequence, original_b: Sequence) -> tuple[Script, Script]:
    """Return the (a, b) scripts that result from a collision between a and b."""
    motion_a, rest_a = partition_script(original_a)
    motion_b, rest_b = partition_script(original_b)
    return motion_b + rest_a, motion_a + rest_b


@dataclass(frozen=True)
class BoundingBox:
    actor_id: str
    left: float
    top: float
    right: float
    bottom: float

    @staticmethod
    def around(actor_id: str, pose: PoseState, *, width: float, height: float) -> BoundingBox:
        half_w = max(0.0, float(width)) / 2.0
        half_h = max(0.0, float(height)) / 2.0
        return BoundingBox(
            actor_id=actor_id,
            left=pose.x - half_w,
            top=pose.y - half_h,
            right=pose.x + half_w,
            bottom=pose.y + half_h,
        )

    def intersects(self, other: BoundingBox) -> bool:
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )


def overlapping_pairs(boxes: Iterable[BoundingBox]) -> list[tuple[str, str]]:
    """Every unordered pair of intersecting boxes, once, in input order."""
    ordered = list(boxes)
    pairs: list[tuple[str, str]] = []
    for idx, box in enumerate(ordered):
        for other in ordered[idx + 1 :]:
            if box.intersects(other):
                pairs.append((box.actor_id, other.actor_id))
    return pairs


def boxes_for(
    actors: Iterable,
    poses: Mapping[str, PoseState],
) -> list[BoundingBox]:
    boxes: list[BoundingBox] = []
    for actor in actors:
        pose = poses.get(actor.actor_id)
        if pose is None:
            continue
        boxes.append(BoundingBox.around(actor.actor_id, pose, width=actor.width, height=actor.height))
    return boxes
