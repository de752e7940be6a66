"""Instruction block primitives for Swap Studio scripts."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, ClassVar, Iterable, Union
import uuid


MOTION = "motion"
LOOKS = "looks"
CONTROL = "control"
BLOCK_CATEGORIES = (MOTION, LOOKS, CONTROL)

# Bounds on how much work one tick may do for a single script.
MAX_REPEAT_TIMES = 10_000
MAX_SCRIPT_EVALUATIONS = 100_000


class InvalidBlockError(ValueError):
    """Raised when a raw block payload is not a well-formed instruction."""


def _new_block_id() -> str:
    return f"block-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class MoveBlock:
    steps: float
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "move"
    category: ClassVar[str] = MOTION

    def params(self) -> dict[str, Any]:
        return {"steps": self.steps}


@dataclass(frozen=True)
class TurnBlock:
    degrees: float
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "turn"
    category: ClassVar[str] = MOTION

    def params(self) -> dict[str, Any]:
        return {"degrees": self.degrees}


@dataclass(frozen=True)
class GotoBlock:
    x: float
    y: float
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "goto"
    category: ClassVar[str] = MOTION

    def params(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class SayBlock:
    text: str
    seconds: float
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "say"
    category: ClassVar[str] = LOOKS

    def params(self) -> dict[str, Any]:
        return {"text": self.text, "seconds": self.seconds}


@dataclass(frozen=True)
class ThinkBlock:
    text: str
    seconds: float
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "think"
    category: ClassVar[str] = LOOKS

    def params(self) -> dict[str, Any]:
        return {"text": self.text, "seconds": self.seconds}


@dataclass(frozen=True)
class RepeatBlock:
    """Runs ``children`` ``times`` times in a row within a single tick."""

    times: int
    children: tuple[Block, ...] = ()
    block_id: str = field(default_factory=_new_block_id)

    block_type: ClassVar[str] = "repeat"
    category: ClassVar[str] = CONTROL

    def params(self) -> dict[str, Any]:
        return {"times": self.times}


Block = Union[MoveBlock, TurnBlock, GotoBlock, SayBlock, ThinkBlock, RepeatBlock]
Script = tuple[Block, ...]

BLOCK_TYPES: dict[str, type] = {
    "move": MoveBlock,
    "turn": TurnBlock,
    "goto": GotoBlock,
    "say": SayBlock,
    "think": ThinkBlock,
    "repeat": RepeatBlock,
}

# Parameter names and value kinds per block type, in display order.
BLOCK_PARAMS: dict[str, tuple[tuple[str, str], ...]] = {
    "move": (("steps", "number"),),
    "turn": (("degrees", "number"),),
    "goto": (("x", "number"), ("y", "number")),
    "say": (("text", "string"), ("seconds", "number")),
    "think": (("text", "string"), ("seconds", "number")),
    "repeat": (("times", "integer"),),
}

DEFAULT_BLOCK_TEMPLATES: dict[str, dict[str, Any]] = {
    "move": {"steps": 10},
    "turn": {"degrees": 15},
    "goto": {"x": 0, "y": 0},
    "say": {"text": "Hello!", "seconds": 2},
    "think": {"text": "Hmm...", "seconds": 2},
    "repeat": {"times": 10},
}


def category_for_type(block_type: str) -> str:
    cls = BLOCK_TYPES.get(str(block_type))
    if cls is None:
        raise InvalidBlockError(f"Unknown block type: {block_type}")
    return cls.category


def is_motion(block: Block) -> bool:
    return block.category == MOTION


def _number_param(block_type: str, params: dict[str, Any], name: str) -> float:
    if name not in params:
        raise InvalidBlockError(f"Block '{block_type}' is missing required parameter '{name}'")
    value = params[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidBlockError(f"Block '{block_type}' parameter '{name}' must be a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise InvalidBlockError(f"Block '{block_type}' parameter '{name}' must be finite")
    return value


def _text_param(block_type: str, params: dict[str, Any], name: str) -> str:
    if name not in params:
        raise InvalidBlockError(f"Block '{block_type}' is missing required parameter '{name}'")
    value = params[name]
    if not isinstance(value, str):
        raise InvalidBlockError(f"Block '{block_type}' parameter '{name}' must be a string")
    return value


def _times_param(params: dict[str, Any]) -> int:
    """Iteration count rounded up, so ``times=2.5`` runs three passes."""
    value = _number_param("repeat", params, "times")
    if value > MAX_REPEAT_TIMES:
        raise InvalidBlockError(f"Block 'repeat' parameter 'times' must be at most {MAX_REPEAT_TIMES}")
    return max(0, math.ceil(value))


def block_from_dict(raw: Any) -> Block:
    """Build a typed block from its dict form.

    Accepts ``{"type", "params", "children", "id"}``; ``category`` is ignored on
    input because it is derived from the type.
    """
    if not isinstance(raw, dict):
        raise InvalidBlockError("Block payload must be an object")
    block_type = str(raw.get("type") or "").strip()
    if block_type not in BLOCK_TYPES:
        raise InvalidBlockError(f"Unknown block type: {block_type or '<missing>'}")
    params = raw.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidBlockError(f"Block '{block_type}' params must be an object")

    extra: dict[str, Any] = {}
    raw_id = str(raw.get("id") or "").strip()
    if raw_id:
        extra["block_id"] = raw_id

    if block_type == "move":
        return MoveBlock(steps=_number_param(block_type, params, "steps"), **extra)
    if block_type == "turn":
        return TurnBlock(degrees=_number_param(block_type, params, "degrees"), **extra)
    if block_type == "goto":
        return GotoBlock(
            x=_number_param(block_type, params, "x"),
            y=_number_param(block_type, params, "y"),
            **extra,
        )
    if block_type == "say":
        return SayBlock(
            text=_text_param(block_type, params, "text"),
            seconds=_number_param(block_type, params, "seconds"),
            **extra,
        )
    if block_type == "think":
        return ThinkBlock(
            text=_text_param(block_type, params, "text"),
            seconds=_number_param(block_type, params, "seconds"),
            **extra,
        )

    children_raw = raw.get("children")
    if children_raw is None:
        children_raw = []
    if not isinstance(children_raw, list):
        raise InvalidBlockError("Block 'repeat' children must be a list")
    return RepeatBlock(
        times=_times_param(params),
        children=script_from_dicts(children_raw),
        **extra,
    )


def script_cost(script: Iterable[Block]) -> int:
    """Number of block evaluations one pass over ``script`` performs."""
    total = 0
    for block in script:
        total += 1
        if isinstance(block, RepeatBlock):
            total += max(0, block.times) * script_cost(block.children)
    return total


def script_from_dicts(raw_blocks: Iterable[Any]) -> Script:
    script = tuple(block_from_dict(raw) for raw in raw_blocks)
    cost = script_cost(script)
    if cost > MAX_SCRIPT_EVALUATIONS:
        raise InvalidBlockError(
            f"Script would evaluate {cost} blocks per tick; the limit is {MAX_SCRIPT_EVALUATIONS}"
        )
    return script


def block_to_dict(block: Block) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": block.block_id,
        "type": block.block_type,
        "category": block.category,
        "params": block.params(),
    }
    if isinstance(block, RepeatBlock):
        out["children"] = script_to_dicts(block.children)
    return out


def script_to_dicts(script: Iterable[Block]) -> list[dict[str, Any]]:
    return [block_to_dict(block) for block in script]


def block_catalog() -> list[dict[str, Any]]:
    catalog: list[dict[str, Any]] = []
    for block_type, cls in BLOCK_TYPES.items():
        catalog.append(
            {
                "type": block_type,
                "category": cls.category,
                "params": [{"name": name, "kind": kind} for name, kind in BLOCK_PARAMS[block_type]],
                "has_children": block_type == "repeat",
                "template": dict(DEFAULT_BLOCK_TEMPLATES[block_type]),
            }
        )
    return catalog
