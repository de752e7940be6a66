"""Instruction block model for Swap Studio scripts."""

from .model import (
    BLOCK_CATEGORIES,
    BLOCK_TYPES,
    CONTROL,
    DEFAULT_BLOCK_TEMPLATES,
    LOOKS,
    MAX_REPEAT_TIMES,
    MAX_SCRIPT_EVALUATIONS,
    MOTION,
    Block,
    GotoBlock,
    InvalidBlockError,
    MoveBlock,
    RepeatBlock,
    SayBlock,
    Script,
    ThinkBlock,
    TurnBlock,
    block_catalog,
    block_from_dict,
    block_to_dict,
    category_for_type,
    is_motion,
    script_cost,
    script_from_dicts,
    script_to_dicts,
)

__all__ = [
    "BLOCK_CATEGORIES",
    "BLOCK_TYPES",
    "CONTROL",
    "DEFAULT_BLOCK_TEMPLATES",
    "LOOKS",
    "MAX_REPEAT_TIMES",
    "MAX_SCRIPT_EVALUATIONS",
    "MOTION",
    "Block",
    "GotoBlock",
    "InvalidBlockError",
    "MoveBlock",
    "RepeatBlock",
    "SayBlock",
    "Script",
    "ThinkBlock",
    "TurnBlock",
    "block_catalog",
    "block_from_dict",
    "block_to_dict",
    "category_for_type",
    "is_motion",
    "script_cost",
    "script_from_dicts",
    "script_to_dicts",
]
