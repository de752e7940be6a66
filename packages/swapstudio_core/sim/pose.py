"""Per-actor pose and transient speech/thought display."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


DISPLAY_NONE = "none"
DISPLAY_SAY = "say"
DISPLAY_THINK = "think"
REST_DIRECTION = 90.0


@dataclass(frozen=True)
class DisplayState:
    mode: str = DISPLAY_NONE
    text: str | None = None
    ticks_remaining: float | None = None

    @property
    def visible(self) -> bool:
        return self.mode != DISPLAY_NONE

    def countdown(self) -> DisplayState:
        """Age the display by one tick, clearing it once nothing remains."""
        if not self.visible:
            return self
        remaining = max(0.0, float(self.ticks_remaining or 0) - 1)
        if remaining <= 0:
            return NO_DISPLAY
        return replace(self, ticks_remaining=remaining)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "text": self.text,
            "ticks_remaining": self.ticks_remaining,
        }


NO_DISPLAY = DisplayState()


@dataclass(frozen=True)
class PoseState:
    """Position, heading and display of one actor as of the last committed tick."""

    x: float = 0.0
    y: float = 0.0
    direction: float = REST_DIRECTION
    display: DisplayState = field(default=NO_DISPLAY)

    def to_dict(self) -> dict[str, Any]:
        # say_text/think_text/is_thinking mirror the flat shape renderers consume.
        return {
            "x": self.x,
            "y": self.y,
            "direction": self.direction,
            "display": self.display.to_dict(),
            "say_text": self.display.text if self.display.mode == DISPLAY_SAY else None,
            "think_text": self.display.text if self.display.mode == DISPLAY_THINK else None,
            "is_thinking": self.display.mode == DISPLAY_THINK,
        }


REST_POSE = PoseState()


def rest_pose() -> PoseState:
    return REST_POSE
