"""Input event value types.

Coordinates are screen pixels relative to the scene canvas. The event
``target_id`` is the id of the object plane under the pointer, or None when
the pointer is over the bare canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class PointerButton(IntEnum):
    PRIMARY = 0
    MIDDLE = 1
    SECONDARY = 2


@dataclass(frozen=True)
class PointerEvent:
    """A pointer down/move/up/enter/leave/click."""

    x: float
    y: float
    target_id: str | None = None
    button: int = PointerButton.PRIMARY
    shift: bool = False
    alt: bool = False

    @property
    def on_canvas(self) -> bool:
        return self.target_id is None


@dataclass(frozen=True)
class WheelEvent:
    """A single wheel tick. Negative ``delta_y`` means scrolling up."""

    delta_y: float
    target_id: str | None = None
    x: float = 0.0
    y: float = 0.0

    @property
    def on_canvas(self) -> bool:
        return self.target_id is None

    @property
    def scrolls_up(self) -> bool:
        return self.delta_y < 0
