"""Read-only description tooltip shown in navigation mode.

Hovering an object shows its description; leaving hides it. A tap shows the
tooltip, and a second tap on the same object within the double-tap window
dismisses it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..scene.scene import ObjectPlane


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class TooltipState:
    """What is currently shown and where."""

    object_id: str
    text: str
    x: float
    y: float


class DescriptionTooltip:
    """Tracks the single visible description tooltip."""

    def __init__(
        self,
        double_tap_ms: float = 500.0,
        offset_px: float = 15.0,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        """Initialize the presenter.

        Args:
            double_tap_ms: Window for a second tap to dismiss
            offset_px: Distance between pointer and tooltip corner
            clock: Millisecond clock, injectable for tests
        """
        self.double_tap_ms = double_tap_ms
        self.offset_px = offset_px
        self._clock = clock
        self._state: TooltipState | None = None
        self._last_tap_id: str | None = None
        self._last_tap_ms = 0.0

    @property
    def visible(self) -> TooltipState | None:
        return self._state

    def show(self, plane: ObjectPlane, x: float, y: float) -> TooltipState | None:
        """Show ``plane``'s description near (x, y). Planes without one show nothing."""
        self.hide()
        if not plane.description:
            return None
        self._state = TooltipState(
            object_id=plane.id,
            text=plane.description,
            x=x + self.offset_px,
            y=y + self.offset_px,
        )
        return self._state

    def hide(self) -> None:
        self._state = None

    def tap(self, plane: ObjectPlane, x: float, y: float) -> TooltipState | None:
        """Handle a tap on ``plane``: show, or dismiss on a quick second tap."""
        now = self._clock()
        if (
            self._state is not None
            and self._last_tap_id == plane.id
            and now - self._last_tap_ms < self.double_tap_ms
        ):
            self.hide()
            self._last_tap_id = None
            self._last_tap_ms = 0.0
            return None

        state = self.show(plane, x, y)
        self._last_tap_id = plane.id
        self._last_tap_ms = now
        return state

    def reset(self) -> None:
        """Hide and forget tap history (used when leaving navigation mode)."""
        self.hide()
        self._last_tap_id = None
        self._last_tap_ms = 0.0
