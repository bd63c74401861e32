"""Gesture classification.

Maps a pointer-down or wheel event to exactly one interaction mode. Rules are
evaluated in priority order:

1. Primary press on the bare canvas, no session open, no Shift/Alt: camera pan.
2. Primary press on an object with Shift only: rotate around Y.
3. Primary press on an object with Alt only: translate along Z.
4. Primary press on an object with neither: translate in X/Y.
5. Press on an object with both Shift and Alt: nothing.
6. Wheel over the canvas: camera zoom.
7. Wheel over an object: object scale.

Navigation mode disables rules 2-5 and 7; objects then only show their
description tooltip, and a wheel over an object zooms the camera.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .events import PointerButton, PointerEvent, WheelEvent

if TYPE_CHECKING:
    from ..scene.scene import Scene

logger = logging.getLogger(__name__)


class InteractionMode(str, Enum):
    NONE = "none"
    CAMERA_PAN = "camera_pan"
    OBJECT_ROTATE_Y = "object_rotate_y"
    OBJECT_TRANSLATE_Z = "object_translate_z"
    OBJECT_TRANSLATE_XY = "object_translate_xy"
    CAMERA_ZOOM = "camera_zoom"
    OBJECT_SCALE = "object_scale"


SESSION_MODES = frozenset({
    InteractionMode.CAMERA_PAN,
    InteractionMode.OBJECT_ROTATE_Y,
    InteractionMode.OBJECT_TRANSLATE_Z,
    InteractionMode.OBJECT_TRANSLATE_XY,
})


@dataclass(frozen=True)
class GestureDecision:
    """Outcome of classifying one event."""

    mode: InteractionMode
    target_id: str | None = None

    @property
    def starts_session(self) -> bool:
        return self.mode in SESSION_MODES

    @property
    def is_inert(self) -> bool:
        return self.mode is InteractionMode.NONE


NO_INTERACTION = GestureDecision(InteractionMode.NONE)


def _resolve_target(scene: Scene, target_id: str) -> bool:
    if scene.get_object(target_id) is None:
        logger.warning(f"Event target {target_id!r} does not match any object; ignoring")
        return False
    return True


def classify_pointer_down(
    event: PointerEvent,
    scene: Scene,
    *,
    navigation_mode: bool = False,
    session_active: bool = False,
) -> GestureDecision:
    """Decide which interaction a pointer-down starts."""
    if session_active or event.button != PointerButton.PRIMARY:
        return NO_INTERACTION

    if event.on_canvas:
        if not event.shift and not event.alt:
            return GestureDecision(InteractionMode.CAMERA_PAN)
        return NO_INTERACTION

    if navigation_mode:
        return NO_INTERACTION
    if not _resolve_target(scene, event.target_id):
        return NO_INTERACTION

    if event.shift and not event.alt:
        mode = InteractionMode.OBJECT_ROTATE_Y
    elif event.alt and not event.shift:
        mode = InteractionMode.OBJECT_TRANSLATE_Z
    elif not event.shift and not event.alt:
        mode = InteractionMode.OBJECT_TRANSLATE_XY
    else:
        return NO_INTERACTION
    return GestureDecision(mode, event.target_id)


def classify_wheel(
    event: WheelEvent,
    scene: Scene,
    *,
    navigation_mode: bool = False,
    session_active: bool = False,
) -> GestureDecision:
    """Decide what a wheel tick changes."""
    if session_active:
        return NO_INTERACTION

    if event.on_canvas or navigation_mode:
        return GestureDecision(InteractionMode.CAMERA_ZOOM)

    if not _resolve_target(scene, event.target_id):
        return NO_INTERACTION
    return GestureDecision(InteractionMode.OBJECT_SCALE, event.target_id)
