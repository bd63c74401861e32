"""Interaction state machine.

Owns the single active gesture session and turns pointer and wheel events
into pose updates on the scene. Every move writes the live value straight
into the scene and asks for a redraw; the scene is persisted once when a
session ends and once per wheel tick.

States:
    IDLE -> PANNING_CAMERA | ROTATING_OBJECT | TRANSLATING_OBJECT_Z |
    TRANSLATING_OBJECT_XY on pointer-down, back to IDLE on pointer-up.

Only one session can be open at a time. Once open, a session receives every
move and up event regardless of what is under the pointer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, ClassVar

from ..core.config import InteractionParams
from ..core.errors import StoreError
from .gestures import (
    NO_INTERACTION,
    GestureDecision,
    InteractionMode,
    classify_pointer_down,
    classify_wheel,
)
from .tooltip import DescriptionTooltip, TooltipState

if TYPE_CHECKING:
    from ..scene.scene import ObjectPlane, Scene
    from .events import PointerEvent, WheelEvent

logger = logging.getLogger(__name__)


class MachineState(str, Enum):
    IDLE = "idle"
    PANNING_CAMERA = "panning_camera"
    ROTATING_OBJECT = "rotating_object"
    TRANSLATING_OBJECT_Z = "translating_object_z"
    TRANSLATING_OBJECT_XY = "translating_object_xy"


@dataclass
class Session(ABC):
    """One pointer-down to pointer-up interaction.

    Attributes:
        start_x: Pointer X at pointer-down
        start_y: Pointer Y at pointer-down
    """

    start_x: float
    start_y: float

    state: ClassVar[MachineState]

    @abstractmethod
    def update(self, scene: Scene, event: PointerEvent) -> None:
        """Apply a pointer move to the scene."""


@dataclass
class PanSession(Session):
    """Drag the canvas. The camera moves opposite the pointer."""

    state: ClassVar[MachineState] = MachineState.PANNING_CAMERA

    last_x: float = 0.0
    last_y: float = 0.0

    def __post_init__(self) -> None:
        self.last_x = self.start_x
        self.last_y = self.start_y

    def update(self, scene: Scene, event: PointerEvent) -> None:
        scene.camera.pan_x -= event.x - self.last_x
        scene.camera.pan_y -= event.y - self.last_y
        self.last_x = event.x
        self.last_y = event.y


@dataclass
class ObjectSession(Session):
    """A session manipulating one object plane."""

    plane: ObjectPlane

    moves_position: ClassVar[bool] = False


@dataclass
class RotateSession(ObjectSession):
    """Horizontal drag spins the plane around Y, one degree per pixel."""

    state: ClassVar[MachineState] = MachineState.ROTATING_OBJECT

    initial_rotation_y: float = 0.0

    def update(self, scene: Scene, event: PointerEvent) -> None:
        self.plane.transform.set_rotation_y(self.initial_rotation_y + (event.x - self.start_x))


@dataclass
class TranslateZSession(ObjectSession):
    """Vertical drag pushes the plane along Z."""

    state: ClassVar[MachineState] = MachineState.TRANSLATING_OBJECT_Z
    moves_position: ClassVar[bool] = True

    initial_z: float = 0.0

    def update(self, scene: Scene, event: PointerEvent) -> None:
        self.plane.position.z = self.initial_z + (event.y - self.start_y)


@dataclass
class TranslateXYSession(ObjectSession):
    """Drag the plane in X/Y, keeping the grab point under the pointer."""

    state: ClassVar[MachineState] = MachineState.TRANSLATING_OBJECT_XY
    moves_position: ClassVar[bool] = True

    offset_x: float = 0.0
    offset_y: float = 0.0

    def update(self, scene: Scene, event: PointerEvent) -> None:
        self.plane.position.x = event.x - self.offset_x
        self.plane.position.y = event.y - self.offset_y


class InteractionStateMachine:
    """Dispatches input events for one scene."""

    def __init__(
        self,
        scene: Scene,
        persist: Callable[[Scene], object],
        *,
        redraw: Callable[[], object] | None = None,
        params: InteractionParams | None = None,
        tooltip: DescriptionTooltip | None = None,
        on_notice: Callable[[str], None] | None = None,
    ):
        """Initialize the machine.

        Args:
            scene: Scene to manipulate
            persist: Called with the scene on every commit
            redraw: Called after every visual change
            params: Gesture sensitivity
            tooltip: Presenter for navigation mode
            on_notice: Receives user-facing notices, e.g. failed saves
        """
        self._scene = scene
        self._persist = persist
        self._redraw = redraw
        self.params = params or InteractionParams()
        self.tooltip = tooltip or DescriptionTooltip(
            double_tap_ms=self.params.double_tap_ms,
            offset_px=self.params.tooltip_offset_px,
        )
        self._on_notice = on_notice
        self._session: Session | None = None
        self._navigation_mode = False

    @property
    def scene(self) -> Scene:
        return self._scene

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> MachineState:
        if self._session is None:
            return MachineState.IDLE
        return self._session.state

    @property
    def navigation_mode(self) -> bool:
        return self._navigation_mode

    def set_navigation_mode(self, enabled: bool) -> None:
        """Switch between edit and navigation mode."""
        if enabled == self._navigation_mode:
            return
        self._navigation_mode = enabled
        if not enabled:
            self.tooltip.reset()
        logger.info(f"Switched to {'navigation' if enabled else 'edit'} mode")
        self._request_redraw()

    def pointer_down(self, event: PointerEvent) -> GestureDecision:
        """Start a session if the event calls for one."""
        decision = classify_pointer_down(
            event,
            self._scene,
            navigation_mode=self._navigation_mode,
            session_active=self._session is not None,
        )
        if not decision.starts_session:
            return decision

        if decision.mode is InteractionMode.CAMERA_PAN:
            self._session = PanSession(event.x, event.y)
        else:
            plane = self._scene.get_object(decision.target_id)
            if plane is None:
                return NO_INTERACTION
            self._session = self._start_object_session(decision.mode, plane, event)

        logger.debug(f"Session started: {self._session.state.value}")
        return decision

    def _start_object_session(
        self,
        mode: InteractionMode,
        plane: ObjectPlane,
        event: PointerEvent,
    ) -> ObjectSession:
        # Keep legacy fallback placements where they are drawn
        self._scene.pin_placement(plane)

        if mode is InteractionMode.OBJECT_ROTATE_Y:
            return RotateSession(event.x, event.y, plane, initial_rotation_y=plane.rotation.y)
        if mode is InteractionMode.OBJECT_TRANSLATE_Z:
            return TranslateZSession(event.x, event.y, plane, initial_z=plane.position.z)
        return TranslateXYSession(
            event.x,
            event.y,
            plane,
            offset_x=event.x - plane.position.x,
            offset_y=event.y - plane.position.y,
        )

    def pointer_move(self, event: PointerEvent) -> None:
        if self._session is None:
            return
        self._session.update(self._scene, event)
        self._request_redraw()

    def pointer_up(self, event: PointerEvent) -> None:
        """End the open session and commit it."""
        session = self._session
        if session is None:
            return
        self._session = None

        if isinstance(session, ObjectSession):
            if session.moves_position:
                session.plane.auto_placed = False
            logger.info(
                f"Object {session.plane.id} updated ({session.state.value}): "
                f"{session.plane.transform!r}"
            )
        else:
            camera = self._scene.camera
            logger.info(f"Camera panned to ({camera.pan_x:.1f}, {camera.pan_y:.1f})")

        self.commit()

    def wheel(self, event: WheelEvent) -> GestureDecision:
        """Apply one wheel tick: camera zoom or object scale."""
        decision = classify_wheel(
            event,
            self._scene,
            navigation_mode=self._navigation_mode,
            session_active=self._session is not None,
        )
        sign = 1.0 if event.scrolls_up else -1.0

        if decision.mode is InteractionMode.CAMERA_ZOOM:
            camera = self._scene.camera
            camera.zoom = camera.zoom + sign * self.params.zoom_step
            logger.debug(f"Camera zoom: {camera.zoom}")
        elif decision.mode is InteractionMode.OBJECT_SCALE:
            plane = self._scene.get_object(decision.target_id)
            plane.transform.set_scale(plane.scale + sign * self.params.scale_step)
            logger.debug(f"Object {plane.id} scale: {plane.scale}")
        else:
            return decision

        self._request_redraw()
        self.commit()
        return decision

    def hover(self, event: PointerEvent) -> TooltipState | None:
        """Pointer entered an object in navigation mode."""
        plane = self._navigation_target(event)
        if plane is None:
            return None
        return self.tooltip.show(plane, event.x, event.y)

    def leave(self, event: PointerEvent) -> None:
        """Pointer left an object in navigation mode."""
        if self._navigation_mode:
            self.tooltip.hide()

    def tap(self, event: PointerEvent) -> TooltipState | None:
        """Click or tap on an object in navigation mode."""
        plane = self._navigation_target(event)
        if plane is None:
            return None
        return self.tooltip.tap(plane, event.x, event.y)

    def _navigation_target(self, event: PointerEvent) -> ObjectPlane | None:
        if not self._navigation_mode or event.target_id is None:
            return None
        return self._scene.get_object(event.target_id)

    def commit(self) -> bool:
        """Persist the scene. Failures are reported, never raised.

        Returns:
            True if the persist call succeeded
        """
        try:
            self._persist(self._scene)
        except StoreError as e:
            logger.warning(f"Could not save scene '{self._scene.name}': {e}")
            if self._on_notice is not None:
                self._on_notice(f"Changes are kept but not saved yet: {e}")
            return False
        return True

    def _request_redraw(self) -> None:
        if self._redraw is not None:
            self._redraw()
