"""Scene rendering.

Projects a scene into a ``RenderFrame``: the camera container transform plus
one visual per object plane, with the listeners that plane needs in the
current mode. Every render rebuilds the whole frame from the scene; object
counts are expected to stay in the tens, so no diffing is done.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np
from numpy.typing import NDArray

from ..scene.transform import ObjectTransform

if TYPE_CHECKING:
    from ..scene.scene import ImagePayload, Scene

logger = logging.getLogger(__name__)

EDIT_LISTENERS = ("pointerdown", "wheel")
NAVIGATION_LISTENERS = ("pointerdown", "wheel", "pointerenter", "pointerleave", "click")


@dataclass(frozen=True)
class PlaneVisual:
    """How one object plane is drawn.

    Attributes:
        object_id: Id of the plane this visual belongs to
        index: Stacking index in the scene
        transform: Ordered transform string
        matrix: 4x4 object matrix, relative to the camera container
        image: Encoded image to draw
        listeners: Input events this visual reports
    """

    object_id: str
    index: int
    transform: str
    matrix: NDArray[np.float64]
    image: ImagePayload
    listeners: tuple[str, ...]

    @property
    def depth(self) -> float:
        return float(self.matrix[2, 3])


@dataclass(frozen=True)
class RenderFrame:
    """A full picture of the scene at one moment."""

    camera_transform: str
    camera_matrix: NDArray[np.float64]
    planes: tuple[PlaneVisual, ...]
    navigation_mode: bool = False

    def plane(self, object_id: str) -> PlaneVisual | None:
        for visual in self.planes:
            if visual.object_id == object_id:
                return visual
        return None

    def world_matrix(self, visual: PlaneVisual) -> NDArray[np.float64]:
        """Object matrix composed with the camera."""
        return self.camera_matrix @ visual.matrix

    def back_to_front(self) -> list[PlaneVisual]:
        """Planes ordered farthest first (smallest z)."""
        return sorted(self.planes, key=lambda v: v.depth)


def build_frame(scene: Scene, navigation_mode: bool = False) -> RenderFrame:
    """Project ``scene`` into a frame. Pure; the scene is not modified."""
    listeners = NAVIGATION_LISTENERS if navigation_mode else EDIT_LISTENERS

    planes = []
    for index, plane in enumerate(scene.objects):
        shown = ObjectTransform(
            position=scene.display_position(plane),
            rotation=plane.rotation.model_copy(),
            scale=plane.scale,
        )
        planes.append(PlaneVisual(
            object_id=plane.id,
            index=index,
            transform=shown.to_css(),
            matrix=shown.to_matrix(),
            image=plane.image,
            listeners=listeners,
        ))

    return RenderFrame(
        camera_transform=scene.camera.to_css(),
        camera_matrix=scene.camera.to_matrix(),
        planes=tuple(planes),
        navigation_mode=navigation_mode,
    )


class SceneRenderer:
    """Builds frames and hands them to a drawing sink.

    The renderer keeps no scene state of its own; ``last_frame`` is only a
    convenience for readers of the current transform state.
    """

    def __init__(self, sink: Callable[[RenderFrame], object] | None = None):
        """Initialize the renderer.

        Args:
            sink: Receives every frame, e.g. a UI toolkit adapter
        """
        self._sink = sink
        self.last_frame: RenderFrame | None = None

    def render(self, scene: Scene, navigation_mode: bool = False) -> RenderFrame:
        frame = build_frame(scene, navigation_mode)
        self.last_frame = frame
        if self._sink is not None:
            self._sink(frame)
        logger.debug(f"Rendered {len(frame.planes)} plane(s)")
        return frame
