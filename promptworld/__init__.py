"""PromptWorld - arrange images as planes in a pseudo-3D scene.

A Python application for placing imported images in a scene, moving,
rotating and scaling them with pointer gestures, panning and zooming a
virtual camera, and describing the images with a generative model.
"""

__version__ = "0.1.0"

from .core.config import PromptWorldConfig
from .core.errors import PromptWorldError
from .scene import CameraPose, ObjectPlane, ObjectTransform, Scene
from .core.store import BackgroundSaver, SceneStore
from .interaction import InteractionStateMachine, PointerEvent, WheelEvent
from .render import SceneRenderer
from .editor import Editor

__all__ = [
    "PromptWorldConfig",
    "PromptWorldError",
    "CameraPose",
    "ObjectPlane",
    "ObjectTransform",
    "Scene",
    "BackgroundSaver",
    "SceneStore",
    "InteractionStateMachine",
    "PointerEvent",
    "WheelEvent",
    "SceneRenderer",
    "Editor",
]
