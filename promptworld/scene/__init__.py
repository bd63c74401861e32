"""Scene data model.

This module provides the data structures for image planes arranged in a
scene, including their poses and the camera pose.
"""

from .transform import (
    CameraPose,
    ObjectTransform,
    Vector3,
    compose_camera_transform,
    compose_object_transform,
    parse_object_transform,
)
from .scene import ImagePayload, ObjectPlane, Scene, SceneSummary

__all__ = [
    "CameraPose",
    "ObjectTransform",
    "Vector3",
    "compose_camera_transform",
    "compose_object_transform",
    "parse_object_transform",
    "ImagePayload",
    "ObjectPlane",
    "Scene",
    "SceneSummary",
]
