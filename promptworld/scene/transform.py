"""Pose and transform utilities for the scene.

Provides the per-object pose (position, rotation, scale) and the camera pose
(pan, zoom), with conversion to CSS-style transform strings and 4x4
homogeneous transformation matrices.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field, field_validator
from scipy.spatial.transform import Rotation

if TYPE_CHECKING:
    from .scene import ObjectPlane

MIN_ZOOM = 0.2
MAX_ZOOM = 5.0
MIN_SCALE = 0.1

_NUMBER = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
_TRANSLATE_RE = re.compile(
    rf"translate3d\(\s*{_NUMBER}px,\s*{_NUMBER}px,\s*{_NUMBER}px\s*\)"
)
_ROTATE_RE = {
    axis: re.compile(rf"rotate{axis.upper()}\(\s*{_NUMBER}deg\s*\)")
    for axis in "xyz"
}
_SCALE_RE = re.compile(rf"scale\(\s*{_NUMBER}\s*\)")


def wrap_rotation(degrees: float) -> float:
    """Wrap an angle into (-360, 360), keeping the sign of the input."""
    return math.fmod(degrees, 360.0)


def clamp_zoom(zoom: float) -> float:
    """Clamp a camera zoom factor into [MIN_ZOOM, MAX_ZOOM]."""
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def clamp_scale(scale: float) -> float:
    """Floor-clamp an object scale to MIN_SCALE."""
    return max(MIN_SCALE, scale)


def _fmt(value: float) -> str:
    # repr of a float is the shortest string that parses back to it.
    # Adding 0.0 turns -0.0 into 0.0.
    return repr(float(value) + 0.0)


class Vector3(BaseModel):
    """An XYZ triple, mutable in place."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    model_config = {"frozen": False}

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def is_zero(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.z == 0.0

    def __repr__(self) -> str:
        return f"Vector3({self.x:g}, {self.y:g}, {self.z:g})"


class ObjectTransform(BaseModel):
    """Pose of one image plane: position + rotation + scale.

    Attributes:
        position: XYZ offset in scene units
        rotation: XYZ angles in degrees, applied X then Y then Z
        scale: Uniform scale factor, never below MIN_SCALE
    """

    position: Vector3 = Field(default_factory=Vector3, description="XYZ offset in scene units")
    rotation: Vector3 = Field(default_factory=Vector3, description="XYZ rotation in degrees")
    scale: float = Field(default=1.0, description="Uniform scale factor")

    model_config = {"frozen": False, "validate_assignment": True}

    @field_validator("rotation")
    @classmethod
    def _wrap_rotation_y(cls, value: Vector3) -> Vector3:
        value.y = wrap_rotation(value.y)
        return value

    @field_validator("scale")
    @classmethod
    def _floor_scale(cls, value: float) -> float:
        return clamp_scale(value)

    def set_rotation_y(self, degrees: float) -> None:
        """Set the Y rotation, wrapped into (-360, 360)."""
        self.rotation.y = wrap_rotation(degrees)

    def set_scale(self, scale: float) -> None:
        """Set the uniform scale, floor-clamped."""
        self.scale = clamp_scale(scale)

    def to_css(self) -> str:
        """Compose into an ordered transform string.

        The order is fixed: translate, rotateX, rotateY, rotateZ, scale.
        """
        p, r = self.position, self.rotation
        return (
            f"translate3d({_fmt(p.x)}px, {_fmt(p.y)}px, {_fmt(p.z)}px) "
            f"rotateX({_fmt(r.x)}deg) rotateY({_fmt(r.y)}deg) rotateZ({_fmt(r.z)}deg) "
            f"scale({_fmt(self.scale)})"
        )

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to 4x4 homogeneous transformation matrix.

        The matrix is built as T @ Rx @ Ry @ Rz @ S, the same order the
        transform string lists its functions in.

        Returns:
            4x4 transformation matrix
        """
        # Scale matrix
        s = np.eye(4, dtype=np.float64)
        s[0, 0] = s[1, 1] = s[2, 2] = self.scale

        # Intrinsic XYZ composes as Rx @ Ry @ Rz
        rot = Rotation.from_euler("XYZ", self.rotation.as_tuple(), degrees=True)
        r = np.eye(4, dtype=np.float64)
        r[:3, :3] = rot.as_matrix()

        # Translation matrix
        t = np.eye(4, dtype=np.float64)
        t[:3, 3] = self.position.as_tuple()

        return t @ r @ s

    def __repr__(self) -> str:
        return (
            f"ObjectTransform(pos={self.position.as_tuple()}, "
            f"rot={self.rotation.as_tuple()}, scale={self.scale:.2f})"
        )


class CameraPose(BaseModel):
    """Pan offset and zoom applied uniformly to the whole scene."""

    pan_x: float = Field(default=0.0, description="Horizontal camera offset")
    pan_y: float = Field(default=0.0, description="Vertical camera offset")
    zoom: float = Field(default=1.0, description=f"Zoom factor, clamped to [{MIN_ZOOM}, {MAX_ZOOM}]")

    model_config = {"frozen": False, "validate_assignment": True}

    @field_validator("zoom")
    @classmethod
    def _clamp_zoom(cls, value: float) -> float:
        return clamp_zoom(value)

    def to_css(self) -> str:
        """Translate by the negated pan, then scale by zoom."""
        return (
            f"translate3d({_fmt(-self.pan_x)}px, {_fmt(-self.pan_y)}px, 0px) "
            f"scale({_fmt(self.zoom)})"
        )

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to a 4x4 matrix built as T(-pan) @ S(zoom)."""
        s = np.eye(4, dtype=np.float64)
        s[0, 0] = s[1, 1] = s[2, 2] = self.zoom

        t = np.eye(4, dtype=np.float64)
        t[0, 3] = -self.pan_x
        t[1, 3] = -self.pan_y

        return t @ s


def compose_object_transform(plane: ObjectPlane) -> str:
    """Return the ordered transform string for an object plane."""
    return plane.transform.to_css()


def compose_camera_transform(camera: CameraPose) -> str:
    """Return the transform string for the camera container."""
    return camera.to_css()


def parse_object_transform(text: str) -> ObjectTransform:
    """Recover a pose from a transform string produced by ``to_css``.

    Missing rotate/scale functions default to the identity; a missing
    translate3d is an error since position is what callers read back.

    Raises:
        ValueError: If the string has no translate3d() component
    """
    match = _TRANSLATE_RE.search(text)
    if match is None:
        raise ValueError(f"No translate3d() in transform: {text!r}")
    position = Vector3(x=float(match[1]), y=float(match[2]), z=float(match[3]))

    angles = {}
    for axis, pattern in _ROTATE_RE.items():
        found = pattern.search(text)
        angles[axis] = float(found[1]) if found else 0.0

    scale_match = _SCALE_RE.search(text)
    scale = float(scale_match[1]) if scale_match else 1.0

    return ObjectTransform(position=position, rotation=Vector3(**angles), scale=scale)


def apply_matrix(matrix: NDArray[np.float64], points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Apply a 4x4 transformation to an Nx3 array of points.

    Args:
        matrix: 4x4 homogeneous transformation matrix
        points: Nx3 array of XYZ coordinates

    Returns:
        Transformed Nx3 array of points
    """
    points = np.asarray(points, dtype=np.float64)

    # Convert to homogeneous coordinates (Nx4)
    ones = np.ones((len(points), 1), dtype=np.float64)
    homogeneous = np.hstack([points, ones])

    transformed = (matrix @ homogeneous.T).T

    return transformed[:, :3]
