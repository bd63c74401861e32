"""Scene and object plane data structures.

This module provides the core data models for arranging imported images as
planes in a pseudo-3D scene: Scene, ObjectPlane, ImagePayload and
SceneSummary.

Scenes serialize to indented JSON with image bytes base64 encoded, so an
exported document can be read by people and re-imported as a new scene.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..core.config import PlacementParams
from ..core.errors import InvalidImageError
from .transform import CameraPose, ObjectTransform, Vector3

EXPORT_SUFFIX = ".promptworld.json"

_DATA_URL_PREFIX = "data:"
_BASE64_MARKER = ";base64,"


def _short_uuid() -> str:
    return str(uuid.uuid4())[:8]


def cascade_position(
    index: int,
    count: int,
    params: PlacementParams | None = None,
) -> Vector3:
    """Compute the default placement of object ``index`` among ``count`` objects.

    Keeps freshly imported images visually distinct by fanning them out
    along X and stepping them back along Z.
    """
    params = params or PlacementParams()
    return Vector3(
        x=index * params.step_x - count * params.offset_x,
        y=0.0,
        z=index * params.step_z,
    )


class ImagePayload(BaseModel):
    """Encoded image bytes plus their MIME type. Immutable."""

    mime_type: str = Field(description="MIME type, e.g. image/png")
    data: bytes = Field(description="Raw encoded image bytes")

    model_config = {"frozen": True}

    @field_validator("data", mode="before")
    @classmethod
    def _decode_base64(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Image data is not valid base64: {e}") from e
        return value

    @field_serializer("data", when_used="json")
    def _encode_base64(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    @classmethod
    def from_data_url(cls, url: str) -> ImagePayload:
        """Parse a ``data:<mime>;base64,<data>`` URL.

        Raises:
            InvalidImageError: If the URL is not a base64 data URL
        """
        if not url.startswith(_DATA_URL_PREFIX):
            raise InvalidImageError("Error: Invalid image data format.")
        marker = url.find(_BASE64_MARKER)
        if marker == -1:
            raise InvalidImageError("Error: Invalid image data format.")

        mime_type = url[len(_DATA_URL_PREFIX):marker]
        encoded = url[marker + len(_BASE64_MARKER):]
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise InvalidImageError("Error: Invalid image data format.") from e
        return cls(mime_type=mime_type, data=data)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"{_DATA_URL_PREFIX}{self.mime_type}{_BASE64_MARKER}{encoded}"

    def validate_image(self) -> None:
        """Check that this payload can be sent to an image service.

        Raises:
            InvalidImageError: If the MIME type is not image/* or there is no data
        """
        if not self.mime_type.startswith("image/"):
            raise InvalidImageError(f"Error: Invalid MIME type ({self.mime_type}).")
        if not self.data:
            raise InvalidImageError("Error: Invalid image data format.")

    def __repr__(self) -> str:
        return f"ImagePayload({self.mime_type}, {len(self.data)} bytes)"


class ObjectPlane(BaseModel):
    """A single imported image placed in the scene.

    ``auto_placed`` records where the position came from: True when the
    cascade placement was resolved at import, False once the object has been
    moved by hand, None for documents written before the flag existed.
    """

    id: str = Field(
        default_factory=_short_uuid,
        frozen=True,
        description="Unique identifier within the scene"
    )
    image: ImagePayload = Field(frozen=True, description="Encoded image")
    description: str = Field(default="", description="Free-text description")
    transform: ObjectTransform = Field(
        default_factory=ObjectTransform,
        description="Position, rotation, and scale"
    )
    auto_placed: bool | None = Field(
        default=None,
        description="Whether the position came from the import cascade"
    )
    created_at: datetime = Field(default_factory=datetime.now, frozen=True)

    model_config = {"frozen": False}

    @property
    def position(self) -> Vector3:
        return self.transform.position

    @property
    def rotation(self) -> Vector3:
        return self.transform.rotation

    @property
    def scale(self) -> float:
        return self.transform.scale

    @property
    def short_id(self) -> str:
        """First five characters of the id, for display."""
        return self.id[:5]


class SceneSummary(BaseModel):
    """Lightweight listing entry for a stored scene."""

    id: str
    name: str
    created_at: datetime
    object_count: int = 0


class Scene(BaseModel):
    """One editable document: image planes plus a camera.

    The Scene exclusively owns its planes and camera. Planes keep their
    insertion order, which is also their default stacking order.
    """

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        frozen=True,
        description="Unique scene identifier"
    )
    name: str = Field(default="Untitled Scene", description="Scene name")
    version: str = Field(default="1.0", description="Scene file version")

    objects: list[ObjectPlane] = Field(
        default_factory=list,
        description="Image planes in insertion order"
    )
    camera: CameraPose = Field(default_factory=CameraPose, description="Camera pan and zoom")
    created_at: datetime = Field(default_factory=datetime.now, frozen=True)

    model_config = {"frozen": False}

    def add_image(
        self,
        data: bytes,
        mime_type: str,
        *,
        transform: ObjectTransform | None = None,
        placement: PlacementParams | None = None,
    ) -> ObjectPlane:
        """Wrap imported image bytes into a new plane and append it.

        Without an explicit ``transform`` the plane gets the default rotation
        and scale and a cascade position, resolved once here and stored.

        Args:
            data: Raw encoded image bytes
            mime_type: MIME type of ``data``
            transform: Explicit pose (skips auto placement)
            placement: Cascade parameters

        Returns:
            The created ObjectPlane

        Raises:
            InvalidImageError: If the payload is not a non-empty image
        """
        payload = ImagePayload(mime_type=mime_type, data=data)
        payload.validate_image()
        return self.add_payload(payload, transform=transform, placement=placement)

    def add_payload(
        self,
        payload: ImagePayload,
        *,
        transform: ObjectTransform | None = None,
        placement: PlacementParams | None = None,
    ) -> ObjectPlane:
        """Append a plane for an already-built payload."""
        if transform is None:
            index = len(self.objects)
            position = cascade_position(index, index + 1, placement)
            plane = ObjectPlane(
                image=payload,
                transform=ObjectTransform(position=position),
                auto_placed=True,
            )
        else:
            plane = ObjectPlane(image=payload, transform=transform, auto_placed=False)
        self.objects.append(plane)
        return plane

    def get_object(self, object_id: str) -> ObjectPlane | None:
        """Get a plane by ID.

        Returns:
            ObjectPlane if found, None otherwise
        """
        for plane in self.objects:
            if plane.id == object_id:
                return plane
        return None

    def index_of(self, object_id: str) -> int:
        """Return the stacking index of a plane, or -1 if absent."""
        for i, plane in enumerate(self.objects):
            if plane.id == object_id:
                return i
        return -1

    def set_description(self, object_id: str, text: str) -> ObjectPlane:
        """Replace a plane's description with the trimmed ``text``.

        Raises:
            KeyError: If no plane has ``object_id``
        """
        plane = self.get_object(object_id)
        if plane is None:
            raise KeyError(object_id)
        plane.description = text.strip()
        return plane

    def display_position(self, plane: ObjectPlane) -> Vector3:
        """Where ``plane`` is drawn.

        Legacy planes still at the all-zero default get the cascade computed
        from their current index. That fallback is display-only; the stored
        position is left untouched.
        """
        if plane.auto_placed is None and plane.position.is_zero():
            index = self.index_of(plane.id)
            return cascade_position(index, len(self.objects))
        return plane.position.model_copy()

    def pin_placement(self, plane: ObjectPlane) -> None:
        """Store the displayed position of a legacy plane into its pose."""
        if plane.auto_placed is None and plane.position.is_zero():
            plane.transform.position = self.display_position(plane)
            plane.auto_placed = True

    def summary(self) -> SceneSummary:
        return SceneSummary(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            object_count=len(self.objects),
        )

    def export_document(self) -> dict[str, Any]:
        """Return the scene as a JSON-ready nested mapping."""
        return self.model_dump(mode="json")

    def export_filename(self) -> str:
        """File name for an exported copy of this scene."""
        stem = re.sub(r"[^a-z0-9]", "_", self.name, flags=re.IGNORECASE).lower()
        return f"{stem or 'untitled_project'}{EXPORT_SUFFIX}"

    def to_file(self, path: str | Path) -> Path:
        """Save scene to a JSON file.

        Args:
            path: Output file path

        Returns:
            The path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.export_document(), f, indent=2)
        return path

    @classmethod
    def from_file(cls, path: str | Path, new_identity: bool = False) -> Scene:
        """Load scene from a JSON file.

        Args:
            path: Input file path
            new_identity: Assign a fresh scene id and creation time, so the
                import does not overwrite the scene it was exported from

        Returns:
            Loaded Scene
        """
        path = Path(path)
        with open(path) as f:
            data = json.load(f)

        if new_identity:
            data.pop("id", None)
            data.pop("created_at", None)
        return cls.model_validate(data)
