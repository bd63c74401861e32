"""Configuration management for PromptWorld.

This module defines all configuration models using Pydantic for validation.
Configuration can be loaded from JSON files or constructed programmatically.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field

API_KEY_ENV_VAR = "PROMPTWORLD_API_KEY"


class InteractionParams(BaseModel):
    """Gesture sensitivity parameters.

    The zoom range itself is fixed by ``CameraPose``; these
    only control how far each input event moves the pose.
    """

    zoom_step: float = Field(default=0.05, gt=0, le=1.0, description="Camera zoom change per wheel tick")
    scale_step: float = Field(default=0.1, gt=0, le=1.0, description="Object scale change per wheel tick")
    double_tap_ms: float = Field(
        default=500.0,
        ge=0,
        description="Window in ms for a second tap on the same object to dismiss its tooltip",
    )
    tooltip_offset_px: float = Field(default=15.0, description="Tooltip offset from the pointer")


class PlacementParams(BaseModel):
    """Cascade used to place newly imported images.

    Object ``index`` out of ``count`` objects lands at
    ``x = index * step_x - count * offset_x``, ``y = 0``, ``z = index * step_z``.
    """

    step_x: float = Field(default=20.0, description="X distance between consecutive imports")
    offset_x: float = Field(default=10.0, description="X shift per object in the scene")
    step_z: float = Field(default=-10.0, description="Z distance between consecutive imports")


class RenderParams(BaseModel):
    """Parameters for view export."""

    viewport_px: tuple[int, int] = Field(
        default=(800, 600),
        description="Exported view size in pixels (width, height)"
    )
    plane_size_px: tuple[float, float] = Field(
        default=(200.0, 200.0),
        description="Nominal size of an image plane before scaling (width, height)"
    )
    background: str = Field(default="#e0e0e0", description="Background color of exported views")
    dpi: int = Field(default=100, ge=10, le=600, description="Exported image resolution")


class StorageParams(BaseModel):
    """Where scenes are kept."""

    store_dir: Path | None = Field(
        default=None,
        description="Directory holding scene documents. None = ./promptworld_scenes/"
    )

    def resolve_store_dir(self) -> Path:
        """Return the configured store directory, falling back to the default."""
        if self.store_dir is None:
            return Path.cwd() / "promptworld_scenes"
        return Path(self.store_dir)


class DescriptionParams(BaseModel):
    """Settings for the image description service."""

    api_key: str = Field(default="", description="Gemini API key (empty = read from environment)")
    model: str = Field(default="gemini-1.5-flash-latest", description="Generative model name")
    endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        description="Base URL of the generateContent API"
    )
    image_prompt: str = Field(
        default="Describe this image in detail.",
        description="Instruction sent alongside each image"
    )
    timeout_s: float = Field(default=60.0, gt=0, description="HTTP timeout per request in seconds")

    def resolve_api_key(self) -> str:
        """Return the API key, preferring the environment over the config file."""
        return os.environ.get(API_KEY_ENV_VAR, "").strip() or self.api_key.strip()


class PromptWorldConfig(BaseModel):
    """Main configuration container."""

    interaction: InteractionParams = Field(default_factory=InteractionParams)
    placement: PlacementParams = Field(default_factory=PlacementParams)
    render: RenderParams = Field(default_factory=RenderParams)
    storage: StorageParams = Field(default_factory=StorageParams)
    description: DescriptionParams = Field(default_factory=DescriptionParams)

    @classmethod
    def from_file(cls, path: Path | str) -> PromptWorldConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> PromptWorldConfig:
        """Create a default configuration."""
        return cls()
