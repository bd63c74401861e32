"""External services."""

from .description import (
    DescriptionReport,
    DescriptionResult,
    DescriptionService,
    GeminiDescriptionService,
    describe_scene_objects,
)

__all__ = [
    "DescriptionReport",
    "DescriptionResult",
    "DescriptionService",
    "GeminiDescriptionService",
    "describe_scene_objects",
]
