"""Exception types shared across PromptWorld."""

from __future__ import annotations


class PromptWorldError(Exception):
    """Base class for all PromptWorld errors."""


class StoreError(PromptWorldError):
    """A scene could not be read from or written to the store."""


class SceneNotFoundError(StoreError, KeyError):
    """No scene with the requested id exists in the store."""

    def __init__(self, scene_id: str):
        super().__init__(f"Scene not found: {scene_id}")
        self.scene_id = scene_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidImageError(PromptWorldError, ValueError):
    """An image payload is malformed or not an image.

    The message is written verbatim into the object's description when the
    payload is rejected during a description batch.
    """


class DescriptionServiceError(PromptWorldError):
    """The description service failed for one request.

    The message is user-facing and is stored as the object's description.
    """


class DescriptionUnavailable(DescriptionServiceError):
    """The service answered but returned no usable text (blocked or empty)."""
