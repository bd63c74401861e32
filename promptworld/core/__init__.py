"""Core modules for PromptWorld."""

from .config import PromptWorldConfig
from .errors import (
    DescriptionServiceError,
    InvalidImageError,
    PromptWorldError,
    SceneNotFoundError,
    StoreError,
)

__all__ = [
    "PromptWorldConfig",
    "DescriptionServiceError",
    "InvalidImageError",
    "PromptWorldError",
    "SceneNotFoundError",
    "StoreError",
]
