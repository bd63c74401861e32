"""Scene rendering and view export."""

from .renderer import PlaneVisual, RenderFrame, SceneRenderer, build_frame

__all__ = ["PlaneVisual", "RenderFrame", "SceneRenderer", "build_frame"]
