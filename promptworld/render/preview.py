"""Approximate export of the current view to a PNG image.

Each plane is drawn as its outline, projected orthographically through the
object and camera transforms, farthest first. This is a 2D sketch of the
arrangement, not a faithful rendering of the 3D view.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Polygon

from ..scene.transform import apply_matrix

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ..core.config import RenderParams
    from .renderer import RenderFrame

logger = logging.getLogger(__name__)

_FILL_COLORS = ["#8ecae6", "#ffb703", "#90be6d", "#f28482", "#cdb4db", "#a8dadc"]


def plane_outline(
    frame: RenderFrame,
    object_id: str,
    plane_size: tuple[float, float],
) -> NDArray[np.float64]:
    """Screen-space corners (4x2) of a plane.

    Planes transform about their center, so the local corners sit at
    half the nominal size either side of the origin.

    Raises:
        KeyError: If the frame has no plane with ``object_id``
    """
    visual = frame.plane(object_id)
    if visual is None:
        raise KeyError(object_id)

    half_w, half_h = plane_size[0] / 2, plane_size[1] / 2
    corners = np.array([
        [-half_w, -half_h, 0.0],
        [half_w, -half_h, 0.0],
        [half_w, half_h, 0.0],
        [-half_w, half_h, 0.0],
    ])
    projected = apply_matrix(frame.world_matrix(visual), corners)
    return projected[:, :2]


def export_view_png(
    frame: RenderFrame,
    path: str | Path,
    params: RenderParams,
    labels: dict[str, str] | None = None,
) -> Path:
    """Draw ``frame`` to a PNG file.

    Args:
        frame: Frame to draw
        path: Output PNG path
        params: Viewport size, plane size, background and dpi
        labels: Optional text per object id (defaults to the short id)

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    width, height = params.viewport_px

    fig = Figure(figsize=(width / params.dpi, height / params.dpi), dpi=params.dpi)
    FigureCanvasAgg(fig)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_xlim(0, width)
    # Screen coordinates grow downward
    ax.set_ylim(height, 0)
    ax.set_facecolor(params.background)
    ax.set_axis_off()
    fig.patch.set_facecolor(params.background)

    # The camera container sits at the viewport center
    center = np.array([width / 2, height / 2])
    for visual in frame.back_to_front():
        outline = plane_outline(frame, visual.object_id, params.plane_size_px) + center
        color = _FILL_COLORS[visual.index % len(_FILL_COLORS)]
        ax.add_patch(Polygon(outline, closed=True, facecolor=color, edgecolor="#333333", alpha=0.85))
        label = (labels or {}).get(visual.object_id, visual.object_id[:5])
        cx, cy = outline.mean(axis=0)
        ax.text(cx, cy, label, ha="center", va="center", fontsize=8, color="#222222")

    fig.savefig(path, dpi=params.dpi, facecolor=params.background)
    logger.info(f"View exported: {path}")
    return path
