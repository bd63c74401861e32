"""Tests for the approximate PNG view export."""

import numpy as np
import pytest

from promptworld.core.config import RenderParams
from promptworld.render.preview import export_view_png, plane_outline
from promptworld.render.renderer import build_frame
from promptworld.scene.scene import Scene
from promptworld.scene.transform import ObjectTransform, Vector3

PLANE_SIZE = (200.0, 200.0)


def scene_with_plane(**pose) -> Scene:
    scene = Scene(name="Preview")
    scene.add_image(b"\x89PNG", "image/png", transform=ObjectTransform(**pose))
    return scene


class TestPlaneOutline:
    """Test projected plane corners."""

    def test_identity_outline(self):
        """Test an untransformed plane spans half its size either side."""
        scene = scene_with_plane()
        frame = build_frame(scene)

        outline = plane_outline(frame, scene.objects[0].id, PLANE_SIZE)
        np.testing.assert_array_almost_equal(
            outline, [[-100, -100], [100, -100], [100, 100], [-100, 100]]
        )

    def test_camera_zoom_and_pan(self):
        """Test the camera scales and shifts the outline."""
        scene = scene_with_plane()
        scene.camera.zoom = 2.0
        scene.camera.pan_x = 50.0
        frame = build_frame(scene)

        outline = plane_outline(frame, scene.objects[0].id, PLANE_SIZE)
        np.testing.assert_array_almost_equal(outline[0], [-250, -200])
        np.testing.assert_array_almost_equal(outline[2], [150, 200])

    def test_edge_on_rotation(self):
        """Test a plane turned 90 degrees around Y collapses to a line."""
        scene = scene_with_plane(rotation=Vector3(y=90.0))
        frame = build_frame(scene)

        outline = plane_outline(frame, scene.objects[0].id, PLANE_SIZE)
        np.testing.assert_array_almost_equal(outline[:, 0], [0, 0, 0, 0])

    def test_unknown_object(self):
        """Test asking for an unknown plane raises KeyError."""
        frame = build_frame(scene_with_plane())
        with pytest.raises(KeyError):
            plane_outline(frame, "missing", PLANE_SIZE)


class TestExportViewPng:
    """Test export_view_png."""

    def test_writes_png(self, tmp_path):
        """Test a PNG file is written for a populated scene."""
        scene = Scene(name="Export")
        for _ in range(3):
            scene.add_image(b"\x89PNG", "image/png")

        path = export_view_png(build_frame(scene), tmp_path / "out" / "view.png", RenderParams())

        assert path.exists()
        assert path.read_bytes().startswith(b"\x89PNG\r\n\x1a\n")

    def test_empty_scene(self, tmp_path):
        """Test an empty scene still produces an image."""
        path = export_view_png(build_frame(Scene()), tmp_path / "empty.png", RenderParams(dpi=50))
        assert path.exists()

    def test_custom_labels(self, tmp_path):
        """Test labels can be supplied per object."""
        scene = scene_with_plane()
        labels = {scene.objects[0].id: "chair"}
        path = export_view_png(build_frame(scene), tmp_path / "labels.png", RenderParams(), labels)
        assert path.stat().st_size > 0
