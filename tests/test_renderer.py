"""Tests for frame building and the scene renderer."""

import numpy as np
import pytest

from promptworld.render.renderer import (
    EDIT_LISTENERS,
    NAVIGATION_LISTENERS,
    SceneRenderer,
    build_frame,
)
from promptworld.scene.scene import ImagePayload, ObjectPlane, Scene


@pytest.fixture
def scene():
    s = Scene(name="Render")
    for _ in range(3):
        s.add_image(b"\x89PNG", "image/png")
    s.camera.pan_x = 40.0
    s.camera.zoom = 2.0
    return s


class TestBuildFrame:
    """Test build_frame functionality."""

    def test_one_visual_per_plane(self, scene):
        """Test the frame has one visual per plane in scene order."""
        frame = build_frame(scene)

        assert [v.object_id for v in frame.planes] == [p.id for p in scene.objects]
        assert [v.index for v in frame.planes] == [0, 1, 2]

    def test_transforms_match_model(self, scene):
        """Test each visual carries its plane's composed transform."""
        frame = build_frame(scene)

        for visual, plane in zip(frame.planes, scene.objects):
            assert visual.transform == plane.transform.to_css()
            np.testing.assert_array_almost_equal(visual.matrix, plane.transform.to_matrix())
        assert frame.camera_transform == scene.camera.to_css()

    def test_listeners_per_mode(self, scene):
        """Test navigation mode adds hover and click listeners."""
        edit = build_frame(scene, navigation_mode=False)
        nav = build_frame(scene, navigation_mode=True)

        assert all(v.listeners == EDIT_LISTENERS for v in edit.planes)
        assert all(v.listeners == NAVIGATION_LISTENERS for v in nav.planes)
        assert "pointerenter" not in EDIT_LISTENERS
        assert {"pointerenter", "pointerleave", "click"} <= set(NAVIGATION_LISTENERS)

    def test_does_not_modify_scene(self, scene):
        """Test rendering only reads the scene."""
        before = scene.model_dump()
        build_frame(scene, navigation_mode=True)
        assert scene.model_dump() == before

    def test_legacy_fallback_is_display_only(self):
        """Test legacy planes at the origin are drawn at their cascade slot."""
        scene = Scene()
        for _ in range(2):
            scene.objects.append(
                ObjectPlane(image=ImagePayload(mime_type="image/png", data=b"\x89PNG"))
            )

        frame = build_frame(scene)

        assert frame.planes[0].transform.startswith("translate3d(-20.0px, 0.0px, 0.0px)")
        assert frame.planes[1].transform.startswith("translate3d(0.0px, 0.0px, -10.0px)")
        assert all(p.position.is_zero() for p in scene.objects)

    def test_back_to_front(self, scene):
        """Test planes are ordered farthest (most negative z) first."""
        scene.objects[0].position.z = -100.0
        frame = build_frame(scene)

        order = [v.object_id for v in frame.back_to_front()]
        assert order == [scene.objects[0].id, scene.objects[2].id, scene.objects[1].id]

    def test_world_matrix_includes_camera(self, scene):
        """Test the world matrix composes camera and object transforms."""
        frame = build_frame(scene)
        visual = frame.planes[0]
        np.testing.assert_array_almost_equal(
            frame.world_matrix(visual), scene.camera.to_matrix() @ visual.matrix
        )

    def test_plane_lookup(self, scene):
        """Test visuals can be found by object id."""
        frame = build_frame(scene)
        assert frame.plane(scene.objects[1].id).index == 1
        assert frame.plane("missing") is None


class TestSceneRenderer:
    """Test SceneRenderer functionality."""

    def test_sink_receives_frames(self, scene):
        """Test every render is handed to the sink."""
        frames = []
        renderer = SceneRenderer(sink=frames.append)

        frame = renderer.render(scene)

        assert frames == [frame]
        assert renderer.last_frame is frame

    def test_render_reflects_latest_model(self, scene):
        """Test a render after a model change shows the new pose."""
        renderer = SceneRenderer()
        renderer.render(scene)
        scene.objects[0].transform.set_rotation_y(45)

        frame = renderer.render(scene)
        assert "rotateY(45.0deg)" in frame.planes[0].transform
