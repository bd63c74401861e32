"""Tests for the interaction state machine."""

import pytest

from promptworld.core.config import InteractionParams
from promptworld.core.errors import StoreError
from promptworld.interaction.events import PointerEvent, WheelEvent
from promptworld.interaction.gestures import InteractionMode
from promptworld.interaction.machine import InteractionStateMachine, MachineState
from promptworld.interaction.tooltip import DescriptionTooltip
from promptworld.scene.scene import ImagePayload, ObjectPlane, Scene


class RecordingPersist:
    """Persist callable that snapshots every scene it is given."""

    def __init__(self, fail: bool = False):
        self.saves: list[Scene] = []
        self.fail = fail

    def __call__(self, scene: Scene) -> None:
        if self.fail:
            raise StoreError("disk full")
        self.saves.append(scene.model_copy(deep=True))


@pytest.fixture
def scene():
    """Scene with two auto-placed planes."""
    s = Scene(name="Demo")
    s.add_image(b"\x89PNG", "image/png")
    s.add_image(b"\x89PNG", "image/png")
    return s


@pytest.fixture
def persist():
    return RecordingPersist()


@pytest.fixture
def machine(scene, persist):
    return InteractionStateMachine(scene, persist)


def drag(machine, start, moves, target_id=None, shift=False, alt=False):
    """Press at ``start``, move through ``moves``, release at the last point."""
    decision = machine.pointer_down(
        PointerEvent(start[0], start[1], target_id, shift=shift, alt=alt)
    )
    for x, y in moves:
        machine.pointer_move(PointerEvent(x, y))
    end = moves[-1] if moves else start
    machine.pointer_up(PointerEvent(end[0], end[1]))
    return decision


class TestCameraPan:
    """Test panning sessions."""

    def test_pan_moves_camera_opposite_pointer(self, machine, scene, persist):
        """Test a canvas drag changes pan by the negated pointer delta."""
        drag(machine, (100, 100), [(110, 105), (130, 120)])

        assert scene.camera.pan_x == -30
        assert scene.camera.pan_y == -20
        assert len(persist.saves) == 1
        assert persist.saves[0].camera.pan_x == -30

    def test_pan_leaves_objects_alone(self, machine, scene):
        """Test panning does not touch any object pose."""
        before = [p.transform.model_copy(deep=True) for p in scene.objects]
        drag(machine, (0, 0), [(50, 50)])
        assert [p.transform for p in scene.objects] == before

    def test_state_during_pan(self, machine):
        """Test the machine reports the panning state until release."""
        machine.pointer_down(PointerEvent(0, 0))
        assert machine.state is MachineState.PANNING_CAMERA
        machine.pointer_up(PointerEvent(0, 0))
        assert machine.state is MachineState.IDLE
        assert machine.session is None


class TestObjectSessions:
    """Test rotate and translate sessions."""

    def test_rotate_scenario(self, machine, scene, persist):
        """Test a 30 px Shift-drag rotates by 30 degrees with one save."""
        plane = scene.objects[0]
        decision = drag(machine, (100, 100), [(110, 100), (130, 100)], plane.id, shift=True)

        assert decision.mode is InteractionMode.OBJECT_ROTATE_Y
        assert plane.rotation.y == 30
        assert len(persist.saves) == 1
        assert persist.saves[0].objects[0].rotation.y == 30

    def test_rotate_is_relative_to_start(self, machine, scene):
        """Test rotation is computed from the press point, not accumulated."""
        plane = scene.objects[0]
        machine.pointer_down(PointerEvent(0, 0, plane.id, shift=True))
        machine.pointer_move(PointerEvent(40, 0))
        machine.pointer_move(PointerEvent(15, 0))
        machine.pointer_up(PointerEvent(15, 0))
        assert plane.rotation.y == 15

    def test_rotate_wraps(self, machine, scene):
        """Test 350 degrees plus a 20 px drag ends at 10 degrees."""
        plane = scene.objects[0]
        plane.transform.set_rotation_y(350)
        drag(machine, (0, 0), [(20, 0)], plane.id, shift=True)
        assert plane.rotation.y == pytest.approx(10)

    def test_rotate_wraps_negative(self, machine, scene):
        """Test a long leftward drag keeps a negative angle."""
        plane = scene.objects[0]
        drag(machine, (500, 0), [(100, 0)], plane.id, shift=True)
        assert plane.rotation.y == pytest.approx(-40)

    def test_rotate_ignores_vertical_motion(self, machine, scene):
        """Test only horizontal motion rotates."""
        plane = scene.objects[0]
        drag(machine, (0, 0), [(0, 80)], plane.id, shift=True)
        assert plane.rotation.y == 0
        assert plane.position.y == 0

    def test_translate_z(self, machine, scene, persist):
        """Test an Alt-drag moves the plane along Z by the vertical delta."""
        plane = scene.objects[1]
        start_z = plane.position.z
        drag(machine, (0, 0), [(10, 5), (40, 25)], plane.id, alt=True)

        assert plane.position.z == start_z + 25
        assert plane.position.x == 0.0
        assert len(persist.saves) == 1

    def test_translate_xy_keeps_grab_offset(self, machine, scene, persist):
        """Test the grab point stays under the pointer during an X/Y drag."""
        plane = scene.objects[0]
        assert plane.position.as_tuple() == (-10.0, 0.0, 0.0)

        drag(machine, (50, 50), [(60, 55), (70, 80)], plane.id)

        assert plane.position.x == 10
        assert plane.position.y == 30
        assert plane.position.z == 0
        assert len(persist.saves) == 1
        assert persist.saves[0].objects[0].position.x == 10

    def test_translate_clears_auto_placed(self, machine, scene):
        """Test a hand-moved plane is no longer flagged as auto placed."""
        plane = scene.objects[0]
        drag(machine, (0, 0), [(5, 5)], plane.id)
        assert plane.auto_placed is False

    def test_rotate_keeps_auto_placed(self, machine, scene):
        """Test rotating does not change where the position came from."""
        plane = scene.objects[0]
        drag(machine, (0, 0), [(5, 0)], plane.id, shift=True)
        assert plane.auto_placed is True

    def test_live_values_written_on_move(self, scene, persist):
        """Test every move updates the model and requests a redraw."""
        redraws = []
        machine = InteractionStateMachine(scene, persist, redraw=lambda: redraws.append(1))
        plane = scene.objects[0]

        machine.pointer_down(PointerEvent(0, 0, plane.id, shift=True))
        machine.pointer_move(PointerEvent(12, 0))
        assert plane.rotation.y == 12
        assert len(redraws) == 1
        assert persist.saves == []

        machine.pointer_up(PointerEvent(12, 0))
        assert len(persist.saves) == 1

    def test_moves_anywhere_reach_session(self, machine, scene):
        """Test moves and release over other targets still drive the session."""
        plane, other = scene.objects
        machine.pointer_down(PointerEvent(0, 0, plane.id, shift=True))
        machine.pointer_move(PointerEvent(25, 0, other.id))
        machine.pointer_up(PointerEvent(25, 0, other.id))

        assert plane.rotation.y == 25
        assert other.rotation.y == 0
        assert machine.state is MachineState.IDLE

    def test_legacy_plane_pinned_before_move(self, persist):
        """Test a legacy plane starts moving from where it is drawn."""
        scene = Scene()
        for _ in range(3):
            scene.objects.append(
                ObjectPlane(image=ImagePayload(mime_type="image/png", data=b"\x89PNG"))
            )
        machine = InteractionStateMachine(scene, persist)
        plane = scene.objects[1]

        drag(machine, (0, 0), [(5, 5)], plane.id)

        assert plane.position.as_tuple() == (-5.0, 5.0, -10.0)
        assert plane.auto_placed is False


class TestSessionGuards:
    """Test the single-session rule and quiet failures."""

    def test_second_press_ignored(self, machine, scene):
        """Test a press during a session neither starts nor replaces one."""
        plane = scene.objects[0]
        machine.pointer_down(PointerEvent(0, 0))
        session = machine.session

        decision = machine.pointer_down(PointerEvent(0, 0, plane.id, shift=True))

        assert decision.is_inert
        assert machine.session is session

    def test_wheel_during_session_ignored(self, machine, scene, persist):
        """Test wheel ticks do nothing while a session is open."""
        machine.pointer_down(PointerEvent(0, 0))
        decision = machine.wheel(WheelEvent(-1))

        assert decision.is_inert
        assert scene.camera.zoom == 1.0
        assert persist.saves == []

    def test_unknown_target_is_noop(self, machine, scene, persist):
        """Test a press on an unknown id changes nothing."""
        before = scene.model_dump()
        decision = drag(machine, (0, 0), [(30, 30)], "missing")

        assert decision.is_inert
        assert machine.state is MachineState.IDLE
        assert scene.model_dump() == before
        assert persist.saves == []

    def test_move_and_up_without_session(self, machine, persist):
        """Test stray moves and releases are ignored."""
        machine.pointer_move(PointerEvent(10, 10))
        machine.pointer_up(PointerEvent(10, 10))
        assert persist.saves == []

    def test_persist_failure_keeps_change(self, scene):
        """Test a failed save is reported and the model keeps the change."""
        notices = []
        machine = InteractionStateMachine(
            scene, RecordingPersist(fail=True), on_notice=notices.append
        )
        plane = scene.objects[0]

        drag(machine, (0, 0), [(30, 0)], plane.id, shift=True)

        assert plane.rotation.y == 30
        assert machine.state is MachineState.IDLE
        assert len(notices) == 1
        assert "disk full" in notices[0]

    def test_commit_reports_result(self, scene):
        """Test commit returns whether the save went through."""
        assert InteractionStateMachine(scene, RecordingPersist()).commit() is True
        assert InteractionStateMachine(scene, RecordingPersist(fail=True)).commit() is False


class TestWheel:
    """Test zoom and scale ticks."""

    def test_five_zoom_ticks(self, machine, scene, persist):
        """Test five upward ticks on the canvas zoom to 1.25, saving each time."""
        for _ in range(5):
            machine.wheel(WheelEvent(-1))

        assert scene.camera.zoom == pytest.approx(1.25)
        assert len(persist.saves) == 5

    def test_zoom_out(self, machine, scene):
        """Test downward ticks zoom out."""
        machine.wheel(WheelEvent(1))
        assert scene.camera.zoom == pytest.approx(0.95)

    def test_zoom_clamped(self, machine, scene):
        """Test zoom never leaves [0.2, 5.0]."""
        for _ in range(200):
            machine.wheel(WheelEvent(-1))
        assert scene.camera.zoom == 5.0

        for _ in range(200):
            machine.wheel(WheelEvent(1))
        assert scene.camera.zoom == 0.2

    def test_zoom_step_from_params(self, scene, persist):
        """Test the zoom step is configurable."""
        machine = InteractionStateMachine(scene, persist, params=InteractionParams(zoom_step=0.5))
        machine.wheel(WheelEvent(-1))
        assert scene.camera.zoom == pytest.approx(1.5)

    def test_scale_object(self, machine, scene, persist):
        """Test a tick over an object scales only that object."""
        plane, other = scene.objects
        machine.wheel(WheelEvent(-1, plane.id))

        assert plane.scale == pytest.approx(1.1)
        assert other.scale == 1.0
        assert scene.camera.zoom == 1.0
        assert len(persist.saves) == 1

    def test_scale_floor(self, machine, scene):
        """Test scaling down stops at 0.1."""
        plane = scene.objects[0]
        for _ in range(30):
            machine.wheel(WheelEvent(1, plane.id))
        assert plane.scale == pytest.approx(0.1)
        assert plane.scale > 0

    def test_wheel_unknown_target(self, machine, scene, persist):
        """Test a tick over an unknown id does nothing."""
        decision = machine.wheel(WheelEvent(-1, "missing"))
        assert decision.is_inert
        assert persist.saves == []


class TestNavigationMode:
    """Test navigation mode in the machine."""

    @pytest.fixture
    def clock(self):
        now = [0.0]
        return now

    @pytest.fixture
    def nav_machine(self, scene, persist, clock):
        scene.objects[0].description = "A red chair"
        tooltip = DescriptionTooltip(clock=lambda: clock[0])
        m = InteractionStateMachine(scene, persist, tooltip=tooltip)
        m.set_navigation_mode(True)
        return m

    def test_objects_not_draggable(self, nav_machine, scene, persist):
        """Test pressing an object starts no session."""
        plane = scene.objects[0]
        decision = drag(nav_machine, (0, 0), [(30, 30)], plane.id)
        assert decision.is_inert
        assert plane.position.as_tuple() == (-10.0, 0.0, 0.0)
        assert persist.saves == []

    def test_wheel_over_object_zooms(self, nav_machine, scene):
        """Test the wheel zooms the camera even over an object."""
        nav_machine.wheel(WheelEvent(-1, scene.objects[0].id))
        assert scene.camera.zoom == pytest.approx(1.05)
        assert scene.objects[0].scale == 1.0

    def test_hover_and_leave(self, nav_machine, scene):
        """Test hovering shows the description and leaving hides it."""
        plane = scene.objects[0]
        shown = nav_machine.hover(PointerEvent(100, 50, plane.id))

        assert shown.text == "A red chair"
        assert (shown.x, shown.y) == (115, 65)
        nav_machine.leave(PointerEvent(100, 50, plane.id))
        assert nav_machine.tooltip.visible is None

    def test_double_tap_dismisses(self, nav_machine, scene, clock):
        """Test a second tap within the window hides the tooltip."""
        plane = scene.objects[0]
        assert nav_machine.tap(PointerEvent(0, 0, plane.id)) is not None
        clock[0] = 300.0
        assert nav_machine.tap(PointerEvent(0, 0, plane.id)) is None
        assert nav_machine.tooltip.visible is None

    def test_hover_ignored_in_edit_mode(self, machine, scene):
        """Test tooltips are not shown in edit mode."""
        scene.objects[0].description = "Hidden"
        assert machine.hover(PointerEvent(0, 0, scene.objects[0].id)) is None

    def test_leaving_navigation_clears_tooltip(self, nav_machine, scene):
        """Test switching back to edit mode hides any tooltip."""
        nav_machine.hover(PointerEvent(0, 0, scene.objects[0].id))
        nav_machine.set_navigation_mode(False)
        assert nav_machine.tooltip.visible is None
        assert not nav_machine.navigation_mode

    def test_mode_switch_redraws(self, scene, persist):
        """Test toggling the mode requests a redraw."""
        redraws = []
        m = InteractionStateMachine(scene, persist, redraw=lambda: redraws.append(1))
        m.set_navigation_mode(True)
        m.set_navigation_mode(True)
        m.set_navigation_mode(False)
        assert len(redraws) == 2
