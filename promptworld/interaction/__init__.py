"""Pointer gesture handling."""

from .events import PointerButton, PointerEvent, WheelEvent
from .gestures import GestureDecision, InteractionMode, classify_pointer_down, classify_wheel
from .machine import InteractionStateMachine, MachineState
from .tooltip import DescriptionTooltip, TooltipState

__all__ = [
    "PointerButton",
    "PointerEvent",
    "WheelEvent",
    "GestureDecision",
    "InteractionMode",
    "classify_pointer_down",
    "classify_wheel",
    "InteractionStateMachine",
    "MachineState",
    "DescriptionTooltip",
    "TooltipState",
]
