#!/usr/bin/env python3
"""Example: Arrange a few generated images in a scene.

This script demonstrates the basic workflow for PromptWorld:
1. Create a scene and import images
2. Drive it with pointer and wheel events
3. Export the scene document and a sketch of the view

Run with: python examples/simple_scene.py
"""

import io
import tempfile
from pathlib import Path

import numpy as np
from matplotlib.image import imsave

from promptworld import Editor, PointerEvent, PromptWorldConfig, SceneStore, WheelEvent


def make_png(color: tuple[float, float, float], size: int = 32) -> bytes:
    """Create a solid-color PNG image."""
    pixels = np.ones((size, size, 3)) * np.array(color)
    buf = io.BytesIO()
    imsave(buf, pixels, format="png")
    return buf.getvalue()


def main():
    workdir = Path(tempfile.mkdtemp(prefix="promptworld_"))
    config = PromptWorldConfig.default()
    config.storage.store_dir = workdir / "scenes"

    print("PromptWorld - Simple Scene Example")
    print("=" * 40)

    editor = Editor(config, SceneStore(config.storage.store_dir))

    print("\n1. Creating scene and importing images...")
    scene = editor.create_scene("Example Scene")
    planes = [
        editor.import_image(make_png(color), "image/png")
        for color in [(0.9, 0.2, 0.2), (0.2, 0.7, 0.3), (0.2, 0.4, 0.9)]
    ]
    for plane in planes:
        print(f"   {plane.id}: {plane.transform.to_css()}")

    print("\n2. Rotating the first image with a Shift-drag...")
    machine = editor.machine
    machine.pointer_down(PointerEvent(100, 100, planes[0].id, shift=True))
    machine.pointer_move(PointerEvent(130, 100))
    machine.pointer_up(PointerEvent(130, 100))
    print(f"   rotation.y = {planes[0].rotation.y}")

    print("\n3. Dragging the last image in X/Y...")
    machine.pointer_down(PointerEvent(0, 0, planes[2].id))
    machine.pointer_move(PointerEvent(60, -40))
    machine.pointer_up(PointerEvent(60, -40))
    print(f"   position = {planes[2].position.as_tuple()}")

    print("\n4. Zooming in five wheel ticks...")
    for _ in range(5):
        machine.wheel(WheelEvent(-1))
    print(f"   camera: {scene.camera.to_css()}")

    print("\n5. Exporting...")
    document = editor.export_scene(workdir)
    view = editor.export_view(workdir / "view.png")
    print(f"   Scene document: {document}")
    print(f"   View sketch:    {view}")

    print("\nDone!")


if __name__ == "__main__":
    main()
