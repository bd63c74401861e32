"""Editor session for one open scene.

Ties the scene store, interaction state machine, renderer and description
service together. UI adapters feed input events to ``editor.machine`` and
draw the frames the renderer hands to its sink.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Callable, Sequence

from .core.config import PromptWorldConfig
from .core.errors import InvalidImageError, PromptWorldError
from .core.store import SceneGateway, SceneStore
from .interaction.machine import InteractionStateMachine
from .render.preview import export_view_png
from .render.renderer import RenderFrame, SceneRenderer
from .scene.scene import ImagePayload, ObjectPlane, Scene, SceneSummary
from .services.description import (
    DescriptionReport,
    DescriptionService,
    describe_scene_objects,
)

logger = logging.getLogger(__name__)


class NoSceneOpenError(PromptWorldError):
    """An operation needs an open scene and there is none."""

    def __init__(self) -> None:
        super().__init__("Please select or create a project first.")


class Editor:
    """Application-level operations on the current scene."""

    def __init__(
        self,
        config: PromptWorldConfig | None = None,
        store: SceneGateway | None = None,
        *,
        persist: Callable[[Scene], object] | None = None,
        renderer: SceneRenderer | None = None,
        on_notice: Callable[[str], None] | None = None,
    ):
        """Initialize the editor.

        Args:
            config: Configuration (defaults if None)
            store: Scene store (a SceneStore in the configured directory if None)
            persist: Save operation used for commits, e.g. a
                ``BackgroundSaver.submit``. Defaults to ``store.save``
            renderer: Renderer receiving every redraw
            on_notice: Receives user-facing notices
        """
        self.config = config or PromptWorldConfig.default()
        self.store = store or SceneStore(self.config.storage.resolve_store_dir())
        self._persist = persist or self.store.save
        self.renderer = renderer or SceneRenderer()
        self._on_notice = on_notice
        self._machine: InteractionStateMachine | None = None

    @property
    def scene(self) -> Scene | None:
        return self._machine.scene if self._machine else None

    @property
    def machine(self) -> InteractionStateMachine:
        if self._machine is None:
            raise NoSceneOpenError()
        return self._machine

    @property
    def navigation_mode(self) -> bool:
        return self._machine is not None and self._machine.navigation_mode

    def list_scenes(self) -> list[SceneSummary]:
        return self.store.load_all()

    def create_scene(self, name: str) -> Scene:
        """Create, store and open a new empty scene."""
        scene = Scene(name=name)
        self.store.save(scene)
        logger.info(f"Created scene '{name}' ({scene.id})")
        self._open(scene)
        return scene

    def open_scene(self, scene_id: str) -> Scene:
        """Load a stored scene and make it current."""
        scene = self.store.load(scene_id)
        self._open(scene)
        logger.info(f"Opened scene '{scene.name}' ({len(scene.objects)} object(s))")
        return scene

    def _open(self, scene: Scene) -> None:
        self._machine = InteractionStateMachine(
            scene,
            self._persist,
            redraw=self.render,
            params=self.config.interaction,
            on_notice=self._on_notice,
        )
        self.render()

    def close_scene(self) -> None:
        self._machine = None

    def render(self) -> RenderFrame:
        machine = self.machine
        return self.renderer.render(machine.scene, navigation_mode=machine.navigation_mode)

    def toggle_navigation_mode(self) -> bool:
        """Flip between edit and navigation mode. Returns the new mode."""
        machine = self.machine
        machine.set_navigation_mode(not machine.navigation_mode)
        return machine.navigation_mode

    def import_image(self, data: bytes, mime_type: str) -> ObjectPlane:
        """Add an image to the current scene, save, and redraw.

        Raises:
            InvalidImageError: If the bytes are not a usable image
        """
        machine = self.machine
        plane = machine.scene.add_image(data, mime_type, placement=self.config.placement)
        logger.info(f"Image added: {plane.id} ({mime_type}, {len(data)} bytes)")
        machine.commit()
        self.render()
        return plane

    def import_file(self, path: str | Path) -> ObjectPlane:
        """Import an image file, guessing its MIME type from the name."""
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type is None:
            raise InvalidImageError(f"Cannot tell the image type of {path.name}")
        return self.import_image(path.read_bytes(), mime_type)

    def import_data_url(self, url: str) -> ObjectPlane:
        """Import an image given as a base64 data URL."""
        payload = ImagePayload.from_data_url(url)
        return self.import_image(payload.data, payload.mime_type)

    def image_data_url(self, object_id: str) -> str:
        """Return a plane's image as a base64 data URL.

        Raises:
            KeyError: If no plane has this id
        """
        plane = self.machine.scene.get_object(object_id)
        if plane is None:
            raise KeyError(object_id)
        return plane.image.to_data_url()

    def set_description(self, object_id: str, text: str) -> ObjectPlane:
        """Edit a plane's description by hand and save."""
        machine = self.machine
        plane = machine.scene.set_description(object_id, text)
        machine.commit()
        return plane

    def describe(
        self,
        object_ids: Sequence[str],
        service: DescriptionService,
        progress: Callable[[int, int, str], None] | None = None,
    ) -> DescriptionReport:
        """Fill in descriptions for the selected planes."""
        machine = self.machine
        report = describe_scene_objects(
            machine.scene, object_ids, service, lambda _scene: machine.commit(), progress
        )
        self.render()
        return report

    def ask(self, question: str, service: DescriptionService) -> str:
        """Ask a question about the current scene."""
        return service.ask(self.machine.scene, question)

    def export_scene(self, directory: str | Path) -> Path:
        """Write the current scene as a portable JSON document."""
        scene = self.machine.scene
        return scene.to_file(Path(directory) / scene.export_filename())

    def import_scene(self, path: str | Path) -> Scene:
        """Store an exported scene under a new identity and open it."""
        scene = Scene.from_file(path, new_identity=True)
        self.store.save(scene)
        logger.info(f"Imported scene '{scene.name}' as {scene.id}")
        self._open(scene)
        return scene

    def export_view(self, path: str | Path) -> Path:
        """Save an approximate PNG of the current view."""
        frame = self.render()
        return export_view_png(frame, path, self.config.render)
