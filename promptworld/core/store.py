"""Durable storage for scenes.

Scenes are stored as one JSON document per scene, keyed by scene id, for
human readability and easy backup. ``save`` is an upsert that always writes
the whole scene.

``BackgroundSaver`` lets the interactive layer fire off saves without waiting
for them: writes run one at a time on a worker thread, and a queued save that
has not started yet is replaced by a newer one for the same scene.
"""

from __future__ import annotations

import contextlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from types import TracebackType
from typing import Callable

from pydantic import ValidationError

from ..scene.scene import Scene, SceneSummary
from .errors import SceneNotFoundError, StoreError

logger = logging.getLogger(__name__)


class SceneGateway(ABC):
    """Abstract durable store for scenes."""

    @abstractmethod
    def save(self, scene: Scene) -> object:
        """Create or replace the stored copy of ``scene``.

        Raises:
            StoreError: If the write is rejected
        """

    @abstractmethod
    def load(self, scene_id: str) -> Scene:
        """Load one scene by id.

        Raises:
            SceneNotFoundError: If no such scene exists
            StoreError: If the stored document cannot be read
        """

    @abstractmethod
    def load_all(self) -> list[SceneSummary]:
        """Summaries of every stored scene, oldest first."""

    @abstractmethod
    def delete(self, scene_id: str) -> bool:
        """Delete a scene. Returns False if it did not exist."""


class SceneStore(SceneGateway):
    """Stores scenes as JSON files in a directory."""

    def __init__(self, store_dir: Path | str | None = None):
        """Initialize the store.

        Args:
            store_dir: Directory to keep scenes in.
                       Defaults to ./promptworld_scenes/
        """
        if store_dir is None:
            store_dir = Path.cwd() / "promptworld_scenes"
        self.store_dir = Path(store_dir)

    def _ensure_dir(self) -> None:
        self.store_dir.mkdir(parents=True, exist_ok=True)

    def scene_path(self, scene_id: str) -> Path:
        """Get the path for a scene document."""
        return self.store_dir / f"scene_{scene_id}.json"

    def save(self, scene: Scene) -> Path:
        """Save scene to disk.

        Returns:
            Path where the scene was saved
        """
        path = self.scene_path(scene.id)
        temp_path = path.with_suffix(".tmp")
        try:
            self._ensure_dir()
            # Write to a temp file first, then rename atomically
            with open(temp_path, "w") as f:
                json.dump(scene.export_document(), f, indent=2)
            temp_path.replace(path)
        except OSError as e:
            with contextlib.suppress(OSError):
                temp_path.unlink(missing_ok=True)
            raise StoreError(f"Could not save scene '{scene.name}': {e}") from e

        logger.debug(f"Scene saved: {path}")
        return path

    def load(self, scene_id: str) -> Scene:
        path = self.scene_path(scene_id)
        if not path.exists():
            raise SceneNotFoundError(scene_id)
        return self._read(path)

    def _read(self, path: Path) -> Scene:
        try:
            with open(path) as f:
                data = json.load(f)
            return Scene.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            raise StoreError(f"Could not read scene file {path}: {e}") from e

    def load_all(self) -> list[SceneSummary]:
        if not self.store_dir.exists():
            return []

        summaries = []
        for path in self.store_dir.glob("scene_*.json"):
            try:
                summaries.append(self._read(path).summary())
            except StoreError as e:
                logger.warning(f"Skipping unreadable scene: {e}")

        summaries.sort(key=lambda s: s.created_at)
        return summaries

    def delete(self, scene_id: str) -> bool:
        path = self.scene_path(scene_id)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted scene: {path}")
            return True
        return False


class BackgroundSaver:
    """Queue scene saves onto a single worker thread.

    ``submit`` snapshots the scene and returns immediately. Writes are
    serialized, so the last submitted snapshot of a scene is the one that
    ends up stored.
    """

    def __init__(
        self,
        gateway: SceneGateway,
        on_error: Callable[[Scene, StoreError], None] | None = None,
    ):
        self._gateway = gateway
        self._on_error = on_error
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="promptworld-save")
        self._lock = threading.Lock()
        self._pending: dict[str, Scene] = {}
        self._futures: list[Future[None]] = []

    def submit(self, scene: Scene) -> None:
        """Queue a save of the current state of ``scene``."""
        snapshot = scene.model_copy(deep=True)
        with self._lock:
            already_queued = scene.id in self._pending
            self._pending[scene.id] = snapshot
            if not already_queued:
                self._futures.append(self._executor.submit(self._drain, scene.id))
        if already_queued:
            logger.debug(f"Coalesced queued save for scene {scene.id}")

    def _drain(self, scene_id: str) -> None:
        with self._lock:
            snapshot = self._pending.pop(scene_id, None)
        if snapshot is None:
            return
        try:
            self._gateway.save(snapshot)
        except StoreError as e:
            logger.warning(f"Background save failed: {e}")
            if self._on_error is not None:
                self._on_error(snapshot, e)
        except Exception:
            logger.exception(f"Unexpected error saving scene {scene_id}")
            raise

    def flush(self, timeout: float | None = None) -> None:
        """Block until every queued save has finished."""
        with self._lock:
            futures = list(self._futures)
        wait(futures, timeout=timeout)
        with self._lock:
            self._futures = [f for f in self._futures if not f.done()]

    @property
    def pending(self) -> int:
        """Number of scenes with a save queued but not yet started."""
        with self._lock:
            return len(self._pending)

    def close(self) -> None:
        """Finish queued saves and stop the worker."""
        self.flush()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> BackgroundSaver:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
