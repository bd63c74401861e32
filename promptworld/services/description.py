"""Image description service.

Sends object images to a generative model and writes the returned text into
each plane's description. A batch never stops on one bad item: every
failure becomes that object's description text, and the counts are reported
once at the end.
"""

from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

import requests

from ..core.errors import (
    DescriptionServiceError,
    DescriptionUnavailable,
    InvalidImageError,
    StoreError,
)

if TYPE_CHECKING:
    from ..core.config import DescriptionParams
    from ..scene.scene import ImagePayload, Scene

logger = logging.getLogger(__name__)

_BLOCK_REASONS = {
    "SAFETY": "due to safety concerns by the API",
    "OTHER": "for an unspecified reason by the API",
}

_NO_TEXT_MESSAGE = (
    "Warning: No description text returned by API. "
    "The response might be empty or in an unexpected format."
)

_SCENE_INSTRUCTION = """\
You are an AI assistant helping to understand and interact with a 3D model composed of several images.
The user will provide a query about this model.
The model's current state is described by the following JSON data, where each object represents an image plane in the 3D scene:
{world_model}

Based on this data and the user's query, provide a concise and helpful response.
If the query asks to simulate a change, describe the likely outcome or what would need to happen. Do not actually modify the JSON data.
If a query is ambiguous or requires information not present in the descriptions or spatial data, state that clearly.
Focus on interpreting the spatial relationships and descriptive content of the images."""


class DescriptionStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DescriptionResult:
    """Text returned for one image, or the reason there is none."""

    text: str
    status: DescriptionStatus = DescriptionStatus.OK

    @property
    def ok(self) -> bool:
        return self.status is DescriptionStatus.OK


@dataclass
class DescriptionReport:
    """Outcome of a description batch."""

    results: dict[str, DescriptionResult] = field(default_factory=dict)
    saved: bool = True

    def _count(self, status: DescriptionStatus) -> int:
        return sum(1 for r in self.results.values() if r.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(DescriptionStatus.OK)

    @property
    def warnings(self) -> int:
        return self._count(DescriptionStatus.WARNING)

    @property
    def failed(self) -> int:
        return self._count(DescriptionStatus.ERROR)

    @property
    def total(self) -> int:
        return len(self.results)


def build_world_model(scene: Scene) -> list[dict[str, Any]]:
    """Per-object context sent along with a question about the scene."""
    return [
        {
            "id": plane.short_id,
            "description": plane.description or "No description available.",
            "position": plane.position.model_dump(),
            "rotation": plane.rotation.model_dump(),
            "scale": plane.scale,
        }
        for plane in scene.objects
    ]


class DescriptionService(ABC):
    """Abstract description provider."""

    @abstractmethod
    def describe_image(self, payload: ImagePayload) -> str:
        """Return a description of one image.

        Raises:
            DescriptionUnavailable: The service answered without usable text
            DescriptionServiceError: The request failed
        """

    @abstractmethod
    def ask(self, scene: Scene, question: str) -> str:
        """Answer a free-form question about the scene's arrangement."""

    def describe(
        self,
        images: Mapping[str, ImagePayload],
        progress: Callable[[int, int, str], None] | None = None,
    ) -> dict[str, DescriptionResult]:
        """Describe each image; failures become per-item results.

        Args:
            images: Object id to payload
            progress: Called with (index, total, object_id) before each item

        Returns:
            Object id to result, in input order
        """
        results: dict[str, DescriptionResult] = {}
        total = len(images)
        for i, (object_id, payload) in enumerate(images.items()):
            if progress is not None:
                progress(i, total, object_id)
            try:
                payload.validate_image()
                text = self.describe_image(payload)
                results[object_id] = DescriptionResult(text)
            except InvalidImageError as e:
                logger.warning(f"Image {object_id} rejected: {e}")
                results[object_id] = DescriptionResult(str(e), DescriptionStatus.ERROR)
            except DescriptionUnavailable as e:
                logger.warning(f"No description for {object_id}: {e}")
                results[object_id] = DescriptionResult(str(e), DescriptionStatus.WARNING)
            except DescriptionServiceError as e:
                logger.warning(f"Description failed for {object_id}: {e}")
                results[object_id] = DescriptionResult(str(e), DescriptionStatus.ERROR)
        return results


class GeminiDescriptionService(DescriptionService):
    """Description service backed by the Gemini generateContent REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-1.5-flash-latest",
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models",
        image_prompt: str = "Describe this image in detail.",
        timeout_s: float = 60.0,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Raises:
            DescriptionServiceError: If no API key is given
        """
        if not api_key:
            raise DescriptionServiceError("Gemini API Key is not set. Please set it in Settings.")
        self._api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.image_prompt = image_prompt
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    @classmethod
    def from_params(
        cls,
        params: DescriptionParams,
        session: requests.Session | None = None,
    ) -> GeminiDescriptionService:
        return cls(
            params.resolve_api_key(),
            model=params.model,
            endpoint=params.endpoint,
            image_prompt=params.image_prompt,
            timeout_s=params.timeout_s,
            session=session,
        )

    @property
    def url(self) -> str:
        return f"{self.endpoint}/{self.model}:generateContent"

    def describe_image(self, payload: ImagePayload) -> str:
        body = {
            "contents": [{
                "parts": [
                    {"text": self.image_prompt},
                    {"inline_data": {
                        "mime_type": payload.mime_type,
                        "data": base64.b64encode(payload.data).decode("ascii"),
                    }},
                ],
            }],
        }
        data = self._post(body)

        reason = _block_reason(data)
        if reason is not None:
            friendly = _BLOCK_REASONS.get(reason, reason)
            raise DescriptionUnavailable(f"Warning: Processing blocked {friendly}.")

        text = _first_text(data)
        if text is None:
            raise DescriptionUnavailable(_NO_TEXT_MESSAGE)
        return text.strip()

    def ask(self, scene: Scene, question: str) -> str:
        """Answer ``question`` using the scene's descriptions and poses.

        Raises:
            DescriptionServiceError: On an empty question, an empty scene,
                a blocked prompt, or a failed request
        """
        question = question.strip()
        if not question:
            raise DescriptionServiceError("Please enter a prompt.")
        if not scene.objects:
            raise DescriptionServiceError("There are no images in the current project to ask about.")

        world_model = json.dumps(build_world_model(scene), indent=2)
        prompt = _SCENE_INSTRUCTION.format(world_model=world_model)
        body = {"contents": [{"parts": [{"text": f'{prompt}\n\nUser Query: "{question}"'}]}]}
        data = self._post(body)

        reason = _block_reason(data)
        if reason is not None:
            raise DescriptionUnavailable(f"Warning: Prompt was blocked by the API. Reason: {reason}.")

        text = _first_text(data)
        if text is None:
            raise DescriptionUnavailable("Warning: AI returned an empty or unexpected response.")
        return text

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._session.post(
                self.url,
                params={"key": self._api_key},
                json=body,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.debug(f"Request to {self.url} failed: {e}")
            raise DescriptionServiceError("Error: Network issue. Could not connect to API.") from e

        if not response.ok:
            raise DescriptionServiceError(_http_error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise DescriptionUnavailable(_NO_TEXT_MESSAGE) from e
        if not isinstance(data, dict):
            raise DescriptionUnavailable(_NO_TEXT_MESSAGE)
        return data


def _http_error_message(response: requests.Response) -> str:
    status = response.status_code
    message = response.reason
    try:
        error_data = response.json()
    except ValueError:
        error_data = None
    if isinstance(error_data, dict) and isinstance(error_data.get("error"), dict):
        message = error_data["error"].get("message", message)
    logger.debug(f"API error {status}: {error_data}")

    if status == 400:
        if "api key not valid" in str(message).lower():
            return "Error: Invalid API Key. Please check your API key in Settings."
        return f"Error: API Bad Request ({status}) - {message}. Please check image data or prompt."
    if status == 429:
        return "Error: API rate limit exceeded or quota finished. Please try again later."
    if status >= 500:
        return f"Error: Gemini API server error ({status}). Please try again later."
    return f"Error: API request failed ({status}) - {message}."


def _block_reason(data: dict[str, Any]) -> str | None:
    feedback = data.get("promptFeedback")
    if not isinstance(feedback, dict):
        return None
    reason = feedback.get("blockReason")
    return str(reason) if reason else None


def _first_text(data: dict[str, Any]) -> str | None:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


def describe_scene_objects(
    scene: Scene,
    object_ids: Sequence[str],
    service: DescriptionService,
    persist: Callable[[Scene], object],
    progress: Callable[[int, int, str], None] | None = None,
) -> DescriptionReport:
    """Describe the selected planes and store the results.

    Whatever text comes back, including error text, is written verbatim into
    the plane's description. The scene is persisted afterward even if every
    item failed.

    Args:
        scene: Scene owning the planes
        object_ids: Planes to describe; unknown ids are skipped
        service: Description provider
        persist: Scene save operation
        progress: Forwarded to ``DescriptionService.describe``

    Returns:
        Report with per-object results and counts
    """
    images = {}
    for object_id in object_ids:
        plane = scene.get_object(object_id)
        if plane is None:
            logger.warning(f"Skipping unknown object {object_id}")
            continue
        images[object_id] = plane.image

    report = DescriptionReport(results=service.describe(images, progress))
    for object_id, result in report.results.items():
        scene.get_object(object_id).description = result.text

    try:
        # Commit helpers report failure by returning False instead of raising
        report.saved = persist(scene) is not False
    except StoreError as e:
        logger.warning(f"Descriptions kept but not saved: {e}")
        report.saved = False

    logger.info(
        f"Described {report.total} image(s): {report.succeeded} ok, "
        f"{report.warnings} warning(s), {report.failed} error(s)"
    )
    return report
