"""
Google Generative Language Provider
===================================

Storyboard images (Gemini image model), video clips (Veo) and script parsing
(Gemini with a JSON response schema) over the Generative Language REST API.

Image generation answers synchronously, so image handles come back already
resolved. Veo runs as a long-running operation that the job tracker polls.
"""

import base64
import json
import logging
import uuid
from typing import Optional, List, Dict, Any

import httpx

from .base import (
    Artifact,
    ArtifactKind,
    BaseHTTPProvider,
    GenerationClient,
    JobHandle,
    ParsedScene,
    PollResult,
    ScriptParser,
)
from .factory import register_provider, register_parser
from ..core.exceptions import InvalidArgumentError, ParseError, TransportError
from ..core.security import redact_api_key
from ..utils.media import is_data_url, parse_data_url

logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GoogleHTTPProvider(BaseHTTPProvider):
    """Request helpers shared by the Google client and parser."""

    provider_name = "google"

    def _get_default_base_url(self) -> str:
        return DEFAULT_BASE_URL

    def _params(self) -> Dict[str, str]:
        return {"key": self.api_key} if self.api_key else {}

    async def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request and map failures onto TransportError.

        Raises:
            TransportError: On connection errors or non-2xx responses
        """
        client = await self._get_client()
        try:
            response = await client.request(method, url, params=self._params(), json=json_body)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} {redact_api_key(url)} failed: {redact_api_key(str(e))}",
                provider=self.provider_name,
                recoverable=True,
            )

        if response.status_code >= 400:
            logger.warning(f"{method} {redact_api_key(url)} returned {response.status_code}")
            raise TransportError(
                f"API error: {response.status_code}",
                provider=self.provider_name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

        return response

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request("POST", url, json_body=payload)
        return self._decode(response)

    async def _get_json(self, url: str) -> Dict[str, Any]:
        response = await self._request("GET", url)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON in response: {e}",
                provider=self.provider_name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

    @staticmethod
    def _candidate_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return the content parts of the first candidate (empty if absent)."""
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        return (candidates[0].get("content") or {}).get("parts") or []


@register_provider("google")
class GoogleGenerationClient(GoogleHTTPProvider, GenerationClient):
    """
    Generation client for Gemini image models and Veo video models.

    Videos are seeded with the scene's storyboard image as first frame,
    matching how storyboards drive clip generation in the studio.
    """

    IMAGE_PROMPT_PREFIX = "Cinematic movie storyboard, wide angle, high quality, 4k."
    VIDEO_PROMPT_PREFIX = "Cinematic shot, photorealistic, 4k."

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        image_model: str = "gemini-2.5-flash-image",
        video_model: str = "veo-3.1-fast-generate-preview",
        aspect_ratio: str = "16:9",
        resolution: str = "720p",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            http_client=http_client,
        )
        self.image_model = image_model
        self.video_model = video_model
        self.aspect_ratio = aspect_ratio
        self.resolution = resolution

    async def submit_image_job(self, prompt: str) -> JobHandle:
        """Generate a storyboard image; the returned handle is already resolved."""
        endpoint = f"{self.base_url}/models/{self.image_model}:generateContent"
        payload = {
            "contents": [{
                "parts": [{"text": f"{self.IMAGE_PROMPT_PREFIX} {prompt}"}],
            }],
        }

        logger.info(f"Generating storyboard image with {self.image_model}")
        data = await self._post_json(endpoint, payload)

        handle = JobHandle(
            job_id=f"img-{uuid.uuid4().hex[:12]}",
            kind=ArtifactKind.IMAGE,
            provider=self.provider_name,
            metadata={"model": self.image_model},
        )

        for part in self._candidate_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                handle.resolved = PollResult(
                    done=True,
                    result=f"data:{mime_type};base64,{inline['data']}",
                    mime_type=mime_type,
                )
                break
        else:
            handle.resolved = PollResult(done=True, error="No image in response")

        return handle

    async def submit_video_job(self, prompt: str, reference_image: Artifact) -> JobHandle:
        """Start a Veo long-running operation seeded with the storyboard frame."""
        if reference_image.data is not None:
            image_bytes = reference_image.data
            mime_type = reference_image.mime_type
        elif is_data_url(reference_image.uri):
            mime_type, image_bytes = parse_data_url(reference_image.uri)
        else:
            raise InvalidArgumentError(
                "Reference image has no inline content",
                field="reference_image",
            )

        encoded = base64.b64encode(image_bytes).decode("utf-8")

        endpoint = f"{self.base_url}/models/{self.video_model}:predictLongRunning"
        payload = {
            "instances": [{
                "prompt": f"{self.VIDEO_PROMPT_PREFIX} {prompt}",
                "image": {
                    "bytesBase64Encoded": encoded,
                    "mimeType": mime_type,
                },
            }],
            "parameters": {
                "aspectRatio": self.aspect_ratio,
                "resolution": self.resolution,
            },
        }

        logger.info(f"Submitting video generation to {self.video_model}")
        data = await self._post_json(endpoint, payload)

        operation_name = data.get("name")
        if not operation_name:
            raise TransportError(
                "No operation name in response",
                provider=self.provider_name,
                response_body=json.dumps(data)[:500],
            )

        return JobHandle(
            job_id=operation_name,
            kind=ArtifactKind.VIDEO,
            provider=self.provider_name,
            metadata={"model": self.video_model},
        )

    async def poll_job(self, handle: JobHandle) -> PollResult:
        """Poll a Veo operation (resolved image handles return immediately)."""
        if handle.resolved is not None:
            return handle.resolved

        data = await self._get_json(f"{self.base_url}/{handle.job_id}")

        if not data.get("done"):
            logger.debug(f"Operation {handle.job_id} still running")
            return PollResult(done=False)

        if "error" in data:
            return PollResult(
                done=True,
                error=(data["error"] or {}).get("message", "Unknown error"),
            )

        return self._parse_video_response(data.get("response") or {})

    def _parse_video_response(self, response: Dict[str, Any]) -> PollResult:
        """Extract the first generated video URI from an operation response."""
        body = response.get("generateVideoResponse") or response

        samples = body.get("generatedSamples") or body.get("generatedVideos") or []
        for sample in samples:
            video = sample.get("video") or {}
            if video.get("uri"):
                return PollResult(
                    done=True,
                    result=video["uri"],
                    mime_type=video.get("mimeType", "video/mp4"),
                )
            if video.get("bytesBase64Encoded"):
                mime_type = video.get("mimeType", "video/mp4")
                return PollResult(
                    done=True,
                    result=f"data:{mime_type};base64,{video['bytesBase64Encoded']}",
                    mime_type=mime_type,
                )

        reasons = body.get("raiMediaFilteredReasons")
        if reasons:
            return PollResult(done=True, error=f"Video filtered: {'; '.join(reasons)}")

        return PollResult(done=True, error="No video in response")

    async def fetch_artifact_bytes(self, result_ref: str) -> bytes:
        """Decode an inline data URL or download the referenced file."""
        if is_data_url(result_ref):
            _, data = parse_data_url(result_ref)
            return data

        logger.info(f"Downloading artifact from {redact_api_key(result_ref)}")
        response = await self._request("GET", result_ref)
        return response.content


@register_parser("google")
class GeminiScriptParser(GoogleHTTPProvider, ScriptParser):
    """Splits a screenplay into scenes using Gemini structured output."""

    PROMPT = (
        "Parse this movie script into a JSON list of scenes. For each scene, "
        "extract the slugline, a detailed visual description suitable for an "
        "image generator (no dialogue, just visuals), and an estimated duration "
        "in seconds. \n\nSCRIPT:\n{script}"
    )

    RESPONSE_SCHEMA = {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": {
                "scene_number": {"type": "INTEGER"},
                "slugline": {"type": "STRING"},
                "visual_description": {"type": "STRING"},
                "estimated_duration": {"type": "NUMBER"},
            },
            "required": ["scene_number", "slugline", "visual_description", "estimated_duration"],
        },
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            http_client=http_client,
        )
        self.model = model

    async def parse(self, raw_text: str) -> List[ParsedScene]:
        endpoint = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "contents": [{
                "parts": [{"text": self.PROMPT.format(script=raw_text)}],
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": self.RESPONSE_SCHEMA,
            },
        }

        logger.info(f"Parsing script ({len(raw_text)} chars) with {self.model}")
        try:
            data = await self._post_json(endpoint, payload)
        except TransportError as e:
            raise ParseError(f"Script parsing request failed: {e.message}", details=e.details)

        text = "".join(part.get("text", "") for part in self._candidate_parts(data))
        try:
            records = json.loads(text or "[]")
        except json.JSONDecodeError as e:
            raise ParseError(f"Model returned invalid JSON: {e}")

        scenes = self.scenes_from_records(records)
        logger.info(f"Parsed {len(scenes)} scenes")
        return scenes
