"""
Generation Service Boundary
===========================

Abstract interfaces for the remote generation service and the script-parsing
model, the value types that cross that boundary, and a shared httpx base
for HTTP-backed providers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

import httpx

from ..core.exceptions import ParseError

logger = logging.getLogger(__name__)


class ArtifactKind(Enum):
    """Kind of artifact a generation job produces."""

    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class Artifact:
    """A generated still image or video clip attached to a scene."""

    kind: ArtifactKind
    uri: str
    mime_type: str
    data: Optional[bytes] = field(default=None, repr=False)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def size(self) -> int:
        return len(self.data) if self.data else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization (content bytes omitted)."""
        return {
            "kind": self.kind.value,
            "uri": self.uri if not self.uri.startswith("data:") else self.uri[:40] + "...",
            "mime_type": self.mime_type,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class PollResult:
    """Outcome of a single poll of a remote job."""

    done: bool
    result: Optional[str] = None
    mime_type: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None and self.result is not None


@dataclass
class JobHandle:
    """Reference to a job submitted to the remote service."""

    job_id: str
    kind: ArtifactKind
    provider: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    # Set when the remote call resolved synchronously (no polling needed)
    resolved: Optional[PollResult] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationRequest:
    """Request parameters for a single generation job."""

    kind: ArtifactKind
    prompt: str

    # Video only: the storyboard frame used as the first frame
    reference_image: Optional[Artifact] = None


@dataclass(frozen=True)
class ParsedScene:
    """One scene as returned by the script-parsing collaborator."""

    number: int
    slugline: str
    description: str
    estimated_duration: float


# =============================================================================
# Interfaces
# =============================================================================


class GenerationClient(ABC):
    """
    Abstract boundary to an asynchronous image/video generation service.

    Implementations must not block the event loop; every call is awaited by
    the job tracker from its own background task.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""

    @abstractmethod
    async def submit_image_job(self, prompt: str) -> JobHandle:
        """Start generating a still image from a prompt."""

    @abstractmethod
    async def submit_video_job(self, prompt: str, reference_image: Artifact) -> JobHandle:
        """Start generating a video clip seeded with a reference still."""

    @abstractmethod
    async def poll_job(self, handle: JobHandle) -> PollResult:
        """Check whether a submitted job has finished."""

    @abstractmethod
    async def fetch_artifact_bytes(self, result_ref: str) -> bytes:
        """Download the content behind a completed job's result reference."""

    async def aclose(self) -> None:
        """Release any held resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class ScriptParser(ABC):
    """Abstract boundary to the model that splits a screenplay into scenes."""

    @abstractmethod
    async def parse(self, raw_text: str) -> List[ParsedScene]:
        """
        Parse raw script text into ordered scenes.

        Raises:
            ParseError: On malformed input or upstream failure
        """

    async def aclose(self) -> None:
        """Release any held resources."""

    @staticmethod
    def scenes_from_records(records: Any) -> List[ParsedScene]:
        """
        Validate raw scene records (as decoded from a model's JSON output).

        Each record needs ``scene_number``, ``slugline``, ``visual_description``
        and a positive ``estimated_duration``.

        Raises:
            ParseError: If the payload is not a non-empty list of valid records
        """
        if not isinstance(records, list):
            raise ParseError("Expected a JSON array of scenes")
        if not records:
            raise ParseError("No scenes found in script")

        scenes = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise ParseError("Scene record is not an object", index=index)
            missing = [
                key for key in ("scene_number", "slugline", "visual_description", "estimated_duration")
                if key not in record
            ]
            if missing:
                raise ParseError(
                    f"Scene record missing fields: {', '.join(missing)}",
                    index=index,
                )
            try:
                number = int(record["scene_number"])
                duration = float(record["estimated_duration"])
            except (TypeError, ValueError) as e:
                raise ParseError(f"Invalid scene record: {e}", index=index)
            if not duration > 0 or duration == float("inf"):
                raise ParseError(
                    f"Scene duration must be positive, got {record['estimated_duration']}",
                    index=index,
                )
            scenes.append(ParsedScene(
                number=number,
                slugline=str(record["slugline"]).strip(),
                description=str(record["visual_description"]).strip(),
                estimated_duration=duration,
            ))

        return scenes


# =============================================================================
# Shared HTTP plumbing
# =============================================================================


class BaseHTTPProvider:
    """
    Owns a lazily created ``httpx.AsyncClient`` shared by a provider's calls.

    A pre-built client may be injected (tests use ``httpx.MockTransport``);
    injected clients are not closed by ``aclose``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or self._get_default_base_url()).rstrip("/")
        self.timeout = timeout

        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None

        self._validate_config()

    def _get_default_base_url(self) -> str:
        raise NotImplementedError

    def _validate_config(self) -> None:
        if not self.api_key:
            logger.warning(
                f"No API key configured for {type(self).__name__}; "
                "remote calls will likely be rejected."
            )

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self._get_headers(),
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
