"""
Custom Exceptions
=================

Unified exception hierarchy for the studio core.

Validation errors are raised synchronously from commands. Transport, timeout
and cancellation errors end a generation job and are recorded on the job
instead of being raised to unrelated callers.
"""

from typing import Optional, Dict, Any


class LuminaError(Exception):
    """Base exception for all Lumina errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(LuminaError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)


class ValidationError(LuminaError):
    """Input validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        if constraint:
            details["constraint"] = constraint
        super().__init__(message, details=details, **kwargs)


class InvalidArgumentError(ValidationError):
    """A command argument is out of range (e.g. a non-positive duration)."""


class MissingPrerequisiteError(ValidationError):
    """A command requires state that does not exist yet."""

    def __init__(
        self,
        message: str,
        scene_id: Optional[str] = None,
        prerequisite: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if scene_id:
            details["scene_id"] = scene_id
        if prerequisite:
            details["prerequisite"] = prerequisite
        super().__init__(message, details=details, **kwargs)


class ResourceNotFoundError(LuminaError):
    """Resource not found errors."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = resource_id
        super().__init__(message, recoverable=False, details=details, **kwargs)


class UnknownSceneError(ResourceNotFoundError):
    """No scene with the given id."""

    def __init__(self, scene_id: str, **kwargs):
        super().__init__(
            f"Unknown scene: {scene_id}",
            resource_type="scene",
            resource_id=scene_id,
            **kwargs,
        )


class UnknownTrackError(ResourceNotFoundError):
    """No track with the given id."""

    def __init__(self, track_id: Any, **kwargs):
        super().__init__(
            f"Unknown track: {track_id}",
            resource_type="track",
            resource_id=track_id,
            **kwargs,
        )


class ProviderError(LuminaError):
    """Provider/API-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        if status_code:
            details["status_code"] = status_code
        if response_body:
            # Truncate large responses
            details["response_body"] = response_body[:500]

        # Rate limits and server errors are worth a retry
        recoverable = kwargs.pop(
            "recoverable",
            status_code in (429, 500, 502, 503, 504) if status_code else False,
        )
        super().__init__(message, recoverable=recoverable, details=details, **kwargs)


class TransportError(ProviderError):
    """A call to the remote generation service failed."""


class GenerationError(LuminaError):
    """Generation job errors."""

    def __init__(
        self,
        message: str,
        scene_id: Optional[str] = None,
        kind: Optional[str] = None,
        job_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if scene_id:
            details["scene_id"] = scene_id
        if kind:
            details["kind"] = kind
        if job_id:
            details["job_id"] = job_id
        super().__init__(message, details=details, **kwargs)


class AlreadyRunningError(GenerationError):
    """A job for the same (scene, kind) pair is still running."""


class GenerationTimeoutError(GenerationError):
    """A job exceeded its allotted time."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, recoverable=True, details=details, **kwargs)


class JobCancelledError(GenerationError):
    """A running job was cancelled before it finished."""

    def __init__(self, message: str = "Generation cancelled", **kwargs):
        super().__init__(message, recoverable=True, **kwargs)


class ParseError(LuminaError):
    """The script could not be parsed into scenes."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if index is not None:
            details["index"] = index
        super().__init__(message, details=details, **kwargs)
