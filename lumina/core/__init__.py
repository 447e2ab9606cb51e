"""
Core Module
===========

Configuration, exceptions, events and security helpers for the studio core.
"""

from .config import Config, GenerationConfig, TimelineConfig, TrackConfig, get_config
from .events import EventBus, StateChange
from .exceptions import (
    LuminaError,
    ConfigurationError,
    ValidationError,
    InvalidArgumentError,
    MissingPrerequisiteError,
    ResourceNotFoundError,
    UnknownSceneError,
    UnknownTrackError,
    ProviderError,
    TransportError,
    GenerationError,
    AlreadyRunningError,
    GenerationTimeoutError,
    JobCancelledError,
    ParseError,
)
from .security import sanitize_prompt, redact_api_key

__all__ = [
    # Configuration
    "Config",
    "GenerationConfig",
    "TimelineConfig",
    "TrackConfig",
    "get_config",
    # Events
    "EventBus",
    "StateChange",
    # Exceptions
    "LuminaError",
    "ConfigurationError",
    "ValidationError",
    "InvalidArgumentError",
    "MissingPrerequisiteError",
    "ResourceNotFoundError",
    "UnknownSceneError",
    "UnknownTrackError",
    "ProviderError",
    "TransportError",
    "GenerationError",
    "AlreadyRunningError",
    "GenerationTimeoutError",
    "JobCancelledError",
    "ParseError",
    # Security
    "sanitize_prompt",
    "redact_api_key",
]
