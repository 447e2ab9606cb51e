"""
Configuration System
====================

Centralized, validated configuration management with typed dataclasses.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class GenerationConfig:
    """Remote generation and job polling settings."""

    provider: str = "google"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    image_model: str = "gemini-2.5-flash-image"
    video_model: str = "veo-3.1-fast-generate-preview"
    parse_model: str = "gemini-2.5-flash"

    # Seconds between polls of a running job (fixed, no backoff)
    poll_interval: float = 5.0
    # Seconds before a running job is failed; None polls until done
    job_timeout: Optional[float] = None
    # Per-request HTTP timeout
    request_timeout: float = 120.0

    aspect_ratio: str = "16:9"
    resolution: str = "720p"

    VALID_ASPECT_RATIOS = {"16:9", "9:16"}
    VALID_RESOLUTIONS = {"720p", "1080p"}

    def __post_init__(self):
        # Values interpolated from the environment arrive as strings
        try:
            self.poll_interval = float(self.poll_interval)
            self.request_timeout = float(self.request_timeout)
            if self.job_timeout in ("", None):
                self.job_timeout = None
            else:
                self.job_timeout = float(self.job_timeout)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric generation setting: {e}")
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.poll_interval < 0:
            raise ConfigurationError(
                f"poll_interval must be >= 0, got {self.poll_interval}",
                config_key="generation.poll_interval",
            )
        if self.job_timeout is not None and self.job_timeout <= 0:
            raise ConfigurationError(
                f"job_timeout must be positive, got {self.job_timeout}",
                config_key="generation.job_timeout",
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"request_timeout must be positive, got {self.request_timeout}",
                config_key="generation.request_timeout",
            )
        if self.aspect_ratio not in self.VALID_ASPECT_RATIOS:
            raise ConfigurationError(
                f"Invalid aspect ratio: {self.aspect_ratio}",
                config_key="generation.aspect_ratio",
            )
        if self.resolution not in self.VALID_RESOLUTIONS:
            raise ConfigurationError(
                f"Invalid resolution: {self.resolution}",
                config_key="generation.resolution",
            )

    @property
    def api_key(self) -> Optional[str]:
        """Resolve the API key from the configured environment variable."""
        return os.getenv(self.api_key_env)


@dataclass
class TrackConfig:
    """A timeline track created at startup."""

    id: int
    name: str
    kind: str = "video"

    VALID_KINDS = {"video", "audio"}

    def __post_init__(self):
        if self.kind not in self.VALID_KINDS:
            raise ConfigurationError(
                f"Invalid track kind: {self.kind}",
                config_key=f"timeline.tracks.{self.id}.kind",
            )


def _default_tracks() -> List[TrackConfig]:
    return [
        TrackConfig(id=1, name="Video 1", kind="video"),
        TrackConfig(id=2, name="Video 2", kind="video"),
        TrackConfig(id=3, name="Audio 1", kind="audio"),
    ]


@dataclass
class TimelineConfig:
    """Timeline layout settings."""

    tracks: List[TrackConfig] = field(default_factory=_default_tracks)
    default_video_track_id: int = 1
    default_clip_color: str = "#06b6d4"
    # Shift later clips when a linked clip's duration changes
    ripple_edits: bool = False

    def __post_init__(self):
        self.tracks = [
            t if isinstance(t, TrackConfig) else TrackConfig(**t)
            for t in self.tracks
        ]
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        ids = [t.id for t in self.tracks]
        if len(ids) != len(set(ids)):
            raise ConfigurationError(
                f"Duplicate track ids: {ids}",
                config_key="timeline.tracks",
            )
        default = next((t for t in self.tracks if t.id == self.default_video_track_id), None)
        if default is None:
            raise ConfigurationError(
                f"Default video track {self.default_video_track_id} is not configured",
                config_key="timeline.default_video_track_id",
            )
        if default.kind != "video":
            raise ConfigurationError(
                f"Default video track {default.id} is an {default.kind} track",
                config_key="timeline.default_video_track_id",
            )
        if not re.fullmatch(r"#[0-9a-fA-F]{6}", self.default_clip_color):
            raise ConfigurationError(
                f"Invalid clip color: {self.default_clip_color}",
                config_key="timeline.default_clip_color",
            )


# =============================================================================
# Main Configuration Class
# =============================================================================


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Provides a unified interface to all configuration settings with:
    - Type-safe access to configuration values
    - Validation on load
    - Environment variable interpolation
    - Sensible defaults for all values
    """

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)

    # Raw config for provider-specific extensions
    _raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to a YAML config file, searched before the defaults

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./defaults.yaml"),
            Path.home() / ".lumina" / "config.yaml",
        ]

        if path:
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            return cls(
                generation=GenerationConfig(**(data.get("generation") or {})),
                timeline=TimelineConfig(**(data.get("timeline") or {})),
                _raw=data,
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            # Handle ${VAR} and ${VAR:-default} patterns
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return re.sub(pattern, replace, data)
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "generation": asdict(self.generation),
            "timeline": asdict(self.timeline),
        }

    def get_provider_config(self, provider: str) -> Dict[str, Any]:
        """Get provider-specific settings from the raw ``providers`` section."""
        return (self._raw.get("providers") or {}).get(provider, {})


# =============================================================================
# Convenience Functions
# =============================================================================


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance (lazily loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = Config.load()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload on next access)."""
    global _global_config
    _global_config = None
