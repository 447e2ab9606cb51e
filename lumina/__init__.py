"""
Lumina Studio Core
==================

Turns a screenplay into scenes, generates storyboard images and video clips
for each scene through an asynchronous generation service, and lays scenes
out on a multi-track timeline.

Features:
- Script parsing into scenes via Gemini structured output
- Per-scene image and video jobs that run concurrently
- Job timeout and cancellation
- Scene durations kept in step with linked timeline clips
- Append placement on configurable tracks
- State-change notifications for reactive UIs

Quick Start:
    import asyncio
    from lumina import Studio, ArtifactKind

    async def main():
        async with Studio.from_config() as studio:
            scenes = await studio.request_parse(open("script.txt").read())

            for scene in scenes:
                studio.request_image_generation(scene.scene_id)
            await studio.wait_for_jobs()

            for scene in scenes:
                studio.add_scene_to_timeline(scene.scene_id)

            studio.edit_scene_duration(scenes[0].scene_id, 8)

    asyncio.run(main())
"""

__version__ = "0.1.0"

from .api import (
    Artifact,
    ArtifactKind,
    GenerationClient,
    GenerationRequest,
    JobHandle,
    ParsedScene,
    PollResult,
    ScriptParser,
    get_provider,
    get_parser,
    list_providers,
)
from .context import (
    Scene,
    SceneStore,
    GenerationJob,
    JobState,
    JobStatus,
    JobTracker,
)
from .core.config import Config, get_config
from .core.events import EventBus, StateChange
from .core.exceptions import (
    LuminaError,
    ConfigurationError,
    InvalidArgumentError,
    MissingPrerequisiteError,
    UnknownSceneError,
    UnknownTrackError,
    TransportError,
    GenerationError,
    AlreadyRunningError,
    GenerationTimeoutError,
    JobCancelledError,
    ParseError,
)
from .timeline import ClipKind, Timeline, TimelineClip, Track, TrackKind
from .workflow import Studio

__all__ = [
    # Version
    "__version__",

    # Orchestration
    "Studio",

    # Stores
    "Scene",
    "SceneStore",
    "GenerationJob",
    "JobState",
    "JobStatus",
    "JobTracker",
    "Timeline",
    "TimelineClip",
    "Track",
    "TrackKind",
    "ClipKind",

    # Service boundary
    "Artifact",
    "ArtifactKind",
    "GenerationClient",
    "GenerationRequest",
    "JobHandle",
    "ParsedScene",
    "PollResult",
    "ScriptParser",
    "get_provider",
    "get_parser",
    "list_providers",

    # Core
    "Config",
    "get_config",
    "EventBus",
    "StateChange",

    # Exceptions
    "LuminaError",
    "ConfigurationError",
    "InvalidArgumentError",
    "MissingPrerequisiteError",
    "UnknownSceneError",
    "UnknownTrackError",
    "TransportError",
    "GenerationError",
    "AlreadyRunningError",
    "GenerationTimeoutError",
    "JobCancelledError",
    "ParseError",
]
