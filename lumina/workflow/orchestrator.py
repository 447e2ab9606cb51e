"""
Studio Orchestrator
===================

Command and query surface consumed by a presentation layer. Ties together
the scene store, the job tracker, the timeline and the remote services.
"""

import logging
from typing import Optional, List, Callable

from ..api.base import (
    ArtifactKind,
    GenerationClient,
    GenerationRequest,
    ScriptParser,
)
from ..api.factory import get_provider, get_parser
from ..context.job_tracker import GenerationJob, JobStatus, JobTracker
from ..context.scene_store import Scene, SceneStore
from ..core.config import Config, get_config
from ..core.events import EventBus, Listener
from ..core.exceptions import InvalidArgumentError, MissingPrerequisiteError
from ..core.security import sanitize_prompt
from ..timeline.model import ClipKind, Timeline, TimelineClip, Track, new_clip_id

logger = logging.getLogger(__name__)


class Studio:
    """
    Main entry point of the studio core.

    Handles:
    - Script parsing into scenes
    - Storyboard image and video generation per scene
    - Keeping linked timeline clips in step with scene durations
    - Appending scenes to the timeline

    Validation failures are raised from the command that caused them and
    leave all state unchanged. Generation failures show up on the job status.
    """

    def __init__(
        self,
        client: GenerationClient,
        parser: ScriptParser,
        config: Optional[Config] = None,
        bus: Optional[EventBus] = None,
    ):
        """
        Initialize the studio.

        Args:
            client: Remote image/video generation service
            parser: Script-parsing collaborator
            config: Configuration (defaults to the global config)
            bus: Event bus shared by all stores (created if omitted)
        """
        self.config = config or get_config()
        self.bus = bus if bus is not None else EventBus()

        self._client = client
        self._parser = parser

        self.scene_store = SceneStore(bus=self.bus)
        self.timeline = Timeline.from_config(self.config.timeline, bus=self.bus)
        self.job_tracker = JobTracker(
            client=client,
            scene_store=self.scene_store,
            bus=self.bus,
            poll_interval=self.config.generation.poll_interval,
            timeout=self.config.generation.job_timeout,
        )

        logger.info(
            f"Studio initialized with {client.provider_name} client, "
            f"{len(self.timeline.tracks())} tracks"
        )

    @classmethod
    def from_config(cls, config: Optional[Config] = None, **kwargs) -> "Studio":
        """Build a studio whose client and parser come from the provider registry."""
        config = config or get_config()
        generation = config.generation
        client_kwargs = {
            "api_key": generation.api_key,
            "base_url": generation.base_url,
            "image_model": generation.image_model,
            "video_model": generation.video_model,
            "aspect_ratio": generation.aspect_ratio,
            "resolution": generation.resolution,
            "timeout": generation.request_timeout,
        }
        # Per-provider overrides from the raw ``providers`` section
        client_kwargs.update(config.get_provider_config(generation.provider))

        client = get_provider(generation.provider, **client_kwargs)
        parser = get_parser(
            generation.provider,
            api_key=generation.api_key,
            base_url=generation.base_url,
            model=generation.parse_model,
            timeout=generation.request_timeout,
        )
        return cls(client=client, parser=parser, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def request_parse(self, raw_text: str) -> List[Scene]:
        """
        Parse a script and replace the scene list with the result.

        Jobs belonging to scenes that no longer exist are discarded.

        Raises:
            InvalidArgumentError: If the script is blank
            ParseError: If parsing fails (the previous scenes are kept)
        """
        if not raw_text or not raw_text.strip():
            raise InvalidArgumentError("Script is empty", field="raw_text")

        parsed = await self._parser.parse(raw_text)
        scenes = [Scene.from_parsed(item) for item in parsed]

        removed = self.scene_store.replace_scenes(scenes)
        if removed:
            self.job_tracker.discard(removed)

        logger.info(f"Script parsed into {len(scenes)} scenes")
        return list(self.scene_store.scenes())

    def request_image_generation(self, scene_id: str) -> GenerationJob:
        """
        Start generating the storyboard image of a scene.

        Raises:
            UnknownSceneError: If the scene does not exist
            AlreadyRunningError: If an image job for the scene is running
        """
        scene = self.scene_store.get(scene_id)
        request = GenerationRequest(
            kind=ArtifactKind.IMAGE,
            prompt=sanitize_prompt(scene.description),
        )
        return self.job_tracker.submit(scene_id, ArtifactKind.IMAGE, request)

    def request_video_generation(self, scene_id: str) -> GenerationJob:
        """
        Start generating the video clip of a scene from its storyboard image.

        Raises:
            UnknownSceneError: If the scene does not exist
            MissingPrerequisiteError: If the scene has no storyboard image yet
            AlreadyRunningError: If a video job for the scene is running
        """
        scene = self.scene_store.get(scene_id)
        if scene.storyboard is None:
            raise MissingPrerequisiteError(
                "Generate a storyboard image first to use as a reference",
                scene_id=scene_id,
                prerequisite="storyboard",
            )

        request = GenerationRequest(
            kind=ArtifactKind.VIDEO,
            prompt=sanitize_prompt(scene.description),
            reference_image=scene.storyboard,
        )
        return self.job_tracker.submit(scene_id, ArtifactKind.VIDEO, request)

    def cancel_generation(self, scene_id: str, kind: ArtifactKind) -> bool:
        """Cancel a running job. Returns False if nothing was running."""
        return self.job_tracker.cancel(scene_id, kind)

    def edit_scene_duration(self, scene_id: str, value: float) -> Scene:
        """
        Change a scene's duration and resize every clip linked to it.

        Both steps run without yielding to the event loop, and their events
        are delivered only after both are applied, so neither tasks nor
        listeners can observe the scene and its clips disagreeing.

        Raises:
            InvalidArgumentError: If value <= 0 (nothing is changed)
            UnknownSceneError: If the scene does not exist
        """
        with self.bus.batch():
            scene = self.scene_store.set_duration(scene_id, value)
            self.timeline.propagate_duration(
                scene_id,
                scene.duration,
                ripple=self.config.timeline.ripple_edits,
            )
        return scene

    def add_scene_to_timeline(self, scene_id: str, track_id: Optional[int] = None) -> TimelineClip:
        """
        Append a video clip for a scene to a track.

        Args:
            scene_id: Scene to place
            track_id: Target track (defaults to the configured video track)

        Raises:
            UnknownSceneError: If the scene does not exist
            UnknownTrackError: If the track does not exist
        """
        scene = self.scene_store.get(scene_id)
        target = track_id if track_id is not None else self.config.timeline.default_video_track_id

        clip = TimelineClip(
            clip_id=new_clip_id(),
            track_id=target,
            start_time=0.0,
            duration=scene.duration,
            name=f"Scene {scene.number}",
            kind=ClipKind.VIDEO,
            color=self.config.timeline.default_clip_color,
            scene_id=scene.scene_id,
        )
        return self.timeline.append_clip(target, clip)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def scenes(self) -> List[Scene]:
        return list(self.scene_store.scenes())

    def tracks(self) -> List[Track]:
        return list(self.timeline.tracks())

    def job_status(self, scene_id: str, kind: ArtifactKind) -> JobStatus:
        return self.job_tracker.status(scene_id, kind)

    def jobs(self) -> List[GenerationJob]:
        return self.job_tracker.jobs()

    # -------------------------------------------------------------------------
    # Notifications and lifecycle
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive a StateChange for every scene, timeline or job change."""
        return self.bus.subscribe(listener)

    async def wait_for_jobs(self) -> None:
        """Wait until no generation job is running."""
        await self.job_tracker.join()

    async def aclose(self) -> None:
        """Cancel running jobs and close service connections."""
        await self.job_tracker.aclose()
        await self._client.aclose()
        await self._parser.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
