"""
Timeline Model
==============

Ordered tracks of clips. Clips are always appended after the last clip of
their track; duration edits coming from a linked scene resize clips in place
without moving anything, unless ripple mode is requested.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Tuple

from ..core import events
from ..core.config import TimelineConfig, TrackConfig
from ..core.events import EventBus
from ..core.exceptions import InvalidArgumentError, UnknownTrackError
from ..context.scene_store import validate_duration

logger = logging.getLogger(__name__)


class TrackKind(Enum):
    """Kind of media a track carries."""

    VIDEO = "video"
    AUDIO = "audio"


class ClipKind(Enum):
    """Kind of timeline clip."""

    VIDEO = "video"
    AUDIO = "audio"
    EFFECT = "effect"
    TITLE = "title"


def new_clip_id() -> str:
    """Generate an opaque clip id."""
    return uuid.uuid4().hex[:9]


@dataclass(frozen=True)
class TimelineClip:
    """A placed, time-bounded segment on a track."""

    clip_id: str
    track_id: int
    start_time: float
    duration: float
    name: str
    kind: ClipKind = ClipKind.VIDEO
    color: str = "#06b6d4"

    # Non-owning link to the scene this clip was made from
    scene_id: Optional[str] = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "clip_id": self.clip_id,
            "track_id": self.track_id,
            "start_time": self.start_time,
            "duration": self.duration,
            "name": self.name,
            "kind": self.kind.value,
            "color": self.color,
            "scene_id": self.scene_id,
        }


@dataclass(frozen=True)
class Track:
    """An ordered lane of clips."""

    track_id: int
    name: str
    kind: TrackKind
    clips: Tuple[TimelineClip, ...] = ()

    @property
    def end_time(self) -> float:
        """Where the next appended clip would start."""
        if not self.clips:
            return 0.0
        return self.clips[-1].end_time

    @classmethod
    def from_config(cls, config: TrackConfig) -> "Track":
        return cls(track_id=config.id, name=config.name, kind=TrackKind(config.kind))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "track_id": self.track_id,
            "name": self.name,
            "kind": self.kind.value,
            "clips": [clip.to_dict() for clip in self.clips],
        }


class Timeline:
    """
    Fixed set of tracks, created once, holding clips in start-time order.

    Only ``append_clip`` and ``propagate_duration`` mutate the timeline.
    """

    def __init__(self, tracks: Iterable[Track], bus: Optional[EventBus] = None):
        self._bus = bus if bus is not None else EventBus()
        self._tracks: Dict[int, Track] = {}
        for track in tracks:
            if track.track_id in self._tracks:
                raise InvalidArgumentError(
                    f"Duplicate track id: {track.track_id}",
                    field="track_id",
                    value=track.track_id,
                )
            self._tracks[track.track_id] = track

    @classmethod
    def from_config(cls, config: TimelineConfig, bus: Optional[EventBus] = None) -> "Timeline":
        """Create the configured tracks, all empty."""
        return cls((Track.from_config(t) for t in config.tracks), bus=bus)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def append_clip(self, track_id: int, clip: TimelineClip) -> TimelineClip:
        """
        Place a clip right after the last clip of a track.

        The caller's ``start_time`` and ``track_id`` are ignored: the clip
        starts where the previous last clip ends (0 on an empty track).

        Returns:
            The clip as placed

        Raises:
            UnknownTrackError: If the track does not exist
            InvalidArgumentError: If the duration is not positive or the
                clip id is already on the timeline
        """
        track = self.get_track(track_id)
        validate_duration(clip.duration)
        if self.get_clip(clip.clip_id) is not None:
            raise InvalidArgumentError(
                f"Clip {clip.clip_id} is already on the timeline",
                field="clip_id",
                value=clip.clip_id,
            )

        placed = replace(clip, track_id=track_id, start_time=track.end_time)
        self._tracks[track_id] = replace(track, clips=track.clips + (placed,))

        logger.info(
            f"Placed clip '{placed.name}' on track {track_id} "
            f"at {placed.start_time:.2f}s for {placed.duration:.2f}s"
        )
        self._bus.publish(
            events.TIMELINE,
            "clip_added",
            track_id=track_id,
            clip_id=placed.clip_id,
            scene_id=placed.scene_id,
        )
        return placed

    def propagate_duration(
        self,
        scene_id: str,
        new_duration: float,
        ripple: bool = False,
    ) -> List[TimelineClip]:
        """
        Resize every clip linked to a scene.

        By default no start time changes, so the edit may leave a gap or an
        overlap with the following clip. With ``ripple=True`` every later
        clip on the same track shifts by the accumulated size change.

        Returns:
            The resized clips

        Raises:
            InvalidArgumentError: If new_duration is not positive
        """
        duration = validate_duration(new_duration)
        updated: List[TimelineClip] = []

        for track_id, track in list(self._tracks.items()):
            if not any(clip.scene_id == scene_id for clip in track.clips):
                continue

            offset = 0.0
            clips = []
            for clip in track.clips:
                start = max(0.0, clip.start_time + offset) if ripple else clip.start_time
                if clip.scene_id == scene_id:
                    if ripple:
                        offset += duration - clip.duration
                    clip = replace(clip, duration=duration, start_time=start)
                    updated.append(clip)
                elif start != clip.start_time:
                    clip = replace(clip, start_time=start)
                clips.append(clip)

            self._tracks[track_id] = replace(track, clips=tuple(clips))

        if updated:
            logger.debug(
                f"Propagated duration {duration} from scene {scene_id} to {len(updated)} clips"
                + (" (ripple)" if ripple else "")
            )
            self._bus.publish(
                events.TIMELINE,
                "duration",
                scene_id=scene_id,
                duration=duration,
                clip_ids=[clip.clip_id for clip in updated],
                ripple=ripple,
            )
        return updated

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_track(self, track_id: int) -> Track:
        """Get a track by id, raising UnknownTrackError if absent."""
        track = self._tracks.get(track_id)
        if track is None:
            raise UnknownTrackError(track_id)
        return track

    def tracks(self) -> Tuple[Track, ...]:
        return tuple(self._tracks.values())

    def track_end(self, track_id: int) -> float:
        return self.get_track(track_id).end_time

    def get_clip(self, clip_id: str) -> Optional[TimelineClip]:
        for track in self._tracks.values():
            for clip in track.clips:
                if clip.clip_id == clip_id:
                    return clip
        return None

    def clips_for_scene(self, scene_id: str) -> List[TimelineClip]:
        """All clips linked to a scene, in track then time order."""
        return [
            clip
            for track in self._tracks.values()
            for clip in track.clips
            if clip.scene_id == scene_id
        ]

    def clip_count(self) -> int:
        return sum(len(track.clips) for track in self._tracks.values())
