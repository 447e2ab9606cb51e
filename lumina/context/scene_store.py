"""
Scene Store
===========

Holds the ordered scenes parsed from a script. It is a pure data holder:
duration edits do not propagate anywhere by themselves (the orchestrator
pushes them onto the timeline).
"""

import math
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional, List, Dict, Any, Iterable, Tuple

from ..api.base import Artifact, ArtifactKind, ParsedScene
from ..core import events
from ..core.events import EventBus
from ..core.exceptions import InvalidArgumentError, UnknownSceneError

logger = logging.getLogger(__name__)


def new_scene_id() -> str:
    """Generate an opaque scene id."""
    return uuid.uuid4().hex[:9]


def validate_duration(value: Any, field: str = "duration") -> float:
    """
    Check that a duration is a finite positive number.

    Raises:
        InvalidArgumentError: If the value is not a positive number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(
            f"Duration must be a number, got {type(value).__name__}",
            field=field,
            value=value,
        )
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgumentError(
            f"Duration must be positive, got {value}",
            field=field,
            value=value,
            constraint="> 0",
        )
    return float(value)


@dataclass(frozen=True)
class Scene:
    """A single narrative unit of the script."""

    scene_id: str
    number: int
    slugline: str
    description: str
    duration: float

    storyboard: Optional[Artifact] = None
    video: Optional[Artifact] = None

    @classmethod
    def from_parsed(cls, parsed: ParsedScene, scene_id: Optional[str] = None) -> "Scene":
        return cls(
            scene_id=scene_id or new_scene_id(),
            number=parsed.number,
            slugline=parsed.slugline,
            description=parsed.description,
            duration=parsed.estimated_duration,
        )

    def artifact(self, kind: ArtifactKind) -> Optional[Artifact]:
        return self.storyboard if kind is ArtifactKind.IMAGE else self.video

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "scene_id": self.scene_id,
            "number": self.number,
            "slugline": self.slugline,
            "description": self.description,
            "duration": self.duration,
            "storyboard": self.storyboard.to_dict() if self.storyboard else None,
            "video": self.video.to_dict() if self.video else None,
        }


class SceneStore:
    """
    Ordered collection of scenes with narrow mutation methods.

    Scenes are immutable values; every mutation swaps in a new Scene so
    callers holding an older reference never observe a partial change.
    """

    def __init__(self, bus: Optional[EventBus] = None):
        self._bus = bus if bus is not None else EventBus()
        self._order: List[str] = []
        self._scenes: Dict[str, Scene] = {}

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def replace_scenes(self, scenes: Iterable[Scene]) -> Tuple[str, ...]:
        """
        Replace the full scene list in one step.

        Args:
            scenes: New scenes in script order

        Returns:
            Ids of scenes that were present before and are gone now

        Raises:
            InvalidArgumentError: On duplicate ids or a non-positive duration
                (the current list is left untouched)
        """
        new_scenes = list(scenes)

        seen = set()
        for scene in new_scenes:
            if scene.scene_id in seen:
                raise InvalidArgumentError(
                    f"Duplicate scene id: {scene.scene_id}",
                    field="scene_id",
                    value=scene.scene_id,
                )
            seen.add(scene.scene_id)
            validate_duration(scene.duration)

        removed = tuple(sid for sid in self._order if sid not in seen)

        self._order = [scene.scene_id for scene in new_scenes]
        self._scenes = {scene.scene_id: scene for scene in new_scenes}

        logger.info(f"Replaced scenes: {len(new_scenes)} now, {len(removed)} removed")
        self._bus.publish(
            events.SCENES,
            "replaced",
            scene_ids=list(self._order),
            removed=list(removed),
        )
        return removed

    def set_duration(self, scene_id: str, new_duration: float) -> Scene:
        """
        Update a scene's duration.

        Raises:
            InvalidArgumentError: If new_duration <= 0
            UnknownSceneError: If the scene does not exist
        """
        duration = validate_duration(new_duration)
        scene = self.get(scene_id)

        updated = replace(scene, duration=duration)
        self._scenes[scene_id] = updated

        logger.debug(f"Scene {scene_id} duration {scene.duration} -> {duration}")
        self._bus.publish(events.SCENES, "duration", scene_id=scene_id, duration=duration)
        return updated

    def attach_artifact(self, scene_id: str, kind: ArtifactKind, artifact: Artifact) -> Scene:
        """
        Set the storyboard image or video of a scene, overwriting any previous one.

        Raises:
            UnknownSceneError: If the scene does not exist
        """
        scene = self.get(scene_id)

        if kind is ArtifactKind.IMAGE:
            updated = replace(scene, storyboard=artifact)
        else:
            updated = replace(scene, video=artifact)
        self._scenes[scene_id] = updated

        logger.info(f"Attached {kind.value} to scene {scene_id} ({artifact.mime_type})")
        self._bus.publish(events.SCENES, "artifact", scene_id=scene_id, kind=kind.value)
        return updated

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, scene_id: str) -> Scene:
        """Get a scene by id, raising UnknownSceneError if absent."""
        scene = self._scenes.get(scene_id)
        if scene is None:
            raise UnknownSceneError(scene_id)
        return scene

    def find(self, scene_id: str) -> Optional[Scene]:
        return self._scenes.get(scene_id)

    def scenes(self) -> Tuple[Scene, ...]:
        """All scenes in script order."""
        return tuple(self._scenes[sid] for sid in self._order)

    def scene_ids(self) -> Tuple[str, ...]:
        return tuple(self._order)

    def total_duration(self) -> float:
        return sum(scene.duration for scene in self._scenes.values())

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, scene_id: object) -> bool:
        return scene_id in self._scenes
