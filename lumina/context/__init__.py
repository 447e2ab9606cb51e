"""
Context Management
==================

Owned state of a studio session.

Components:
- SceneStore: Ordered scenes with their durations and generated artifacts
- JobTracker: Per-scene asynchronous generation jobs
"""

from .scene_store import Scene, SceneStore, new_scene_id, validate_duration
from .job_tracker import GenerationJob, JobState, JobStatus, JobTracker

__all__ = [
    "Scene",
    "SceneStore",
    "new_scene_id",
    "validate_duration",
    "GenerationJob",
    "JobState",
    "JobStatus",
    "JobTracker",
]
