"""
Timeline
========

Multi-track timeline with append placement and scene-linked clip durations.
"""

from .model import ClipKind, Timeline, TimelineClip, Track, TrackKind, new_clip_id

__all__ = [
    "ClipKind",
    "Timeline",
    "TimelineClip",
    "Track",
    "TrackKind",
    "new_clip_id",
]
