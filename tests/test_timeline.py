"""Tests for the timeline model."""

import pytest

from lumina.core import events
from lumina.core.config import TimelineConfig, TrackConfig
from lumina.core.exceptions import InvalidArgumentError, UnknownTrackError
from lumina.timeline import ClipKind, Timeline, TimelineClip, Track, TrackKind


def make_clip(clip_id, duration, scene_id=None, start_time=99.0):
    return TimelineClip(
        clip_id=clip_id,
        track_id=0,
        start_time=start_time,
        duration=duration,
        name=clip_id,
        scene_id=scene_id,
    )


@pytest.fixture
def timeline(bus):
    return Timeline.from_config(TimelineConfig(), bus=bus)


@pytest.fixture
def laid_out(timeline):
    """Three scene clips on track 1: 0-4, 4-10, 10-15."""
    timeline.append_clip(1, make_clip("c1", 4, scene_id="s1"))
    timeline.append_clip(1, make_clip("c2", 6, scene_id="s2"))
    timeline.append_clip(1, make_clip("c3", 5, scene_id="s3"))
    return timeline


class TestTracks:
    def test_default_tracks(self, timeline):
        tracks = timeline.tracks()
        assert [t.track_id for t in tracks] == [1, 2, 3]
        assert [t.kind for t in tracks] == [TrackKind.VIDEO, TrackKind.VIDEO, TrackKind.AUDIO]
        assert all(t.clips == () for t in tracks)

    def test_duplicate_track_ids_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Timeline([
                Track(track_id=1, name="A", kind=TrackKind.VIDEO),
                Track(track_id=1, name="B", kind=TrackKind.AUDIO),
            ])

    def test_custom_tracks_from_config(self):
        config = TimelineConfig(
            tracks=[TrackConfig(id=7, name="Main", kind="video")],
            default_video_track_id=7,
        )
        timeline = Timeline.from_config(config)
        assert timeline.get_track(7).name == "Main"

    def test_unknown_track(self, timeline):
        with pytest.raises(UnknownTrackError):
            timeline.get_track(42)


class TestAppendClip:
    def test_first_clip_starts_at_zero(self, timeline):
        placed = timeline.append_clip(1, make_clip("c1", 10))
        assert placed.start_time == 0
        assert placed.track_id == 1

    def test_next_clip_starts_at_track_end(self, timeline):
        timeline.append_clip(1, make_clip("c1", 10))
        placed = timeline.append_clip(1, make_clip("c2", 3))
        assert placed.start_time == 10
        assert timeline.track_end(1) == 13

    def test_tracks_are_independent(self, timeline):
        timeline.append_clip(1, make_clip("c1", 10))
        placed = timeline.append_clip(2, make_clip("c2", 3))
        assert placed.start_time == 0

    def test_unknown_track_leaves_timeline_unchanged(self, timeline):
        with pytest.raises(UnknownTrackError):
            timeline.append_clip(9, make_clip("c1", 4))
        assert timeline.clip_count() == 0

    def test_invalid_duration(self, timeline):
        with pytest.raises(InvalidArgumentError):
            timeline.append_clip(1, make_clip("c1", 0))
        assert timeline.clip_count() == 0

    def test_duplicate_clip_id(self, timeline):
        timeline.append_clip(1, make_clip("c1", 4))
        with pytest.raises(InvalidArgumentError, match="already on the timeline"):
            timeline.append_clip(2, make_clip("c1", 4))

    def test_publishes_clip_added(self, timeline, bus):
        received = []
        bus.subscribe(received.append)
        timeline.append_clip(1, make_clip("c1", 4, scene_id="s1"))
        assert received[-1].topic == events.TIMELINE
        assert received[-1].action == "clip_added"
        assert received[-1].payload["clip_id"] == "c1"

    def test_clip_defaults(self):
        clip = make_clip("c1", 4)
        assert clip.kind is ClipKind.VIDEO
        assert clip.color == "#06b6d4"
        assert clip.end_time == 103.0


class TestPropagateDuration:
    def test_resize_keeps_start_times(self, laid_out):
        updated = laid_out.propagate_duration("s2", 2)

        assert [c.clip_id for c in updated] == ["c2"]
        clips = laid_out.get_track(1).clips
        assert [(c.start_time, c.duration) for c in clips] == [(0, 4), (4, 2), (10, 5)]

    def test_growing_clip_may_overlap_next(self, laid_out):
        laid_out.propagate_duration("s1", 8)
        c1, c2, _ = laid_out.get_track(1).clips
        assert c1.end_time == 8
        assert c2.start_time == 4

    def test_ripple_shifts_later_clips(self, laid_out):
        laid_out.propagate_duration("s1", 8, ripple=True)
        clips = laid_out.get_track(1).clips
        assert [(c.start_time, c.duration) for c in clips] == [(0, 8), (8, 6), (14, 5)]

    def test_ripple_shrink(self, laid_out):
        laid_out.propagate_duration("s2", 1, ripple=True)
        clips = laid_out.get_track(1).clips
        assert [(c.start_time, c.duration) for c in clips] == [(0, 4), (4, 1), (5, 5)]

    def test_all_linked_clips_resized(self, laid_out):
        laid_out.append_clip(2, make_clip("c4", 6, scene_id="s2"))
        updated = laid_out.propagate_duration("s2", 3)
        assert sorted(c.clip_id for c in updated) == ["c2", "c4"]
        assert all(c.duration == 3 for c in laid_out.clips_for_scene("s2"))

    def test_unlinked_scene_is_noop(self, laid_out, bus):
        received = []
        bus.subscribe(received.append)
        assert laid_out.propagate_duration("nothing", 3) == []
        assert received == []

    def test_unlinked_clips_untouched(self, timeline):
        timeline.append_clip(1, make_clip("free", 5))
        timeline.propagate_duration("s1", 3)
        assert timeline.get_clip("free").duration == 5

    @pytest.mark.parametrize("duration", [0, -1])
    def test_rejects_non_positive(self, laid_out, duration):
        with pytest.raises(InvalidArgumentError):
            laid_out.propagate_duration("s1", duration)
        assert laid_out.get_clip("c1").duration == 4

    def test_publishes_duration_event(self, laid_out, bus):
        received = []
        bus.subscribe(received.append)
        laid_out.propagate_duration("s3", 7)
        assert received[-1].action == "duration"
        assert received[-1].payload["clip_ids"] == ["c3"]
        assert received[-1].payload["ripple"] is False
