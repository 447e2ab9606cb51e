"""Tests for the generation job tracker."""

import asyncio

import pytest

from lumina.api.base import Artifact, ArtifactKind, GenerationRequest
from lumina.context.job_tracker import JobState, JobTracker
from lumina.core import events
from lumina.core.exceptions import AlreadyRunningError, TransportError


def image_request(prompt="Red light floods the cockpit"):
    return GenerationRequest(kind=ArtifactKind.IMAGE, prompt=prompt)


def video_request(prompt="Starlight"):
    reference = Artifact(kind=ArtifactKind.IMAGE, uri="fake://ref", mime_type="image/png", data=b"ref")
    return GenerationRequest(kind=ArtifactKind.VIDEO, prompt=prompt, reference_image=reference)


@pytest.fixture
def tracker(fake_client, scene_store, bus):
    """Tracker that polls without sleeping."""
    return JobTracker(fake_client, scene_store, bus=bus, poll_interval=0)


class TestSubmit:
    """Submitting and completing jobs."""

    def test_status_is_idle_before_submit(self, tracker):
        status = tracker.status("s1", ArtifactKind.IMAGE)
        assert status.status is JobState.IDLE
        assert status.message == ""
        assert tracker.get("s1", ArtifactKind.IMAGE) is None

    @pytest.mark.asyncio
    async def test_submit_returns_running_snapshot(self, tracker):
        job = tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        assert job.status is JobState.RUNNING
        assert job.progress_message == "Initializing..."
        assert job.attempt == 1
        assert tracker.is_running("s1", ArtifactKind.IMAGE)
        await tracker.join()

    @pytest.mark.asyncio
    async def test_image_success_attaches_artifact(self, tracker, scene_store, fake_client):
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        job = await tracker.wait("s1", ArtifactKind.IMAGE)

        assert job.status is JobState.SUCCEEDED
        assert job.progress_message == "Completed"
        assert job.result.uri == "fake://image-1"
        assert job.result.mime_type == "image/png"
        assert job.completed_at is not None

        storyboard = scene_store.get("s1").storyboard
        assert storyboard.uri == "fake://image-1"
        assert storyboard.data == b"content of fake://image-1"
        assert fake_client.submitted[0]["prompt"] == "Red light floods the cockpit"

    @pytest.mark.asyncio
    async def test_video_polls_until_done(self, tracker, scene_store, fake_client):
        fake_client.polls_until_done[ArtifactKind.VIDEO] = 3
        tracker.submit("s2", ArtifactKind.VIDEO, video_request())
        job = await tracker.wait("s2", ArtifactKind.VIDEO)

        assert job.status is JobState.SUCCEEDED
        assert job.polls == 3
        assert scene_store.get("s2").video.mime_type == "video/mp4"
        assert fake_client.submitted[0]["reference_image"].uri == "fake://ref"

    @pytest.mark.asyncio
    async def test_second_submit_while_running_is_rejected(self, tracker, fake_client):
        gate = fake_client.hold(ArtifactKind.IMAGE)
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())

        with pytest.raises(AlreadyRunningError) as exc_info:
            tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        assert exc_info.value.details["scene_id"] == "s1"
        assert len(fake_client.submitted) <= 1

        gate.set()
        await tracker.join()
        assert tracker.status("s1", ArtifactKind.IMAGE).status is JobState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_resubmit_after_terminal_starts_new_attempt(self, tracker):
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        job = tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        assert job.attempt == 2
        assert job.status is JobState.RUNNING
        await tracker.join()

    @pytest.mark.asyncio
    async def test_image_and_video_of_same_scene_are_independent(self, tracker):
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        tracker.submit("s1", ArtifactKind.VIDEO, video_request())
        assert tracker.running_count() == 2
        await tracker.join()
        assert tracker.running_count() == 0

    @pytest.mark.asyncio
    async def test_submit_publishes_job_events(self, tracker, bus):
        received = []
        bus.subscribe(lambda event: received.append(event) if event.topic == events.JOBS else None)

        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        actions = [event.action for event in received]
        assert actions[0] == "submitted"
        assert "progress" in actions
        assert actions[-1] == "succeeded"
        assert received[-1].payload == {
            "scene_id": "s1",
            "kind": "image",
            "status": "succeeded",
            "message": "Completed",
        }


class TestFailures:
    """Failures are recorded on the job and never reach the scene."""

    @pytest.mark.asyncio
    async def test_transport_error_fails_job(self, tracker, scene_store, fake_client):
        fake_client.poll_errors[ArtifactKind.IMAGE] = TransportError(
            "Connection reset", provider="fake", recoverable=True
        )
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        status = tracker.status("s1", ArtifactKind.IMAGE)
        assert status.status is JobState.FAILED
        assert status.message == "Connection reset"
        assert status.error["error"] == "TransportError"
        assert status.error["recoverable"] is True
        assert scene_store.get("s1").storyboard is None

    @pytest.mark.asyncio
    async def test_remote_error_fails_job(self, tracker, scene_store, fake_client):
        fake_client.remote_errors[ArtifactKind.VIDEO] = "Video filtered: unsafe content"
        tracker.submit("s2", ArtifactKind.VIDEO, video_request())
        await tracker.join()

        status = tracker.status("s2", ArtifactKind.VIDEO)
        assert status.status is JobState.FAILED
        assert status.error["error"] == "GenerationError"
        assert status.message == "Video filtered: unsafe content"
        assert scene_store.get("s2").video is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, tracker, fake_client):
        fake_client.poll_errors[ArtifactKind.IMAGE] = RuntimeError("boom")
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        status = tracker.status("s1", ArtifactKind.IMAGE)
        assert status.status is JobState.FAILED
        assert status.error["error"] == "TransportError"
        assert "RuntimeError: boom" in status.message

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_artifact(self, tracker, scene_store, fake_client):
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()
        first = scene_store.get("s1").storyboard

        fake_client.remote_errors[ArtifactKind.IMAGE] = "quota exceeded"
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        assert tracker.status("s1", ArtifactKind.IMAGE).status is JobState.FAILED
        assert scene_store.get("s1").storyboard == first

    @pytest.mark.asyncio
    async def test_timeout_fails_job(self, fake_client, scene_store, bus):
        tracker = JobTracker(fake_client, scene_store, bus=bus, poll_interval=0, timeout=0.05)
        fake_client.hold(ArtifactKind.VIDEO)

        tracker.submit("s2", ArtifactKind.VIDEO, video_request())
        job = await tracker.wait("s2", ArtifactKind.VIDEO)

        assert job.status is JobState.FAILED
        assert job.error["error"] == "GenerationTimeoutError"
        assert job.error["details"]["timeout_seconds"] == 0.05
        assert scene_store.get("s2").video is None

    @pytest.mark.asyncio
    async def test_failed_job_can_be_retried(self, tracker, scene_store, fake_client):
        fake_client.remote_errors[ArtifactKind.IMAGE] = "try again"
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        del fake_client.remote_errors[ArtifactKind.IMAGE]
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()

        status = tracker.status("s1", ArtifactKind.IMAGE)
        assert status.status is JobState.SUCCEEDED
        assert status.error is None
        assert scene_store.get("s1").storyboard is not None


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_marks_job_failed(self, tracker, scene_store, fake_client):
        gate = fake_client.hold(ArtifactKind.IMAGE)
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await asyncio.sleep(0)

        assert tracker.cancel("s1", ArtifactKind.IMAGE) is True
        status = tracker.status("s1", ArtifactKind.IMAGE)
        assert status.status is JobState.FAILED
        assert status.error["error"] == "JobCancelledError"
        assert status.message == "Generation cancelled"

        gate.set()
        await tracker.join()
        assert tracker.status("s1", ArtifactKind.IMAGE).status is JobState.FAILED
        assert scene_store.get("s1").storyboard is None

    @pytest.mark.asyncio
    async def test_cancel_without_running_job(self, tracker):
        assert tracker.cancel("s1", ArtifactKind.IMAGE) is False

        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        await tracker.join()
        assert tracker.cancel("s1", ArtifactKind.IMAGE) is False

    @pytest.mark.asyncio
    async def test_cancel_leaves_other_jobs_running(self, tracker, fake_client):
        gate = fake_client.hold(ArtifactKind.IMAGE)
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        tracker.submit("s2", ArtifactKind.IMAGE, image_request())
        await asyncio.sleep(0)

        tracker.cancel("s1", ArtifactKind.IMAGE)
        assert tracker.is_running("s2", ArtifactKind.IMAGE)

        gate.set()
        await tracker.join()
        assert tracker.status("s2", ArtifactKind.IMAGE).status is JobState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_discard_forgets_jobs(self, tracker, fake_client, bus):
        fake_client.hold(ArtifactKind.IMAGE)
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        tracker.submit("s2", ArtifactKind.IMAGE, image_request())
        await asyncio.sleep(0)

        received = []
        bus.subscribe(received.append)
        assert tracker.discard(["s1"]) == 1

        assert tracker.get("s1", ArtifactKind.IMAGE) is None
        assert tracker.status("s1", ArtifactKind.IMAGE).status is JobState.IDLE
        assert received[-1].action == "discarded"
        assert [job.scene_id for job in tracker.jobs()] == ["s2"]

        await tracker.aclose()
        assert tracker.status("s2", ArtifactKind.IMAGE).error["error"] == "JobCancelledError"

    @pytest.mark.asyncio
    async def test_aclose_cancels_everything(self, tracker, fake_client):
        fake_client.hold(ArtifactKind.IMAGE)
        fake_client.hold(ArtifactKind.VIDEO)
        tracker.submit("s1", ArtifactKind.IMAGE, image_request())
        tracker.submit("s2", ArtifactKind.VIDEO, video_request())

        await tracker.aclose()

        assert tracker.running_count() == 0
        assert all(job.status is JobState.FAILED for job in tracker.jobs())
