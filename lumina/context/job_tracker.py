"""
Job Tracker
===========

Per-scene, per-kind state machine for asynchronous generation jobs.

    idle -> running -> succeeded | failed
    succeeded | failed -> running      (a retry starts from scratch)

Each running job is driven by its own asyncio task, so any number of scenes
can generate concurrently while the rest of the studio stays responsive.
At most one job per (scene, kind) pair runs at a time.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Tuple

from ..api.base import Artifact, ArtifactKind, GenerationClient, GenerationRequest, PollResult
from ..core import events
from ..core.events import EventBus
from ..core.exceptions import (
    LuminaError,
    AlreadyRunningError,
    GenerationError,
    GenerationTimeoutError,
    JobCancelledError,
    TransportError,
)
from .scene_store import SceneStore

logger = logging.getLogger(__name__)


JobKey = Tuple[str, ArtifactKind]

DEFAULT_MIME_TYPES = {
    ArtifactKind.IMAGE: "image/png",
    ArtifactKind.VIDEO: "video/mp4",
}


class JobState(Enum):
    """Lifecycle state of a generation job."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


@dataclass
class GenerationJob:
    """One generation request for one scene and one artifact kind."""

    scene_id: str
    kind: ArtifactKind
    status: JobState = JobState.IDLE
    progress_message: str = ""

    result: Optional[Artifact] = None
    error: Optional[Dict[str, Any]] = None

    # Remote handle id, once the service accepted the job
    job_id: Optional[str] = None
    attempt: int = 0
    polls: int = 0

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def key(self) -> JobKey:
        return (self.scene_id, self.kind)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "scene_id": self.scene_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "progress_message": self.progress_message,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "job_id": self.job_id,
            "attempt": self.attempt,
            "polls": self.polls,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class JobStatus:
    """Read-only status view handed to the presentation layer."""

    status: JobState = JobState.IDLE
    message: str = ""
    error: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @property
    def is_running(self) -> bool:
        return self.status is JobState.RUNNING


class JobTracker:
    """
    Drives generation jobs against a GenerationClient.

    Successful results are attached to the owning scene through the
    SceneStore. Failures (remote error, transport error, timeout,
    cancellation) are recorded on the job and never raised to callers;
    the scene's previous artifact is left untouched.
    """

    def __init__(
        self,
        client: GenerationClient,
        scene_store: SceneStore,
        bus: Optional[EventBus] = None,
        poll_interval: float = 5.0,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the tracker.

        Args:
            client: Remote generation service
            scene_store: Store that receives successful artifacts
            bus: Event bus for job status notifications
            poll_interval: Fixed seconds between polls of a running job
            timeout: Seconds after which a running job fails (None = no limit)
        """
        self._client = client
        self._scene_store = scene_store
        self._bus = bus if bus is not None else EventBus()
        self.poll_interval = poll_interval
        self.timeout = timeout

        self._jobs: Dict[JobKey, GenerationJob] = {}
        self._tasks: Dict[JobKey, asyncio.Task] = {}

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def submit(
        self,
        scene_id: str,
        kind: ArtifactKind,
        request: GenerationRequest,
    ) -> GenerationJob:
        """
        Start a job for (scene_id, kind) and return without waiting for it.

        Must be called from inside a running event loop.

        Returns:
            Snapshot of the job in the running state

        Raises:
            AlreadyRunningError: If a job for this pair is still running
        """
        key = (scene_id, kind)
        previous = self._jobs.get(key)
        if previous is not None and previous.status is JobState.RUNNING:
            raise AlreadyRunningError(
                f"A {kind.value} job is already running for scene {scene_id}",
                scene_id=scene_id,
                kind=kind.value,
                job_id=previous.job_id,
            )

        loop = asyncio.get_running_loop()

        job = GenerationJob(
            scene_id=scene_id,
            kind=kind,
            status=JobState.RUNNING,
            progress_message="Initializing...",
            attempt=(previous.attempt + 1) if previous else 1,
            started_at=datetime.now(),
        )
        self._jobs[key] = job

        task = loop.create_task(self._run(job, request), name=f"generate-{kind.value}-{scene_id}")
        self._tasks[key] = task
        task.add_done_callback(lambda t, key=key: self._forget_task(key, t))

        logger.info(f"Submitted {kind.value} job for scene {scene_id} (attempt {job.attempt})")
        self._publish(job, "submitted")
        return replace(job)

    def cancel(self, scene_id: str, kind: ArtifactKind) -> bool:
        """
        Cancel a running job. The job becomes failed with a JobCancelledError.

        Returns:
            True if a running job was cancelled
        """
        key = (scene_id, kind)
        job = self._jobs.get(key)
        if job is None or job.status is not JobState.RUNNING:
            return False

        self._fail(job, JobCancelledError(scene_id=scene_id, kind=kind.value, job_id=job.job_id))

        task = self._tasks.get(key)
        if task is not None and not task.done():
            task.cancel()
        return True

    def discard(self, scene_ids: Iterable[str]) -> int:
        """
        Cancel and forget every job belonging to the given scenes.

        Returns:
            Number of jobs removed
        """
        targets = set(scene_ids)
        removed = 0
        for key in [k for k in self._jobs if k[0] in targets]:
            task = self._tasks.pop(key, None)
            if task is not None and not task.done():
                task.cancel()
            job = self._jobs.pop(key)
            removed += 1
            self._bus.publish(
                events.JOBS,
                "discarded",
                scene_id=job.scene_id,
                kind=job.kind.value,
            )

        if removed:
            logger.info(f"Discarded {removed} jobs for {len(targets)} removed scenes")
        return removed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def status(self, scene_id: str, kind: ArtifactKind) -> JobStatus:
        """Current status of a (scene, kind) pair; idle if nothing was submitted."""
        job = self._jobs.get((scene_id, kind))
        if job is None:
            return JobStatus()
        return JobStatus(
            status=job.status,
            message=job.progress_message,
            error=dict(job.error) if job.error else None,
        )

    def get(self, scene_id: str, kind: ArtifactKind) -> Optional[GenerationJob]:
        job = self._jobs.get((scene_id, kind))
        return replace(job) if job else None

    def jobs(self) -> List[GenerationJob]:
        return [replace(job) for job in self._jobs.values()]

    def is_running(self, scene_id: str, kind: ArtifactKind) -> bool:
        return self.status(scene_id, kind).is_running

    def running_count(self) -> int:
        return sum(1 for job in self._jobs.values() if job.status is JobState.RUNNING)

    # -------------------------------------------------------------------------
    # Awaiting
    # -------------------------------------------------------------------------

    async def wait(self, scene_id: str, kind: ArtifactKind) -> Optional[GenerationJob]:
        """Wait until the job for (scene_id, kind) stops running."""
        task = self._tasks.get((scene_id, kind))
        if task is not None:
            await asyncio.wait({task})
        return self.get(scene_id, kind)

    async def join(self) -> None:
        """Wait for every in-flight job to finish."""
        while self._tasks:
            await asyncio.wait(set(self._tasks.values()))

    async def aclose(self) -> None:
        """Cancel all running jobs and wait for their tasks to unwind."""
        for scene_id, kind in [job.key for job in self._jobs.values() if job.status is JobState.RUNNING]:
            self.cancel(scene_id, kind)
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.wait(pending)

    # -------------------------------------------------------------------------
    # Job execution
    # -------------------------------------------------------------------------

    async def _run(self, job: GenerationJob, request: GenerationRequest) -> None:
        """Drive one job to a terminal state."""
        try:
            if self.timeout is not None:
                artifact = await asyncio.wait_for(self._drive(job, request), self.timeout)
            else:
                artifact = await self._drive(job, request)

        except asyncio.TimeoutError:
            self._fail(job, GenerationTimeoutError(
                f"Generation timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                scene_id=job.scene_id,
                kind=job.kind.value,
                job_id=job.job_id,
            ))
            return

        except asyncio.CancelledError:
            if self._is_current(job) and job.status is JobState.RUNNING:
                self._fail(job, JobCancelledError(
                    scene_id=job.scene_id,
                    kind=job.kind.value,
                    job_id=job.job_id,
                ))
            raise

        except LuminaError as e:
            self._fail(job, e)
            return

        except Exception as e:
            self._fail(job, TransportError(
                f"{type(e).__name__}: {e}",
                provider=self._client.provider_name,
            ))
            return

        if not self._is_current(job) or job.status is not JobState.RUNNING:
            return

        try:
            self._scene_store.attach_artifact(job.scene_id, job.kind, artifact)
        except LuminaError as e:
            self._fail(job, e)
            return

        job.status = JobState.SUCCEEDED
        job.result = artifact
        job.progress_message = "Completed"
        job.completed_at = datetime.now()

        logger.info(
            f"{job.kind.value.capitalize()} job for scene {job.scene_id} succeeded "
            f"after {job.polls} polls"
        )
        self._publish(job, "succeeded")

    async def _drive(self, job: GenerationJob, request: GenerationRequest) -> Artifact:
        """Submit, poll until done, then fetch the result content."""
        if request.kind is ArtifactKind.IMAGE:
            handle = await self._client.submit_image_job(request.prompt)
            working = "Rendering image..."
        else:
            handle = await self._client.submit_video_job(request.prompt, request.reference_image)
            working = "Generating video..."

        job.job_id = handle.job_id
        self._update(job, working)

        while True:
            poll: PollResult = await self._client.poll_job(handle)
            job.polls += 1
            if poll.done:
                break
            logger.debug(f"Job {handle.job_id} not done after {job.polls} polls, waiting...")
            await asyncio.sleep(self.poll_interval)

        if not poll.succeeded:
            raise GenerationError(
                poll.error or "Generation finished without a result",
                scene_id=job.scene_id,
                kind=job.kind.value,
                job_id=handle.job_id,
            )

        self._update(job, "Downloading result...")
        data = await self._client.fetch_artifact_bytes(poll.result)

        return Artifact(
            kind=job.kind,
            uri=poll.result,
            mime_type=poll.mime_type or DEFAULT_MIME_TYPES[job.kind],
            data=data,
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _is_current(self, job: GenerationJob) -> bool:
        return self._jobs.get(job.key) is job

    def _forget_task(self, key: JobKey, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def _update(self, job: GenerationJob, message: str) -> None:
        if not self._is_current(job) or job.status is not JobState.RUNNING:
            return
        job.progress_message = message
        self._publish(job, "progress")

    def _fail(self, job: GenerationJob, error: LuminaError) -> None:
        if not self._is_current(job):
            return
        job.status = JobState.FAILED
        job.error = error.to_dict()
        job.progress_message = error.message
        job.completed_at = datetime.now()

        logger.error(f"{job.kind.value.capitalize()} job for scene {job.scene_id} failed: {error.message}")
        self._publish(job, "failed")

    def _publish(self, job: GenerationJob, action: str) -> None:
        self._bus.publish(
            events.JOBS,
            action,
            scene_id=job.scene_id,
            kind=job.kind.value,
            status=job.status.value,
            message=job.progress_message,
        )
