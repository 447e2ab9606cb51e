"""Pytest configuration and shared fakes."""

import asyncio
from typing import Dict, List, Optional

import pytest

from lumina.api.base import (
    Artifact,
    ArtifactKind,
    GenerationClient,
    JobHandle,
    ParsedScene,
    PollResult,
    ScriptParser,
)
from lumina.context.scene_store import Scene, SceneStore
from lumina.core.config import Config, GenerationConfig, TimelineConfig
from lumina.core.events import EventBus
from lumina.workflow import Studio


class FakeGenerationClient(GenerationClient):
    """
    In-memory generation service.

    Jobs finish after ``polls_until_done`` polls. ``hold(kind)`` makes polls
    of that kind wait until the returned event is set; ``poll_errors`` and
    ``remote_errors`` script failures per kind.
    """

    provider_name = "fake"

    def __init__(self):
        self.polls_until_done: Dict[ArtifactKind, int] = {
            ArtifactKind.IMAGE: 1,
            ArtifactKind.VIDEO: 2,
        }
        self.poll_errors: Dict[ArtifactKind, Exception] = {}
        self.remote_errors: Dict[ArtifactKind, str] = {}
        self.submitted: List[Dict] = []
        self.poll_counts: Dict[str, int] = {}
        self.closed = False
        self._gates: Dict[ArtifactKind, asyncio.Event] = {}

    def hold(self, kind: ArtifactKind) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[kind] = gate
        return gate

    async def submit_image_job(self, prompt: str) -> JobHandle:
        return self._submit(ArtifactKind.IMAGE, prompt, None)

    async def submit_video_job(self, prompt: str, reference_image: Artifact) -> JobHandle:
        return self._submit(ArtifactKind.VIDEO, prompt, reference_image)

    def _submit(self, kind, prompt, reference_image) -> JobHandle:
        job_id = f"{kind.value}-{len(self.submitted) + 1}"
        self.submitted.append({
            "job_id": job_id,
            "kind": kind,
            "prompt": prompt,
            "reference_image": reference_image,
        })
        return JobHandle(job_id=job_id, kind=kind, provider=self.provider_name)

    async def poll_job(self, handle: JobHandle) -> PollResult:
        gate = self._gates.get(handle.kind)
        if gate is not None:
            await gate.wait()

        if handle.kind in self.poll_errors:
            raise self.poll_errors[handle.kind]

        count = self.poll_counts.get(handle.job_id, 0) + 1
        self.poll_counts[handle.job_id] = count
        if count < self.polls_until_done[handle.kind]:
            return PollResult(done=False)

        if handle.kind in self.remote_errors:
            return PollResult(done=True, error=self.remote_errors[handle.kind])

        mime_type = "image/png" if handle.kind is ArtifactKind.IMAGE else "video/mp4"
        return PollResult(done=True, result=f"fake://{handle.job_id}", mime_type=mime_type)

    async def fetch_artifact_bytes(self, result_ref: str) -> bytes:
        return f"content of {result_ref}".encode()

    async def aclose(self) -> None:
        self.closed = True


class FakeScriptParser(ScriptParser):
    """Returns canned scenes, or raises the configured error."""

    def __init__(self, scenes: Optional[List[ParsedScene]] = None):
        self.scenes = scenes or []
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def parse(self, raw_text: str) -> List[ParsedScene]:
        self.calls.append(raw_text)
        if self.error is not None:
            raise self.error
        return list(self.scenes)


def parsed_scenes(*durations: float) -> List[ParsedScene]:
    return [
        ParsedScene(
            number=i + 1,
            slugline=f"INT. LOCATION {i + 1} - NIGHT",
            description=f"Visual description of scene {i + 1}",
            estimated_duration=duration,
        )
        for i, duration in enumerate(durations)
    ]


@pytest.fixture
def config() -> Config:
    """Config with instant polling and the default three tracks."""
    return Config(
        generation=GenerationConfig(poll_interval=0.0),
        timeline=TimelineConfig(),
    )


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def fake_parser() -> FakeScriptParser:
    return FakeScriptParser(parsed_scenes(4, 6, 5))


@pytest.fixture
def scene_store(bus) -> SceneStore:
    store = SceneStore(bus=bus)
    store.replace_scenes([
        Scene(scene_id="s1", number=1, slugline="INT. COCKPIT - NIGHT", description="Red light", duration=4.0),
        Scene(scene_id="s2", number=2, slugline="EXT. SPACE - CONTINUOUS", description="Starlight", duration=6.0),
    ])
    return store


@pytest.fixture
def studio(fake_client, fake_parser, config) -> Studio:
    return Studio(client=fake_client, parser=fake_parser, config=config)
