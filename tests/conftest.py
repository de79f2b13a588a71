"""Shared test fixtures and fake remote services."""

import pytest

from rawi.config import Settings
from rawi.models.media import Music, Voiceover
from rawi.pipeline.orchestrator import PipelineOrchestrator

ENDPOINTS = ("story", "image", "voiceover", "music")


def structured_story(n_scenes: int = 3, title: str = "The Lantern") -> dict:
    """Story endpoint response in the structured shape."""
    return {
        "title": title,
        "scenes": [
            {"text": f"Scene {i + 1} of the tale.", "imagePrompt": f"Lantern glow {i + 1}"}
            for i in range(n_scenes)
        ],
        "wordCount": 5 * n_scenes,
    }


def legacy_story(text: str = "Once upon a time a lantern glowed.", title: str = "The Lantern"):
    """Story endpoint response in the legacy flat shape."""
    return {"story": text, "title": title, "wordCount": len(text.split())}


class FakeServiceClient:
    """Stands in for ServiceClient; records every call and can be told to fail."""

    def __init__(self, story: dict | None = None):
        self.story_response = story if story is not None else structured_story()
        self.calls: dict[str, list] = {name: [] for name in ENDPOINTS}
        self._queued: dict[str, list[Exception]] = {name: [] for name in ENDPOINTS}
        self._always: dict[str, Exception] = {}
        self.hooks: dict[str, object] = {}

    def fail(self, endpoint: str, error: Exception, times: int | None = None) -> None:
        """Fail ``times`` upcoming calls to ``endpoint``, or every call when None."""
        if times is None:
            self._always[endpoint] = error
        else:
            self._queued[endpoint].extend([error] * times)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def _record(self, endpoint: str, arg) -> int:
        self.calls[endpoint].append(arg)
        hook = self.hooks.get(endpoint)
        if hook is not None:
            await hook(arg)
        if endpoint in self._always:
            raise self._always[endpoint]
        if self._queued[endpoint]:
            raise self._queued[endpoint].pop(0)
        return len(self.calls[endpoint])

    async def request_story(self, title: str, duration_minutes: float) -> dict:
        await self._record("story", (title, duration_minutes))
        return self.story_response

    async def request_image(self, prompt: str) -> str:
        await self._record("image", prompt)
        return f"https://images.test/{_slug(prompt)}.png"

    async def request_voiceover(self, text: str) -> Voiceover:
        await self._record("voiceover", text)
        return Voiceover.from_bytes(f"voice:{text}".encode(), duration=1.5)

    async def request_music(self, duration_seconds: float) -> Music:
        await self._record("music", duration_seconds)
        return Music.from_bytes(b"music-bytes")

    @property
    def total_calls(self) -> int:
        return sum(len(v) for v in self.calls.values())


def _slug(text: str) -> str:
    return "-".join(text.lower().split())


class RecordingSleep:
    """Async sleep replacement that returns immediately and remembers the delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_settings(**overrides) -> Settings:
    values = {
        "max_retries": 2,
        "retry_backoff_seconds": 2.0,
        "editing_delay_seconds": 2.0,
        "export_delay_seconds": 1.5,
        "scene_concurrency": 1,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fake_client():
    return FakeServiceClient()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(fake_sleep):
    """Factory building an orchestrator around a fake client with instant sleeps."""

    def factory(client: FakeServiceClient, **settings_overrides) -> PipelineOrchestrator:
        return PipelineOrchestrator(
            client=client,
            settings=make_settings(**settings_overrides),
            sleep=fake_sleep,
        )

    return factory


@pytest.fixture
def orchestrator(make_orchestrator, fake_client):
    return make_orchestrator(fake_client)


@pytest.fixture
def events(orchestrator):
    """Events emitted by the ``orchestrator`` fixture, in order."""
    received = []
    orchestrator.subscribe(received.append)
    return received
