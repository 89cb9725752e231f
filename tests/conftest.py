"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from dataclasses import replace
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTO_ENQUEUE"] = "true"

from ugc_engine.adapters.avatar.stub import StubAvatarProvider  # noqa: E402
from ugc_engine.adapters.gateway import ProviderGateway  # noqa: E402
from ugc_engine.adapters.storage.local import LocalStorageProvider  # noqa: E402
from ugc_engine.domain.models import AvatarClip, Script  # noqa: E402

BRIEF_TEXT = (
    "Our bedtime story app helps kids fall asleep. "
    "Parents love how calm the stories make the whole family. "
    "My daughter asks for a new adventure every night."
)


class ScriptedAvatarProvider(StubAvatarProvider):
    """Stub avatar provider that raises queued errors before succeeding.

    When `match` is set, only scripts whose hook contains it consume errors.
    `on_call` runs before each generation, e.g. to cancel a batch mid-flight.
    """

    def __init__(
        self,
        errors: list[Exception] | None = None,
        match: str | None = None,
        on_call: Callable[[Script], None] | None = None,
    ) -> None:
        super().__init__()
        self.errors = list(errors or [])
        self.match = match
        self.on_call = on_call
        self.calls: list[str] = []

    async def generate_avatar(self, script: Script) -> AvatarClip:
        self.calls.append(script.hook)
        if self.on_call is not None:
            self.on_call(script)
        if self.errors and (self.match is None or self.match in script.hook):
            raise self.errors.pop(0)
        return await super().generate_avatar(script)


class RecordingEnqueue:
    """Enqueue callable that remembers batch ids instead of talking to Celery."""

    def __init__(self) -> None:
        self.batch_ids: list[UUID] = []

    def __call__(self, batch_id: UUID) -> str:
        self.batch_ids.append(batch_id)
        return f"task-{len(self.batch_ids)}"


@pytest.fixture
def db() -> Generator[None, None, None]:
    """Fresh schema on the in-memory SQLite engine."""
    from ugc_engine.db.models import Base
    from ugc_engine.db.session import engine

    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the retry policy, in order."""
    return []


@pytest.fixture
def retry_policy(sleeps: list[float]):
    from ugc_engine.services.retry import RetryPolicy

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryPolicy(sleep=record_sleep)


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageProvider:
    return LocalStorageProvider(root=tmp_path / "media", base_url="http://media.test")


@pytest.fixture
def gateway(storage: LocalStorageProvider) -> ProviderGateway:
    return replace(ProviderGateway.stub(), storage=storage)


@pytest.fixture
def scripted_avatar() -> type[ScriptedAvatarProvider]:
    return ScriptedAvatarProvider


@pytest.fixture
def brief_text() -> str:
    return BRIEF_TEXT


@pytest.fixture
def enqueue() -> RecordingEnqueue:
    return RecordingEnqueue()


@pytest.fixture
def make_service(db, gateway, enqueue, retry_policy):
    """Factory for a GenerationService wired to stubs, with providers overridable."""
    from ugc_engine.services.generation import GenerationService
    from ugc_engine.services.orchestrator import StageDriver

    def factory(**providers):
        service = GenerationService(gateway=gateway, enqueue=enqueue)
        service._driver = StageDriver(
            service.store,
            replace(gateway, **providers),
            ledger=service.ledger,
            retry=retry_policy,
            config=service.config,
        )
        return service

    return factory


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def parsed_brief(service):
    return service.create_brief(BRIEF_TEXT, parse=True)


@pytest.fixture
def test_client(service) -> Generator[TestClient, None, None]:
    """Test client whose routes use the fixture service."""
    from ugc_engine.api.deps import get_generation_service
    from ugc_engine.main import app

    app.dependency_overrides[get_generation_service] = lambda: service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
