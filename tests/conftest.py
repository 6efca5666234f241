"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

import pytest

from hello_deploy.config import ReleaseSettings
from hello_deploy.release.base import ContainerEngine, Orchestrator, RolloutStatus
from hello_deploy.release.errors import PipelineError

REPO_ROOT = Path(__file__).resolve().parents[1]
DESCRIPTOR_TEMPLATE = REPO_ROOT / "deploy" / "deployment.yaml"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes for the external services ─────────────────────────────────────


class FakeEngine(ContainerEngine):
    """Records calls; any method named in ``fail`` raises its exception."""

    def __init__(self, fail: dict[str, PipelineError] | None = None) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail = fail or {}
        self.closed = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def login(self, registry: str, username: str, password: str) -> None:
        self._record("login", registry, username, password)

    def build(self, context_dir, dockerfile, *, labels=None) -> str:
        self._record("build", context_dir, dockerfile, labels)
        return "sha256:" + "a" * 64

    def tag(self, image_id: str, reference: str) -> None:
        self._record("tag", image_id, reference)

    def push(self, reference: str) -> str | None:
        self._record("push", reference)
        return "sha256:" + "b" * 64

    def close(self) -> None:
        self.closed = True

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeOrchestrator(Orchestrator):
    """Returns scripted rollout statuses; time is simulated."""

    def __init__(
        self,
        statuses: list[RolloutStatus] | None = None,
        *,
        generation: int = 7,
        submit_error: PipelineError | None = None,
    ) -> None:
        self.now = 0.0
        super().__init__(clock=lambda: self.now, sleep=self._advance)
        self.statuses = list(statuses or [RolloutStatus(True, "rolled out")])
        self.generation = generation
        self.submit_error = submit_error
        self.submitted: list[dict[str, Any]] = []
        self.polls = 0
        self.closed = False

    def _advance(self, seconds: float) -> None:
        self.now += seconds

    def submit(self, descriptor: dict[str, Any]) -> int:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(descriptor)
        return self.generation

    def rollout_status(self, name: str, generation: int) -> RolloutStatus:
        self.polls += 1
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def close(self) -> None:
        self.closed = True


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def workdir(tmp_path: Path) -> Path:
    """A source tree holding the real descriptor template."""
    (tmp_path / "deploy").mkdir()
    shutil.copy(DESCRIPTOR_TEMPLATE, tmp_path / "deploy" / "deployment.yaml")
    (tmp_path / "Dockerfile").write_text("FROM scratch\n")
    return tmp_path


@pytest.fixture()
def release_settings() -> ReleaseSettings:
    return ReleaseSettings(
        branch="main",
        registry="registry.example.com",
        repository="team/hello",
        registry_username="ci-user",
        registry_password="s3cret-pass",
        cluster_url="https://cluster.example.com:6443",
        cluster_token="cluster-token",
        namespace="web",
        service_name="hello",
        container_name="hello",
        stability_timeout=60,
        poll_interval=5,
    )


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def orchestrator() -> FakeOrchestrator:
    return FakeOrchestrator()


@pytest.fixture()
def make_engine():
    """Factory for engines with scripted failures."""
    return FakeEngine


@pytest.fixture()
def make_orchestrator():
    """Factory for orchestrators with scripted rollout statuses."""
    return FakeOrchestrator
