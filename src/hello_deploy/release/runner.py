"""The release pipeline — strictly ordered, short-circuiting stages.

Stage order::

    fetch → authenticate → build → publish → render → release → await_stability

Each stage reads what earlier stages left on the :class:`RunContext` and
adds its own output. The first :class:`PipelineError` ends the run; no
stage is retried and nothing is rolled back. A failed rollout leaves the
previous version serving because the orchestration service only shifts
traffic to replicas that pass their readiness checks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hello_deploy.config import ReleaseSettings
from hello_deploy.release.base import ContainerEngine, Orchestrator
from hello_deploy.release.descriptor import load_descriptor, render_descriptor, write_descriptor
from hello_deploy.release.errors import AuthenticationError, PipelineError, ReleaseError
from hello_deploy.release.models import (
    PipelineRun,
    PushEvent,
    ReleaseArtifact,
    RunStatus,
    StageName,
    StageResult,
    validate_commit,
)
from hello_deploy.release.source import fetch_source

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """State threaded through the stages of one run."""

    commit: str
    repository_url: str | None = None
    source_dir: Path | None = None
    image_id: str | None = None
    artifact: ReleaseArtifact | None = None
    descriptor: dict[str, Any] | None = None
    generation: int | None = None


class ReleasePipeline:
    """Build, publish and release one commit.

    Parameters
    ----------
    settings:
        Pipeline configuration.
    engine:
        Container engine used for authenticate / build / publish.
    orchestrator:
        Orchestration service used for release / await stability.
    workdir:
        Where the source tree is materialised. When the event carries no
        repository URL this must already be a checkout of the commit.
    """

    def __init__(
        self,
        settings: ReleaseSettings,
        *,
        engine: ContainerEngine,
        orchestrator: Orchestrator,
        workdir: str | Path = ".",
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.orchestrator = orchestrator
        self.workdir = Path(workdir)

    def close(self) -> None:
        """Release the engine credentials and the orchestrator connection.

        The pipeline may run any number of times before this is called.
        """
        try:
            self.engine.close()
        finally:
            self.orchestrator.close()

    def __enter__(self) -> ReleasePipeline:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def fetch(self, ctx: RunContext) -> None:
        ctx.commit = fetch_source(self.workdir, ctx.commit, repository_url=ctx.repository_url)
        ctx.source_dir = self.workdir

    def authenticate(self, ctx: RunContext) -> None:
        s = self.settings
        if not s.registry:
            raise AuthenticationError("No registry configured (RELEASE_REGISTRY)")
        if s.registry_username is None or s.registry_password is None:
            raise AuthenticationError(
                "Registry credentials missing (RELEASE_REGISTRY_USERNAME / RELEASE_REGISTRY_PASSWORD)"
            )
        self.engine.login(
            s.registry,
            s.registry_username.get_secret_value(),
            s.registry_password.get_secret_value(),
        )

    def build(self, ctx: RunContext) -> None:
        source_dir = ctx.source_dir or self.workdir
        ctx.image_id = self.engine.build(
            source_dir / self.settings.build_context,
            source_dir / self.settings.dockerfile,
            labels={"org.opencontainers.image.revision": ctx.commit},
        )

    def publish(self, ctx: RunContext) -> None:
        artifact = ReleaseArtifact.for_commit(self.settings.registry, self.settings.repository, ctx.commit)
        self.engine.tag(ctx.image_id, artifact.reference)
        digest = self.engine.push(artifact.reference)
        ctx.artifact = artifact.with_digest(digest)
        logger.info("Published %s (%s)", artifact.reference, digest or "digest not reported")

    def render(self, ctx: RunContext) -> None:
        template_path = (ctx.source_dir or self.workdir) / self.settings.descriptor_template
        ctx.descriptor = render_descriptor(
            load_descriptor(template_path),
            self.settings.container_name,
            ctx.artifact.reference,
        )
        out = write_descriptor(ctx.descriptor, self.workdir / self.settings.rendered_descriptor)
        logger.info("Rendered descriptor → %s", out)

    def release(self, ctx: RunContext) -> None:
        name = (ctx.descriptor.get("metadata") or {}).get("name")
        if name != self.settings.service_name:
            raise ReleaseError(
                f"Descriptor names service {name!r}, pipeline targets {self.settings.service_name!r}"
            )
        ctx.generation = self.orchestrator.submit(ctx.descriptor)

    def await_stability(self, ctx: RunContext) -> None:
        self.orchestrator.wait_for_stability(
            self.settings.service_name,
            ctx.generation,
            timeout=self.settings.stability_timeout,
            interval=self.settings.poll_interval,
        )

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def _stages(self) -> list[tuple[StageName, Callable[[RunContext], None]]]:
        return [
            (StageName.FETCH, self.fetch),
            (StageName.AUTHENTICATE, self.authenticate),
            (StageName.BUILD, self.build),
            (StageName.PUBLISH, self.publish),
            (StageName.RENDER, self.render),
            (StageName.RELEASE, self.release),
            (StageName.AWAIT_STABILITY, self.await_stability),
        ]

    def _execute(
        self,
        ctx: RunContext,
        stages: list[tuple[StageName, Callable[[RunContext], None]]],
    ) -> PipelineRun:
        run = PipelineRun(commit=ctx.commit)
        for stage, step in stages:
            logger.info("── %s", stage.value)
            t0 = time.monotonic()
            try:
                step(ctx)
            except PipelineError as exc:
                elapsed = time.monotonic() - t0
                logger.error("Stage %s failed after %.1fs: %s", stage.value, elapsed, exc)
                run.stages.append(
                    StageResult(stage=stage, ok=False, duration_seconds=elapsed, error=str(exc))
                )
                run.status = RunStatus.FAILED
                run.reason = str(exc)
                break
            run.stages.append(StageResult(stage=stage, ok=True, duration_seconds=time.monotonic() - t0))

        run.commit = ctx.commit
        run.artifact = ctx.artifact
        run.generation = ctx.generation
        if run.status is RunStatus.SUCCEEDED:
            logger.info("Released %s", ctx.artifact.reference if ctx.artifact else ctx.commit)
        return run

    def run(self, event: PushEvent) -> PipelineRun:
        """Run every stage for *event*, stopping at the first failure."""
        if event.deleted:
            return self._skip(event, f"{event.ref} was deleted")
        if event.branch != self.settings.branch:
            return self._skip(event, f"{event.ref} is not refs/heads/{self.settings.branch}")

        try:
            commit = validate_commit(event.commit)
        except ValueError as exc:
            logger.error("Rejected trigger: %s", exc)
            return PipelineRun(status=RunStatus.FAILED, reason=str(exc))

        logger.info("Pipeline run for %s @ %s", event.ref, commit)
        ctx = RunContext(commit=commit, repository_url=event.repository_url)
        return self._execute(ctx, self._stages())

    def redeploy(self, artifact: ReleaseArtifact) -> PipelineRun:
        """Release an already-published artifact again (manual rollback).

        Runs only render → release → await stability; the template is read
        from the working directory.
        """
        logger.info("Re-releasing %s", artifact.reference)
        ctx = RunContext(commit=artifact.tag, source_dir=self.workdir, artifact=artifact)
        stages = self._stages()[4:]
        return self._execute(ctx, stages)

    def _skip(self, event: PushEvent, reason: str) -> PipelineRun:
        logger.info("Skipping run: %s", reason)
        return PipelineRun(commit=event.commit, status=RunStatus.SKIPPED, reason=reason)
