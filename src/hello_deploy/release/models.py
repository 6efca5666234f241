"""Domain models for pipeline triggers, release artifacts and run reports."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_COMMIT_RE = re.compile(r"^[0-9a-f]{7,40}$")
_NULL_COMMIT = "0" * 40
_BRANCH_PREFIX = "refs/heads/"


def validate_commit(commit: str) -> str:
    """Return *commit* lower-cased, or raise ``ValueError`` if it is not a hex SHA."""
    commit = commit.strip().lower()
    if not _COMMIT_RE.match(commit):
        raise ValueError(f"Not a commit SHA: {commit!r}")
    return commit


class PushEvent(BaseModel):
    """A source-control push, the only event that triggers a pipeline run.

    Attributes
    ----------
    ref:
        Fully qualified ref that was pushed, e.g. ``"refs/heads/main"``.
    commit:
        SHA the ref now points to (``after`` in webhook payloads).
    repository_url:
        Clone URL of the repository, when known.
    deleted:
        ``True`` when the push deleted the ref.
    """

    ref: str
    commit: str
    repository_url: str | None = None
    deleted: bool = False

    @property
    def branch(self) -> str | None:
        """Branch name for branch pushes, ``None`` for tags and other refs."""
        if self.ref.startswith(_BRANCH_PREFIX):
            return self.ref[len(_BRANCH_PREFIX):]
        return None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PushEvent:
        """Build an event from a GitHub-style push webhook payload."""
        try:
            ref = payload["ref"]
            commit = payload["after"]
        except KeyError as exc:
            raise ValueError(f"Push payload is missing {exc.args[0]!r}") from exc

        repository = payload.get("repository") or {}
        return cls(
            ref=ref,
            commit=commit,
            repository_url=repository.get("clone_url"),
            deleted=bool(payload.get("deleted")) or commit == _NULL_COMMIT,
        )


class ReleaseArtifact(BaseModel):
    """An immutable, uniquely tagged container image.

    The tag is derived from the triggering commit, so re-running the
    pipeline for the same commit yields the same reference.
    """

    model_config = ConfigDict(frozen=True)

    registry: str
    repository: str
    tag: str
    digest: str | None = None

    @property
    def reference(self) -> str:
        """``registry/repository:tag`` (no registry prefix when empty)."""
        name = f"{self.registry}/{self.repository}" if self.registry else self.repository
        return f"{name}:{self.tag}"

    @classmethod
    def for_commit(cls, registry: str, repository: str, commit: str) -> ReleaseArtifact:
        return cls(registry=registry, repository=repository, tag=validate_commit(commit))

    def with_digest(self, digest: str | None) -> ReleaseArtifact:
        return self.model_copy(update={"digest": digest})


class StageName(str, Enum):
    """Pipeline stages in run order."""

    FETCH = "fetch"
    AUTHENTICATE = "authenticate"
    BUILD = "build"
    PUBLISH = "publish"
    RENDER = "render"
    RELEASE = "release"
    AWAIT_STABILITY = "await_stability"


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Outcome of one stage."""

    stage: StageName
    ok: bool
    duration_seconds: float = 0.0
    error: str | None = None


class PipelineRun(BaseModel):
    """Report for one pipeline run.

    ``stages`` holds only the stages that actually ran; a failure is always
    the last entry.
    """

    commit: str | None = None
    status: RunStatus = RunStatus.SUCCEEDED
    stages: list[StageResult] = Field(default_factory=list)
    artifact: ReleaseArtifact | None = None
    generation: int | None = None
    reason: str | None = None

    @field_validator("commit")
    @classmethod
    def _lower(cls, value: str | None) -> str | None:
        return value.lower() if value else value

    @property
    def exit_code(self) -> int:
        return 1 if self.status is RunStatus.FAILED else 0

    @property
    def failed_stage(self) -> StageName | None:
        for result in self.stages:
            if not result.ok:
                return result.stage
        return None

    def summary(self) -> str:
        """Human-readable one-liner per stage, for CLI output."""
        lines = [f"Pipeline run {self.status.value} (commit {self.commit or '-'})"]
        if self.reason:
            lines.append(f"  reason: {self.reason}")
        for result in self.stages:
            mark = "ok" if result.ok else "FAILED"
            line = f"  {result.stage.value:<16} {mark:<7} {result.duration_seconds:6.1f}s"
            if result.error:
                line += f"  {result.error}"
            lines.append(line)
        if self.artifact is not None:
            lines.append(f"  artifact: {self.artifact.reference}")
        return "\n".join(lines)
