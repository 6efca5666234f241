"""
Exception hierarchy for the release pipeline.

Every stage failure is a :class:`PipelineError` naming the stage that
raised it. The runner catches ``PipelineError`` once, records it on the
run and stops; nothing here is retried.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base exception for all release pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TriggerError(PipelineError):
    """Raised when the triggering event cannot be interpreted."""

    stage = "trigger"


class SourceError(PipelineError):
    """Raised when the source tree cannot be materialised at the commit."""

    stage = "fetch"


class AuthenticationError(PipelineError):
    """Raised when registry credentials are missing or rejected."""

    stage = "authenticate"


class BuildError(PipelineError):
    """Raised when the container image build fails."""

    stage = "build"


class PublishError(PipelineError):
    """Raised when tagging or pushing the image fails."""

    stage = "publish"


class RenderError(PipelineError):
    """Raised when the deployment descriptor cannot be rendered."""

    stage = "render"


class ReleaseError(PipelineError):
    """Raised when the orchestration service rejects or fails the rollout."""

    stage = "release"


class StabilityTimeoutError(ReleaseError):
    """Raised when the rollout does not stabilise within the bound.

    The orchestration service keeps the previous version serving.
    """

    stage = "await_stability"
