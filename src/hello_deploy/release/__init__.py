"""
Release — the build / publish / release pipeline.

Public surface
--------------
- :class:`ReleasePipeline` — runs the ordered stages for a push event.
- :class:`ContainerEngine`, :class:`Orchestrator` — abstract external services.
- :class:`DockerEngine`, :class:`KubernetesOrchestrator` — default backends.
- :class:`PushEvent`, :class:`ReleaseArtifact`, :class:`PipelineRun` — data models.
"""

from hello_deploy.release.base import ContainerEngine, Orchestrator, RolloutStatus
from hello_deploy.release.docker import DockerEngine
from hello_deploy.release.errors import PipelineError
from hello_deploy.release.kubernetes import KubernetesOrchestrator
from hello_deploy.release.models import PipelineRun, PushEvent, ReleaseArtifact, RunStatus, StageName
from hello_deploy.release.runner import ReleasePipeline

__all__ = [
    "ContainerEngine",
    "DockerEngine",
    "KubernetesOrchestrator",
    "Orchestrator",
    "PipelineError",
    "PipelineRun",
    "PushEvent",
    "ReleaseArtifact",
    "ReleasePipeline",
    "RolloutStatus",
    "RunStatus",
    "StageName",
]
