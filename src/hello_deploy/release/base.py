"""Abstract seams for the external services the pipeline talks to.

The pipeline never builds images or schedules containers itself; it
drives a :class:`ContainerEngine` (build, tag, push against a registry)
and an :class:`Orchestrator` (apply a descriptor, watch the rollout).
Swapping Docker for another engine, or Kubernetes for another
orchestration service, only requires subclassing these.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hello_deploy.release.errors import ReleaseError, StabilityTimeoutError

logger = logging.getLogger(__name__)


class ContainerEngine(ABC):
    """Builds images and moves them to a registry."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def login(self, registry: str, username: str, password: str) -> None:
        """Obtain credentials for *registry* valid for the rest of the run."""
        ...

    @abstractmethod
    def build(
        self,
        context_dir: Path,
        dockerfile: Path,
        *,
        labels: dict[str, str] | None = None,
    ) -> str:
        """Build the recipe at *dockerfile* and return the local image id."""
        ...

    @abstractmethod
    def tag(self, image_id: str, reference: str) -> None:
        """Point *reference* at the local image *image_id*."""
        ...

    @abstractmethod
    def push(self, reference: str) -> str | None:
        """Upload *reference* and return its content digest when reported."""
        ...

    # -- optional overrides ---------------------------------------------------

    def close(self) -> None:
        """Drop any credentials obtained by :meth:`login`."""

    def __enter__(self) -> ContainerEngine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass
class RolloutStatus:
    """Snapshot of a rollout as reported by the orchestration service.

    Attributes
    ----------
    done:
        The new version has replaced the old one on every replica.
    message:
        Human-readable progress line.
    failed:
        The orchestration service has given up on the rollout; waiting
        longer will not help.
    """

    done: bool
    message: str = ""
    failed: bool = False


class Orchestrator(ABC):
    """Runs a named service from a deployment descriptor."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep

    @abstractmethod
    def submit(self, descriptor: dict[str, Any]) -> int:
        """Submit *descriptor* and return the generation it produced."""
        ...

    @abstractmethod
    def rollout_status(self, name: str, generation: int) -> RolloutStatus:
        """Report how far the rollout of *generation* of *name* has got."""
        ...

    def close(self) -> None:
        """Drop any connection to the orchestration service."""

    def wait_for_stability(
        self,
        name: str,
        generation: int,
        *,
        timeout: float,
        interval: float,
    ) -> RolloutStatus:
        """Block until the rollout is done, or fail after *timeout* seconds.

        Raises
        ------
        ReleaseError
            The orchestration service reported the rollout as failed.
        StabilityTimeoutError
            The rollout was still in progress when the bound elapsed.
        """
        deadline = self._clock() + timeout
        last_message = ""
        while True:
            status = self.rollout_status(name, generation)
            if status.message and status.message != last_message:
                logger.info("%s", status.message)
                last_message = status.message
            if status.done:
                return status
            if status.failed:
                raise ReleaseError(
                    f"Rollout of {name!r} failed: {status.message}",
                    details={"generation": generation},
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise StabilityTimeoutError(
                    f"Rollout of {name!r} not stable after {timeout:.0f}s: {status.message}",
                    details={"generation": generation, "timeout": timeout},
                )
            self._sleep(min(interval, remaining))
