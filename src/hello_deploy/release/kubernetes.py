"""Kubernetes implementation of the orchestrator abstraction.

Talks to the API server's REST interface directly:

* **submit** — server-side apply of an ``apps/v1`` Deployment.
* **rollout_status** — the same checks ``kubectl rollout status`` makes.

The cluster keeps the previous ReplicaSet around, so rolling back is a
matter of releasing an earlier artifact again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

from hello_deploy.release.base import Orchestrator, RolloutStatus
from hello_deploy.release.errors import ReleaseError

logger = logging.getLogger(__name__)

FIELD_MANAGER = "hello-deploy"
APPLY_CONTENT_TYPE = "application/apply-patch+yaml"


def _condition(status: dict[str, Any], cond_type: str) -> dict[str, Any] | None:
    for cond in status.get("conditions") or []:
        if cond.get("type") == cond_type:
            return cond
    return None


def deployment_rollout_status(deployment: dict[str, Any], generation: int) -> RolloutStatus:
    """Interpret a Deployment object the way ``kubectl rollout status`` does."""
    name = deployment.get("metadata", {}).get("name", "?")
    spec = deployment.get("spec") or {}
    status = deployment.get("status") or {}

    if status.get("observedGeneration", 0) < generation:
        return RolloutStatus(False, "Waiting for deployment spec update to be observed...")

    progressing = _condition(status, "Progressing")
    if progressing and progressing.get("reason") == "ProgressDeadlineExceeded":
        return RolloutStatus(False, f"deployment {name!r} exceeded its progress deadline", failed=True)

    desired = spec.get("replicas", 1)
    updated = status.get("updatedReplicas", 0)
    current = status.get("replicas", 0)
    available = status.get("availableReplicas", 0)

    if updated < desired:
        return RolloutStatus(
            False,
            f"Waiting for deployment {name!r} rollout to finish: "
            f"{updated} out of {desired} new replicas have been updated...",
        )
    if current > updated:
        return RolloutStatus(
            False,
            f"Waiting for deployment {name!r} rollout to finish: "
            f"{current - updated} old replicas are pending termination...",
        )
    if available < updated:
        return RolloutStatus(
            False,
            f"Waiting for deployment {name!r} rollout to finish: "
            f"{available} of {updated} updated replicas are available...",
        )
    return RolloutStatus(True, f"deployment {name!r} successfully rolled out")


class KubernetesOrchestrator(Orchestrator):
    """Deployments in one namespace of a Kubernetes cluster.

    Parameters
    ----------
    api_url:
        API server base URL.
    namespace:
        Namespace the target service lives in.
    token:
        Bearer token of the deploying service account.
    ca_cert:
        CA bundle path for the API server certificate; ``None`` uses the
        system trust store.
    request_timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_url: str,
        namespace: str,
        *,
        token: str | None = None,
        ca_cert: str | None = None,
        request_timeout: float = 30.0,
        session: requests.Session | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {}
        if clock is not None:
            kwargs["clock"] = clock
        if sleep is not None:
            kwargs["sleep"] = sleep
        super().__init__(**kwargs)

        self.api_url = api_url.rstrip("/")
        self.namespace = namespace
        self._timeout = request_timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        if ca_cert:
            self._session.verify = ca_cert

    def close(self) -> None:
        self._session.close()

    def _deployment_url(self, name: str) -> str:
        return f"{self.api_url}/apis/apps/v1/namespaces/{self.namespace}/deployments/{name}"

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise ReleaseError(f"{method} {url} failed: {exc}") from exc

        if not resp.ok:
            # The API server answers errors with a Status object.
            try:
                message = resp.json().get("message", resp.text)
            except ValueError:
                message = resp.text
            raise ReleaseError(
                f"{method} {url} returned {resp.status_code}: {message}",
                details={"status_code": resp.status_code},
            )
        return resp.json()

    # -- Orchestrator overrides -----------------------------------------------

    def submit(self, descriptor: dict[str, Any]) -> int:
        kind = descriptor.get("kind")
        if kind != "Deployment":
            raise ReleaseError(f"Descriptor kind must be 'Deployment', got {kind!r}")
        metadata = descriptor.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise ReleaseError("Descriptor has no metadata.name")
        namespace = metadata.get("namespace")
        if namespace and namespace != self.namespace:
            raise ReleaseError(
                f"Descriptor targets namespace {namespace!r}, pipeline targets {self.namespace!r}"
            )

        logger.info("Applying deployment %s/%s", self.namespace, name)
        applied = self._request(
            "PATCH",
            self._deployment_url(name),
            params={"fieldManager": FIELD_MANAGER, "force": "true"},
            json=descriptor,
            headers={"Content-Type": APPLY_CONTENT_TYPE},
        )
        generation = applied.get("metadata", {}).get("generation")
        if generation is None:
            raise ReleaseError(f"API server returned no generation for {name!r}")
        logger.info("Deployment %s is at generation %d", name, generation)
        return int(generation)

    def rollout_status(self, name: str, generation: int) -> RolloutStatus:
        deployment = self._request("GET", self._deployment_url(name))
        return deployment_rollout_status(deployment, generation)
