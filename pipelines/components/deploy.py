"""KFP v2 component — Apply a rendered descriptor and await a stable rollout.

Step 2 of the in-cluster release pipeline. Authenticates with the pod's
service-account token, server-side applies the Deployment and polls its
rollout until every replica runs the new version. A rollout that fails
or does not stabilise in time raises, which fails the KFP run; the
cluster keeps the previous version serving.

Local testing
-------------
    from pipelines.components.deploy import deploy_service
    deploy_service.python_func(
        rendered_descriptor=_FakeArtifact("/tmp/deployment.yaml"),
        metrics=_FakeArtifact("/tmp/metrics"),
        cluster_url="https://localhost:6443",
        token_path="/tmp/token",
    )
"""

from kfp import dsl

from pipelines import RUNNER_IMAGE


@dsl.component(base_image=RUNNER_IMAGE)
def deploy_service(
    rendered_descriptor: dsl.Input[dsl.Dataset],
    metrics: dsl.Output[dsl.Metrics],
    cluster_url: str = "https://kubernetes.default.svc",
    namespace: str = "default",
    stability_timeout: float = 600.0,
    poll_interval: float = 5.0,
    token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token",
    ca_cert_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt",
) -> int:
    """Release the rendered descriptor and block until the rollout is stable.

    Parameters
    ----------
    rendered_descriptor:
        Input Dataset — YAML produced by ``render_descriptor``.
    metrics:
        Output Metrics artifact with rollout statistics.
    cluster_url:
        Kubernetes API server URL.
    namespace:
        Namespace of the target deployment.
    stability_timeout:
        Seconds to wait for the rollout before failing.
    poll_interval:
        Seconds between rollout status checks.
    token_path / ca_cert_path:
        Service-account credentials mounted into the pod. A missing CA
        file falls back to the system trust store.

    Returns
    -------
    int
        Deployment generation that rolled out.
    """
    import logging
    import time
    from pathlib import Path

    from hello_deploy.release.descriptor import load_descriptor
    from hello_deploy.release.kubernetes import KubernetesOrchestrator

    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger("deploy_service")

    descriptor = load_descriptor(rendered_descriptor.path)
    name = descriptor["metadata"]["name"]

    token_file = Path(token_path)
    token = token_file.read_text().strip() if token_file.is_file() else None
    ca_cert = ca_cert_path if Path(ca_cert_path).is_file() else None

    orchestrator = KubernetesOrchestrator(cluster_url, namespace, token=token, ca_cert=ca_cert)

    t0 = time.monotonic()
    try:
        generation = orchestrator.submit(descriptor)
        orchestrator.wait_for_stability(
            name,
            generation,
            timeout=stability_timeout,
            interval=poll_interval,
        )
    finally:
        orchestrator.close()
    elapsed = time.monotonic() - t0

    metrics.log_metric("generation", generation)
    metrics.log_metric("rollout_seconds", round(elapsed, 2))

    log.info("Deployment %s/%s stable at generation %d in %.1fs", namespace, name, generation, elapsed)
    return generation
