"""KFP v2 pipeline — Release a published image to the cluster.

    render descriptor → deploy (apply + await stability)

The image must already be in the registry (published by the CI run for
its commit). Running this pipeline with an older tag is how a previous
release is restored.

Compile
-------
    python -m pipelines.release_pipeline --compile
"""

from kfp import compiler, dsl

from pipelines.components.deploy import deploy_service
from pipelines.components.render import render_descriptor


@dsl.pipeline(
    name="hello-deploy-release",
    description="Render the deployment descriptor for a published image and roll it out.",
)
def release_pipeline(
    image: str,
    container_name: str = "hello",
    template_path: str = "/app/deploy/deployment.yaml",
    cluster_url: str = "https://kubernetes.default.svc",
    namespace: str = "default",
    stability_timeout: float = 600.0,
    poll_interval: float = 5.0,
) -> None:
    """Two-step release: render → deploy.

    Parameters
    ----------
    image:
        Full reference of the published image, ``registry/repository:<commit>``.
    container_name:
        Container in the descriptor whose image is replaced.
    template_path:
        Descriptor template inside the runner image.
    cluster_url / namespace:
        Target cluster and namespace.
    stability_timeout / poll_interval:
        Bound and cadence of the stability wait.
    """
    render_task = render_descriptor(
        image=image,
        container_name=container_name,
        template_path=template_path,
    )

    deploy_service(
        rendered_descriptor=render_task.outputs["rendered_descriptor"],
        cluster_url=cluster_url,
        namespace=namespace,
        stability_timeout=stability_timeout,
        poll_interval=poll_interval,
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="hello-deploy release pipeline")
    parser.add_argument("--compile", action="store_true", help="Compile pipeline to YAML")
    parser.add_argument(
        "--output",
        default="pipelines/compiled/release_pipeline.yaml",
        help="Output path for compiled YAML",
    )
    args = parser.parse_args()

    if args.compile:
        compiler.Compiler().compile(release_pipeline, args.output)
        print(f"Pipeline compiled → {args.output}")
