"""KFP v2 component — Render the deployment descriptor for an image.

Step 1 of the in-cluster release pipeline. Reads the descriptor template
baked into the runner image, rewrites the named container's ``image``
field and emits the result as a YAML Dataset artifact.

Local testing
-------------
    from pipelines.components.render import render_descriptor
    render_descriptor.python_func(
        image="registry.example.com/hello-deploy:3f2a9c1",
        rendered_descriptor=_FakeArtifact("/tmp/deployment.yaml"),
        metrics=_FakeArtifact("/tmp/metrics"),
    )
"""

from kfp import dsl

from pipelines import RUNNER_IMAGE


@dsl.component(base_image=RUNNER_IMAGE)
def render_descriptor(
    image: str,
    rendered_descriptor: dsl.Output[dsl.Dataset],
    metrics: dsl.Output[dsl.Metrics],
    container_name: str = "hello",
    template_path: str = "/app/deploy/deployment.yaml",
) -> str:
    """Point *container_name* in the template at *image*.

    Parameters
    ----------
    image:
        Full image reference of a published release artifact.
    rendered_descriptor:
        Output Dataset — the rendered descriptor as YAML.
    metrics:
        Output Metrics artifact.
    container_name:
        Container whose ``image`` field is rewritten.
    template_path:
        Descriptor template path inside the runner image.

    Returns
    -------
    str
        Name of the deployment the descriptor describes.
    """
    import logging

    from hello_deploy.release.descriptor import (
        container_image,
        load_descriptor,
        render_descriptor as render,
        write_descriptor,
    )

    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger("render_descriptor")

    template = load_descriptor(template_path)
    previous = container_image(template, container_name)
    doc = render(template, container_name, image)
    write_descriptor(doc, rendered_descriptor.path)

    name = doc.get("metadata", {}).get("name", "")
    rendered_descriptor.metadata["deployment"] = name
    rendered_descriptor.metadata["image"] = image
    rendered_descriptor.metadata["template_image"] = previous or ""

    metrics.log_metric("containers", len(doc["spec"]["template"]["spec"]["containers"]))

    log.info("Rendered %s with %s=%s", name, container_name, image)
    return name
