"""Render stage: point the deployment descriptor at a published image.

Only the ``image`` field of the named container is rewritten. Replica
count, resources, probes and rollout strategy come from the template
unchanged.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from hello_deploy.release.errors import RenderError


def load_descriptor(path: str | Path) -> dict[str, Any]:
    """Read a YAML (or JSON) descriptor template."""
    try:
        with open(path, encoding="utf-8") as fh:
            doc = yaml.safe_load(fh)
    except OSError as exc:
        raise RenderError(f"Cannot read descriptor template {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RenderError(f"Descriptor template {path} is not valid YAML: {exc}") from exc
    if not isinstance(doc, dict):
        raise RenderError(f"Descriptor template {path} must be a mapping")
    return doc


def _containers(descriptor: dict[str, Any]) -> list[dict[str, Any]]:
    try:
        containers = descriptor["spec"]["template"]["spec"]["containers"]
    except (KeyError, TypeError) as exc:
        raise RenderError("Descriptor has no spec.template.spec.containers") from exc
    if not isinstance(containers, list):
        raise RenderError("spec.template.spec.containers must be a list")
    return containers


def container_image(descriptor: dict[str, Any], container_name: str) -> str | None:
    """Return the image currently set on *container_name*."""
    for container in _containers(descriptor):
        if container.get("name") == container_name:
            return container.get("image")
    raise RenderError(f"No container named {container_name!r} in descriptor")


def render_descriptor(
    descriptor: dict[str, Any],
    container_name: str,
    image: str,
) -> dict[str, Any]:
    """Return a copy of *descriptor* with *container_name* running *image*."""
    rendered = copy.deepcopy(descriptor)
    for container in _containers(rendered):
        if container.get("name") == container_name:
            container["image"] = image
            return rendered
    raise RenderError(
        f"No container named {container_name!r} in descriptor",
        details={"containers": [c.get("name") for c in _containers(rendered)]},
    )


def write_descriptor(descriptor: dict[str, Any], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(descriptor, fh, sort_keys=False)
    return path
