"""KFP v2 components — each file exports one @dsl.component."""

from pipelines.components.deploy import deploy_service
from pipelines.components.render import render_descriptor

__all__ = [
    "deploy_service",
    "render_descriptor",
]
