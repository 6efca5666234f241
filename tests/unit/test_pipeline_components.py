"""Unit tests for the KFP release components and pipeline.

Each test exercises the *Python function* behind the ``@dsl.component``
decorator (``component.python_func``), so no Kubeflow cluster is needed.

Artifact contract between components:

  render → rendered Deployment YAML + metadata {deployment, image, template_image}
  deploy → reads the YAML, applies it, waits for a stable rollout
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from hello_deploy.release.errors import StabilityTimeoutError

REPO_ROOT = Path(__file__).resolve().parents[2]
TEMPLATE = REPO_ROOT / "deploy" / "deployment.yaml"
IMAGE = "registry.example.com/team/hello:3f2a9c1d4b5e6f708192a3b4c5d6e7f8091a2b3c"


# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────


class _FakeArtifact:
    """Minimal stand-in for ``dsl.Dataset`` / ``dsl.Metrics``."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.metadata: dict = {}
        self._metrics: dict = {}

    def log_metric(self, name: str, value) -> None:
        self._metrics[name] = value


# ──────────────────────────────────────────────────────────────────────
# render_descriptor
# ──────────────────────────────────────────────────────────────────────


class TestRenderDescriptor:
    """Tests for ``pipelines.components.render.render_descriptor``."""

    def test_renders_image_into_template(self, tmp_path: Path) -> None:
        out = _FakeArtifact(str(tmp_path / "deployment.yaml"))
        metrics = _FakeArtifact(str(tmp_path / "metrics"))

        from pipelines.components.render import render_descriptor

        name = render_descriptor.python_func(
            image=IMAGE,
            rendered_descriptor=out,
            metrics=metrics,
            template_path=str(TEMPLATE),
        )

        doc = yaml.safe_load(Path(out.path).read_text())
        assert name == "hello"
        assert doc["spec"]["template"]["spec"]["containers"][0]["image"] == IMAGE
        assert out.metadata["deployment"] == "hello"
        assert out.metadata["image"] == IMAGE
        assert out.metadata["template_image"] == "hello-deploy:latest"
        assert metrics._metrics["containers"] == 1

    def test_unknown_container(self, tmp_path: Path) -> None:
        from hello_deploy.release.errors import RenderError
        from pipelines.components.render import render_descriptor

        with pytest.raises(RenderError, match="No container named 'web'"):
            render_descriptor.python_func(
                image=IMAGE,
                rendered_descriptor=_FakeArtifact(str(tmp_path / "out.yaml")),
                metrics=_FakeArtifact(str(tmp_path / "metrics")),
                container_name="web",
                template_path=str(TEMPLATE),
            )


# ──────────────────────────────────────────────────────────────────────
# deploy_service
# ──────────────────────────────────────────────────────────────────────


class TestDeployService:
    """Tests for ``pipelines.components.deploy.deploy_service``."""

    @pytest.fixture()
    def rendered(self, tmp_path: Path) -> _FakeArtifact:
        doc = yaml.safe_load(TEMPLATE.read_text())
        doc["spec"]["template"]["spec"]["containers"][0]["image"] = IMAGE
        path = tmp_path / "deployment.yaml"
        path.write_text(yaml.safe_dump(doc))
        return _FakeArtifact(str(path))

    def test_applies_and_waits(self, tmp_path: Path, rendered: _FakeArtifact) -> None:
        token = tmp_path / "token"
        token.write_text("sa-token\n")
        metrics = _FakeArtifact(str(tmp_path / "metrics"))

        orchestrator = MagicMock()
        orchestrator.submit.return_value = 5

        from pipelines.components.deploy import deploy_service

        with patch("hello_deploy.release.kubernetes.KubernetesOrchestrator", return_value=orchestrator) as cls:
            generation = deploy_service.python_func(
                rendered_descriptor=rendered,
                metrics=metrics,
                cluster_url="https://cluster.example.com:6443",
                namespace="web",
                stability_timeout=120.0,
                poll_interval=2.0,
                token_path=str(token),
                ca_cert_path=str(tmp_path / "missing-ca.crt"),
            )

        assert generation == 5
        cls.assert_called_once_with("https://cluster.example.com:6443", "web", token="sa-token", ca_cert=None)
        submitted = orchestrator.submit.call_args.args[0]
        assert submitted["spec"]["template"]["spec"]["containers"][0]["image"] == IMAGE
        orchestrator.wait_for_stability.assert_called_once_with("hello", 5, timeout=120.0, interval=2.0)
        assert metrics._metrics["generation"] == 5
        assert "rollout_seconds" in metrics._metrics
        orchestrator.close.assert_called_once_with()

    def test_timeout_fails_component(self, tmp_path: Path, rendered: _FakeArtifact) -> None:
        orchestrator = MagicMock()
        orchestrator.submit.return_value = 5
        orchestrator.wait_for_stability.side_effect = StabilityTimeoutError("not stable after 600s")
        metrics = _FakeArtifact(str(tmp_path / "metrics"))

        from pipelines.components.deploy import deploy_service

        with patch("hello_deploy.release.kubernetes.KubernetesOrchestrator", return_value=orchestrator):
            with pytest.raises(StabilityTimeoutError):
                deploy_service.python_func(
                    rendered_descriptor=rendered,
                    metrics=metrics,
                    token_path=str(tmp_path / "no-token"),
                )
        assert "generation" not in metrics._metrics
        orchestrator.close.assert_called_once_with()


# ──────────────────────────────────────────────────────────────────────
# release_pipeline
# ──────────────────────────────────────────────────────────────────────


def test_pipeline_compiles(tmp_path: Path) -> None:
    from kfp import compiler

    from pipelines.release_pipeline import release_pipeline

    out = tmp_path / "release_pipeline.yaml"
    compiler.Compiler().compile(release_pipeline, str(out))

    spec = yaml.safe_load(out.read_text())
    assert spec["pipelineInfo"]["name"] == "hello-deploy-release"
    tasks = spec["root"]["dag"]["tasks"]
    assert set(tasks) == {"render-descriptor", "deploy-service"}
    assert "image" in spec["root"]["inputDefinitions"]["parameters"]
