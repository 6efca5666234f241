"""Unit tests for settings loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hello_deploy.config import ReleaseSettings, ServiceSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate from the caller's environment and any .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("PORT", "HOST", "LOG_LEVEL", "SHUTDOWN_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class TestServiceSettings:
    def test_defaults(self) -> None:
        settings = ServiceSettings()
        assert settings.port == 8080
        assert settings.host == "0.0.0.0"

    def test_port_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "3000")
        assert ServiceSettings().port == 3000

    def test_port_from_dotenv(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("PORT=4321\n")
        assert ServiceSettings().port == 4321

    @pytest.mark.parametrize("value", ["abc", "-1", "65536", ""])
    def test_invalid_port_rejected(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("PORT", value)
        with pytest.raises(ValidationError):
            ServiceSettings()


class TestReleaseSettings:
    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RELEASE_BRANCH", "production")
        monkeypatch.setenv("RELEASE_REGISTRY", "registry.example.com")
        monkeypatch.setenv("RELEASE_STABILITY_TIMEOUT", "120")
        settings = ReleaseSettings()
        assert settings.branch == "production"
        assert settings.registry == "registry.example.com"
        assert settings.stability_timeout == 120

    def test_secrets_are_masked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RELEASE_REGISTRY_USERNAME", "ci-user")
        monkeypatch.setenv("RELEASE_REGISTRY_PASSWORD", "hunter2")
        monkeypatch.setenv("RELEASE_CLUSTER_TOKEN", "tok-123")
        settings = ReleaseSettings()
        assert settings.registry_password.get_secret_value() == "hunter2"
        dumped = repr(settings) + str(settings.model_dump())
        assert "hunter2" not in dumped
        assert "tok-123" not in dumped

    def test_credentials_default_to_none(self) -> None:
        settings = ReleaseSettings()
        assert settings.registry_username is None
        assert settings.registry_password is None

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseSettings(stability_timeout=0)
