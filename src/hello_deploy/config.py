"""Shared configuration loaded from environment / .env file.

Settings are read once by each entry point and then passed explicitly
into the objects that need them (app factory, server, release pipeline).
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    """Runtime settings for the hello-world HTTP service."""

    port: int = Field(
        default=8080,
        ge=0,
        le=65535,
        description="Listening port (env ``PORT``); 0 lets the OS pick a free port",
    )
    host: str = Field(default="0.0.0.0", description="Bind address (env ``HOST``)")
    log_level: str = "INFO"
    shutdown_timeout: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to let in-flight requests drain on SIGTERM / SIGINT",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


class ReleaseSettings(BaseSettings):
    """Settings for the build / publish / release pipeline (env prefix ``RELEASE_``)."""

    # Trigger
    branch: str = Field(default="main", description="Only pushes to this branch are released")

    # Registry
    registry: str = Field(default="", description="Registry host, e.g. 'registry.example.com'")
    repository: str = Field(default="hello-deploy", description="Image repository path inside the registry")
    registry_username: SecretStr | None = None
    registry_password: SecretStr | None = None

    # Build recipe
    build_context: str = "."
    dockerfile: str = "Dockerfile"

    # Deployment descriptor
    descriptor_template: str = "deploy/deployment.yaml"
    rendered_descriptor: str = "build/deployment.rendered.yaml"
    container_name: str = "hello"

    # Orchestration service
    cluster_url: str = Field(
        default="https://kubernetes.default.svc",
        description="Kubernetes API server URL",
    )
    cluster_token: SecretStr | None = None
    cluster_ca_cert: str | None = Field(
        default=None,
        description="CA bundle for the API server. Leave empty to use the system trust store.",
    )
    namespace: str = "default"
    service_name: str = "hello"

    # Stability wait
    stability_timeout: float = Field(default=600.0, gt=0, description="Seconds to wait for a stable rollout")
    poll_interval: float = Field(default=5.0, gt=0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="RELEASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
