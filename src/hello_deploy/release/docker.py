"""Docker CLI implementation of the container-engine abstraction."""

from __future__ import annotations

import base64
import json
import logging
import os
import re
import subprocess
import tempfile
from pathlib import Path

from hello_deploy.release.base import ContainerEngine
from hello_deploy.release.errors import (
    AuthenticationError,
    BuildError,
    PipelineError,
    PublishError,
)

logger = logging.getLogger(__name__)

_DIGEST_RE = re.compile(r"digest:\s*(sha256:[0-9a-f]{64})")


class DockerEngine(ContainerEngine):
    """Drive the ``docker`` CLI.

    Registry credentials are written to ``config.json`` in a private
    ``DOCKER_CONFIG`` directory (mode 0700, file mode 0600) that exists
    only for the lifetime of the engine, so they never outlive the
    pipeline run. Neither the username nor the password is ever put on a
    command line or in a log record.

    Parameters
    ----------
    executable:
        Name or path of the docker CLI.
    """

    def __init__(self, executable: str = "docker") -> None:
        self._executable = executable
        self._config_dir = tempfile.TemporaryDirectory(prefix="hello-deploy-docker-")

    @property
    def config_dir(self) -> str:
        return self._config_dir.name

    def _run(
        self,
        args: list[str],
        error_cls: type[PipelineError],
        *,
        stdin: str | None = None,
    ) -> str:
        cmd = [self._executable, "--config", self.config_dir, *args]
        logger.debug("Running docker %s", args[0])
        try:
            proc = subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise error_cls(f"{self._executable} executable not found") from exc
        if proc.returncode != 0:
            stderr = proc.stderr.strip().splitlines()
            raise error_cls(
                f"docker {args[0]} failed (exit {proc.returncode}): "
                f"{stderr[-1] if stderr else 'no output'}",
                details={"stderr": proc.stderr[-4000:]},
            )
        return proc.stdout

    # -- ContainerEngine overrides --------------------------------------------

    def login(self, registry: str, username: str, password: str) -> None:
        logger.info("Logging in to %s", registry)
        auth = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        config = Path(self.config_dir) / "config.json"
        fd = os.open(config, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump({"auths": {registry: {"auth": auth}}}, fh)
        # docker login without flags re-validates the stored credentials
        self._run(["login", registry], AuthenticationError, stdin="")

    def build(
        self,
        context_dir: Path,
        dockerfile: Path,
        *,
        labels: dict[str, str] | None = None,
    ) -> str:
        iidfile = Path(self.config_dir) / "iid"
        args = ["build", "--file", str(dockerfile), "--iidfile", str(iidfile)]
        for key, value in (labels or {}).items():
            args += ["--label", f"{key}={value}"]
        args.append(str(context_dir))

        logger.info("Building %s (context %s)", dockerfile, context_dir)
        self._run(args, BuildError)
        try:
            image_id = iidfile.read_text().strip()
        except OSError as exc:
            raise BuildError("docker build did not report an image id") from exc
        logger.info("Built image %s", image_id)
        return image_id

    def tag(self, image_id: str, reference: str) -> None:
        self._run(["tag", image_id, reference], PublishError)

    def push(self, reference: str) -> str | None:
        logger.info("Pushing %s", reference)
        output = self._run(["push", reference], PublishError)
        match = _DIGEST_RE.search(output)
        return match.group(1) if match else None

    def close(self) -> None:
        self._config_dir.cleanup()
