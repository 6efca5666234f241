"""Process entry point for the hello-world service.

The listening socket is bound *before* uvicorn starts so that a bind
failure (port in use, permission denied) surfaces as :class:`BindError`
and terminates the process with a non-zero exit, without retry.
"""

from __future__ import annotations

import logging
import math
import socket
import sys

import uvicorn
from pydantic import ValidationError

from hello_deploy.config import ServiceSettings
from hello_deploy.serving.app import create_app

logger = logging.getLogger(__name__)


class BindError(RuntimeError):
    """Raised when the service cannot bind its listening socket."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Cannot bind {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


def bind_socket(host: str, port: int, *, backlog: int = 128) -> socket.socket:
    """Create a listening TCP socket on *host*:*port*.

    Port ``0`` asks the OS for a free port; read the result back with
    ``sock.getsockname()``.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as exc:
        sock.close()
        raise BindError(host, port, exc.strerror or str(exc)) from exc
    sock.set_inheritable(True)
    return sock


def serve(settings: ServiceSettings) -> None:
    """Bind, log the bound port once, and serve until SIGTERM / SIGINT."""
    sock = bind_socket(settings.host, settings.port)
    host, port = sock.getsockname()[:2]
    logger.info("Listening on http://%s:%d", host, port)

    config = uvicorn.Config(
        create_app(settings),
        log_level=settings.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=math.ceil(settings.shutdown_timeout),
    )
    server = uvicorn.Server(config)
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
        logger.info("Server on port %d stopped", port)


def main() -> int:
    try:
        settings = ServiceSettings()
    except ValidationError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid service configuration:\n%s", exc)
        return 1

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        serve(settings)
    except BindError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
