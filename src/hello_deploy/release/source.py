"""Fetch stage: materialise the source tree at the triggering commit."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from hello_deploy.release.errors import SourceError

logger = logging.getLogger(__name__)


def _git(*args: str, cwd: Path) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise SourceError("git executable not found") from exc
    if proc.returncode != 0:
        raise SourceError(
            f"git {args[0]} failed (exit {proc.returncode}): {proc.stderr.strip()}",
            details={"args": list(args)},
        )
    return proc.stdout.strip()


def fetch_source(dest: str | Path, commit: str, *, repository_url: str | None = None) -> str:
    """Make *dest* a checkout of *commit* and return the resolved full SHA.

    Parameters
    ----------
    dest:
        Target directory. Created when *repository_url* is given.
    commit:
        Triggering commit SHA. May be abbreviated only when verifying an
        existing checkout; fetching by URL needs the full 40-character SHA.
    repository_url:
        Clone URL. When omitted, *dest* must already be a checkout of
        *commit* (as left behind by a CI runner's checkout step); it is
        only verified.
    """
    dest = Path(dest)
    if repository_url:
        if len(commit) != 40:
            raise SourceError(
                f"Fetching {repository_url} needs the full 40-character commit SHA, got {commit!r}"
            )
        dest.mkdir(parents=True, exist_ok=True)
        logger.info("Fetching %s @ %s into %s", repository_url, commit, dest)
        _git("init", "--quiet", cwd=dest)
        _git("fetch", "--quiet", "--depth", "1", repository_url, commit, cwd=dest)
        _git("checkout", "--quiet", "--detach", "FETCH_HEAD", cwd=dest)
    elif not dest.is_dir():
        raise SourceError(f"Source directory not found: {dest}")

    head = _git("rev-parse", "HEAD", cwd=dest).lower()
    if not head.startswith(commit.lower()):
        raise SourceError(
            f"Checkout at {dest} is {head[:12]}, expected {commit}",
            details={"head": head, "commit": commit},
        )
    logger.info("Source tree at %s", head)
    return head
