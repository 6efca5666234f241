"""``hello-release`` — run the release pipeline from a CI runner.

Usage
-----
    # Inside a CI job: read the push payload the runner provides
    hello-release run --event "$GITHUB_EVENT_PATH"

    # Or describe the push explicitly
    hello-release run --ref refs/heads/main --commit 3f2a9c1...

    # Re-release a previously published artifact (manual rollback)
    hello-release redeploy --tag 3f2a9c1...

    # Only render the descriptor for a tag
    hello-release render --tag 3f2a9c1... --output /tmp/deployment.yaml

Configuration comes from ``RELEASE_*`` environment variables (see
:class:`hello_deploy.config.ReleaseSettings`). Exit code is 0 when the run
succeeded or was skipped, 1 when any stage failed.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from hello_deploy.config import ReleaseSettings
from hello_deploy.release.descriptor import load_descriptor, render_descriptor, write_descriptor
from hello_deploy.release.docker import DockerEngine
from hello_deploy.release.errors import PipelineError, TriggerError
from hello_deploy.release.kubernetes import KubernetesOrchestrator
from hello_deploy.release.models import PushEvent, ReleaseArtifact
from hello_deploy.release.runner import ReleasePipeline

logger = logging.getLogger("hello_deploy.release")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hello-release", description="Build, publish and release hello-deploy")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the full pipeline for a push event")
    run.add_argument(
        "--event",
        default=os.environ.get("GITHUB_EVENT_PATH"),
        help="Path to a push webhook payload (default: $GITHUB_EVENT_PATH)",
    )
    run.add_argument("--ref", help="Pushed ref, e.g. refs/heads/main (overrides --event)")
    run.add_argument("--commit", help="Pushed commit SHA (overrides --event)")
    run.add_argument("--repository-url", help="Clone URL; omit to use --source-dir as-is")
    run.add_argument("--source-dir", default=".", help="Working tree for the source checkout")

    redeploy = sub.add_parser("redeploy", help="Release an already-published image tag")
    redeploy.add_argument("--tag", required=True, help="Image tag (commit SHA) to release")
    redeploy.add_argument("--source-dir", default=".", help="Directory holding the descriptor template")

    render = sub.add_parser("render", help="Render the deployment descriptor for a tag")
    render.add_argument("--tag", required=True, help="Image tag (commit SHA)")
    render.add_argument("--output", help="Where to write the rendered descriptor")

    return parser


def load_event(args: argparse.Namespace) -> PushEvent:
    """Build the triggering event from flags or a payload file."""
    if args.ref or args.commit:
        if not (args.ref and args.commit):
            raise TriggerError("--ref and --commit must be given together")
        return PushEvent(ref=args.ref, commit=args.commit, repository_url=args.repository_url)

    if not args.event:
        raise TriggerError("No push event: pass --event or --ref/--commit")
    try:
        payload = json.loads(Path(args.event).read_text(encoding="utf-8"))
        event = PushEvent.from_payload(payload)
    except (OSError, ValueError) as exc:
        raise TriggerError(f"Cannot read push event {args.event}: {exc}") from exc
    if args.repository_url:
        event = event.model_copy(update={"repository_url": args.repository_url})
    return event


def build_pipeline(settings: ReleaseSettings, source_dir: str) -> ReleasePipeline:
    orchestrator = KubernetesOrchestrator(
        settings.cluster_url,
        settings.namespace,
        token=settings.cluster_token.get_secret_value() if settings.cluster_token else None,
        ca_cert=settings.cluster_ca_cert,
    )
    return ReleasePipeline(
        settings,
        engine=DockerEngine(),
        orchestrator=orchestrator,
        workdir=source_dir,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = ReleaseSettings()
    except ValidationError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid release configuration:\n%s", exc)
        return 1

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "render":
            artifact = ReleaseArtifact.for_commit(settings.registry, settings.repository, args.tag)
            doc = render_descriptor(
                load_descriptor(settings.descriptor_template),
                settings.container_name,
                artifact.reference,
            )
            out = write_descriptor(doc, args.output or settings.rendered_descriptor)
            print(f"Rendered {artifact.reference} → {out}")
            return 0

        if args.command == "redeploy":
            artifact = ReleaseArtifact.for_commit(settings.registry, settings.repository, args.tag)
            with build_pipeline(settings, args.source_dir) as pipeline:
                run = pipeline.redeploy(artifact)
        else:
            event = load_event(args)
            with build_pipeline(settings, args.source_dir) as pipeline:
                run = pipeline.run(event)
    except (PipelineError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    print(run.summary())
    return run.exit_code


if __name__ == "__main__":
    sys.exit(main())
