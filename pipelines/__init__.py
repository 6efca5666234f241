"""
Pipelines — Kubeflow Pipelines (KFP v2) definition of the in-cluster release.

The CI runner builds and publishes images with ``hello-release run``.
This pipeline covers the half that runs next to the cluster: render the
descriptor for an already-published image and roll it out. It is also
the way to re-release an earlier artifact.

Components run in the image built from this repository's ``Dockerfile``,
which has ``hello_deploy`` installed.
"""

import os

RUNNER_IMAGE = os.environ.get("HELLO_DEPLOY_RUNNER_IMAGE", "hello-deploy:latest")
