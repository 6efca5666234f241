"""hello-deploy — a hello-world HTTP service and the pipeline that releases it."""

__version__ = "0.1.0"
