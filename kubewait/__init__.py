"""kubewait: block until Kubernetes pods, jobs and services are ready."""

__version__ = "0.1.0"
