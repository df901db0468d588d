"""Kubernetes-specific configuration.

This module provides the configuration for pod execution: namespace,
image, pod and container names, labels and watch settings.
"""

from dataclasses import dataclass, field

DEFAULT_HERITAGE = "kube-exec"
HERITAGE_LABEL = "heritage"
PULL_POLICIES = ("Always", "IfNotPresent", "Never")


@dataclass
class KubernetesConfig:
    """Kubernetes execution configuration."""

    # Namespace for execution pods
    namespace: str = "default"

    # Pod name; also the default container name
    name: str = ""
    image: str = ""

    # Extra labels for the pod. heritage is always added and cannot be overridden
    labels: dict[str, str] = field(default_factory=dict)

    # Container to attach to or read logs from (first container when None)
    container: str | None = None

    image_pull_policy: str = "IfNotPresent"
    heritage: str = DEFAULT_HERITAGE

    # How long to wait for the pod to reach Running or a terminal phase
    watch_timeout_seconds: float = 600.0

    # Dump raw watch events to the diagnostic sink
    verbose: bool = False

    @property
    def label_selector(self) -> str:
        """Label selector matching every pod created by this library."""
        return f"{HERITAGE_LABEL}={self.heritage}"
