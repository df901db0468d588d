"""Kubernetes-based execution services.

This module provides pod creation, readiness watching, attaching and
log retrieval.
"""

from .attach import StreamAttacher, WebSocketTransport
from .client import WorkloadClient
from .logs import LogRetriever
from .manifest import apply_default_labels, build_pod_manifest
from .models import CommandState, Phase, PhaseEvent, Readiness, WorkloadHandle
from .watcher import PodEventSubscription, ReadinessWatcher

__all__ = [
    "WorkloadHandle",
    "Phase",
    "PhaseEvent",
    "Readiness",
    "CommandState",
    "build_pod_manifest",
    "apply_default_labels",
    "WorkloadClient",
    "ReadinessWatcher",
    "PodEventSubscription",
    "StreamAttacher",
    "WebSocketTransport",
    "LogRetriever",
]
