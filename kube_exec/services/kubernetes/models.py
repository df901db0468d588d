"""Data models for Kubernetes execution.

These models represent pods, their phases and the watch events used
throughout the Kubernetes execution layer.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from kubernetes import client

from ...models.errors import ContainerNotFoundError


class Phase(str, Enum):
    """Lifecycle phase of an execution pod.

    Values match the phases reported by the API server, except DELETED
    which stands for a pod removed while being watched.
    """

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    DELETED = "Deleted"
    UNKNOWN = "Unknown"

    @classmethod
    def from_status(cls, value: str | None) -> "Phase":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Readiness(str, Enum):
    """Outcome of a successful watch: which way to collect output."""

    RUNNING = "Running"  # attach to the live process
    SUCCEEDED = "Succeeded"  # process already exited, read its logs

    @classmethod
    def from_phase(cls, phase: Phase) -> "Readiness":
        return cls(phase.value)


class CommandState(str, Enum):
    """State of a command facade."""

    IDLE = "idle"
    STARTED = "started"
    WAITED = "waited"


@dataclass
class WorkloadHandle:
    """Handle to a pod created for a command.

    ``phase`` is only updated by the readiness watcher. A handle is never
    invalidated locally; the pod may disappear from the cluster at any time.
    """

    name: str
    namespace: str
    uid: str | None = None
    phase: Phase = Phase.PENDING
    container: str | None = None
    pod: client.V1Pod | None = None
    labels: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_pod(cls, pod: client.V1Pod) -> "WorkloadHandle":
        """Build a handle from a pod returned by the API server."""
        metadata = pod.metadata
        status = pod.status
        containers = pod.spec.containers if pod.spec else None
        return cls(
            name=metadata.name,
            namespace=metadata.namespace,
            uid=metadata.uid,
            phase=Phase.from_status(status.phase) if status and status.phase else Phase.PENDING,
            container=containers[0].name if containers else None,
            pod=pod,
            labels=dict(metadata.labels or {}),
        )

    def resolve_container(self, name: str | None = None) -> client.V1Container:
        """Return the container to attach to or read logs from.

        With a name, primary containers are searched first, then init
        containers, in declaration order. Without one, the first primary
        container is used.

        Raises:
            ContainerNotFoundError: No container matches, or the pod has none.
        """
        spec = self.pod.spec if self.pod is not None else None
        containers = list(spec.containers or []) if spec else []
        init_containers = list(spec.init_containers or []) if spec else []

        if name:
            for container in containers + init_containers:
                if container.name == name:
                    return container
            raise ContainerNotFoundError(f"container not found ({name})", {"pod": self.name})

        if not containers:
            raise ContainerNotFoundError(f"pod {self.name} has no containers", {"pod": self.name})
        return containers[0]


@dataclass
class PhaseEvent:
    """A typed pod watch event."""

    type: str  # ADDED, MODIFIED, DELETED, ERROR, BOOKMARK
    name: str | None
    phase: Phase
    reason: str | None = None
    raw: Any = None

    @classmethod
    def from_watch_event(cls, event: dict) -> "PhaseEvent":
        """Convert an event yielded by ``kubernetes.watch.Watch.stream``."""
        event_type = event.get("type", "")
        obj = event.get("object")
        raw = event.get("raw_object", obj)

        if event_type == "ERROR" or not isinstance(obj, client.V1Pod):
            # Error events carry a Status object, not a pod
            message = raw.get("message") if isinstance(raw, dict) else None
            return cls(type=event_type, name=None, phase=Phase.UNKNOWN, reason=message, raw=raw)

        status = obj.status
        if event_type == "DELETED":
            phase = Phase.DELETED
        else:
            phase = Phase.from_status(status.phase if status else None)

        return cls(
            type=event_type,
            name=obj.metadata.name if obj.metadata else None,
            phase=phase,
            reason=status.reason if status else None,
            raw=raw,
        )
