"""Error types for kube-exec.

Every component raises a subclass of ``KubeExecError``. Components let
errors propagate unchanged; only the command facade wraps them, chaining
the original error as ``__cause__``.
"""

from typing import Any


class KubeExecError(Exception):
    """Base exception for all kube-exec errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class BuildError(KubeExecError):
    """The execution request cannot be turned into a pod manifest."""


class CreateError(KubeExecError):
    """The cluster rejected the pod (name collision, quota, invalid spec)."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None):
        super().__init__(message, {"status": status, "reason": reason})
        self.status = status
        self.reason = reason

    @property
    def is_conflict(self) -> bool:
        """Whether a pod with the same name already exists."""
        return self.status == 409


class NotFoundError(KubeExecError):
    """The requested pod or its logs do not exist."""


class ClusterError(KubeExecError):
    """Unexpected failure talking to the cluster API."""


class WatchError(KubeExecError):
    """The watch subscription failed or delivered an error event."""


class WatchTimeoutError(WatchError):
    """No decisive phase was observed before the watch timeout."""


class WatchCancelledError(WatchError):
    """The watch was cancelled by the caller."""


class ObjectDeletedError(WatchError):
    """The pod was deleted while being watched."""

    def __init__(self, message: str, phase: Any = None):
        super().__init__(message, {"phase": phase})
        self.phase = phase


class ObjectFailedError(WatchError):
    """The pod reached the Failed phase."""

    def __init__(self, message: str, phase: Any = None, reason: str | None = None):
        super().__init__(message, {"phase": phase, "reason": reason})
        self.phase = phase
        self.reason = reason


class ContainerNotFoundError(KubeExecError):
    """The named container is not part of the pod spec."""


class AttachTransportError(KubeExecError):
    """The attach stream could not be opened or broke while pumping."""


class LogFetchError(KubeExecError):
    """The pod logs could not be retrieved."""


class CommandError(KubeExecError):
    """A facade operation failed. The underlying error is ``__cause__``."""


class CommandStateError(KubeExecError):
    """A facade operation was called out of order."""
