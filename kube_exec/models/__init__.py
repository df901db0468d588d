"""Data models for kube-exec."""

from .errors import (
    AttachTransportError,
    BuildError,
    ClusterError,
    CommandError,
    CommandStateError,
    ContainerNotFoundError,
    CreateError,
    KubeExecError,
    LogFetchError,
    NotFoundError,
    ObjectDeletedError,
    ObjectFailedError,
    WatchCancelledError,
    WatchError,
    WatchTimeoutError,
)
from .execution import ExecutionRequest, StreamSet

__all__ = [
    # Request models
    "ExecutionRequest",
    "StreamSet",
    # Errors
    "KubeExecError",
    "BuildError",
    "CreateError",
    "NotFoundError",
    "ClusterError",
    "WatchError",
    "WatchTimeoutError",
    "WatchCancelledError",
    "ObjectDeletedError",
    "ObjectFailedError",
    "ContainerNotFoundError",
    "AttachTransportError",
    "LogFetchError",
    "CommandError",
    "CommandStateError",
]
