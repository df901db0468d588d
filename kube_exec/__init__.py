"""Run commands in Kubernetes pods with local-process ergonomics."""

from .config import KubernetesConfig, Settings, settings
from .models import (
    AttachTransportError,
    BuildError,
    ClusterError,
    CommandError,
    CommandStateError,
    ContainerNotFoundError,
    CreateError,
    ExecutionRequest,
    KubeExecError,
    LogFetchError,
    NotFoundError,
    ObjectDeletedError,
    ObjectFailedError,
    StreamSet,
    WatchCancelledError,
    WatchError,
    WatchTimeoutError,
)
from .services import Cmd, command
from .services.kubernetes import Phase, WorkloadHandle

__all__ = [
    "Cmd",
    "command",
    "KubernetesConfig",
    "Settings",
    "settings",
    "ExecutionRequest",
    "StreamSet",
    "Phase",
    "WorkloadHandle",
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
