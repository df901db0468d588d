"""Run a command in a Kubernetes pod as if it were a local process.

``Cmd`` mirrors ``subprocess``/``os.exec`` style usage::

    cmd = command(core_api, "/bin/sh", "-c", "echo hi", config=config)
    cmd.stdout = sys.stdout.buffer
    cmd.run()

``start`` creates the pod. ``wait`` watches it until it is Running, then
attaches the configured streams, or until it has Succeeded, then copies
its logs to stdout. The pod is never deleted by this module.
"""

import os
import threading
from typing import BinaryIO

import structlog
from kubernetes import client
from kubernetes.client import CoreV1Api
from pydantic import ValidationError

from ..config import KubernetesConfig, settings
from ..models.errors import (
    BuildError,
    CommandError,
    CommandStateError,
    CreateError,
    KubeExecError,
    NotFoundError,
)
from ..models.execution import ExecutionRequest, StreamSet
from .kubernetes.attach import StreamAttacher
from .kubernetes.client import WorkloadClient
from .kubernetes.logs import LogRetriever
from .kubernetes.manifest import apply_default_labels, build_pod_manifest
from .kubernetes.models import CommandState, Readiness, WorkloadHandle
from .kubernetes.watcher import ReadinessWatcher

logger = structlog.get_logger(__name__)


class Cmd:
    """A command to execute inside a pod.

    Attributes set before ``start``: ``path``, ``args``, ``env``, ``dir``,
    ``stdin``, ``stdout``, ``stderr`` and optionally ``pod``, a complete
    pod definition used instead of the one built from the other fields.
    Streams are binary file objects; an unset stream is not attached.
    """

    def __init__(
        self,
        config: KubernetesConfig,
        path: str,
        args: list[str] | None = None,
        *,
        workloads: WorkloadClient,
        watcher: ReadinessWatcher,
        attacher: StreamAttacher,
        logs: LogRetriever,
    ):
        self.config = config
        self.path = path
        self.args = list(args or [])
        self.env: dict[str, str] = {}
        self.dir: str | None = None
        self.pod: client.V1Pod | None = None

        self.stdin: BinaryIO | None = None
        self.stdout: BinaryIO | None = None
        self.stderr: BinaryIO | None = None

        self.workloads = workloads
        self.watcher = watcher
        self.attacher = attacher
        self.logs = logs

        self._state = CommandState.IDLE
        self._request: ExecutionRequest | None = None
        self._handle: WorkloadHandle | None = None
        self._cancel = threading.Event()
        self._owned_pipe: BinaryIO | None = None
        self._collectors = {
            Readiness.RUNNING: self._attach,
            Readiness.SUCCEEDED: self._copy_logs,
        }

    @property
    def state(self) -> CommandState:
        return self._state

    @property
    def handle(self) -> WorkloadHandle | None:
        """Handle of the created pod, None until the pod exists."""
        return self._handle

    @property
    def request(self) -> ExecutionRequest | None:
        return self._request

    def _build_request(self) -> ExecutionRequest:
        try:
            return ExecutionRequest(
                path=self.path,
                args=tuple(self.args),
                env=dict(self.env),
                working_dir=self.dir,
                name=self.config.name,
                namespace=self.config.namespace,
                image=self.config.image,
                labels=dict(self.config.labels),
                container=self.config.container,
                image_pull_policy=self.config.image_pull_policy,
            )
        except ValidationError as e:
            raise BuildError(f"invalid command: {e}") from e

    def start(self) -> None:
        """Create the pod without waiting for it.

        Raises:
            CommandStateError: The command was already started.
            CommandError: The pod could not be built or created.
        """
        if self._state != CommandState.IDLE:
            raise CommandStateError(f"command already {self._state.value}")

        try:
            self._request = self._build_request()
            if self.pod is not None:
                manifest = apply_default_labels(self.pod, self.config.heritage)
                manifest.metadata.namespace = manifest.metadata.namespace or self._request.namespace
            else:
                manifest = build_pod_manifest(self._request, self.config)
            self._handle = self.workloads.create(manifest, manifest.metadata.namespace)
        except KubeExecError as e:
            self._record_existing_pod(e)
            raise CommandError(f"cannot create pod: {e}") from e

        self._state = CommandState.STARTED

    def _record_existing_pod(self, error: KubeExecError) -> None:
        """Keep a handle to the pod if it was created despite the error.

        A name collision means the pod belongs to someone else and is not
        recorded.
        """
        if not isinstance(error, CreateError) or error.is_conflict or self._request is None:
            return
        if self.pod is not None:
            name, namespace = self.pod.metadata.name, self.pod.metadata.namespace
        else:
            name, namespace = self._request.name, self._request.namespace
        try:
            self._handle = self.workloads.get(name, namespace)
        except NotFoundError:
            return
        except KubeExecError as e:
            logger.warning("Cannot check whether pod exists", pod=name, error=str(e))
            return

        logger.warning("Pod exists although creation failed", pod=name)
        self._state = CommandState.STARTED

    def wait(self) -> None:
        """Wait for the pod, then collect its output.

        Running pods are attached to; pods that already succeeded have
        their logs copied to stdout.

        Raises:
            CommandStateError: The command was not started, or already waited.
            CommandError: Watching, attaching or reading logs failed.
        """
        if self._state == CommandState.IDLE:
            raise CommandStateError("command not started")
        if self._state == CommandState.WAITED:
            raise CommandStateError("wait already called")
        self._state = CommandState.WAITED

        try:
            try:
                phase = self.watcher.watch(
                    self._handle,
                    self.config.label_selector,
                    timeout=self.config.watch_timeout_seconds,
                    cancel=self._cancel,
                )
            except KubeExecError as e:
                raise CommandError(f"cannot wait for pod: {e}") from e

            self._collectors[Readiness.from_phase(phase)]()
        finally:
            self._close_owned_pipe()

    def run(self) -> None:
        """Start the command and wait for it to complete."""
        self.start()
        self.wait()

    def cancel(self) -> None:
        """Abandon a ``wait`` that is still watching the pod."""
        self._cancel.set()

    def stdin_pipe(self) -> BinaryIO:
        """Return a pipe connected to the command's stdin once attached.

        The caller must close the returned writer to signal end of input.

        Raises:
            CommandStateError: Called after ``start``, or stdin is already set.
        """
        if self._state != CommandState.IDLE:
            raise CommandStateError("stdin_pipe after command started")
        if self.stdin is not None:
            raise CommandStateError("stdin already set")

        read_fd, write_fd = os.pipe()
        self.stdin = os.fdopen(read_fd, "rb")
        self._owned_pipe = self.stdin
        return os.fdopen(write_fd, "wb")

    def _streams(self) -> StreamSet:
        return StreamSet(stdin=self.stdin, stdout=self.stdout, stderr=self.stderr)

    def _attach(self) -> None:
        try:
            self.attacher.attach(self._handle, self._streams(), self._request.container)
        except KubeExecError as e:
            raise CommandError(f"cannot attach: {e}") from e

    def _copy_logs(self) -> None:
        try:
            self.logs.copy(self._handle, self.stdout, self._request.container)
        except KubeExecError as e:
            raise CommandError(f"pod finished, but cannot get logs: {e}") from e

    def _close_owned_pipe(self) -> None:
        if self._owned_pipe is not None:
            self._owned_pipe.close()
            self._owned_pipe = None


def command(
    core_api: CoreV1Api,
    path: str,
    *args: str,
    config: KubernetesConfig | None = None,
    diagnostic_sink=None,
) -> Cmd:
    """Return a ``Cmd`` running ``path`` with ``args`` in a new pod.

    Args:
        core_api: Authenticated Kubernetes API client
        path: Command to run
        args: Command arguments
        config: Pod settings, defaults to the environment settings
        diagnostic_sink: Text stream receiving raw watch events in verbose mode
    """
    config = config or settings.kubernetes
    return Cmd(
        config,
        path,
        list(args),
        workloads=WorkloadClient(core_api),
        watcher=ReadinessWatcher(
            core_api,
            timeout=config.watch_timeout_seconds,
            verbose=config.verbose,
            diagnostic_sink=diagnostic_sink,
        ),
        attacher=StreamAttacher(core_api),
        logs=LogRetriever(core_api),
    )


__all__ = ["Cmd", "command"]
