"""Attaching to running pods.

The attacher resolves which container to attach to and hands the byte
pumping to a ``StreamTransport``. The default transport speaks the
Kubernetes websocket attach protocol through ``kubernetes.stream``.
"""

import json
import select
import threading
from typing import BinaryIO

import structlog
from kubernetes.client import CoreV1Api
from kubernetes.stream import stream
from kubernetes.stream.ws_client import ERROR_CHANNEL, STDIN_CHANNEL

from ...models.errors import AttachTransportError
from ...models.execution import StreamSet
from ..interfaces import AttachTarget, StreamTransport
from .models import WorkloadHandle

logger = structlog.get_logger(__name__)


class WebSocketTransport(StreamTransport):
    """Attach over the API server websocket endpoint.

    stdin is pumped from a separate thread; stdout and stderr are drained
    on the calling thread until the connection closes. End of stdin is
    sent as a stdin channel close, which needs the v5 channel protocol;
    on older API servers the remote sees it only when the stream closes.
    """

    def __init__(
        self,
        core_api: CoreV1Api,
        poll_interval: float = 1.0,
        chunk_size: int = 32 * 1024,
        stdin_poll_interval: float = 0.1,
        stdin_join_timeout: float = 5.0,
    ):
        self.core_api = core_api
        self.poll_interval = poll_interval
        self.chunk_size = chunk_size
        self.stdin_poll_interval = stdin_poll_interval
        self.stdin_join_timeout = stdin_join_timeout

    def stream(self, target: AttachTarget, streams: StreamSet) -> None:
        channels = streams.channels
        resp = stream(
            self.core_api.connect_get_namespaced_pod_attach,
            target.pod,
            target.namespace,
            container=target.container,
            stdin=channels["stdin"],
            stdout=channels["stdout"],
            stderr=channels["stderr"],
            tty=False,
            binary=True,
            _preload_content=False,
        )

        stop = threading.Event()
        stdin_errors: list[Exception] = []
        pump = None
        if streams.stdin is not None:
            pump = threading.Thread(
                target=self._pump_stdin,
                args=(resp, streams.stdin, stop, stdin_errors),
                name=f"attach-stdin-{target.pod}",
                daemon=True,
            )
            pump.start()

        try:
            while resp.is_open():
                resp.update(timeout=self.poll_interval)
                if streams.stdout is not None and resp.peek_stdout():
                    _write(streams.stdout, resp.read_stdout())
                if streams.stderr is not None and resp.peek_stderr():
                    _write(streams.stderr, resp.read_stderr())
        finally:
            stop.set()
            if pump is not None:
                pump.join(self.stdin_join_timeout)
                if pump.is_alive():
                    logger.warning("stdin pump still blocked after detach", pod=target.pod)
            resp.close()

        if stdin_errors:
            raise AttachTransportError(f"cannot copy stdin: {stdin_errors[0]}") from stdin_errors[0]

        status = resp.read_channel(ERROR_CHANNEL)
        if status:
            _raise_for_status(status)

    def _pump_stdin(self, resp, stdin: BinaryIO, stop: threading.Event, errors: list[Exception]) -> None:
        """Copy ``stdin`` to the remote until EOF, or until ``stop`` is set.

        Reads from file descriptors only once they are readable, so the
        thread never holds the reader's lock while waiting and exits
        within ``stdin_poll_interval`` of ``stop``.
        """
        read = getattr(stdin, "read1", stdin.read)
        fd = _fileno(stdin)
        try:
            while not stop.is_set():
                if fd is not None and not select.select([fd], [], [], self.stdin_poll_interval)[0]:
                    continue
                chunk = read(self.chunk_size)
                if not resp.is_open():
                    return
                if not chunk:
                    resp.close_channel(STDIN_CHANNEL)
                    logger.debug("Sent end of stdin")
                    return
                resp.write_stdin(chunk)
        except Exception as e:  # raised again by stream() on the calling thread
            errors.append(e)


def _fileno(stdin: BinaryIO) -> int | None:
    """File descriptor backing ``stdin``, None for in-memory streams."""
    try:
        return stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _write(sink: BinaryIO, data: bytes | str) -> None:
    if isinstance(data, str):
        data = data.encode()
    sink.write(data)
    if hasattr(sink, "flush"):
        sink.flush()


def _raise_for_status(raw: bytes | str) -> None:
    """Raise if the error channel reports a failure status."""
    try:
        status = json.loads(raw)
    except ValueError:
        raise AttachTransportError(f"attach failed: {raw!r}") from None
    if status.get("status") == "Failure":
        raise AttachTransportError(
            f"attach failed: {status.get('message', status.get('reason'))}",
            {"reason": status.get("reason")},
        )


class StreamAttacher:
    """Attach local streams to a running pod."""

    def __init__(self, core_api: CoreV1Api, transport: StreamTransport | None = None):
        self.core_api = core_api
        self.transport = transport or WebSocketTransport(core_api)

    def attach(self, handle: WorkloadHandle, streams: StreamSet, container: str | None = None) -> None:
        """Attach to the pod and pump streams until the remote side closes.

        The pod must have been observed Running; this is not checked again.

        Raises:
            ContainerNotFoundError: ``container`` is not part of the pod.
            AttachTransportError: The stream failed.
        """
        resolved = handle.resolve_container(container or handle.container)
        target = AttachTarget(pod=handle.name, namespace=handle.namespace, container=resolved.name)

        logger.info(
            "Attaching to pod",
            pod=target.pod,
            namespace=target.namespace,
            container=target.container,
            **streams.channels,
        )

        try:
            self.transport.stream(target, streams)
        except AttachTransportError:
            raise
        except Exception as e:
            raise AttachTransportError(f"error attaching to pod {handle.name}: {e}") from e

        logger.info("Detached from pod", pod=target.pod)
