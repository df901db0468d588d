"""Shared fixtures and fakes for kube-exec tests."""

import threading
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from kube_exec.config import KubernetesConfig
from kube_exec.services.interfaces import AttachTarget, StreamTransport
from kube_exec.services.kubernetes import WorkloadHandle
from kube_exec.services.kubernetes import attach as attach_module

POD_NAME = "kube-example"
NAMESPACE = "default"


def make_pod(
    name: str = POD_NAME,
    phase: str | None = "Pending",
    reason: str | None = None,
    containers: tuple[str, ...] = (POD_NAME,),
    init_containers: tuple[str, ...] = (),
    namespace: str = NAMESPACE,
) -> client.V1Pod:
    """Build a pod object as returned by the API server."""
    return client.V1Pod(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            uid=f"uid-{name}",
            labels={"heritage": "kube-exec"},
        ),
        spec=client.V1PodSpec(
            containers=[client.V1Container(name=c, image="ubuntu") for c in containers],
            init_containers=[client.V1Container(name=c, image="busybox") for c in init_containers] or None,
        ),
        status=client.V1PodStatus(phase=phase, reason=reason),
    )


def pod_event(event_type: str, phase: str, name: str = POD_NAME, reason: str | None = None) -> dict:
    """Build an event the way ``kubernetes.watch.Watch.stream`` yields it."""
    pod = make_pod(name=name, phase=phase, reason=reason)
    return {
        "type": event_type,
        "object": pod,
        "raw_object": {
            "kind": "Pod",
            "metadata": {"name": name, "namespace": NAMESPACE},
            "status": {"phase": phase, "reason": reason},
        },
    }


class FakeWatch:
    """Stands in for ``kubernetes.watch.Watch``.

    Yields the given events, then either ends the stream or blocks until
    ``stop`` is called.
    """

    def __init__(self, events=(), block: bool = False, error: Exception | None = None):
        self.events = list(events)
        self.block = block
        self.error = error
        self.stop_calls = 0
        self.func = None
        self.kwargs: dict = {}
        self._stopped = threading.Event()

    def stream(self, func, *args, **kwargs):
        self.func = func
        self.kwargs = kwargs
        for event in self.events:
            if self._stopped.is_set():
                return
            yield event
        if self.error is not None:
            raise self.error
        if self.block:
            self._stopped.wait(5)

    def stop(self):
        self.stop_calls += 1
        self._stopped.set()

    def factory(self):
        return self


class RecordingTransport(StreamTransport):
    """Transport that records what was requested and drains stdin."""

    def __init__(self, output: bytes = b"", error: Exception | None = None):
        self.output = output
        self.error = error
        self.calls: list[tuple[AttachTarget, dict[str, bool]]] = []
        self.stdin_reads: list[bytes] = []

    def stream(self, target, streams):
        self.calls.append((target, streams.channels))
        if self.error is not None:
            raise self.error
        if streams.stdin is not None:
            while True:
                chunk = streams.stdin.read(4)
                self.stdin_reads.append(chunk)
                if not chunk:
                    break
        if streams.stdout is not None and self.output:
            streams.stdout.write(self.output)

    @property
    def stdin_data(self) -> bytes:
        return b"".join(self.stdin_reads)


class FakeWSClient:
    """Stands in for ``kubernetes.stream.ws_client.WSClient``.

    Plays the given output frames, then closes. With ``hold_open`` the
    connection stays open until stdin is closed or ``release`` is set,
    like a remote ``cat`` on the v5 channel protocol.
    """

    def __init__(self, stdout_frames=(), stderr_frames=(), status="", hold_open=False):
        self.stdout_frames = list(stdout_frames)
        self.stderr_frames = list(stderr_frames)
        self.status = status
        self.hold_open = hold_open
        self.release = threading.Event()
        self._stdout = b""
        self._stderr = b""
        self._open = True
        self.closed = False
        self.written: list[bytes] = []
        self.closed_channels: list[int] = []

    def is_open(self):
        return self._open

    def update(self, timeout=0):
        if self.stdout_frames:
            self._stdout += self.stdout_frames.pop(0)
        elif self.stderr_frames:
            self._stderr += self.stderr_frames.pop(0)
        elif not self.hold_open or self.release.wait(0.01):
            self._open = False

    def peek_stdout(self):
        return bool(self._stdout)

    def read_stdout(self):
        data, self._stdout = self._stdout, b""
        return data

    def peek_stderr(self):
        return bool(self._stderr)

    def read_stderr(self):
        data, self._stderr = self._stderr, b""
        return data

    def read_channel(self, channel):
        return self.status

    def write_stdin(self, data):
        self.written.append(data)

    def close_channel(self, channel):
        self.closed_channels.append(channel)
        if channel == 0:
            self.release.set()

    def close(self):
        self.closed = True
        self._open = False


def install_ws_client(monkeypatch, ws_client) -> dict:
    """Make ``kubernetes.stream.stream`` in the attach module return ``ws_client``."""
    calls = {}

    def fake(func, *args, **kwargs):
        calls["func"] = func
        calls["args"] = args
        calls["kwargs"] = kwargs
        return ws_client

    monkeypatch.setattr(attach_module, "stream", fake)
    return calls


@pytest.fixture
def core_api():
    """Mock CoreV1Api."""
    return MagicMock(spec=client.CoreV1Api)


@pytest.fixture
def config():
    return KubernetesConfig(
        namespace=NAMESPACE,
        name=POD_NAME,
        image="ubuntu",
        watch_timeout_seconds=5,
    )


@pytest.fixture
def handle():
    return WorkloadHandle.from_pod(make_pod())
