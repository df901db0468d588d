"""Readiness watcher.

Blocks until an execution pod reaches a phase that decides how its
output is collected:

- Running: the process is live, attach to it
- Succeeded: the process already exited, read its logs
- Failed or deleted: nothing to collect, raise

Watch events are pushed by a background thread into a queue and
interpreted by a single consumer loop, in delivery order. The loop checks
the timeout and the cancellation token between dequeues.
"""

import json
import queue
import threading
import time
from collections.abc import Callable
from typing import Any, TextIO

import structlog
from kubernetes import watch
from kubernetes.client import CoreV1Api

from ...models.errors import (
    ObjectDeletedError,
    ObjectFailedError,
    WatchCancelledError,
    WatchError,
    WatchTimeoutError,
)
from .models import Phase, PhaseEvent, WorkloadHandle

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0

# Marks the end of the event stream in the queue
_END = object()


class PodEventSubscription:
    """A pod watch running in a background thread.

    Raw watch events, producer exceptions and a final end marker are
    put on ``events``. ``close`` stops the underlying watch and may be
    called any number of times.
    """

    def __init__(
        self,
        core_api: CoreV1Api,
        namespace: str,
        label_selector: str,
        timeout_seconds: int,
        watch_factory: Callable[[], Any] = watch.Watch,
    ):
        self.core_api = core_api
        self.namespace = namespace
        self.label_selector = label_selector
        self.timeout_seconds = timeout_seconds
        self.events: queue.Queue = queue.Queue()
        self._watch = watch_factory()
        self._closed = threading.Event()
        self._thread = threading.Thread(
            target=self._produce,
            name=f"pod-watch-{namespace}",
            daemon=True,
        )

    def start(self) -> "PodEventSubscription":
        self._thread.start()
        return self

    def _produce(self) -> None:
        try:
            # timeout_seconds makes the API server end the stream even if
            # stop() is never observed by a blocked read
            for event in self._watch.stream(
                self.core_api.list_namespaced_pod,
                namespace=self.namespace,
                label_selector=self.label_selector,
                timeout_seconds=self.timeout_seconds,
            ):
                if self._closed.is_set():
                    break
                self.events.put(event)
        except Exception as e:
            if not self._closed.is_set():
                self.events.put(e)
            else:
                logger.debug("Watch stream error after close", error=str(e))
        finally:
            self.events.put(_END)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._watch.stop()


class ReadinessWatcher:
    """Wait for a pod to become Running or reach a terminal phase."""

    def __init__(
        self,
        core_api: CoreV1Api,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        verbose: bool = False,
        diagnostic_sink: TextIO | None = None,
        watch_factory: Callable[[], Any] = watch.Watch,
        poll_interval: float = 0.1,
    ):
        self.core_api = core_api
        self.timeout = timeout
        self.verbose = verbose
        self.diagnostic_sink = diagnostic_sink
        self.watch_factory = watch_factory
        self.poll_interval = poll_interval

    def subscribe(self, namespace: str, label_selector: str, timeout: float) -> PodEventSubscription:
        """Open a pod watch for ``namespace`` filtered by ``label_selector``."""
        return PodEventSubscription(
            self.core_api,
            namespace,
            label_selector,
            timeout_seconds=max(1, int(timeout + 0.999)),
            watch_factory=self.watch_factory,
        ).start()

    def watch(
        self,
        handle: WorkloadHandle,
        label_selector: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Phase:
        """Block until the pod is Running or Succeeded.

        Args:
            handle: Pod to wait for; its phase is updated as events arrive
            label_selector: Selector for the watch, e.g. ``heritage=kube-exec``
            timeout: Seconds to wait, defaults to the watcher's timeout
            cancel: Set by another thread to abandon the wait

        Returns:
            Phase.RUNNING or Phase.SUCCEEDED.

        Raises:
            ObjectFailedError: The pod failed.
            ObjectDeletedError: The pod was deleted.
            WatchTimeoutError: No decisive phase before the timeout.
            WatchCancelledError: ``cancel`` was set.
            WatchError: The watch itself failed.
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        subscription = self.subscribe(handle.namespace, label_selector, timeout)
        logger.info(
            "Watching pod",
            pod=handle.name,
            namespace=handle.namespace,
            selector=label_selector,
            timeout=timeout,
        )

        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise WatchCancelledError(f"watch for pod {handle.name} cancelled")

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise WatchTimeoutError(
                        f"timeout waiting for pod {handle.name} to start",
                        {"timeout": timeout, "last_phase": handle.phase.value},
                    )

                try:
                    item = subscription.events.get(timeout=min(remaining, self.poll_interval))
                except queue.Empty:
                    continue

                if item is _END:
                    raise WatchTimeoutError(
                        f"watch for pod {handle.name} ended before it started",
                        {"timeout": timeout, "last_phase": handle.phase.value},
                    )
                if isinstance(item, Exception):
                    raise WatchError(f"watch for pod {handle.name} failed: {item}") from item

                phase = self._handle_event(handle, item)
                if phase is not None:
                    logger.info("Pod ready", pod=handle.name, phase=phase.value)
                    return phase
        finally:
            subscription.close()

    def _handle_event(self, handle: WorkloadHandle, raw_event: dict) -> Phase | None:
        """Apply one watch event to the handle.

        Returns the phase when it ends the wait successfully, None to keep
        waiting; raises when it ends the wait with a failure.
        """
        if self.verbose:
            self._trace(raw_event)

        event = PhaseEvent.from_watch_event(raw_event)

        if event.type == "ERROR":
            raise WatchError(f"watch error for pod {handle.name}: {event.reason}")

        # Other pods with the same labels share the stream
        if event.type == "BOOKMARK" or event.name != handle.name:
            return None

        if event.phase != handle.phase:
            logger.debug(
                "Pod phase changed",
                pod=handle.name,
                previous=handle.phase.value,
                phase=event.phase.value,
                event_type=event.type,
            )
            handle.phase = event.phase

        if event.type == "DELETED":
            raise ObjectDeletedError(f"pod {handle.name} deleted unexpectedly", phase=Phase.DELETED)

        if event.phase in (Phase.RUNNING, Phase.SUCCEEDED):
            return event.phase

        if event.phase == Phase.FAILED:
            raise ObjectFailedError(
                f"pod {handle.name} failed: {event.reason}",
                phase=Phase.FAILED,
                reason=event.reason,
            )

        return None

    def _trace(self, raw_event: dict) -> None:
        if self.diagnostic_sink is None:
            return
        event_type = raw_event.get("type")
        obj = raw_event.get("raw_object", raw_event.get("object"))
        try:
            body = json.dumps(obj, indent=1)
        except (TypeError, ValueError) as e:
            body = f"cannot serialize object of type {event_type}: {e}"
        self.diagnostic_sink.write(f"Event: {event_type}\n {body}\n")
