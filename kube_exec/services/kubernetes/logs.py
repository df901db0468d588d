"""Log retrieval for pods that finished before they could be attached to."""

from collections.abc import Iterator
from typing import BinaryIO

import structlog
from kubernetes.client import ApiException, CoreV1Api

from ...models.errors import LogFetchError, NotFoundError
from .models import WorkloadHandle

logger = structlog.get_logger(__name__)


class LogRetriever:
    """Read the captured output of a completed pod."""

    def __init__(self, core_api: CoreV1Api, chunk_size: int = 32 * 1024):
        self.core_api = core_api
        self.chunk_size = chunk_size

    def fetch(self, handle: WorkloadHandle, container: str | None = None) -> Iterator[bytes]:
        """Stream the container log, one timestamp per line.

        The request is made before the first chunk is yielded, so lookup
        errors surface on the first ``next()``.

        Raises:
            ContainerNotFoundError: ``container`` is not part of the pod.
            NotFoundError: The pod or its logs do not exist.
            LogFetchError: Any other failure.
        """
        resolved = handle.resolve_container(container or handle.container)

        try:
            resp = self.core_api.read_namespaced_pod_log(
                name=handle.name,
                namespace=handle.namespace,
                container=resolved.name,
                follow=False,
                timestamps=True,
                _preload_content=False,
            )
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"no logs for pod {handle.name}") from e
            raise LogFetchError(f"cannot get logs for pod {handle.name}: {e.reason}") from e

        try:
            yield from resp.stream(self.chunk_size)
        except Exception as e:
            raise LogFetchError(f"error reading logs for pod {handle.name}: {e}") from e
        finally:
            resp.release_conn()

    def copy(self, handle: WorkloadHandle, sink: BinaryIO | None, container: str | None = None) -> int:
        """Copy the container log into ``sink``; discarded when None.

        Returns:
            Number of bytes read.
        """
        copied = 0
        for chunk in self.fetch(handle, container):
            if sink is not None:
                sink.write(chunk)
            copied += len(chunk)
        if sink is not None and hasattr(sink, "flush"):
            sink.flush()

        logger.info("Copied pod logs", pod=handle.name, bytes=copied)
        return copied
