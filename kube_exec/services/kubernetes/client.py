"""Workload client.

Creates and fetches execution pods through an already-authenticated
``CoreV1Api``. Loading kubeconfig or in-cluster credentials is left to
the caller.
"""

import structlog
from kubernetes import client
from kubernetes.client import ApiException, CoreV1Api

from ...models.errors import ClusterError, CreateError, NotFoundError
from .models import WorkloadHandle

logger = structlog.get_logger(__name__)


class WorkloadClient:
    """Create and look up pods in the cluster.

    Nothing here retries; every API failure is raised to the caller.
    """

    def __init__(self, core_api: CoreV1Api):
        self.core_api = core_api

    def create(self, pod: client.V1Pod, namespace: str | None = None) -> WorkloadHandle:
        """Create a pod.

        Args:
            pod: Complete pod manifest
            namespace: Target namespace, defaults to the manifest's namespace

        Returns:
            Handle for the created pod.

        Raises:
            CreateError: The API server rejected the pod.
        """
        namespace = namespace or pod.metadata.namespace or "default"
        name = pod.metadata.name

        try:
            created = self.core_api.create_namespaced_pod(namespace=namespace, body=pod)
        except ApiException as e:
            logger.error(
                "Failed to create pod",
                pod=name,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise CreateError(
                f"cannot create pod {name} in {namespace}: {e.reason}",
                status=e.status,
                reason=e.reason,
            ) from e

        handle = WorkloadHandle.from_pod(created)
        # The API server may omit the namespace for some fakes and old versions
        handle.namespace = handle.namespace or namespace
        logger.info("Created pod", pod=handle.name, namespace=handle.namespace, uid=handle.uid)
        return handle

    def get(self, name: str, namespace: str) -> WorkloadHandle:
        """Fetch an existing pod.

        Raises:
            NotFoundError: The pod does not exist.
            ClusterError: Any other API failure.
        """
        try:
            pod = self.core_api.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"pod {name} not found in {namespace}") from e
            raise ClusterError(
                f"cannot get pod {name}: {e.reason}",
                {"status": e.status, "namespace": namespace},
            ) from e

        handle = WorkloadHandle.from_pod(pod)
        handle.namespace = handle.namespace or namespace
        return handle
