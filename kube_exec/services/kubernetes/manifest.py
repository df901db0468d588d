"""Pod manifest construction.

Turns an execution request into a single-container pod that runs the
command once, with stdin available for attaching.
"""

import structlog
from kubernetes import client

from ...config.kubernetes import DEFAULT_HERITAGE, HERITAGE_LABEL, PULL_POLICIES, KubernetesConfig
from ...models.errors import BuildError
from ...models.execution import ExecutionRequest

logger = structlog.get_logger(__name__)


def merge_labels(labels: dict[str, str] | None, heritage: str = DEFAULT_HERITAGE) -> dict[str, str]:
    """Merge caller labels with the reserved heritage label.

    Caller labels win on every key except ``heritage``.
    """
    merged = dict(labels or {})
    if merged.get(HERITAGE_LABEL, heritage) != heritage:
        logger.warning(
            "Ignoring caller value for reserved label",
            label=HERITAGE_LABEL,
            value=merged[HERITAGE_LABEL],
        )
    merged[HERITAGE_LABEL] = heritage
    return merged


def env_vars(env: dict[str, str] | None) -> list[client.V1EnvVar]:
    """Convert an environment mapping to container env entries, sorted by name."""
    return [client.V1EnvVar(name=name, value=value) for name, value in sorted((env or {}).items())]


def build_pod_manifest(request: ExecutionRequest, config: KubernetesConfig | None = None) -> client.V1Pod:
    """Create a Pod manifest for a command.

    Args:
        request: What to run
        config: Defaults for pull policy and the heritage label

    Returns:
        V1Pod manifest ready for creation.

    Raises:
        BuildError: A required field is missing or the pull policy is invalid.
    """
    config = config or KubernetesConfig()

    if not request.path:
        raise BuildError("command path is required")
    if not request.name:
        raise BuildError("pod name is required")
    if not request.image:
        raise BuildError("container image is required", {"pod": request.name})

    pull_policy = request.image_pull_policy or config.image_pull_policy
    if pull_policy not in PULL_POLICIES:
        raise BuildError(f"invalid image pull policy {pull_policy!r}", {"pod": request.name})

    container = client.V1Container(
        name=request.container or request.name,
        image=request.image,
        image_pull_policy=pull_policy,
        command=[request.path],
        args=list(request.args),
        env=env_vars(request.env),
        working_dir=request.working_dir or None,
        stdin=True,
        tty=False,
        security_context=client.V1SecurityContext(privileged=False),
    )

    metadata = client.V1ObjectMeta(
        name=request.name,
        namespace=request.namespace,
        labels=merge_labels(request.labels, config.heritage),
    )

    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=metadata,
        spec=client.V1PodSpec(
            containers=[container],
            restart_policy="OnFailure",
        ),
    )


def apply_default_labels(pod: client.V1Pod, heritage: str = DEFAULT_HERITAGE) -> client.V1Pod:
    """Add the heritage label to a caller-supplied pod definition.

    The rest of the pod is used as given; it must be complete, including
    name, image and container command.
    """
    if pod.metadata is None:
        pod.metadata = client.V1ObjectMeta()
    pod.metadata.labels = merge_labels(pod.metadata.labels, heritage)
    return pod
