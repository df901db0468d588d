"""Configuration for kube-exec.

Settings are read from ``KUBE_EXEC_*`` environment variables via
pydantic-settings. Services consume the narrower ``KubernetesConfig``
dataclass returned by ``Settings.kubernetes``.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .kubernetes import DEFAULT_HERITAGE, PULL_POLICIES, KubernetesConfig


class Settings(BaseSettings):
    """Environment-driven settings."""

    model_config = SettingsConfigDict(
        env_prefix="KUBE_EXEC_",
        extra="ignore",
        populate_by_name=True,
    )

    # -- Pod defaults ----------------------------------------------------------
    namespace: str = Field(default="default", description="Namespace pods are created in")
    image: str = Field(default="", description="Default container image")
    pod_name: str = Field(default="", description="Default pod name")
    container: str | None = Field(
        default=None,
        description="Container to attach to and read logs from (first container when unset)",
    )
    image_pull_policy: str = Field(default="IfNotPresent", description="Always, IfNotPresent or Never")
    heritage: str = Field(
        default=DEFAULT_HERITAGE,
        description="Value of the reserved heritage label put on every pod",
    )

    # -- Watch -----------------------------------------------------------------
    watch_timeout_seconds: float = Field(default=600.0, gt=0)
    verbose: bool = Field(default=False, description="Trace raw watch events to the diagnostic sink")

    # -- Logging ---------------------------------------------------------------
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")

    @field_validator("image_pull_policy")
    @classmethod
    def _validate_pull_policy(cls, v: str) -> str:
        if v not in PULL_POLICIES:
            raise ValueError(f"image_pull_policy must be one of {', '.join(PULL_POLICIES)}, got {v!r}")
        return v

    @field_validator("container", mode="before")
    @classmethod
    def _empty_container_to_none(cls, v: str | None) -> str | None:
        """Treat ``KUBE_EXEC_CONTAINER=""`` as unset."""
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @property
    def kubernetes(self) -> KubernetesConfig:
        """Get the Kubernetes configuration consumed by the services."""
        return KubernetesConfig(
            namespace=self.namespace,
            name=self.pod_name,
            image=self.image,
            container=self.container,
            image_pull_policy=self.image_pull_policy,
            heritage=self.heritage,
            watch_timeout_seconds=self.watch_timeout_seconds,
            verbose=self.verbose,
        )


settings = Settings()

__all__ = ["Settings", "KubernetesConfig", "settings"]
