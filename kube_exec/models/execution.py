"""Execution request and stream models."""

# Standard library imports
from dataclasses import dataclass
from typing import BinaryIO

# Third-party imports
from pydantic import BaseModel, ConfigDict, Field


class ExecutionRequest(BaseModel):
    """What to run and where. Frozen once the command has started."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Command to run, becomes the container command")
    args: tuple[str, ...] = Field(default=(), description="Arguments passed to the command")
    env: dict[str, str] = Field(default_factory=dict, description="Environment of the process")
    working_dir: str | None = Field(default=None, description="Working directory inside the container")

    name: str = Field(default="", description="Pod name")
    namespace: str = Field(default="default", description="Namespace for the pod")
    image: str = Field(default="", description="Container image")
    labels: dict[str, str] = Field(default_factory=dict, description="Extra pod labels")

    container: str | None = Field(default=None, description="Container name, defaults to the pod name")
    image_pull_policy: str | None = Field(default=None, description="Overrides the configured pull policy")


@dataclass
class StreamSet:
    """Local ends of the remote process standard streams.

    A channel is enabled only when its stream is set.
    """

    stdin: BinaryIO | None = None
    stdout: BinaryIO | None = None
    stderr: BinaryIO | None = None

    @property
    def channels(self) -> dict[str, bool]:
        return {
            "stdin": self.stdin is not None,
            "stdout": self.stdout is not None,
            "stderr": self.stderr is not None,
        }
