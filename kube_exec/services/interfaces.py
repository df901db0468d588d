"""Service interfaces for kube-exec."""

# Standard library imports
from abc import ABC, abstractmethod
from dataclasses import dataclass

# Local application imports
from ..models import StreamSet


@dataclass(frozen=True)
class AttachTarget:
    """The container a stream is opened to."""

    pod: str
    namespace: str
    container: str


class StreamTransport(ABC):
    """Full-duplex stream to a running container's standard streams."""

    @abstractmethod
    def stream(self, target: AttachTarget, streams: StreamSet) -> None:
        """Open a stream requesting exactly the channels set in ``streams``.

        Copies stdin to the container and container output to stdout and
        stderr until the remote side closes. Blocks until then.
        """
        pass
