"""Services module for kube-exec."""

from .command import Cmd, command
from .interfaces import AttachTarget, StreamTransport

__all__ = [
    "Cmd",
    "command",
    "AttachTarget",
    "StreamTransport",
]
