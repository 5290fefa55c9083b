"""Queued, timeout-bounded command execution."""

from .exec import CommandRunner, run_command_with_timeout
from .queue import CommandQueue, Enqueue, OnWait, enqueue_command

__all__ = [
    "CommandQueue",
    "CommandRunner",
    "Enqueue",
    "OnWait",
    "enqueue_command",
    "run_command_with_timeout",
]
