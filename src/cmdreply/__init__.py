"""cmdreply - turn inbound messages into replies from a command-line agent."""

from .agent import summarize_metadata
from .command_reply import run_command_reply
from .config import ReplyConfig, SessionArgsConfig, load_reply_config
from .types import CommandReplyResult, ReplyMeta, ReplyPayload

__version__ = "0.1.0"

__all__ = [
    "CommandReplyResult",
    "ReplyConfig",
    "ReplyMeta",
    "ReplyPayload",
    "SessionArgsConfig",
    "load_reply_config",
    "run_command_reply",
    "summarize_metadata",
]
