"""Application-level exception types for cmdreply."""

from __future__ import annotations


class CmdReplyError(Exception):
    """Base exception for cmdreply."""


class ConfigurationError(CmdReplyError):
    """Base exception for configuration and startup validation errors."""


class ReplyConfigNotFoundError(ConfigurationError):
    """Raised when the reply configuration file does not exist."""


class InvalidReplyConfigError(ConfigurationError):
    """Raised when the reply configuration cannot be parsed or validated."""
