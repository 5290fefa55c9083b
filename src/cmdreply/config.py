"""Configuration management for cmdreply."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidReplyConfigError, ReplyConfigNotFoundError

DEFAULT_TIMEOUT_SECONDS = 600


class Settings(BaseSettings):
    """Process-level settings."""

    config_path: Path = Field(default=Path("cmdreply.yaml"), description="Reply configuration file")
    log_level: str = Field(default="INFO", description="Log level")
    queue_max_concurrent: int = Field(default=1, ge=1, description="Concurrent command runs")
    queue_warn_after_ms: int = Field(default=2000, ge=0, description="Report queue waits at or above this")

    model_config = SettingsConfigDict(
        env_prefix="CMDREPLY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class _ReplyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")


class SessionArgsConfig(_ReplyModel):
    """Session continuity arguments for the agent tool."""

    session_arg_new: list[str] | None = Field(default=None, description="Arguments for a new session")
    session_arg_resume: list[str] | None = Field(default=None, description="Arguments to resume a session")
    session_arg_before_body: bool = Field(default=True, description="Insert before the body instead of appending")


class ReplyConfig(_ReplyModel):
    """How to build and run one reply command."""

    command: list[str] = Field(..., min_length=1, description="Command template tokens")
    template: str | None = Field(default=None, description="Prefix template sent as the second argument")
    claude_output_format: str | None = Field(default=None, description="Agent --output-format value")
    session: SessionArgsConfig | None = None
    media_url: str | None = Field(default=None, description="Media sent when the command emits none")
    media_max_mb: float | None = Field(default=None, gt=0, description="Drop local media above this size")
    cwd: str | None = Field(default=None, description="Working directory for the command")
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Command deadline")


def _extract_reply_section(document: Any) -> Any:
    if isinstance(document, dict):
        inbound = document.get("inbound")
        if isinstance(inbound, dict) and "reply" in inbound:
            return inbound["reply"]
    return document


def load_reply_config(path: Path) -> ReplyConfig:
    """Load a reply configuration from YAML.

    The reply mapping may sit at the top level or under ``inbound.reply``.

    Raises:
        ReplyConfigNotFoundError: the file does not exist.
        InvalidReplyConfigError: the file is not valid YAML or fails validation.
    """
    if not path.is_file():
        raise ReplyConfigNotFoundError(f"reply config not found: {path}")
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise InvalidReplyConfigError(f"invalid YAML in {path}: {exc}") from exc

    section = _extract_reply_section(document)
    if not isinstance(section, dict):
        raise InvalidReplyConfigError(f"reply config in {path} must be a mapping")
    try:
        return ReplyConfig.model_validate(section)
    except ValidationError as exc:
        raise InvalidReplyConfigError(f"invalid reply config in {path}: {exc}") from exc


def get_settings(**overrides: Any) -> Settings:
    """Get application settings from the environment and ``.env``."""
    return Settings(**overrides)
