"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

LogProfile = Literal["default", "cli"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "cli": "{message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {message}",
}
_CONFIGURED: tuple[LogProfile, str] | None = None


def _build_cli_handler() -> Handler:
    return RichHandler(
        console=Console(stderr=True),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def resolve_level(level: str | None = None, *, verbose: bool = False) -> str:
    if verbose:
        return "DEBUG"
    return (level or os.getenv("CMDREPLY_LOG_LEVEL", "INFO")).upper()


def configure_logging(*, profile: LogProfile = "default", level: str | None = None, verbose: bool = False) -> None:
    """Configure process-level logging once per profile/level pair."""

    global _CONFIGURED
    resolved = resolve_level(level, verbose=verbose)
    if _CONFIGURED == (profile, resolved):
        return

    logger.remove()
    sink = _build_cli_handler() if profile == "cli" else sys.stderr
    logger.add(
        sink,
        level=resolved,
        format=_PROFILE_FORMATS[profile],
        backtrace=False,
        diagnose=False,
    )
    _CONFIGURED = (profile, resolved)
