"""Media token extraction and size filtering for command output."""

from __future__ import annotations

import asyncio
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

MEDIA_TOKEN_RE = re.compile(r"\bMEDIA:\s*(\S+)", re.IGNORECASE)
REMOTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_STRIP_CHARS = "`'\"()[]<>,;"
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class MediaSplit:
    text: str
    media_urls: tuple[str, ...] | None = None


def is_remote_url(candidate: str) -> bool:
    return REMOTE_URL_RE.match(candidate) is not None


def _is_media_candidate(candidate: str) -> bool:
    if is_remote_url(candidate):
        return True
    return candidate.startswith(("/", "./", "../", "~"))


def split_media_from_output(raw: str) -> MediaSplit:
    """Pull ``MEDIA:<url>`` tokens out of command output."""
    media: list[str] = []

    def _take(match: re.Match[str]) -> str:
        candidate = match.group(1).strip(_STRIP_CHARS)
        if not _is_media_candidate(candidate):
            return match.group(0)
        media.append(candidate)
        return ""

    cleaned_lines = [line.rstrip() for line in MEDIA_TOKEN_RE.sub(_take, raw).splitlines()]
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(cleaned_lines)).strip()
    return MediaSplit(text=text, media_urls=tuple(media) if media else None)


def _stat_local(url: str) -> os.stat_result:
    return os.stat(Path(url).expanduser().resolve())


async def _local_size(url: str) -> int | None:
    try:
        stats = await asyncio.to_thread(_stat_local, url)
    except (OSError, RuntimeError, ValueError) as exc:
        logger.debug("command.reply.media.stat_failed url={!r} error={}", url, exc)
        return None
    return stats.st_size


async def filter_media_by_size(media_urls: Sequence[str], max_mb: float) -> tuple[str, ...]:
    """Drop local media files larger than ``max_mb``.

    Remote URLs are always kept. Files that cannot be stat'd are kept too.
    """
    max_bytes = max_mb * _BYTES_PER_MB
    local = [url for url in media_urls if not is_remote_url(url)]
    sizes = dict(zip(local, await asyncio.gather(*(_local_size(url) for url in local)), strict=True))

    kept: list[str] = []
    for url in media_urls:
        size = sizes.get(url)
        if size is None or size <= max_bytes:
            kept.append(url)
            continue
        logger.debug(
            "command.reply.media.skipped url={} size_mb={:.2f} cap_mb={}",
            url,
            size / _BYTES_PER_MB,
            max_mb,
        )
    return tuple(kept)
