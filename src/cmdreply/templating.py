"""Placeholder substitution for reply command templates."""

from __future__ import annotations

from typing import TypeAlias

import re
from collections.abc import Mapping

TemplateContext: TypeAlias = Mapping[str, object]

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def apply_template(template: str, ctx: TemplateContext) -> str:
    """Replace ``{{Key}}`` placeholders; unknown keys render as empty strings."""

    def _substitute(match: re.Match[str]) -> str:
        value = ctx.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_RE.sub(_substitute, template)
