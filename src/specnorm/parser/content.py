"""Pick the representative JSON media type of a request or response body."""

from __future__ import annotations

from typing import Any, Optional

from specnorm.models import Schema
from specnorm.parser.schema import SchemaNormalizer


def select_content(
    content: Any,
    normalizer: Optional[SchemaNormalizer] = None,
) -> Optional[dict[str, Schema]]:
    """Select the first media type whose name contains ``json``.

    The match is a case-sensitive substring test, so ``application/json``,
    ``application/problem+json`` and ``application/vnd.api+json`` all match.
    Ties are broken by document order only.

    Args:
        content: A raw media-type map (``{"application/json": {"schema": ...}}``).
        normalizer: Shared normalizer of the current run.

    Returns:
        ``{media_type: Schema}`` for the selected entry, or ``None`` when no
        JSON-ish media type is declared.  A missing ``schema`` normalizes to
        ``any``.
    """
    if not isinstance(content, dict):
        return None

    for media_type, entry in content.items():
        if isinstance(media_type, str) and "json" in media_type:
            node = entry.get("schema") if isinstance(entry, dict) else None
            return {media_type: (normalizer or SchemaNormalizer()).normalize(node)}

    return None
