"""Map source content references to destination content ids.

Source and destination id spaces are disjoint, so a reference is resolved
through portable attributes only, first match wins:

1. ``slug`` within the target content type;
2. the raw value itself as a slug, when it was a non-empty string;
3. exact ``title`` within the target content type (any status, most
   recent first);
4. otherwise unresolved (``UNRESOLVED``).

The source id is kept in the payload for auditing but never looked up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..validators import parse_positive_int, sanitize_slug_path
from .capabilities import ContentFinder

logger = logging.getLogger(__name__)

UNRESOLVED = 0
CONTENT_REF_TYPE = "post"


@dataclass(frozen=True)
class ContentReference:
    """Normalized form of a content-reference payload value."""

    id: int = 0
    slug: str = ""
    title: str = ""
    raw_slug: str = ""


def normalize_reference(value: Any) -> ContentReference:
    """Split a payload value into ``(id, slug, title)``.

    A positive numeric scalar becomes ``id``; a mapping contributes its
    ``id``/``slug``/``title`` keys. A non-empty string is also kept as
    ``raw_slug`` for the second lookup step.
    """
    if isinstance(value, dict):
        slug = value.get("slug")
        title = value.get("title")
        return ContentReference(
            id=parse_positive_int(value.get("id")),
            slug=slug if isinstance(slug, str) else "",
            title=title if isinstance(title, str) else "",
        )
    raw_slug = value if isinstance(value, str) and value.strip() else ""
    return ContentReference(id=parse_positive_int(value), raw_slug=raw_slug)


class ContentReferenceMapper:
    """Resolve content references against the destination.

    No cache: slug and title lookups are indexed on the destination.
    """

    def __init__(self, finder: ContentFinder) -> None:
        self.finder = finder

    def _by_slug(self, slug: str, content_type: str) -> int:
        normalized = sanitize_slug_path(slug)
        if not normalized:
            return UNRESOLVED
        return parse_positive_int(
            self.finder.find_content_by_slug(normalized, content_type)
        )

    def resolve(self, value: Any, target_content_type: str = "page") -> int:
        """Return the destination id for *value*, or ``UNRESOLVED``."""
        ref = normalize_reference(value)

        if ref.slug:
            found = self._by_slug(ref.slug, target_content_type)
            if found:
                return found

        if ref.raw_slug:
            found = self._by_slug(ref.raw_slug, target_content_type)
            if found:
                return found

        if ref.title.strip():
            found = parse_positive_int(
                self.finder.find_content_by_title(ref.title, target_content_type)
            )
            if found:
                return found

        logger.debug(
            "Unresolved %s reference (id=%d, slug=%r, title=%r)",
            target_content_type,
            ref.id,
            ref.slug or ref.raw_slug,
            ref.title,
        )
        return UNRESOLVED
