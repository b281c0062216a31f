"""Import remote files into the destination media store.

``MediaImporter`` turns attachment payloads into destination file ids.
Each distinct URL is imported at most once per pull thanks to the shared
``ReferenceCache``. Failures degrade to ``NO_FILE`` and never propagate.
"""

from __future__ import annotations

import logging
from typing import Any

from ..validators import validate_url
from .cache import ReferenceCache
from .capabilities import MediaStore

logger = logging.getLogger(__name__)

NO_FILE = 0
ATTACHMENT_TYPE = "attachment"


def is_attachment_payload(value: Any) -> bool:
    """True for ``{"type": "attachment", "url": <non-empty>}`` mappings."""
    return (
        isinstance(value, dict)
        and value.get("type") == ATTACHMENT_TYPE
        and isinstance(value.get("url"), str)
        and bool(value["url"])
    )


class MediaImporter:
    """Resolve file references to destination file ids.

    Args:
        store: Destination media store.
        cache: URL cache shared with every other resolver of this pull.
        context_id: Destination item the imported files are attached to.
    """

    def __init__(
        self,
        store: MediaStore,
        cache: ReferenceCache,
        context_id: int = 0,
    ) -> None:
        self.store = store
        self.cache = cache
        self.context_id = context_id

    def resolve_attachment(self, url: str, alt: str = "") -> int:
        """Return the destination file id for *url*, importing it if needed.

        Returns ``NO_FILE`` for empty or malformed URLs and for failed
        imports.
        """
        if not url:
            return NO_FILE

        is_valid, reason = validate_url(url)
        if not is_valid:
            logger.debug("Not importing %r: %s", url, reason)
            return NO_FILE

        cached = self.cache.get(url)
        if cached is not None:
            logger.debug("Reusing file %d for %s", cached, url)
            return cached

        try:
            file_id = self.store.import_file(url, self.context_id)
        except Exception as exc:
            logger.warning("Failed to import %s: %s", url, exc)
            return NO_FILE

        if not file_id or file_id <= 0:
            logger.warning("Media store returned no file for %s", url)
            return NO_FILE

        file_id = self.cache.store(url, file_id)
        logger.info("Imported %s as file %d", url, file_id)

        if alt:
            self._apply_alt_text(file_id, alt)

        return file_id

    def _apply_alt_text(self, file_id: int, alt: str) -> None:
        try:
            if self.store.is_image(file_id):
                self.store.set_alt_text(file_id, alt)
        except Exception as exc:
            logger.warning("Could not set alt text on file %d: %s", file_id, exc)

    def resolve_payload(self, value: Any) -> int:
        """Resolve an attachment payload; anything else yields ``NO_FILE``.

        Bare numeric ids are ignored: source and destination ids differ.
        """
        if not is_attachment_payload(value):
            return NO_FILE
        alt = value.get("alt")
        return self.resolve_attachment(
            value["url"], alt if isinstance(alt, str) else ""
        )
