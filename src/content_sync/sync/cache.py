"""Per-pull map from source file URL to destination file id."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ReferenceCache:
    """Append-only URL -> destination file id map for one pull.

    A key is written at most once; later stores for the same URL are
    ignored so every reference to a URL resolves to the same file.
    """

    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._entries: dict[str, int] = dict(initial or {})

    def get(self, url: str) -> int | None:
        return self._entries.get(url)

    def store(self, url: str, file_id: int) -> int:
        """Record *file_id* for *url* unless already known; return the kept id."""
        existing = self._entries.get(url)
        if existing is not None:
            if existing != file_id:
                logger.debug(
                    "Ignoring second id %d for cached URL %s (kept %d)",
                    file_id,
                    url,
                    existing,
                )
            return existing
        self._entries[url] = file_id
        return file_id

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def as_dict(self) -> dict[str, int]:
        return dict(self._entries)
