"""Collaborator interfaces consumed by the pull engine.

The engine never talks to a content store directly: every lookup and
write goes through one of these protocols, injected at construction.
Destination side:

- ``SchemaRegistry``  -- field definitions by name, active field groups.
- ``FieldWriter``     -- write a resolved value under a field selector.
- ``MediaStore``      -- download + store a remote file, alt text.
- ``ContentFinder``   -- find local content items by slug or title.
- ``ContentStore``    -- top-level item fields, template, featured image.
- ``DocumentSource``  -- fetch the wire document (``SourceClient``).

Source side (encoder):

- ``SourceRepository`` -- attachments and content items by id.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..core.client import SourceResponse
from .models import SourceAttachment, SourceContent
from .schema import FieldGroupSchema, FieldSchema


class SchemaRegistry(Protocol):
    """Read-only access to the destination's live field schema."""

    def lookup_field_schema(
        self, name: str, context_id: int
    ) -> FieldSchema | None:
        """Return the field visible on *context_id* under *name*, if any."""
        ...  # pragma: no cover

    def lookup_field_group_schemas(
        self, context_id: int
    ) -> list[FieldGroupSchema]:
        """Return every field group active for *context_id*, including
        fields currently hidden by conditional-visibility rules."""
        ...  # pragma: no cover


@runtime_checkable
class ComponentSchemaRegistry(SchemaRegistry, Protocol):
    """Registry that can also expand component (clone) fields.

    Optional: the walker passes component values through unchanged when
    its registry does not satisfy this protocol.
    """

    def lookup_component_schema(
        self, clone_keys: list[str]
    ) -> list[FieldSchema] | None:
        ...  # pragma: no cover


class FieldWriter(Protocol):
    def write_field(self, selector: str, value: Any, context_id: int) -> None:
        ...  # pragma: no cover


class MediaStore(Protocol):
    def import_file(self, url: str, context_id: int) -> int | None:
        """Download *url* and store it, attached to *context_id*.

        Returns the new file id, or ``None`` on failure. May also raise.
        """
        ...  # pragma: no cover

    def is_image(self, file_id: int) -> bool:
        ...  # pragma: no cover

    def set_alt_text(self, file_id: int, text: str) -> None:
        ...  # pragma: no cover


class ContentFinder(Protocol):
    def find_content_by_slug(self, slug: str, content_type: str) -> int | None:
        ...  # pragma: no cover

    def find_content_by_title(self, title: str, content_type: str) -> int | None:
        """Most recent item of any status with exactly this title."""
        ...  # pragma: no cover


class ContentStore(Protocol):
    def get_content_type(self, item_id: int) -> str | None:
        ...  # pragma: no cover

    def update_content(self, item_id: int, fields: dict[str, str]) -> None:
        ...  # pragma: no cover

    def set_template(self, item_id: int, template: str) -> None:
        ...  # pragma: no cover

    def set_featured_media(self, item_id: int, file_id: int) -> None:
        ...  # pragma: no cover


class DocumentSource(Protocol):
    def fetch_document(
        self, content_type: str, identifier: str | int
    ) -> SourceResponse:
        ...  # pragma: no cover


class SourceRepository(Protocol):
    def get_attachment(self, attachment_id: int) -> SourceAttachment | None:
        ...  # pragma: no cover

    def get_content(self, content_id: int) -> SourceContent | None:
        ...  # pragma: no cover
