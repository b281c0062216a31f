"""Encode a source content item into the wire document.

The encoder is the source-side mirror of ``FieldWalker``: whatever shape
it emits, the walker consumes. File references become attachment
payloads carrying the portable URL, alt text and filename; content
references become post payloads carrying slug and title; containers
recurse with the same rules per element. Source ids are included for
auditing only.

Encoding is schema-driven when the item carries its field definitions;
scalar fields then pass through unchanged, whatever their value.
Without them, references are recognised from the values themselves:
``{"ID": n}`` mappings are attachments and positive integers are looked
up in the source repository.
"""

from __future__ import annotations

import logging
from typing import Any

from ..validators import parse_positive_int
from .capabilities import SourceRepository
from .mapper import CONTENT_REF_TYPE
from .media import ATTACHMENT_TYPE
from .models import SourceItem
from .schema import (
    LAYOUT_TAG,
    ComponentField,
    ContentRefField,
    FieldSchema,
    FileField,
    FlexibleField,
    GalleryField,
    GroupField,
    RepeaterField,
    ScalarField,
)

logger = logging.getLogger(__name__)


def _reference_id(value: Any) -> int:
    """Extract a source id from an int, ``{"ID": n}`` or ``{"id": n}``."""
    if isinstance(value, dict):
        if value.get("type") in (ATTACHMENT_TYPE, CONTENT_REF_TYPE):
            return parse_positive_int(value.get("id"))
        return parse_positive_int(value.get("ID", value.get("id")))
    return parse_positive_int(value)


class PayloadEncoder:
    """Build wire documents from source items.

    Args:
        repository: Source-side attachment and content lookups.
    """

    def __init__(self, repository: SourceRepository) -> None:
        self.repository = repository

    # ------------------------------------------------------------------
    # Reference payloads
    # ------------------------------------------------------------------

    def attachment_payload(self, attachment_id: int) -> dict[str, Any] | None:
        attachment = self.repository.get_attachment(attachment_id)
        if attachment is None:
            return None
        return {
            "type": ATTACHMENT_TYPE,
            "id": attachment.id,
            "url": attachment.url or "",
            "alt": attachment.alt or "",
            "filename": attachment.filename or "",
        }

    def content_payload(self, content_id: int) -> dict[str, Any] | None:
        content = self.repository.get_content(content_id)
        if content is None:
            return None
        return {
            "type": CONTENT_REF_TYPE,
            "id": content.id,
            "slug": content.slug,
            "title": content.title,
        }

    # ------------------------------------------------------------------
    # Schema-driven encoding
    # ------------------------------------------------------------------

    def encode_value(self, value: Any, schema: FieldSchema) -> Any:
        match schema:
            case FileField():
                file_id = _reference_id(value)
                return self.attachment_payload(file_id) if file_id else None
            case ContentRefField():
                return self._encode_content_ref(value, schema)
            case RepeaterField():
                if not isinstance(value, list):
                    return []
                return [
                    self.encode_fields(row, schema.sub_fields)
                    for row in value
                    if isinstance(row, dict)
                ]
            case FlexibleField():
                return self._encode_flexible(value, schema)
            case GroupField():
                if not isinstance(value, dict):
                    return {}
                return self.encode_fields(value, schema.sub_fields)
            case ComponentField() if schema.sub_fields and isinstance(value, dict):
                return self.encode_fields(value, schema.sub_fields)
            case GalleryField():
                if not isinstance(value, list):
                    return []
                payloads = (
                    self.attachment_payload(_reference_id(item))
                    for item in value
                    if _reference_id(item)
                )
                return [p for p in payloads if p is not None]
            case ScalarField():
                return value
            case _:
                # Components without an inline sub-schema
                return self.encode_untyped(value)

    def _encode_content_ref(self, value: Any, schema: ContentRefField) -> Any:
        if isinstance(value, list):
            payloads = (
                self.content_payload(_reference_id(item))
                for item in value
                if _reference_id(item)
            )
            encoded = [p for p in payloads if p is not None]
            if schema.is_multiple:
                return encoded
            return encoded[0] if encoded else None
        content_id = _reference_id(value)
        return self.content_payload(content_id) if content_id else None

    def _encode_flexible(self, value: Any, schema: FlexibleField) -> list:
        if not isinstance(value, list):
            return []
        out = []
        for row in value:
            if not isinstance(row, dict):
                continue
            layout = schema.layout(row.get(LAYOUT_TAG) or "")
            sub_fields = layout.sub_fields if layout is not None else []
            out.append(self.encode_fields(row, sub_fields))
        return out

    def encode_fields(
        self, values: dict[str, Any], schemas: list[FieldSchema]
    ) -> dict[str, Any]:
        """Encode a mapping of field values; keys without a schema are
        encoded from their values alone."""
        by_name = {schema.name: schema for schema in schemas}
        out: dict[str, Any] = {}
        for name, value in values.items():
            schema = by_name.get(name)
            if name == LAYOUT_TAG:
                out[name] = value
            elif schema is not None:
                out[name] = self.encode_value(value, schema)
            else:
                out[name] = self.encode_untyped(value)
        return out

    # ------------------------------------------------------------------
    # Value-driven encoding
    # ------------------------------------------------------------------

    def encode_untyped(self, value: Any) -> Any:
        """Replace recognisable references inside *value*, recursively.

        Only real integers are treated as ids; numeric strings are text.
        """
        if isinstance(value, dict):
            if value.get("type") in (ATTACHMENT_TYPE, CONTENT_REF_TYPE):
                return value
            attachment_id = parse_positive_int(value.get("ID"))
            if attachment_id:
                payload = self.attachment_payload(attachment_id)
                if payload is not None:
                    return payload
            return {k: self.encode_untyped(v) for k, v in value.items()}

        if isinstance(value, list):
            return [self.encode_untyped(v) for v in value]

        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            payload = self.attachment_payload(value)
            if payload is None:
                payload = self.content_payload(value)
            if payload is not None:
                return payload

        return value

    # ------------------------------------------------------------------
    # Whole document
    # ------------------------------------------------------------------

    def encode(self, item: SourceItem) -> dict[str, Any]:
        """Return the wire document for *item*."""
        if item.field_schemas is not None:
            acf = self.encode_fields(item.fields, item.field_schemas)
        else:
            acf = {name: self.encode_untyped(v) for name, v in item.fields.items()}

        featured = (
            self.attachment_payload(item.featured_media_id)
            if item.featured_media_id > 0
            else None
        )

        document: dict[str, Any] = {
            "id": item.id,
            "title": item.title,
            "content": item.content,
            "excerpt": item.excerpt,
            "slug": item.slug,
            "status": item.status,
            "featured_media": featured,
            "acf": acf,
        }
        if item.content_type == "page":
            document["page_template"] = item.page_template or "default"

        logger.debug(
            "Encoded %s %d with %d custom field(s)",
            item.content_type,
            item.id,
            len(acf),
        )
        return document
