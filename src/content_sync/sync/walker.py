"""Walk the destination field schema in lock-step with a source payload.

``FieldWalker.resolve()`` dispatches on the schema node kind and returns
the destination-ready value: file and content references are resolved to
destination ids, containers recurse, everything else passes through.
Shape mismatches between payload and schema degrade to an empty value,
they never raise.

``FieldWalker.apply_all()`` writes every top-level field of a payload and
then retries fields whose schema could not be found. A field's schema may
only appear once a sibling field (e.g. a toggle) has been written, so each
retry pass re-attempts the fields still pending from the previous pass.
Passes stop when one resolves nothing or after ``max_retry_passes``.
"""

from __future__ import annotations

import logging
from typing import Any

from .capabilities import ComponentSchemaRegistry, FieldWriter, SchemaRegistry
from .mapper import ContentReferenceMapper
from .media import NO_FILE, MediaImporter
from .models import ApplyReport
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
    find_field_in_groups,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRY_PASSES = 5


class FieldWalker:
    """Resolve and write custom fields of one destination item.

    Args:
        registry: Destination schema lookups.
        writer: Destination field-update capability.
        media: Importer sharing this pull's reference cache.
        mapper: Content reference resolver.
        context_id: Destination item being written.
        max_retry_passes: Upper bound on retry passes in ``apply_all``.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        writer: FieldWriter,
        media: MediaImporter,
        mapper: ContentReferenceMapper,
        context_id: int,
        max_retry_passes: int = DEFAULT_MAX_RETRY_PASSES,
    ) -> None:
        self.registry = registry
        self.writer = writer
        self.media = media
        self.mapper = mapper
        self.context_id = context_id
        self.max_retry_passes = max_retry_passes

        self._updated: list[str] = []
        self._skipped: list[str] = []
        self._failed: list[str] = []
        self._resolved_on_retry: list[str] = []
        self._retry_passes = 0

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def updated(self) -> list[str]:
        return list(self._updated)

    @property
    def skipped(self) -> list[str]:
        return list(self._skipped)

    def report(self) -> ApplyReport:
        return ApplyReport(
            updated=self._updated,
            skipped=self._skipped,
            failed=self._failed,
            retry_passes=self._retry_passes,
            resolved_on_retry=self._resolved_on_retry,
        )

    # ------------------------------------------------------------------
    # Value resolution
    # ------------------------------------------------------------------

    def resolve(self, value: Any, schema: FieldSchema) -> Any:
        """Return the destination-ready form of *value* for *schema*."""
        match schema:
            case FileField():
                return self.media.resolve_payload(value)
            case ContentRefField():
                return self._resolve_content_ref(value, schema)
            case RepeaterField():
                return self._resolve_repeater(value, schema)
            case FlexibleField():
                return self._resolve_flexible(value, schema)
            case GroupField():
                return self._resolve_mapping(value, schema.sub_fields)
            case ComponentField():
                return self._resolve_component(value, schema)
            case GalleryField():
                return self._resolve_gallery(value)
            case _:
                return value

    def _resolve_content_ref(
        self, value: Any, schema: ContentRefField
    ) -> int | list[int]:
        target = schema.target_type
        if schema.is_multiple and isinstance(value, list):
            ids = []
            for item in value:
                resolved = self.mapper.resolve(item, target)
                if resolved > 0:
                    ids.append(resolved)
            return ids
        # A single value on a multi-valued field narrows to one id
        return self.mapper.resolve(value, target)

    def _resolve_row(
        self, row: dict[str, Any], sub_fields: list[FieldSchema]
    ) -> dict[str, Any]:
        """Resolve the sub-fields present in *row*; absent keys stay absent."""
        out: dict[str, Any] = {}
        for sub in sub_fields:
            if sub.name and sub.name in row:
                out[sub.name] = self.resolve(row[sub.name], sub)
        return out

    def _resolve_repeater(
        self, value: Any, schema: RepeaterField
    ) -> list[dict[str, Any]]:
        if not isinstance(value, list):
            return []
        return [
            self._resolve_row(row, schema.sub_fields)
            for row in value
            if isinstance(row, dict)
        ]

    def _resolve_flexible(
        self, value: Any, schema: FlexibleField
    ) -> list[dict[str, Any]]:
        if not isinstance(value, list):
            return []
        out = []
        for row in value:
            if not isinstance(row, dict):
                continue
            layout_name = row.get(LAYOUT_TAG)
            layout = (
                schema.layout(layout_name)
                if isinstance(layout_name, str) and layout_name
                else None
            )
            if layout is None:
                logger.debug(
                    "Dropping %s row with unknown layout %r",
                    schema.name,
                    layout_name,
                )
                continue
            out_row: dict[str, Any] = {LAYOUT_TAG: layout_name}
            out_row.update(self._resolve_row(row, layout.sub_fields))
            out.append(out_row)
        return out

    def _resolve_mapping(
        self, value: Any, sub_fields: list[FieldSchema]
    ) -> dict[str, Any]:
        if not isinstance(value, dict):
            return {}
        return self._resolve_row(value, sub_fields)

    def _resolve_component(self, value: Any, schema: ComponentField) -> Any:
        sub_fields = None
        if isinstance(self.registry, ComponentSchemaRegistry):
            sub_fields = self.registry.lookup_component_schema(schema.clone)
        if not sub_fields:
            logger.debug(
                "No component schema for %s, passing value through",
                schema.name,
            )
            return value
        return self._resolve_mapping(value, sub_fields)

    def _resolve_gallery(self, value: Any) -> list[int]:
        if not isinstance(value, list):
            return []
        ids = []
        for item in value:
            file_id = self.media.resolve_payload(item)
            if file_id > NO_FILE:
                ids.append(file_id)
        return ids

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def lookup_schema(self, field_name: str) -> FieldSchema | None:
        """Find the schema node for a top-level field.

        Falls back to the active field groups because a field hidden by a
        conditional-visibility rule is missing from the primary lookup but
        still has a definition and is still writable.
        """
        schema = self.registry.lookup_field_schema(field_name, self.context_id)
        if schema is not None:
            return schema
        groups = self.registry.lookup_field_group_schemas(self.context_id)
        return find_field_in_groups(groups or [], field_name)

    def apply(self, field_name: str, value: Any) -> bool:
        """Resolve and write one top-level field.

        Returns False (and records the field as skipped) when no schema
        node exists for *field_name*.
        """
        schema = self.lookup_schema(field_name)
        if schema is None:
            if field_name not in self._skipped:
                self._skipped.append(field_name)
            logger.debug("No field definition for %s, skipping", field_name)
            return False

        processed = self.resolve(value, schema)
        # Written by key so hidden fields are still accepted
        self.writer.write_field(schema.selector, processed, self.context_id)

        if field_name in self._skipped:
            self._skipped.remove(field_name)
        if field_name not in self._updated:
            self._updated.append(field_name)
        logger.debug("Updated field %s (%s)", field_name, schema.kind)
        return True

    def _attempt(self, field_name: str, value: Any) -> None:
        """``apply`` with per-field error isolation."""
        try:
            self.apply(field_name, value)
        except Exception as exc:
            logger.error("Error applying field %s: %s", field_name, exc)
            # It has a definition, so it is not a retry candidate
            if field_name in self._skipped:
                self._skipped.remove(field_name)
            if field_name not in self._failed:
                self._failed.append(field_name)

    def apply_all(self, payload: dict[str, Any]) -> ApplyReport:
        """Write every field of *payload*, retrying schema misses.

        Each retry pass works on a fresh list of the names still skipped
        that exist in *payload*. A pass resolving none of them ends the
        loop early.
        """
        for field_name, value in payload.items():
            self._attempt(field_name, value)

        passes = 0
        while passes < self.max_retry_passes:
            pending = [name for name in self._skipped if name in payload]
            if not pending:
                break
            passes += 1
            logger.info(
                "Retry pass %d for %d skipped field(s)", passes, len(pending)
            )
            resolved = []
            for field_name in pending:
                self._attempt(field_name, payload[field_name])
                if field_name not in self._skipped:
                    resolved.append(field_name)
            self._resolved_on_retry.extend(resolved)
            if not resolved:
                break

        self._retry_passes += passes
        if self._skipped:
            logger.info(
                "Fields without a definition on the destination: %s",
                ", ".join(self._skipped),
            )
        return self.report()
