"""Pull orchestrator: one source item into one destination item.

``PullOrchestrator.pull()``:

1. Validates the request (ids, identifier, content type).
2. Fetches the source document (id or slug endpoint).
3. Maps non-2xx answers to a failure reason and stops.
4. Decodes the body; anything but a JSON object stops the pull.
5. Overwrites the top-level content fields.
6. Writes the page template, before custom fields, because field groups
   may depend on the active template.
7. Imports the featured image and sets it as the primary image.
8. Runs ``FieldWalker.apply_all`` over the ``acf`` subtree, sharing the
   featured image's reference cache so each file is imported once.

Transport and decoding problems abort the pull. Nothing after step 4
aborts it: a destination step that raises is logged and listed in
``PullResult.step_errors``, and custom fields are isolated per field.
Partial application is an accepted outcome.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import requests

from ..config_schema import SyncConfig
from ..validators import (
    parse_positive_int,
    sanitize_key,
    sanitize_slug,
    sanitize_text,
    sanitize_textarea,
    validate_template,
)
from .cache import ReferenceCache
from .capabilities import (
    ContentFinder,
    ContentStore,
    DocumentSource,
    FieldWriter,
    MediaStore,
    SchemaRegistry,
)
from .errors import corrective_action, failure_message, reason_for_status
from .mapper import ContentReferenceMapper
from .media import NO_FILE, MediaImporter, is_attachment_payload
from .models import ApplyReport, PullFailureReason, PullResult
from .walker import DEFAULT_MAX_RETRY_PASSES, FieldWalker

logger = logging.getLogger(__name__)

CUSTOM_FIELDS_KEY = "acf"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


class PullOrchestrator:
    """Drive one pull from the source into the destination.

    Args:
        source: Fetches wire documents (normally a ``SourceClient``).
        content_store: Top-level item fields, template, featured image.
        registry: Destination field schema lookups.
        writer: Destination field-update capability.
        media_store: Destination file import.
        finder: Destination content lookups for references.
        sanitize_content: Filter applied to the body HTML; identity when
            the destination sanitizes on write.
        max_retry_passes: Upper bound on custom-field retry passes.
    """

    def __init__(
        self,
        source: DocumentSource,
        *,
        content_store: ContentStore,
        registry: SchemaRegistry,
        writer: FieldWriter,
        media_store: MediaStore,
        finder: ContentFinder,
        sanitize_content: Callable[[str], str] | None = None,
        max_retry_passes: int = DEFAULT_MAX_RETRY_PASSES,
    ) -> None:
        self.source = source
        self.content_store = content_store
        self.registry = registry
        self.writer = writer
        self.media_store = media_store
        self.finder = finder
        self.sanitize_content = sanitize_content or (lambda html: html)
        self.max_retry_passes = max_retry_passes

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def pull(
        self,
        destination_item_id: int,
        source_identifier: str | int,
        content_type: str | None = None,
    ) -> PullResult:
        """Overwrite *destination_item_id* with the source item.

        Without *content_type* the destination item's own type is pulled.

        Returns:
            A ``PullResult``; ``success`` is False only for request,
            transport, status and decoding failures.
        """
        started_at = _now()
        identifier = str(source_identifier).strip()
        post_type = sanitize_key(content_type or "")

        def fail(
            reason: PullFailureReason,
            message: str | None = None,
            tried_url: str | None = None,
            status_code: int | None = None,
        ) -> PullResult:
            text = message or failure_message(reason, status_code)
            logger.error("Pull of %r failed (%s): %s", identifier, reason.value, text)
            return PullResult(
                success=False,
                destination_id=destination_item_id,
                source_identifier=identifier,
                content_type=post_type,
                reason=reason,
                message=text,
                corrective_action=corrective_action(reason),
                tried_url=tried_url,
                status_code=status_code,
                started_at=started_at,
                completed_at=_now(),
            )

        if parse_positive_int(destination_item_id) <= 0 or not identifier:
            return fail(PullFailureReason.INVALID_REQUEST)
        dest_type = self.content_store.get_content_type(destination_item_id)
        if not (content_type or "").strip() and dest_type:
            # No type given: pull the same type as the destination item
            post_type = sanitize_key(dest_type)
        if not post_type:
            return fail(
                PullFailureReason.INVALID_REQUEST,
                f"Invalid content type '{content_type}'.",
            )
        if dest_type is not None and dest_type != post_type:
            return fail(
                PullFailureReason.INVALID_REQUEST,
                "Source content type must match the destination item's type "
                f"('{post_type}' != '{dest_type}').",
            )

        # Step 1: fetch
        try:
            response = self.source.fetch_document(post_type, identifier)
        except ValueError as exc:
            return fail(PullFailureReason.INVALID_REQUEST, str(exc))
        except requests.RequestException as exc:
            return fail(
                PullFailureReason.TRANSPORT_ERROR,
                f"Could not reach the source site: {exc}",
            )

        reason = reason_for_status(response.status_code)
        if reason is not None:
            return fail(
                reason,
                tried_url=response.url,
                status_code=response.status_code,
            )

        # Step 2: decode
        try:
            data = json.loads(response.body)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return fail(
                PullFailureReason.INVALID_RESPONSE,
                tried_url=response.url,
                status_code=response.status_code,
            )

        logger.info(
            "Pulling %s %r into item %d", post_type, identifier, destination_item_id
        )

        # Step 3: content fields, template, featured image
        step_errors: list[str] = []
        self._guarded(
            "content",
            step_errors,
            None,
            self._apply_content,
            destination_item_id,
            data,
        )
        template = self._guarded(
            "template",
            step_errors,
            None,
            self._apply_template,
            destination_item_id,
            data,
        )

        cache = ReferenceCache()
        media = MediaImporter(self.media_store, cache, destination_item_id)
        featured_id = self._guarded(
            "featured_media",
            step_errors,
            NO_FILE,
            self._apply_featured_media,
            destination_item_id,
            data,
            media,
        )

        # Step 4: custom fields
        fields_report = self._apply_custom_fields(
            destination_item_id, data, media
        )

        message = "Content and custom fields updated."
        if fields_report.skipped:
            message += f" {len(fields_report.skipped)} field(s) skipped."
        if step_errors:
            message += f" {len(step_errors)} step(s) failed."

        return PullResult(
            success=True,
            destination_id=destination_item_id,
            source_identifier=identifier,
            content_type=post_type,
            message=message,
            tried_url=response.url,
            status_code=response.status_code,
            template=template,
            featured_media_id=featured_id,
            files_imported=len(cache),
            fields=fields_report,
            step_errors=step_errors,
            started_at=started_at,
            completed_at=_now(),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _guarded(
        self,
        step: str,
        errors: list[str],
        default: Any,
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Run one destination step; a failure is logged and recorded, not raised."""
        try:
            return func(*args)
        except Exception as exc:
            logger.error("Pull step %s failed: %s", step, exc)
            errors.append(f"{step}: {exc}")
            return default

    def _apply_content(self, item_id: int, data: dict[str, Any]) -> None:
        """Overwrite title, body, excerpt, slug and status."""
        status = sanitize_key(_string(data, "status")) or "draft"
        fields = {
            "title": sanitize_text(_string(data, "title")),
            "content": self.sanitize_content(_string(data, "content")),
            "excerpt": sanitize_textarea(_string(data, "excerpt")),
            "slug": sanitize_slug(_string(data, "slug")),
            "status": status,
        }
        self.content_store.update_content(item_id, fields)
        logger.debug("Updated content fields of item %d", item_id)

    def _apply_template(self, item_id: int, data: dict[str, Any]) -> str | None:
        raw = data.get("page_template")
        if not isinstance(raw, str):
            return None
        template = sanitize_text(raw)
        is_valid, reason = validate_template(template)
        if not is_valid:
            logger.warning("Ignoring page template %r: %s", raw, reason)
            return None
        self.content_store.set_template(item_id, template)
        logger.debug("Set template of item %d to %s", item_id, template)
        return template

    def _apply_featured_media(
        self, item_id: int, data: dict[str, Any], media: MediaImporter
    ) -> int:
        featured = data.get("featured_media")
        if not is_attachment_payload(featured):
            return NO_FILE
        file_id = media.resolve_payload(featured)
        if file_id > NO_FILE:
            self.content_store.set_featured_media(item_id, file_id)
        return file_id

    def _apply_custom_fields(
        self, item_id: int, data: dict[str, Any], media: MediaImporter
    ) -> ApplyReport:
        acf = data.get(CUSTOM_FIELDS_KEY)
        if not isinstance(acf, dict) or not acf:
            return ApplyReport()

        walker = FieldWalker(
            registry=self.registry,
            writer=self.writer,
            media=media,
            mapper=ContentReferenceMapper(self.finder),
            context_id=item_id,
            max_retry_passes=self.max_retry_passes,
        )
        report = walker.apply_all(acf)
        logger.info(
            "Custom fields of item %d: %d updated, %d skipped, %d failed",
            item_id,
            len(report.updated),
            len(report.skipped),
            len(report.failed),
        )
        return report


def create_orchestrator(
    source: DocumentSource,
    destination: Any,
    sync_config: SyncConfig | None = None,
    sanitize_content: Callable[[str], str] | None = None,
) -> PullOrchestrator:
    """Wire a destination object that implements every capability protocol.

    ``max_retry_passes`` comes from the ``sync`` config section.
    """
    settings = sync_config or SyncConfig()
    return PullOrchestrator(
        source,
        content_store=destination,
        registry=destination,
        writer=destination,
        media_store=destination,
        finder=destination,
        sanitize_content=sanitize_content,
        max_retry_passes=settings.max_retry_passes,
    )
