"""Pydantic models for the pull engine.

Defines the data contracts shared across sync modules:

- ``FieldOutcome``: What happened to one top-level custom field.
- ``ApplyReport``: Updated, skipped and failed field names, retry passes run.
- ``PullFailureReason``: Why a pull aborted.
- ``PullResult``: Outcome of one pull.
- ``SourceAttachment``, ``SourceContent``, ``SourceItem``: what the
  encoder reads on the source side.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

from .schema import FieldSchema


class FieldOutcome(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ApplyReport(BaseModel):
    """Diagnostics of one custom-field application.

    Attributes:
        updated: Field names written, in the order they were written.
        skipped: Field names still without a schema after every pass.
        failed: Field names whose resolution or write raised.
        retry_passes: Number of retry passes that ran (0 when the first
            pass resolved everything).
        resolved_on_retry: Field names that only resolved on a retry pass.
    """

    updated: list[str] = []
    skipped: list[str] = []
    failed: list[str] = []
    retry_passes: int = 0
    resolved_on_retry: list[str] = []

    model_config = {"frozen": True}

    def outcome(self, field_name: str) -> FieldOutcome | None:
        if field_name in self.updated:
            return FieldOutcome.UPDATED
        if field_name in self.skipped:
            return FieldOutcome.SKIPPED
        if field_name in self.failed:
            return FieldOutcome.FAILED
        return None


class PullFailureReason(str, Enum):
    """Terminal failure classes of a pull."""

    INVALID_REQUEST = "invalid_request"
    TRANSPORT_ERROR = "transport_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    SOURCE_ERROR = "source_error"
    INVALID_RESPONSE = "invalid_response"


class PullResult(BaseModel):
    """Outcome of pulling one source item into one destination item.

    Attributes:
        success: Whether the pull ran to completion.
        destination_id: Destination item that was (or would be) updated.
        source_identifier: Id or slug asked for on the source.
        content_type: Content type of both items.
        reason: Failure class when ``success`` is False.
        message: Human-readable outcome.
        corrective_action: What the operator can do about a failure.
        tried_url: Source URL requested, when one was built.
        status_code: HTTP status of the source answer, when one arrived.
        template: Template written on the destination, if any.
        featured_media_id: Destination file id set as primary image (0 if none).
        files_imported: Distinct files imported during this pull.
        fields: Custom-field diagnostics.
        step_errors: Destination steps (content, template, featured_media)
            that raised, as ``"step: error"`` strings.
        started_at: ISO 8601 timestamp when the pull started.
        completed_at: ISO 8601 timestamp when the pull ended.
    """

    success: bool
    destination_id: int
    source_identifier: str
    content_type: str
    reason: PullFailureReason | None = None
    message: str = ""
    corrective_action: str = ""
    tried_url: str | None = None
    status_code: int | None = None
    template: str | None = None
    featured_media_id: int = 0
    files_imported: int = 0
    fields: ApplyReport | None = None
    step_errors: list[str] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Source-side records
# ---------------------------------------------------------------------------


class SourceAttachment(BaseModel):
    """A file asset on the source."""

    id: int
    url: str
    alt: str = ""
    filename: str = ""

    model_config = {"frozen": True}


class SourceContent(BaseModel):
    """Identity of a content item on the source."""

    id: int
    content_type: str = "page"
    slug: str = ""
    title: str = ""

    model_config = {"frozen": True}


class SourceItem(BaseModel):
    """A full content item on the source, as handed to the encoder.

    Attributes:
        fields: Raw custom-field values keyed by field name. File and
            content references are source-local ids (or ``{"ID": n}``
            mappings for expanded images).
        field_schemas: Source field definitions. When given, encoding is
            schema-driven; otherwise references are guessed from values.
    """

    id: int
    content_type: str = "page"
    title: str = ""
    content: str = ""
    excerpt: str = ""
    slug: str = ""
    status: str = "publish"
    page_template: str | None = None
    featured_media_id: int = 0
    fields: dict[str, Any] = {}
    field_schemas: list[FieldSchema] | None = None

    model_config = {"frozen": True}
