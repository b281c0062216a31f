"""Single-item content pull engine.

Public API for copying one content item and its custom fields from a
source site into a destination whose field schema is structurally
compatible but uses different ids for files and content.

Architecture
------------
The destination is reached only through injected capabilities (see
``capabilities``). A pull fetches the source document, overwrites the
item's content fields, then walks the destination field schema in
lock-step with the ``acf`` payload, resolving references as it goes.

Modules:

- ``engine``       -- ``PullOrchestrator``: drives one pull.
- ``walker``       -- ``FieldWalker``: recursive resolution + retry passes.
- ``media``        -- ``MediaImporter``: file references to file ids.
- ``mapper``       -- ``ContentReferenceMapper``: content references to ids.
- ``cache``        -- ``ReferenceCache``: per-pull URL -> file id map.
- ``encoder``      -- ``PayloadEncoder``: source item -> wire document.
- ``schema``       -- field schema tagged union and ACF adapter.
- ``capabilities`` -- collaborator protocols.
- ``models``       -- ``PullResult``, ``ApplyReport`` and source records.
- ``errors``       -- failure messages and corrective actions.
- ``reporter``     -- human-readable and JSON report formatting.

Usage example
-------------
::

    from content_sync.core.client import SourceClient
    from content_sync.sync import create_orchestrator, format_pull_report

    orchestrator = create_orchestrator(
        SourceClient(config), destination, unified.sync
    )
    result = orchestrator.pull(42, "about-us", "page")
    print(format_pull_report(result))
"""

from .cache import ReferenceCache
from .encoder import PayloadEncoder
from .engine import PullOrchestrator, create_orchestrator
from .mapper import ContentReferenceMapper
from .media import MediaImporter
from .models import (
    ApplyReport,
    FieldOutcome,
    PullFailureReason,
    PullResult,
    SourceAttachment,
    SourceContent,
    SourceItem,
)
from .reporter import format_pull_report, result_to_json
from .schema import (
    ComponentField,
    ContentRefField,
    FieldGroupSchema,
    FileField,
    FlexibleField,
    GalleryField,
    GroupField,
    Layout,
    RepeaterField,
    ScalarField,
    parse_field_group,
    parse_field_schema,
)
from .walker import FieldWalker

__all__ = [
    "ApplyReport",
    "ComponentField",
    "ContentRefField",
    "ContentReferenceMapper",
    "FieldGroupSchema",
    "FieldOutcome",
    "FieldWalker",
    "FileField",
    "FlexibleField",
    "GalleryField",
    "GroupField",
    "Layout",
    "MediaImporter",
    "PayloadEncoder",
    "PullFailureReason",
    "PullOrchestrator",
    "PullResult",
    "ReferenceCache",
    "RepeaterField",
    "ScalarField",
    "SourceAttachment",
    "SourceContent",
    "SourceItem",
    "create_orchestrator",
    "format_pull_report",
    "parse_field_group",
    "parse_field_schema",
    "result_to_json",
]
