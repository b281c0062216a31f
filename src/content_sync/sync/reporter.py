"""Pull result formatting.

- ``format_pull_report`` -- human-readable summary for the terminal.
- ``result_to_json`` -- structured dict for machine consumers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import PullResult


def _field_section(title: str, names: list[str]) -> list[str]:
    if not names:
        return []
    return [f"{title}:"] + [f"  {name}" for name in names] + [""]


def format_pull_report(result: PullResult) -> str:
    """Format a pull result as human-readable text.

    Field sections are only included when they contain at least one name.

    Args:
        result: The completed pull result.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = (
        f"Pull of {result.content_type} '{result.source_identifier}' "
        f"into item {result.destination_id}"
    )
    lines.append(header)
    lines.append(f"Started: {result.started_at}")
    if result.completed_at:
        lines.append(f"Completed: {result.completed_at}")
    lines.append("")

    if not result.success:
        reason = result.reason.value if result.reason else "error"
        lines.append(f"Error ({reason}): {result.message}")
        if result.tried_url:
            lines.append(f"Tried URL: {result.tried_url}")
        if result.corrective_action:
            lines.append("")
            lines.append(f"Action: {result.corrective_action}")
        return "\n".join(lines)

    lines.append(result.message)
    if result.template:
        lines.append(f"Template: {result.template}")
    if result.featured_media_id:
        lines.append(f"Featured image: file {result.featured_media_id}")
    lines.append(f"Files imported: {result.files_imported}")
    lines.append("")

    fields = result.fields
    if fields is not None:
        lines.append(
            f"Custom fields: {len(fields.updated)} updated, "
            f"{len(fields.skipped)} skipped, {len(fields.failed)} failed, "
            f"{fields.retry_passes} retry pass(es)"
        )
        lines.append("")
        lines.extend(_field_section("Resolved on retry", fields.resolved_on_retry))
        lines.extend(_field_section("Skipped (no field definition)", fields.skipped))
        lines.extend(_field_section("Failed", fields.failed))

    lines.extend(_field_section("Step errors", result.step_errors))

    return "\n".join(lines).rstrip("\n")


def result_to_json(result: PullResult) -> dict[str, Any]:
    """Convert a pull result to a JSON-serialisable dict.

    Returns:
        Dict with ``success``, ``summary`` counts, the failure block
        (``None`` on success) and per-field name lists.
    """
    fields = result.fields
    return {
        "success": result.success,
        "destination_id": result.destination_id,
        "source_identifier": result.source_identifier,
        "content_type": result.content_type,
        "started_at": result.started_at,
        "completed_at": result.completed_at,
        "error": (
            None
            if result.success
            else {
                "type": result.reason.value if result.reason else None,
                "message": result.message,
                "action": result.corrective_action,
                "tried_url": result.tried_url,
                "status_code": result.status_code,
            }
        ),
        "summary": {
            "updated": len(fields.updated) if fields else 0,
            "skipped": len(fields.skipped) if fields else 0,
            "failed": len(fields.failed) if fields else 0,
            "retry_passes": fields.retry_passes if fields else 0,
            "files_imported": result.files_imported,
        },
        "template": result.template,
        "featured_media_id": result.featured_media_id,
        "fields": fields.model_dump() if fields else None,
        "step_errors": list(result.step_errors),
    }
