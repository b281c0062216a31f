"""Failure messages and corrective actions for aborted pulls.

Every terminal failure of a pull is reported with an error type, a
human-readable message and an action the operator can take, so the
caller can show something useful without interpreting status codes.
"""

from __future__ import annotations

from .models import PullFailureReason

_MESSAGES: dict[PullFailureReason, str] = {
    PullFailureReason.INVALID_REQUEST: "Invalid destination item or source identifier.",
    PullFailureReason.TRANSPORT_ERROR: "Could not reach the source site.",
    PullFailureReason.UNAUTHORIZED: "Invalid source credentials.",
    PullFailureReason.NOT_FOUND: "Source item not found.",
    PullFailureReason.SOURCE_ERROR: "Source returned error: {status_code}",
    PullFailureReason.INVALID_RESPONSE: "Invalid response from source.",
}

_CORRECTIVE_ACTIONS: dict[PullFailureReason, str] = {
    PullFailureReason.INVALID_REQUEST: (
        "Pass a positive destination id, a source id or slug, and a content "
        "type matching the destination item."
    ),
    PullFailureReason.TRANSPORT_ERROR: (
        "Check CONTENT_SYNC_SOURCE_URL and network access, then retry."
    ),
    PullFailureReason.UNAUTHORIZED: (
        "Create an application password on the source site and set "
        "CONTENT_SYNC_USERNAME / CONTENT_SYNC_APP_PASSWORD. If the host "
        "strips auth headers, allow query-string auth on the source."
    ),
    PullFailureReason.NOT_FOUND: (
        "Ensure the sync endpoints are active on the source site and the "
        "slug or id is correct."
    ),
    PullFailureReason.SOURCE_ERROR: "Check the source site logs or retry later.",
    PullFailureReason.INVALID_RESPONSE: (
        "Ensure the source URL points at a site exposing the sync endpoints."
    ),
}


def failure_message(
    reason: PullFailureReason, status_code: int | None = None
) -> str:
    """Return the default message for *reason*.

    Examples:
        >>> failure_message(PullFailureReason.SOURCE_ERROR, 502)
        'Source returned error: 502'
    """
    return _MESSAGES[reason].format(status_code=status_code)


def corrective_action(reason: PullFailureReason) -> str:
    return _CORRECTIVE_ACTIONS[reason]


def reason_for_status(status_code: int) -> PullFailureReason | None:
    """Map a non-2xx source status to a failure reason (None for 2xx)."""
    if 200 <= status_code < 300:
        return None
    if status_code == 401:
        return PullFailureReason.UNAUTHORIZED
    if status_code == 404:
        return PullFailureReason.NOT_FOUND
    return PullFailureReason.SOURCE_ERROR
