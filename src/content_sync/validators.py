"""
Input normalization and validation for content_sync.

Sanitizers applied to values coming from the source document before they
are written on the destination, plus checks for URLs and page templates.
"""

import re
import unicodedata
from urllib.parse import urlparse

_TAG_PATTERN = re.compile(r"<[^>]*>")
_SLUG_INVALID = re.compile(r"[^a-z0-9_\-]")
_KEY_INVALID = re.compile(r"[^a-z0-9_\-]")
_DASH_RUN = re.compile(r"-{2,}")
_WHITESPACE_RUN = re.compile(r"[ \t\r\n]+")

# "default" or a relative PHP template file (e.g. "templates/landing.php")
TEMPLATE_PATTERN = re.compile(r"^[a-z0-9_\-./]+\.php$", re.IGNORECASE)


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Template")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def strip_tags(value: str) -> str:
    return _TAG_PATTERN.sub("", value)


def _remove_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def sanitize_slug(value: str) -> str:
    """Normalize a title or slug into a URL slug.

    Lowercases, strips markup and accents, turns whitespace and dots into
    dashes, drops anything outside ``[a-z0-9_-]`` and collapses dash runs.

    >>> sanitize_slug("  About Us! ")
    'about-us'
    """
    slug = _remove_accents(strip_tags(value)).lower().strip()
    slug = re.sub(r"[\s.]+", "-", slug)
    slug = _SLUG_INVALID.sub("", slug)
    slug = _DASH_RUN.sub("-", slug)
    return slug.strip("-")


def sanitize_slug_path(value: str) -> str:
    """Normalize a hierarchical slug such as ``/Parent/Child Page/``.

    Every segment is slug-normalized; empty segments are dropped.
    """
    segments = [sanitize_slug(part) for part in value.split("/")]
    return "/".join(s for s in segments if s)


def sanitize_key(value: str) -> str:
    """Lowercase and keep only ``[a-z0-9_-]``."""
    return _KEY_INVALID.sub("", value.lower())


def sanitize_text(value: str) -> str:
    """Single-line text: markup removed, whitespace runs collapsed."""
    return _WHITESPACE_RUN.sub(" ", strip_tags(value)).strip()


def sanitize_textarea(value: str) -> str:
    """Multi-line text: markup removed, line breaks preserved."""
    lines = strip_tags(value).replace("\r\n", "\n").split("\n")
    return "\n".join(re.sub(r"[ \t]+", " ", line).strip() for line in lines).strip()


def validate_url(url: str) -> tuple[bool, str]:
    """
    Validate a remote file URL before download.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty
        - Scheme must be http or https
        - Must include a hostname
        - Cannot contain whitespace
    """
    if not url or not url.strip():
        return (False, format_validation_error("URL", "cannot be empty"))

    if any(c.isspace() for c in url):
        return (
            False,
            format_validation_error("URL", "cannot contain whitespace"),
        )

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return (
            False,
            format_validation_error("URL", "must use http or https"),
        )

    if not parsed.hostname:
        return (
            False,
            format_validation_error("URL", "must include a hostname"),
        )

    return (True, "")


def validate_template(template: str) -> tuple[bool, str]:
    """
    Validate a page template identifier from the source document.

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - "default" is always accepted
        - Otherwise must match ``[a-z0-9_-./]+.php`` (case-insensitive)
        - Cannot contain '..' (path traversal protection)
        - Cannot be an absolute path
    """
    if template == "default":
        return (True, "")

    if ".." in template:
        return (
            False,
            format_validation_error("Template", "cannot contain '..'"),
        )

    if template.startswith("/"):
        return (
            False,
            format_validation_error("Template", "cannot be an absolute path"),
        )

    if not TEMPLATE_PATTERN.match(template):
        return (
            False,
            format_validation_error(
                "Template", "must be 'default' or a .php file name"
            ),
        )

    return (True, "")


def parse_positive_int(value: object) -> int:
    """Return ``value`` as a positive int, or 0 when it is not one.

    Accepts ints and digit-only strings; bools are rejected.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else 0
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else 0
    return 0
