"""Connection settings for the source site.

Reads source connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CONTENT_SYNC_SOURCE_URL: Source site URL (required)
    CONTENT_SYNC_USERNAME: Source username (required)
    CONTENT_SYNC_APP_PASSWORD: Source application password (required)
    CONTENT_SYNC_INSECURE: Skip SSL verification (optional, default: false)
    CONTENT_SYNC_DEBUG: Enable debug logging (optional, default: false)
    CONTENT_SYNC_TIMEOUT: Request timeout in seconds (optional, default: 60)
    CONTENT_SYNC_QUERY_AUTH_FALLBACK: Retry a 401 with query-string
        credentials (optional, default: true)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class Config:
    source_url: str
    username: str
    app_password: str
    insecure: bool = False
    debug: bool = False
    timeout: int = 60
    query_auth_fallback: bool = True
    rest_namespace: str = "sf-sync/v1"


def normalize_app_password(value: str) -> str:
    """Application passwords are displayed in space-separated groups."""
    return value.replace(" ", "").strip()


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or credentials are empty.
    """
    config.source_url = config.source_url.strip()

    if not config.source_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid source URL '{config.source_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.source_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid source URL '{config.source_url}': URL must include a hostname"
        )

    config.source_url = config.source_url.rstrip("/")

    if not config.username.strip():
        raise ValueError(
            "Source username cannot be empty. Set CONTENT_SYNC_USERNAME environment variable."
        )

    config.app_password = normalize_app_password(config.app_password)
    if not config.app_password:
        raise ValueError(
            "Application password cannot be empty. Set CONTENT_SYNC_APP_PASSWORD environment variable."
        )

    if not (1 <= config.timeout <= 600):
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be between 1 and 600 seconds"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_flag(cli_value: bool, env_key: str, fallback: object) -> bool:
    if cli_value:
        return True
    env_value = _get_bool_env(env_key)
    if env_value is not None:
        return env_value
    return bool(fallback)


def load_config(
    url: str | None = None,
    username: str | None = None,
    password: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    rest_namespace: str | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override source URL.
        username: Override username.
        password: Override application password.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``source`` section.
            Used as fallback when CLI arg and env var are both unset.
        rest_namespace: REST namespace from the YAML ``sync`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If required config (URL, username, password) is missing
            after checking all sources, or a numeric value is out of range.
    """
    fb = yaml_fallbacks or {}

    source_url = url or os.getenv("CONTENT_SYNC_SOURCE_URL") or fb.get("url")
    if not source_url:
        raise ValueError(
            "Source URL not found. Set CONTENT_SYNC_SOURCE_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    source_username = (
        username or os.getenv("CONTENT_SYNC_USERNAME") or fb.get("username")
    )
    if not source_username:
        raise ValueError(
            "Source username not found. Set CONTENT_SYNC_USERNAME environment variable, "
            "pass --username CLI argument, or add 'username' to config.yml."
        )

    app_password = (
        password
        or os.getenv("CONTENT_SYNC_APP_PASSWORD")
        or fb.get("app_password")
    )
    if not app_password:
        raise ValueError(
            "Application password not found. Set CONTENT_SYNC_APP_PASSWORD environment variable, "
            "pass --password CLI argument, or add 'app_password' to config.yml."
        )

    final_insecure = _resolve_flag(
        insecure, "CONTENT_SYNC_INSECURE", fb.get("insecure", False)
    )
    final_debug = _resolve_flag(
        debug, "CONTENT_SYNC_DEBUG", fb.get("debug", False)
    )

    query_fallback_env = _get_bool_env("CONTENT_SYNC_QUERY_AUTH_FALLBACK")
    if query_fallback_env is not None:
        final_query_fallback = query_fallback_env
    else:
        final_query_fallback = bool(fb.get("query_auth_fallback", True))

    timeout_raw = os.getenv("CONTENT_SYNC_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = int(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid CONTENT_SYNC_TIMEOUT '{timeout_raw}': must be a number between 1 and 600"
            ) from None
    elif "timeout" in fb:
        final_timeout = int(fb["timeout"])
    else:
        final_timeout = 60

    config = Config(
        source_url=source_url.strip(),
        username=source_username.strip(),
        app_password=app_password,
        insecure=final_insecure,
        debug=final_debug,
        timeout=final_timeout,
        query_auth_fallback=final_query_fallback,
        rest_namespace=rest_namespace or "sf-sync/v1",
    )

    validate_config(config)

    return config
