import json
import logging
import os
import re
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"

_CREDENTIAL_PARAM = re.compile(r"((?:sf_sync_user|sf_sync_pass)=)[^&\s\"']*")


class CredentialRedactingFilter(logging.Filter):
    """Mask query-string credentials in records from any logger.

    urllib3 logs the full request line at DEBUG, which includes the
    credentials of the 401 fallback retry.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Left for the handler's own handleError() to report
            return True
        redacted = _CREDENTIAL_PARAM.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _build_formatter(log_format: str, with_name: bool) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    if with_name:
        return logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
            datefmt=_DATEFMT,
        )
    return logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s", datefmt=_DATEFMT
    )


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for the content-sync CLI.

    Args:
        debug: If True, overrides every other level setting with DEBUG.
        log_file: Optional file that receives a copy of every record.
        log_format: "text" (default) or "json" for structured output.
        level: Level name from the config file, used when the
            CONTENT_SYNC_LOG_LEVEL env var is unset.

    Environment variables:
        CONTENT_SYNC_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                                Default: INFO.
    """
    env_level = os.getenv("CONTENT_SYNC_LOG_LEVEL", level or "INFO").upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    # stdout is reserved for `fetch` output
    handlers: list[logging.Handler] = []
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_build_formatter(log_format, False))
    handlers.append(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(_build_formatter(log_format, True))
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(CredentialRedactingFilter())

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
    )

    # Silence third-party libs unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)
