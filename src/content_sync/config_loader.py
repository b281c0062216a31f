"""
Config file discovery and loading for content_sync.

Config files are YAML, read with a ``SafeLoader`` subclass that adds an
``!include`` tag. Every discovered file is loaded, then the files are
merged section by section (``source``, ``sync``, ``logging``): within a
section the nearest file wins key by key, so a user-level file can hold
credentials while a project file only tunes ``sync``. ``${VAR}`` and
``${VAR:-default}`` are expanded in string values after the merge.

Usage:
    from content_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONTENT_SYNC_CONFIG"
CONFIG_DIR_NAME = ".content_sync"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty VAR yields *default*, or ``""`` without one.
    """
    return _ENV_VAR_PATTERN.sub(
        lambda m: os.environ.get(m.group(1)) or m.group(2) or "", value
    )


def expand_env_vars(obj: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string inside *obj*."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: expand_env_vars(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [expand_env_vars(item) for item in obj]
    return obj


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that resolves ``!include`` relative to the file being read.

    Each loader knows the chain of files that led to it, so an include
    cycle is reported instead of recursing forever.
    """

    def __init__(self, stream, path: Path, include_stack: tuple[Path, ...] = ()):
        super().__init__(stream)
        self.path = path
        self.include_stack = (*include_stack, path)

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.path.parent / target
        target = target.resolve()

        if target in self.include_stack:
            chain = " -> ".join(str(p) for p in (*self.include_stack, target))
            raise ValueError(f"Circular include detected: {chain}")
        if not target.exists():
            raise FileNotFoundError(
                f"Include file not found: {target} (referenced from {self.path})"
            )
        return load_yaml_file(target, self.include_stack)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def load_yaml_file(path: Path, include_stack: tuple[Path, ...] = ()) -> Any:
    """Parse one YAML file, following its ``!include`` tags."""
    path = Path(path).resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh, path, include_stack)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def merge_sections(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*, one section deep.

    Mapping sections present in both are merged key by key; any other
    value in *override* replaces the one in *base*.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``CONTENT_SYNC_CONFIG`` env var (explicit single path)
        2. ``.content_sync/config.yml`` in CWD
        3. ``.content_sync/config.yaml`` in CWD
        4. ``~/.config/content_sync/config.yml``
    """
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    project_dir = Path.cwd() / CONFIG_DIR_NAME
    candidates += [project_dir / "config.yml", project_dir / "config.yaml"]
    candidates.append(Path.home() / ".config" / "content_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Returns ``{}`` when no config files exist. A file whose root is not a
    mapping is logged and ignored.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged = merge_sections(merged, data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return expand_env_vars(merged)


STARTER_CONFIG = """\
# content-sync configuration
#
# Files are merged per section; the nearest file wins key by key.
# Credentials are best kept in the environment (or a .env file):
#   CONTENT_SYNC_SOURCE_URL, CONTENT_SYNC_USERNAME, CONTENT_SYNC_APP_PASSWORD
#
# source:
#   url: https://source.example.com
#   username: editor
#   app_password: ${CONTENT_SYNC_APP_PASSWORD}
#   insecure: false
#   timeout: 60
#   query_auth_fallback: true
#
# sync:
#   default_content_type: page
#   max_retry_passes: 5
#   rest_namespace: sf-sync/v1
#
# logging:
#   level: INFO
#   file: null
#   format: text
"""


def ensure_config(target: Path | None = None) -> tuple[Path, bool]:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Path to create when no config exists. Defaults to
            ``CWD / .content_sync / config.yml``.

    Returns:
        ``(path, created)``.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0], False

    config_path = target or Path.cwd() / CONFIG_DIR_NAME / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path, True
