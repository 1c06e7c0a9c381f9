"""
YAML configuration discovery and merging.

Config files are looked up by convention, merged with "project wins"
semantics, and ``${VAR}`` / ``${VAR:-default}`` references are expanded from
the environment after the merge.

Usage:
    from confluence_edit_mcp.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONFLUENCE_EDIT_CONFIG"
PROJECT_DIR_NAME = ".confluence_edit"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")

_STARTER_CONFIG = """\
# confluence-edit-mcp configuration
#
# Connection settings can also be set via environment variables:
#   CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN, CONFLUENCE_INSECURE
#
# confluence:
#   url: https://example.atlassian.net/wiki/rest/api/content
#   username: me@example.com
#   token: ${CONFLUENCE_TOKEN}
#   timeout: 60
#
# editor:
#   wrapper_element: wrapper
#   unwrap_on_push: false
#   formatter_command: [tidy, -quiet, -xml, -indent, -wrap, "0", --output-xml, "yes"]
#
# logging:
#   level: INFO
#   file: null
"""


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty VAR yields *default* when given, else ``""``.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


def discover_config_files() -> list[Path]:
    """Return existing config file paths, highest precedence first.

    Search order:
        1. ``CONFLUENCE_EDIT_CONFIG`` env var (explicit single path)
        2. ``.confluence_edit/config.yml`` in CWD (project-level)
        3. ``~/.config/confluence_edit/config.yml`` (XDG global)
    """
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(Path.cwd() / PROJECT_DIR_NAME / "config.yml")
    candidates.append(
        Path.home() / ".config" / "confluence_edit" / "config.yml"
    )

    return [p for p in candidates if p.exists()]


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists."""
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / PROJECT_DIR_NAME / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied from lowest precedence to highest; top-level keys of a
    higher-precedence file replace (not deep-merge) earlier ones.

    Returns an empty dict when no config files exist.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
