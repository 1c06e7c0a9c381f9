"""Unified configuration schema.

Pydantic models for the YAML config structure, with sections for the
Confluence connection, the editor buffer, and logging. The connection and
editor sections become fallbacks for ``load_config()``; the logging section
feeds ``setup_logging()``.

Usage:
    from confluence_edit_mcp.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from .core.codec import DEFAULT_WRAPPER, is_valid_element_name

logger = logging.getLogger(__name__)


class ConfluenceConfig(BaseModel):
    """Connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(
        default=None, description="Content endpoint URL"
    )
    username: str | None = Field(default=None, description="Username")
    token: str | None = Field(default=None, description="API token")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: float = Field(
        default=60.0, gt=0, description="Read timeout in seconds"
    )

    model_config = {"frozen": True}


class EditorConfig(BaseModel):
    """Editable buffer settings.

    Attributes:
        wrapper_element: Container element added around storage bodies.
        unwrap_on_push: Strip the container element before pushing.
        formatter_command: External pretty-printer argv; ``None`` selects
            the in-process lxml formatter.
    """

    wrapper_element: str = Field(default=DEFAULT_WRAPPER)
    unwrap_on_push: bool = Field(default=False)
    formatter_command: list[str] | None = Field(
        default_factory=lambda: [
            "tidy",
            "-quiet",
            "-xml",
            "-indent",
            "-wrap",
            "0",
            "--output-xml",
            "yes",
        ]
    )

    model_config = {"frozen": True}

    @field_validator("wrapper_element")
    @classmethod
    def _check_wrapper(cls, value: str) -> str:
        if not is_valid_element_name(value):
            raise ValueError(f"'{value}' is not a valid XML element name")
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            ``None`` keeps the mode default.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration. ``UnifiedConfig()`` is always valid."""

    confluence: ConfluenceConfig = Field(default_factory=ConfluenceConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from ``load_hierarchical_config()`` output.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

