"""Runtime configuration for the page editor.

Reads connection and editor settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CONFLUENCE_URL: Content endpoint, e.g.
        https://example.atlassian.net/wiki/rest/api/content (required)
    CONFLUENCE_USERNAME: Account name / email for basic auth (required)
    CONFLUENCE_TOKEN: API token or password (required)
    CONFLUENCE_INSECURE: Skip SSL verification (optional, default: false)
    CONFLUENCE_DEBUG: Enable debug logging (optional, default: false)
    CONFLUENCE_TIMEOUT: Read timeout in seconds (optional, default: 60)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .core.codec import DEFAULT_WRAPPER, is_valid_element_name

logger = logging.getLogger(__name__)

DEFAULT_FORMATTER_COMMAND = (
    "tidy",
    "-quiet",
    "-xml",
    "-indent",
    "-wrap",
    "0",
    "--output-xml",
    "yes",
)


@dataclass
class Config:
    base_url: str
    username: str
    token: str
    insecure: bool = False
    debug: bool = False
    timeout: float = 60.0
    wrapper_element: str = DEFAULT_WRAPPER
    unwrap_on_push: bool = False
    formatter_command: tuple[str, ...] | None = DEFAULT_FORMATTER_COMMAND


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the URL is malformed, credentials are empty, the
            timeout is not positive, or the wrapper is not an XML name.
    """
    config.base_url = config.base_url.strip()

    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid Confluence URL '{config.base_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.base_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid Confluence URL '{config.base_url}': URL must include a hostname"
        )

    config.base_url = config.base_url.removesuffix("/")

    if not config.username.strip():
        raise ValueError(
            "Confluence username cannot be empty. Set CONFLUENCE_USERNAME environment variable."
        )

    if not config.token.strip():
        raise ValueError(
            "Confluence token cannot be empty. Set CONFLUENCE_TOKEN environment variable."
        )

    if config.timeout <= 0:
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be a positive number of seconds"
        )

    if not is_valid_element_name(config.wrapper_element):
        raise ValueError(
            f"Invalid wrapper element '{config.wrapper_element}': must be an XML element name"
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
    # A CLI flag can only switch a setting on
    if cli_value:
        return True
    env_value = _get_bool_env(env_key)
    if env_value is not None:
        return env_value
    return bool(fallback)


def load_config(
    url: str | None = None,
    username: str | None = None,
    token: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    editor_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override content endpoint URL.
        username: Override username.
        token: Override API token.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Values from the YAML ``confluence`` section.
        editor_fallbacks: Values from the YAML ``editor`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If URL, username or token is missing after checking all
            sources, or any value fails validation.
    """
    fb = yaml_fallbacks or {}
    editor = editor_fallbacks or {}

    base_url = url or os.getenv("CONFLUENCE_URL") or fb.get("url")
    if not base_url:
        raise ValueError(
            "Confluence URL not found. Set CONFLUENCE_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    final_username = (
        username or os.getenv("CONFLUENCE_USERNAME") or fb.get("username")
    )
    if not final_username:
        raise ValueError(
            "Confluence username not found. Set CONFLUENCE_USERNAME environment variable, "
            "pass --username CLI argument, or add 'username' to config.yml."
        )

    final_token = token or os.getenv("CONFLUENCE_TOKEN") or fb.get("token")
    if not final_token:
        raise ValueError(
            "Confluence token not found. Set CONFLUENCE_TOKEN environment variable, "
            "pass --token CLI argument, or add 'token' to config.yml."
        )

    timeout_raw = os.getenv("CONFLUENCE_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid CONFLUENCE_TIMEOUT '{timeout_raw}': must be a number of seconds"
            ) from None
    elif "timeout" in fb:
        final_timeout = float(fb["timeout"])
    else:
        final_timeout = 60.0

    formatter = editor.get("formatter_command", DEFAULT_FORMATTER_COMMAND)

    config = Config(
        base_url=base_url.strip(),
        username=final_username.strip(),
        token=final_token.strip(),
        insecure=_resolve_flag(
            insecure, "CONFLUENCE_INSECURE", fb.get("insecure", False)
        ),
        debug=_resolve_flag(
            debug, "CONFLUENCE_DEBUG", fb.get("debug", False)
        ),
        timeout=final_timeout,
        wrapper_element=editor.get("wrapper_element", DEFAULT_WRAPPER),
        unwrap_on_push=bool(editor.get("unwrap_on_push", False)),
        formatter_command=tuple(formatter) if formatter else None,
    )

    validate_config(config)

    return config
