"""Connection configuration for the Notion remote store.

Reads Notion settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    NOTION_TOKEN: Notion integration token (required)
    NOTION_ROOT_PAGE_ID: Id or URL of the anchor page (required)
    NOTION_EXCLUDED_SUBTREE_ID: Page id never pulled (optional)
    NOTION_API_VERSION: Notion-Version header (optional, default: 2022-06-28)
    NOTION_TIMEOUT: Read timeout in seconds (optional, default: 60)
"""

import logging
import os
import re
from dataclasses import dataclass

from .ids import normalize_id

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2022-06-28"

_HEX_ID = re.compile(r"^[0-9a-f]{32}$")


@dataclass
class Config:
    token: str
    root_page_id: str
    excluded_subtree_id: str | None = None
    api_version: str = DEFAULT_API_VERSION
    timeout: int = 60
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Page ids are normalised in place to their dash-free form.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the token is empty, a page id is malformed or the
            timeout is out of range.
    """
    config.token = config.token.strip()
    if not config.token:
        raise ValueError(
            "Notion token cannot be empty. Set NOTION_TOKEN environment variable."
        )

    root = normalize_id(config.root_page_id)
    if not _HEX_ID.match(root):
        raise ValueError(
            f"Invalid root page id '{config.root_page_id}': expected a 32 character "
            "hex id, a dashed UUID or a Notion page URL"
        )
    config.root_page_id = root

    if config.excluded_subtree_id:
        excluded = normalize_id(config.excluded_subtree_id)
        if not _HEX_ID.match(excluded):
            raise ValueError(
                f"Invalid excluded subtree id '{config.excluded_subtree_id}'"
            )
        config.excluded_subtree_id = excluded
    else:
        config.excluded_subtree_id = None

    if not (1 <= config.timeout <= 600):
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be between 1 and 600 seconds"
        )

    if config.excluded_subtree_id == config.root_page_id:
        logger.warning(
            "Excluded subtree is the root page; pull will not sync anything"
        )


def load_config(
    token: str | None = None,
    root_page_id: str | None = None,
    excluded_subtree_id: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override integration token.
        root_page_id: Override anchor page id.
        excluded_subtree_id: Override excluded subtree id.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``notion`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If required config (token, root page) is missing or
            any value is invalid.
    """
    fb = yaml_fallbacks or {}

    final_token = token or os.getenv("NOTION_TOKEN") or fb.get("token")
    if not final_token:
        raise ValueError(
            "Notion token not found. Set NOTION_TOKEN environment variable, "
            "pass --token CLI argument, or add 'token' to config.yml."
        )

    final_root = (
        root_page_id
        or os.getenv("NOTION_ROOT_PAGE_ID")
        or fb.get("root_page_id")
    )
    if not final_root:
        raise ValueError(
            "Root page not found. Set NOTION_ROOT_PAGE_ID environment variable, "
            "pass --root-page CLI argument, or add 'root_page_id' to config.yml."
        )

    final_excluded = (
        excluded_subtree_id
        or os.getenv("NOTION_EXCLUDED_SUBTREE_ID")
        or fb.get("excluded_subtree_id")
    )

    final_version = (
        os.getenv("NOTION_API_VERSION")
        or fb.get("api_version")
        or DEFAULT_API_VERSION
    )

    timeout_raw = os.getenv("NOTION_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = int(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid NOTION_TIMEOUT '{timeout_raw}': must be a number between 1 and 600"
            ) from None
    elif "timeout" in fb:
        final_timeout = int(fb["timeout"])
    else:
        final_timeout = 60

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("NOTION_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        token=final_token,
        root_page_id=final_root,
        excluded_subtree_id=final_excluded,
        api_version=final_version,
        timeout=final_timeout,
        debug=final_debug,
    )

    validate_config(config)

    return config
