"""
Hierarchical configuration loader for notion_docsync.

Finds config files by convention, resolves ``!include`` directives and
``${VAR}`` placeholders, and merges the files so that the project-level
file wins over the global one.

Usage:
    from notion_docsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NOTION_DOCSYNC_CONFIG"
PROJECT_CONFIG_DIR = ".notion_docsync"

# ${VAR} or ${VAR:-fallback}
_PLACEHOLDER = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Substitute ``${VAR}`` and ``${VAR:-default}`` placeholders.

    An unset or empty variable yields its default, or the empty string
    when no default is given.  An unterminated ``${`` is left alone.
    """

    def _substitute(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        fallback = match.group(2)
        return fallback if fallback is not None else ""

    return _PLACEHOLDER.sub(_substitute, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


class ConfigLoader(yaml.SafeLoader):
    """``yaml.SafeLoader`` with an ``!include`` tag.

    A subclass keeps the global SafeLoader untouched.  Each load carries
    the chain of files being included so cycles can be reported.
    """


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Load the file named by ``!include``, relative to the including file."""
    target = Path(loader.construct_scalar(node))
    including_file = Path(loader.name).resolve()
    if not target.is_absolute():
        target = including_file.parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {including_file})"
        )

    return _load_yaml_with_includes(target, _include_stack=[*chain, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first.

    Candidates:
        1. The path in ``NOTION_DOCSYNC_CONFIG``.
        2. ``.notion_docsync/config.yml`` (or ``config.yaml``) in the
           working directory.
        3. ``~/.config/notion_docsync/config.yml``.
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.append(project_dir / "config.yml")
    candidates.append(project_dir / "config.yaml")

    candidates.append(Path.home() / ".config" / "notion_docsync" / "config.yml")

    return [p for p in candidates if p.exists()]


_STARTER_CONFIG = """\
# notion-docsync configuration
#
# Connection settings can also come from the environment:
#   NOTION_TOKEN, NOTION_ROOT_PAGE_ID, NOTION_EXCLUDED_SUBTREE_ID
#
# notion:
#   token: ${NOTION_TOKEN}
#   root_page_id: 0123456789abcdef0123456789abcdef
#   excluded_subtree_id: null
#   timeout: 60
#
# sync:
#   docs_marker: docs
#   publish_patterns: ["*/*.md"]
#   exclude: ["code/*", "*/code/*"]
#   ignore: [node_modules, venv]
#   reading_list_name: Study Material GitHub
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to create the starter file.  Defaults to
            ``.notion_docsync/config.yml`` in the working directory.

    Returns:
        Path of the existing or newly created config file.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / PROJECT_CONFIG_DIR / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge every discovered config file.

    Files are applied from lowest to highest precedence and each file's
    top-level sections replace earlier ones wholesale.  Placeholders are
    interpolated after the merge.  With no config files the result is an
    empty dict.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has a %s at its root, expected a mapping; skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
