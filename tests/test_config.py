"""Tests for notion_docsync.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the connection
bootstrap path: validate_config() and load_config().
"""

import logging

import pytest

from notion_docsync.config import (
    DEFAULT_API_VERSION,
    Config,
    load_config,
    validate_config,
)
from notion_docsync.ids import normalize_id, same_id

ROOT = "1ab535d7772c8081a7edfb3141ef4a62"
ROOT_DASHED = "1ab535d7-772c-8081-a7ed-fb3141ef4a62"

_ENV_VARS = (
    "NOTION_TOKEN",
    "NOTION_ROOT_PAGE_ID",
    "NOTION_EXCLUDED_SUBTREE_ID",
    "NOTION_API_VERSION",
    "NOTION_TIMEOUT",
    "NOTION_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# -------------------------------------------------------------------------
# ids
# -------------------------------------------------------------------------


class TestNormalizeId:
    """Tests for id normalisation."""

    def test_dashed_uuid(self):
        assert normalize_id(ROOT_DASHED.upper()) == ROOT

    def test_page_url(self):
        url = f"https://www.notion.so/workspace/Study-{ROOT}?pvs=4"
        assert normalize_id(url) == ROOT

    def test_same_id(self):
        assert same_id(ROOT, ROOT_DASHED)
        assert not same_id(ROOT, None)
        assert not same_id(ROOT, "f" * 32)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config(): token, id and timeout checks."""

    def test_valid_config(self):
        config = Config(token="secret_x", root_page_id=ROOT)
        validate_config(config)  # should not raise

    def test_ids_normalised_in_place(self):
        config = Config(
            token=" secret_x ",
            root_page_id=ROOT_DASHED,
            excluded_subtree_id="F" * 32,
        )
        validate_config(config)
        assert config.token == "secret_x"
        assert config.root_page_id == ROOT
        assert config.excluded_subtree_id == "f" * 32

    def test_empty_token(self):
        config = Config(token="  ", root_page_id=ROOT)
        with pytest.raises(ValueError, match="token cannot be empty"):
            validate_config(config)

    def test_invalid_root(self):
        config = Config(token="secret_x", root_page_id="not-a-page")
        with pytest.raises(ValueError, match="Invalid root page id"):
            validate_config(config)

    def test_invalid_excluded(self):
        config = Config(
            token="secret_x", root_page_id=ROOT, excluded_subtree_id="nope"
        )
        with pytest.raises(ValueError, match="Invalid excluded subtree id"):
            validate_config(config)

    def test_blank_excluded_becomes_none(self):
        config = Config(
            token="secret_x", root_page_id=ROOT, excluded_subtree_id=""
        )
        validate_config(config)
        assert config.excluded_subtree_id is None

    @pytest.mark.parametrize("timeout", [0, 601])
    def test_timeout_out_of_range(self, timeout):
        config = Config(token="secret_x", root_page_id=ROOT, timeout=timeout)
        with pytest.raises(ValueError, match="Invalid timeout"):
            validate_config(config)

    def test_excluded_root_warns(self, caplog):
        config = Config(
            token="secret_x", root_page_id=ROOT, excluded_subtree_id=ROOT
        )
        with caplog.at_level(logging.WARNING):
            validate_config(config)
        assert "Excluded subtree is the root page" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config(): precedence across sources."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "secret_env")
        monkeypatch.setenv("NOTION_ROOT_PAGE_ID", ROOT_DASHED)
        config = load_config()
        assert config.token == "secret_env"
        assert config.root_page_id == ROOT
        assert config.api_version == DEFAULT_API_VERSION
        assert config.timeout == 60
        assert config.debug is False

    def test_cli_beats_env(self, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "secret_env")
        monkeypatch.setenv("NOTION_ROOT_PAGE_ID", ROOT)
        config = load_config(token="secret_cli", root_page_id="f" * 32)
        assert config.token == "secret_cli"
        assert config.root_page_id == "f" * 32

    def test_env_beats_yaml(self, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "secret_env")
        config = load_config(
            yaml_fallbacks={
                "token": "secret_yaml",
                "root_page_id": ROOT,
                "timeout": 30,
                "api_version": "2025-09-03",
            }
        )
        assert config.token == "secret_env"
        assert config.root_page_id == ROOT
        assert config.timeout == 30
        assert config.api_version == "2025-09-03"

    def test_missing_token(self):
        with pytest.raises(ValueError, match="Notion token not found"):
            load_config(root_page_id=ROOT)

    def test_missing_root(self):
        with pytest.raises(ValueError, match="Root page not found"):
            load_config(token="secret_x")

    def test_invalid_timeout_env(self, monkeypatch):
        monkeypatch.setenv("NOTION_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="Invalid NOTION_TIMEOUT"):
            load_config(token="secret_x", root_page_id=ROOT)

    def test_debug_from_env(self, monkeypatch):
        monkeypatch.setenv("NOTION_DEBUG", "yes")
        assert load_config(token="secret_x", root_page_id=ROOT).debug is True

    def test_excluded_from_env(self, monkeypatch):
        monkeypatch.setenv("NOTION_EXCLUDED_SUBTREE_ID", "B" * 32)
        config = load_config(token="secret_x", root_page_id=ROOT)
        assert config.excluded_subtree_id == "b" * 32
