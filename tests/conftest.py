"""Shared pytest fixtures for notion-docsync tests."""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable

import pytest

from notion_docsync.config import Config
from notion_docsync.core.store import RemoteNode
from notion_docsync.errors import RemoteStoreError, RemoteWriteFailed

ROOT_ID = "a" * 32


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Notion workspace",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live Notion workspace"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeRemoteStore:
    """In-memory ``RemoteStore`` that counts every call.

    Pages are tracked in ``pages`` (id -> title/parent) and every page or
    block id maps to its ordered child blocks in ``children``.  Child
    pages appear in their parent's children as ``child_page`` blocks, as
    they do in Notion.

    Set ``search_enabled = False`` to simulate a search index that has not
    caught up with recent writes.  Use ``fail_when`` to inject errors.
    Set ``batch_limit`` to make page writes land only that many blocks
    before failing, as a request for a later batch would.
    """

    def __init__(self, root_id: str = ROOT_ID, root_title: str = "Root"):
        self.root_id = root_id
        self.pages: dict[str, dict[str, Any]] = {
            root_id: {"title": root_title, "parent_id": None}
        }
        self.children: dict[str, list[dict[str, Any]]] = {root_id: []}
        self.calls: Counter = Counter()
        self.search_enabled = True
        self.batch_limit: int | None = None
        self._failures: dict[str, tuple[Callable[..., bool], Exception]] = {}
        self._seq = 0

    # -- test helpers ---------------------------------------------------

    def fail_when(
        self,
        method: str,
        predicate: Callable[..., bool] = lambda *args: True,
        exc: Exception | None = None,
    ) -> None:
        self._failures[method] = (
            predicate,
            exc or RemoteWriteFailed(f"{method} failed", status=500),
        )

    def _check(self, method: str, *args: Any) -> None:
        self.calls[method] += 1
        if method in self._failures:
            predicate, exc = self._failures[method]
            if predicate(*args):
                raise exc

    def _check_batches(self, blocks: list[dict[str, Any]]) -> None:
        if self.batch_limit is not None and len(blocks) > self.batch_limit:
            raise RemoteWriteFailed("Append batch failed", status=500)

    def _new_id(self) -> str:
        self._seq += 1
        return f"{self._seq:032x}"

    def _stored(self, block: dict[str, Any]) -> dict[str, Any]:
        stored = dict(block)
        stored["id"] = self._new_id()
        self.children.setdefault(stored["id"], [])
        return stored

    def add_page(
        self,
        parent_id: str,
        title: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> str:
        page_id = self._new_id()
        self.pages[page_id] = {"title": title, "parent_id": parent_id}
        self.children[page_id] = [self._stored(b) for b in blocks or []]
        self.children.setdefault(parent_id, []).append(
            {
                "object": "block",
                "id": page_id,
                "type": "child_page",
                "child_page": {"title": title},
            }
        )
        return page_id

    def find(self, title: str) -> list[str]:
        return [pid for pid, p in self.pages.items() if p["title"] == title]

    def content_blocks(self, page_id: str) -> list[dict[str, Any]]:
        return [
            b for b in self.children.get(page_id, []) if b["type"] != "child_page"
        ]

    def blocks_of_type(self, page_id: str, block_type: str) -> list[dict]:
        return [
            b for b in self.children.get(page_id, []) if b["type"] == block_type
        ]

    @property
    def write_calls(self) -> int:
        return sum(
            self.calls[m]
            for m in (
                "create_container",
                "create_leaf",
                "replace_blocks",
                "delete_block",
                "append_child",
                "update_block",
            )
        )

    # -- RemoteStore ----------------------------------------------------

    def search_by_name(self, query: str) -> list[RemoteNode]:
        self._check("search_by_name", query)
        if not self.search_enabled:
            return []
        return [
            RemoteNode(id=pid, title=p["title"], parent_id=p["parent_id"])
            for pid, p in self.pages.items()
            if query.lower() in p["title"].lower()
        ]

    def get_node(self, node_id: str) -> RemoteNode:
        self._check("get_node", node_id)
        if node_id not in self.pages:
            raise RemoteStoreError(f"Page {node_id} not found", status=404)
        page = self.pages[node_id]
        return RemoteNode(id=node_id, title=page["title"], parent_id=page["parent_id"])

    def list_children(self, node_id: str) -> list[dict[str, Any]]:
        self._check("list_children", node_id)
        if node_id not in self.children:
            raise RemoteStoreError(f"Block {node_id} not found", status=404)
        return [dict(b) for b in self.children[node_id]]

    def create_container(self, parent_id: str, name: str) -> str:
        self._check("create_container", parent_id, name)
        return self.add_page(parent_id, name)

    def create_leaf(
        self, parent_id: str, title: str, blocks: list[dict[str, Any]]
    ) -> str:
        self._check("create_leaf", parent_id, title, blocks)
        page_id = self.add_page(parent_id, title, blocks[: self.batch_limit])
        self._check_batches(blocks)
        return page_id

    def replace_blocks(self, page_id: str, blocks: list[dict[str, Any]]) -> None:
        self._check("replace_blocks", page_id, blocks)
        kept = [b for b in self.children[page_id] if b["type"] == "child_page"]
        self.children[page_id] = kept + [
            self._stored(b) for b in blocks[: self.batch_limit]
        ]
        self._check_batches(blocks)

    def delete_block(self, block_id: str) -> None:
        self._check("delete_block", block_id)
        for blocks in self.children.values():
            blocks[:] = [b for b in blocks if b["id"] != block_id]

    def append_child(self, container_id: str, block: dict[str, Any]) -> str:
        self._check("append_child", container_id, block)
        stored = self._stored(block)
        self.children.setdefault(container_id, []).append(stored)
        return stored["id"]

    def update_block(self, block_id: str, block: dict[str, Any]) -> None:
        self._check("update_block", block_id, block)
        for blocks in self.children.values():
            for i, existing in enumerate(blocks):
                if existing["id"] == block_id:
                    blocks[i] = {**block, "id": block_id}
                    return
        raise RemoteStoreError(f"Block {block_id} not found", status=404)


@pytest.fixture
def fake_store():
    """An empty in-memory remote store with only the root page."""
    return FakeRemoteStore()


@pytest.fixture
def write_doc(tmp_path):
    """Factory fixture writing a markdown file below ``tmp_path``."""

    def _write(rel_path: str, content: str):
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        token="secret_test_token",
        root_page_id=ROOT_ID,
    )
