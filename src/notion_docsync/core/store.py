"""Remote store contract used by the sync core.

The sync engine never talks to Notion directly; it depends on the
``RemoteStore`` protocol below.  ``NotionClient`` is the production
implementation and tests use an in-memory fake.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel


class RemoteNode(BaseModel):
    """Metadata for one remote page.

    Attributes:
        id: Page id as returned by the store.
        title: Plain-text page title.
        parent_id: Id of the parent page, or ``None`` for workspace-level
            pages and pages parented by databases.
    """

    id: str
    title: str
    parent_id: str | None = None

    model_config = {"frozen": True}


class RemoteStore(Protocol):
    """Capabilities the sync core requires from the remote store.

    Block payloads are Notion-shaped dicts.  Child pages appear in
    ``list_children`` results as ``child_page`` blocks.
    """

    def search_by_name(self, query: str) -> list[RemoteNode]:
        """Textual search; may be fuzzy, callers filter for exact matches."""
        ...  # pragma: no cover

    def get_node(self, node_id: str) -> RemoteNode:
        """Fetch page metadata."""
        ...  # pragma: no cover

    def list_children(self, node_id: str) -> list[dict[str, Any]]:
        """Return the ordered child blocks of a page or block."""
        ...  # pragma: no cover

    def create_container(self, parent_id: str, name: str) -> str:
        """Create an empty page under *parent_id* and return its id."""
        ...  # pragma: no cover

    def create_leaf(
        self, parent_id: str, title: str, blocks: list[dict[str, Any]]
    ) -> str:
        """Create a page with *blocks* as content and return its id."""
        ...  # pragma: no cover

    def replace_blocks(
        self, page_id: str, blocks: list[dict[str, Any]]
    ) -> None:
        """Delete every content block of a page, then append *blocks*."""
        ...  # pragma: no cover

    def delete_block(self, block_id: str) -> None:
        """Delete (archive) one block."""
        ...  # pragma: no cover

    def append_child(self, container_id: str, block: dict[str, Any]) -> str:
        """Append one block under *container_id* and return its id."""
        ...  # pragma: no cover

    def update_block(self, block_id: str, block: dict[str, Any]) -> None:
        """Overwrite the content of one existing block in place."""
        ...  # pragma: no cover


# Block types that are pages in their own right and never page content.
PAGE_BLOCK_TYPES = frozenset({"child_page", "child_database"})


def child_page_title(block: dict[str, Any]) -> str | None:
    """Return the title of a ``child_page`` block, or ``None`` otherwise."""
    if block.get("type") != "child_page":
        return None
    return (block.get("child_page") or {}).get("title", "")
