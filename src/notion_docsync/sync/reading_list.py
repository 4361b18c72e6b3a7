"""Reading-list registration for newly created pages.

The reading list is a toggle block on the root page.  Each page created
by a push gets one ``link_to_page`` entry inside it.  Entries are never
removed, so a page that is deleted and re-created remotely is listed
twice.
"""

from __future__ import annotations

import logging
from typing import Any

from ..converters import Text
from ..converters.blocks import plain_text
from ..converters.notion_blocks import rich_text_to_spans, spans_to_rich_text
from ..core.store import RemoteStore

logger = logging.getLogger(__name__)


def toggle_block(name: str) -> dict[str, Any]:
    return {
        "object": "block",
        "type": "toggle",
        "toggle": {"rich_text": spans_to_rich_text((Text(name),))},
    }


def link_block(page_id: str) -> dict[str, Any]:
    return {
        "object": "block",
        "type": "link_to_page",
        "link_to_page": {"type": "page_id", "page_id": page_id},
    }


class ReadingList:
    """Append entries to the reading-list toggle on the root page.

    The toggle is located (or created) on first use and its id cached
    for the rest of the run.

    Args:
        store: Remote store.
        root_id: Root page holding the toggle.
        name: Exact text of the toggle block.
    """

    def __init__(self, store: RemoteStore, root_id: str, name: str):
        self._store = store
        self._root_id = root_id
        self._name = name
        self._toggle_id: str | None = None

    def _find_toggle(self) -> str | None:
        for block in self._store.list_children(self._root_id):
            if block.get("type") != "toggle":
                continue
            items = (block.get("toggle") or {}).get("rich_text") or []
            if plain_text(rich_text_to_spans(items)).strip() == self._name:
                return block["id"]
        return None

    def container_id(self) -> str:
        """Return the toggle block id, creating the toggle if missing."""
        if self._toggle_id is None:
            found = self._find_toggle()
            if found is None:
                found = self._store.append_child(
                    self._root_id, toggle_block(self._name)
                )
                logger.info("Created reading list '%s'", self._name)
            self._toggle_id = found
        return self._toggle_id

    def register(self, page_id: str) -> str:
        """Add a link to *page_id* and return the new entry's block id."""
        entry_id = self._store.append_child(
            self.container_id(), link_block(page_id)
        )
        logger.debug("Registered %s in reading list", page_id)
        return entry_id
