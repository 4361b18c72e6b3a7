"""Change detection between a local document and its remote page."""

from __future__ import annotations

import logging
from enum import Enum

from ..converters import page_fingerprint
from ..core.store import RemoteStore
from .hierarchy import find_exact_child
from .models import ContentPage

logger = logging.getLogger(__name__)


class ChangeStatus(str, Enum):
    ABSENT = "absent"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


class ChangeDetector:
    """Locate content pages and compare their embedded fingerprints.

    Args:
        store: Remote store.
        excluded_ids: Normalized page ids never matched as content pages.
    """

    def __init__(
        self, store: RemoteStore, excluded_ids: frozenset[str] = frozenset()
    ):
        self._store = store
        self._excluded_ids = excluded_ids

    def find_page(self, parent_id: str, title: str) -> ContentPage | None:
        """Return the page titled *title* under *parent_id*, or ``None``.

        Never creates anything.  The page's blocks are read so that the
        fingerprint sentinel, if any, can be extracted.
        """
        page_id = find_exact_child(
            self._store, parent_id, title, self._excluded_ids
        )
        if page_id is None:
            return None

        blocks = self._store.list_children(page_id)
        return ContentPage(
            id=page_id,
            title=title,
            parent_id=parent_id,
            fingerprint=page_fingerprint(blocks),
            blocks=blocks,
        )

    @staticmethod
    def status(page: ContentPage | None, local_fingerprint: str) -> ChangeStatus:
        if page is None:
            return ChangeStatus.ABSENT
        if page.fingerprint == local_fingerprint:
            return ChangeStatus.UNCHANGED
        return ChangeStatus.CHANGED
