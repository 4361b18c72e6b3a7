"""Container hierarchy resolution.

Turns the folder segments of a logical path into a chain of remote
container pages below the root, reusing existing pages and creating only
the missing ones.  Lookups go through ``find_exact_child`` which is shared
with the change detector.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..core.store import RemoteStore, child_page_title
from ..errors import LookupAmbiguous
from ..ids import normalize_id, same_id
from .models import ContainerNode

logger = logging.getLogger(__name__)


def _search_exact(
    store: RemoteStore, parent_id: str, name: str, excluded: frozenset[str]
) -> str | None:
    candidates = store.search_by_name(name)
    if not candidates:
        return None
    for node in candidates:
        if normalize_id(node.id) in excluded:
            continue
        if node.title == name and same_id(node.parent_id, parent_id):
            return node.id
    raise LookupAmbiguous(name, parent_id, len(candidates))


def find_exact_child(
    store: RemoteStore,
    parent_id: str,
    name: str,
    excluded: frozenset[str] = frozenset(),
) -> str | None:
    """Return the id of the page titled *name* directly under *parent_id*.

    The search index is tried first.  Because it lags behind writes, the
    parent's child pages are scanned when search finds nothing.  Matches
    whose normalised id is in *excluded* are ignored.
    """
    try:
        found = _search_exact(store, parent_id, name, excluded)
    except LookupAmbiguous as exc:
        logger.debug("Search miss: %s", exc)
        found = None
    if found is not None:
        return found

    for block in store.list_children(parent_id):
        if child_page_title(block) != name:
            continue
        if normalize_id(block["id"]) in excluded:
            continue
        return block["id"]
    return None


class HierarchyResolver:
    """Resolve folder chains to container page ids.

    Resolved ids are memoised per ``(parent, name)`` for the lifetime of
    the instance, so a run never creates the same container twice.

    Args:
        store: Remote store to search and create in.
        excluded_ids: Page ids that are never reused as containers.
    """

    def __init__(self, store: RemoteStore, excluded_ids: Iterable[str] = ()):
        self._store = store
        self._excluded = frozenset(normalize_id(i) for i in excluded_ids)
        self._memo: dict[tuple[str, str], ContainerNode] = {}

    def resolve(self, segments: Sequence[str], root_id: str) -> str:
        """Return the id of the innermost container for *segments*.

        An empty sequence resolves to *root_id* itself.
        """
        parent = root_id
        for segment in segments:
            parent = self._resolve_one(parent, segment)
        return parent

    def _resolve_one(self, parent_id: str, name: str) -> str:
        key = (normalize_id(parent_id), name)
        cached = self._memo.get(key)
        if cached is not None:
            return cached.id

        found = find_exact_child(self._store, parent_id, name, self._excluded)
        if found is None:
            found = self._store.create_container(parent_id, name)
            logger.info("Created container '%s' under %s", name, parent_id)
        else:
            logger.debug("Reusing container '%s' (%s)", name, found)

        self._memo[key] = ContainerNode(id=found, name=name, parent_id=parent_id)
        return found

    @property
    def containers(self) -> list[ContainerNode]:
        """Containers resolved so far, in resolution order."""
        return list(self._memo.values())
