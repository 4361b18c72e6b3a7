"""Sync engine that reconciles the local tree with the remote tree.

The ``Reconciler`` ties together the path mapper, hierarchy resolver,
change detector, content codec and reading list.  A push:

1. Lists local markdown files and keeps the publishable ones.
2. Resolves each document's folder chain to container pages.
3. Fingerprints the content and compares it with the page's sentinel.
4. Creates, replaces or skips the page.  New content goes out behind a
   pending sentinel that is sealed with the fingerprint once every block
   has been written.
5. Registers newly created pages in the reading list.

A pull walks the remote tree from the root and writes every content page
whose markdown differs from the local file.

Error handling is per document: a single failure does not abort the run.
Only an unreachable root page is fatal.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config_schema import SyncSettings
from ..converters import (
    PENDING_CREATE,
    PENDING_UPDATE,
    blocks_to_markdown,
    blocks_to_notion,
    find_sentinel,
    fingerprint_block,
    markdown_to_blocks,
    notion_to_blocks,
)
from ..core.store import PAGE_BLOCK_TYPES, RemoteStore, child_page_title
from ..errors import RemoteWriteFailed, RootUnavailable
from ..file_handler import LocalStore
from ..ids import normalize_id
from .detector import ChangeDetector, ChangeStatus
from .fingerprint import fingerprint
from .hierarchy import HierarchyResolver
from .mapper import PathMapper
from .models import Document, SyncOutcome, SyncReport, SyncResult
from .reading_list import ReadingList

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _contained_path(local_root: Path, rel_path: str) -> Path:
    """Join *rel_path* to *local_root*, refusing anything that leaves it.

    Raises:
        ValueError: If the resolved path is outside the local root.
    """
    target = local_root / rel_path
    if not target.resolve().is_relative_to(local_root.resolve()):
        raise ValueError(f"{rel_path} resolves outside {local_root}")
    return target


class Reconciler:
    """Run push and pull passes between a local root and a remote root.

    Args:
        store: Remote store.
        settings: Sync conventions.
        root_id: Anchor page below which everything is synced.
        local_store: Filesystem access; a default ``LocalStore`` honouring
            ``settings.ignore`` is used when omitted.
        excluded_subtree_id: Page never pulled and never reused as a
            container, e.g. a separately maintained reading list.
    """

    def __init__(
        self,
        store: RemoteStore,
        settings: SyncSettings,
        root_id: str,
        local_store: LocalStore | None = None,
        excluded_subtree_id: str | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.root_id = root_id
        self.local_store = local_store or LocalStore(ignore=settings.ignore)
        self.excluded_subtree_id = excluded_subtree_id

        self.mapper = PathMapper(settings)
        self.detector = ChangeDetector(store, self._excluded_ids())
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Stop before the next document.  The current one completes."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def _check_root(self) -> None:
        try:
            node = self.store.get_node(self.root_id)
        except Exception as exc:
            raise RootUnavailable(self.root_id, str(exc)) from exc
        logger.debug("Root page: %s (%s)", node.title, node.id)

    def _excluded_ids(self, extra: str | None = None) -> frozenset[str]:
        ids = {i for i in (self.excluded_subtree_id, extra) if i}
        return frozenset(normalize_id(i) for i in ids)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(self, local_root: Path | str) -> SyncReport:
        """Publish local markdown files to the remote tree.

        Raises:
            RootUnavailable: If the root page cannot be fetched.
        """
        local_root = Path(local_root)
        started_at = _now()
        self._check_root()

        resolver = HierarchyResolver(self.store, self._excluded_ids())
        reading_list = ReadingList(
            self.store, self.root_id, self.settings.reading_list_name
        )

        paths = [
            p
            for p in self.local_store.list_files_recursive(local_root)
            if self.mapper.is_publishable(p)
        ]
        logger.info("Pushing %d document(s) from %s", len(paths), local_root)

        results: list[SyncResult] = []
        cancelled = False
        for rel_path in paths:
            if self.stop_requested:
                logger.warning(
                    "Stop requested, %d document(s) left",
                    len(paths) - len(results),
                )
                cancelled = True
                break
            results.append(
                self._push_one(local_root, rel_path, resolver, reading_list)
            )
        logger.debug("Resolved %d container(s)", len(resolver.containers))

        return SyncReport(
            direction="push",
            results=results,
            started_at=started_at,
            completed_at=_now(),
            cancelled=cancelled,
        )

    def _read_document(self, local_root: Path, rel_path: str) -> Document:
        content = self.local_store.read_text(local_root / rel_path)
        return Document(
            local_path=rel_path,
            logical_path=self.mapper.to_logical(rel_path),
            content=content,
            fingerprint=fingerprint(content),
        )

    def _push_one(
        self,
        local_root: Path,
        rel_path: str,
        resolver: HierarchyResolver,
        reading_list: ReadingList,
    ) -> SyncResult:
        title = self.mapper.to_logical(rel_path)[-1]
        try:
            doc = self._read_document(local_root, rel_path)
            # Encode before touching the remote so bad input writes nothing
            body = blocks_to_notion(markdown_to_blocks(doc.content))
            parent_id = resolver.resolve(doc.folders, self.root_id)
            page = self.detector.find_page(parent_id, doc.title)
            status = self.detector.status(page, doc.fingerprint)

            if status is ChangeStatus.UNCHANGED:
                logger.debug("Unchanged: %s", rel_path)
                return SyncResult(
                    local_path=rel_path,
                    title=title,
                    outcome=SyncOutcome.SKIPPED,
                    page_id=page.id,
                )

            if status is ChangeStatus.CHANGED:
                # A page whose first upload was cut short still owes its
                # reading list entry
                created = page.fingerprint == PENDING_CREATE
                marker = PENDING_CREATE if created else PENDING_UPDATE
                page_id = page.id
                self.store.replace_blocks(
                    page_id, [fingerprint_block(marker)] + body
                )
            else:
                created = True
                page_id = self.store.create_leaf(
                    parent_id,
                    doc.title,
                    [fingerprint_block(PENDING_CREATE)] + body,
                )
            self._seal(page_id, doc.fingerprint)
        except Exception as exc:
            logger.error("Failed to push %s: %s", rel_path, exc)
            return SyncResult(
                local_path=rel_path,
                title=title,
                outcome=SyncOutcome.FAILED,
                error=str(exc),
            )

        if not created:
            logger.info("Updated %s", rel_path)
            return SyncResult(
                local_path=rel_path,
                title=title,
                outcome=SyncOutcome.UPDATED,
                page_id=page_id,
            )

        logger.info("Created %s", rel_path)
        warning = None
        try:
            reading_list.register(page_id)
        except Exception as exc:
            warning = f"Reading list entry not added: {exc}"
            logger.warning("%s: %s", rel_path, warning)

        return SyncResult(
            local_path=rel_path,
            title=title,
            outcome=SyncOutcome.CREATED,
            page_id=page_id,
            warning=warning,
        )

    def _seal(self, page_id: str, doc_fingerprint: str) -> None:
        """Replace the pending sentinel with the document's fingerprint.

        Runs only after every content batch has been written, so a page
        carries a real fingerprint only when its content is complete.
        """
        sentinel = find_sentinel(self.store.list_children(page_id))
        if sentinel is None:
            raise RemoteWriteFailed(f"Page {page_id} has no sentinel block")
        self.store.update_block(sentinel["id"], fingerprint_block(doc_fingerprint))

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def pull(
        self,
        local_root: Path | str,
        excluded_subtree_id: str | None = None,
    ) -> SyncReport:
        """Write remote content pages into the local tree.

        Args:
            local_root: Directory receiving the markdown files.
            excluded_subtree_id: Page whose subtree is skipped, in addition
                to the one given to the constructor.

        Raises:
            RootUnavailable: If the root page cannot be fetched.
        """
        local_root = Path(local_root)
        started_at = _now()
        self._check_root()

        index = self.mapper.build_local_index(
            p
            for p in self.local_store.list_files_recursive(local_root)
            if self.mapper.is_publishable(p)
        )
        excluded = self._excluded_ids(excluded_subtree_id)

        results: list[SyncResult] = []
        try:
            root_blocks = self.store.list_children(self.root_id)
        except Exception as exc:
            raise RootUnavailable(self.root_id, str(exc)) from exc

        completed = self._pull_tree(
            root_blocks, (), local_root, index, excluded, results
        )
        return SyncReport(
            direction="pull",
            results=results,
            started_at=started_at,
            completed_at=_now(),
            cancelled=not completed,
        )

    def _display_path(self, logical: tuple[str, ...]) -> str:
        try:
            return self.mapper.to_local(logical)
        except ValueError:
            return "/".join(logical)

    def _pull_tree(
        self,
        blocks: list[dict[str, Any]],
        logical: tuple[str, ...],
        local_root: Path,
        index: dict[tuple[str, ...], str],
        excluded: frozenset[str],
        results: list[SyncResult],
    ) -> bool:
        """Pull every page below the given child blocks, depth first.

        Returns False when a stop was requested.
        """
        for block in blocks:
            title = child_page_title(block)
            if title is None:
                continue
            page_id = block["id"]
            if normalize_id(page_id) in excluded:
                logger.debug("Skipping excluded subtree %s", page_id)
                continue
            if self.stop_requested:
                logger.warning("Stop requested, ending pull")
                return False

            child_logical = (*logical, title)
            try:
                children = self.store.list_children(page_id)
            except Exception as exc:
                logger.error("Failed to read page '%s': %s", title, exc)
                results.append(
                    SyncResult(
                        local_path=self._display_path(child_logical),
                        title=title,
                        outcome=SyncOutcome.FAILED,
                        page_id=page_id,
                        error=str(exc),
                    )
                )
                continue

            content = [
                b for b in children if b.get("type") not in PAGE_BLOCK_TYPES
            ]
            if content:
                result = self._pull_one(
                    page_id, child_logical, content, local_root, index
                )
                if result is not None:
                    results.append(result)

            if not self._pull_tree(
                children, child_logical, local_root, index, excluded, results
            ):
                return False
        return True

    def _pull_one(
        self,
        page_id: str,
        logical: tuple[str, ...],
        blocks: list[dict[str, Any]],
        local_root: Path,
        index: dict[tuple[str, ...], str],
    ) -> SyncResult | None:
        title = logical[-1]
        try:
            rel_path = index.get(logical) or self.mapper.to_local(logical)
            target = _contained_path(local_root, rel_path)
        except ValueError as exc:
            logger.error("Refusing to pull '%s': %s", title, exc)
            return SyncResult(
                local_path=self._display_path(logical),
                title=title,
                outcome=SyncOutcome.FAILED,
                page_id=page_id,
                error=str(exc),
            )
        if not self.mapper.is_publishable(rel_path):
            logger.debug("Not publishable, not written: %s", rel_path)
            return None

        try:
            markdown = blocks_to_markdown(notion_to_blocks(blocks))
            remote_fingerprint = fingerprint(markdown)

            if self.local_store.exists(target):
                current = self.local_store.read_text(target)
                if fingerprint(current) == remote_fingerprint:
                    logger.debug("Unchanged: %s", rel_path)
                    return SyncResult(
                        local_path=rel_path,
                        title=title,
                        outcome=SyncOutcome.SKIPPED,
                        page_id=page_id,
                    )
                outcome = SyncOutcome.UPDATED
            else:
                outcome = SyncOutcome.CREATED

            self.local_store.write_text(target, markdown)
            logger.info("%s %s", outcome.value.capitalize(), rel_path)
        except Exception as exc:
            logger.error("Failed to pull %s: %s", rel_path, exc)
            return SyncResult(
                local_path=rel_path,
                title=title,
                outcome=SyncOutcome.FAILED,
                page_id=page_id,
                error=str(exc),
            )

        return SyncResult(
            local_path=rel_path,
            title=title,
            outcome=outcome,
            page_id=page_id,
        )


def sync_push(
    store: RemoteStore,
    settings: SyncSettings,
    root_id: str,
    local_root: Path | str,
    excluded_subtree_id: str | None = None,
    local_store: LocalStore | None = None,
) -> SyncReport:
    """Run one push pass with a fresh ``Reconciler``.

    *excluded_subtree_id* names a page that is never reused as a container
    or matched as a document page.
    """
    return Reconciler(
        store, settings, root_id, local_store, excluded_subtree_id
    ).push(local_root)


def sync_pull(
    store: RemoteStore,
    settings: SyncSettings,
    root_id: str,
    local_root: Path | str,
    excluded_subtree_id: str | None = None,
    local_store: LocalStore | None = None,
) -> SyncReport:
    """Run one pull pass with a fresh ``Reconciler``."""
    return Reconciler(store, settings, root_id, local_store).pull(
        local_root, excluded_subtree_id
    )
