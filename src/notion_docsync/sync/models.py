"""Pydantic models for the sync engine.

Defines the data contracts shared across the sync modules:

- ``Document``: one local markdown file as read for a run.
- ``ContainerNode``: a remote page that groups other pages.
- ``ContentPage``: a remote page holding a document's blocks.
- ``SyncOutcome``: what happened to one document.
- ``SyncResult``: outcome of syncing one document.
- ``SyncReport``: aggregate results for a full run.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class Document(BaseModel):
    """A local markdown file, read fresh on every pass.

    Attributes:
        local_path: POSIX path relative to the local root.
        logical_path: Path segments with the docs marker removed and the
            ``.md`` suffix dropped from the last segment.
        content: Raw file text.
        fingerprint: Fingerprint of ``content``.
    """

    local_path: str
    logical_path: tuple[str, ...]
    content: str
    fingerprint: str

    model_config = {"frozen": True}

    @property
    def title(self) -> str:
        return self.logical_path[-1]

    @property
    def folders(self) -> tuple[str, ...]:
        return self.logical_path[:-1]


class ContainerNode(BaseModel):
    """A remote page used only to group other pages."""

    id: str
    name: str
    parent_id: str

    model_config = {"frozen": True}


class ContentPage(BaseModel):
    """A remote page holding document content.

    Attributes:
        id: Page id.
        title: Page title.
        parent_id: Id of the enclosing container or root.
        fingerprint: Fingerprint embedded in the sentinel block, or
            ``None`` when the page carries no sentinel.
        blocks: Raw child block payloads in page order.
    """

    id: str
    title: str
    parent_id: str
    fingerprint: str | None = None
    blocks: list[dict[str, Any]] = []

    model_config = {"frozen": True}


class SyncOutcome(str, Enum):
    """Per-document result of a sync run."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncResult(BaseModel):
    """Result of syncing one document.

    Attributes:
        local_path: Path relative to the local root.
        title: Remote page title.
        outcome: What happened.
        page_id: Remote page id, when known.
        error: Failure reason when ``outcome`` is ``FAILED``.
        warning: Non-fatal problem, e.g. a failed reading-list entry.
    """

    local_path: str
    title: str
    outcome: SyncOutcome
    page_id: str | None = None
    error: str | None = None
    warning: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one push or pull run.

    Attributes:
        direction: ``"push"`` or ``"pull"``.
        results: One entry per attempted document, in processing order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run finished.
        cancelled: True when the run stopped early on request.
    """

    direction: str
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None
    cancelled: bool = False

    model_config = {"frozen": True}

    def _with(self, outcome: SyncOutcome) -> list[SyncResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def created(self) -> list[SyncResult]:
        return self._with(SyncOutcome.CREATED)

    @property
    def updated(self) -> list[SyncResult]:
        return self._with(SyncOutcome.UPDATED)

    @property
    def skipped(self) -> list[SyncResult]:
        return self._with(SyncOutcome.SKIPPED)

    @property
    def failed(self) -> list[SyncResult]:
        return self._with(SyncOutcome.FAILED)

    @property
    def warnings(self) -> list[SyncResult]:
        return [r for r in self.results if r.warning]

    def summary(self) -> str:
        """Format a human-readable summary of the run.

        Returns:
            Multi-line summary string with counts by outcome.
        """
        lines = [
            f"Sync report ({self.direction})"
            + (" (cancelled)" if self.cancelled else ""),
            f"  Created:  {len(self.created)}",
            f"  Updated:  {len(self.updated)}",
            f"  Skipped:  {len(self.skipped)}",
            f"  Failed:   {len(self.failed)}",
            f"  Warnings: {len(self.warnings)}",
            f"  Total:    {len(self.results)}",
        ]
        return "\n".join(lines)
