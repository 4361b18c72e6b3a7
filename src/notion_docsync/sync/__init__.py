"""Local markdown <-> Notion page sync engine.

Modules:

- ``engine``       -- ``Reconciler``: push and pull passes.
- ``hierarchy``    -- ``HierarchyResolver``: folder chains to containers.
- ``detector``     -- ``ChangeDetector``: fingerprint comparison.
- ``fingerprint``  -- normalised SHA-256 of markdown.
- ``mapper``       -- ``PathMapper``: file paths to logical paths.
- ``reading_list`` -- ``ReadingList``: index of newly created pages.
- ``models``       -- ``SyncOutcome``, ``SyncResult``, ``SyncReport`` and
  the document/page models.
- ``reporter``     -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from notion_docsync.config_schema import SyncSettings
    from notion_docsync.core import NotionClient
    from notion_docsync.sync import Reconciler, format_sync_report

    reconciler = Reconciler(client, SyncSettings(), root_page_id)
    report = reconciler.push("docs-repo/")
    print(format_sync_report(report))
"""

from .detector import ChangeDetector, ChangeStatus
from .engine import Reconciler, sync_pull, sync_push
from .fingerprint import fingerprint
from .hierarchy import HierarchyResolver
from .mapper import PathMapper
from .models import (
    ContainerNode,
    ContentPage,
    Document,
    SyncOutcome,
    SyncReport,
    SyncResult,
)
from .reading_list import ReadingList
from .reporter import format_sync_report, report_to_json

__all__ = [
    "ChangeDetector",
    "ChangeStatus",
    "ContainerNode",
    "ContentPage",
    "Document",
    "HierarchyResolver",
    "PathMapper",
    "ReadingList",
    "Reconciler",
    "SyncOutcome",
    "SyncReport",
    "SyncResult",
    "fingerprint",
    "format_sync_report",
    "report_to_json",
    "sync_pull",
    "sync_push",
]
