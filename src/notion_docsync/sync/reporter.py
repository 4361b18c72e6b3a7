"""Sync report formatting functions.

- ``format_sync_report`` -- human-readable post-run summary.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult


def _arrow(report: SyncReport, result: SyncResult) -> str:
    if report.direction == "pull":
        return f"{result.title} -> {result.local_path}"
    return f"{result.local_path} -> {result.title}"


def format_sync_report(report: SyncReport) -> str:
    """Format a sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped documents are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report ({report.direction})"
    if report.cancelled:
        header += " (CANCELLED)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.results)} documents: "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.skipped)} unchanged, {len(report.failed)} failed"
    )
    lines.append("")

    for label, results in (
        ("Created:", report.created),
        ("Updated:", report.updated),
    ):
        if results:
            lines.append(label)
            for r in results:
                lines.append(f"  {_arrow(report, r)}")
            lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for r in report.warnings:
            lines.append(f"  {r.local_path}: {r.warning}")
        lines.append("")

    if report.failed:
        lines.append("Failed:")
        for r in report.failed:
            lines.append(f"  {r.local_path}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Unchanged: {len(report.skipped)} documents")
        lines.append("")

    return "\n".join(lines).rstrip()


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with run info, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "local_path": r.local_path,
            "title": r.title,
            "outcome": r.outcome.value,
        }
        if r.page_id:
            entry["page_id"] = r.page_id
        if r.error:
            entry["error"] = r.error
        if r.warning:
            entry["warning"] = r.warning
        results_list.append(entry)

    return {
        "direction": report.direction,
        "cancelled": report.cancelled,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
            "warnings": len(report.warnings),
        },
        "results": results_list,
    }
