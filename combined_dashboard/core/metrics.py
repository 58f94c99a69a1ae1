"""Classify summary cards by name and pull their numbers out."""
from __future__ import annotations

from typing import Any, Iterable

from combined_dashboard.core.results import column_names, find_column, result_rows, safe_int

TOTAL_JOBS = "totalJobs"
COMPLETED_JOBS = "completedJobs"
IN_PROGRESS_JOBS = "inProgressJobs"
PARTIALLY_COMPLETED_JOBS = "partiallyCompletedJobs"
WORKSPACE_STATUS_COUNT = "workspaceStatusCount"
WORKSPACE_FILE_SIZE = "workspaceFileSize"

SCALAR_METRICS = (TOTAL_JOBS, COMPLETED_JOBS, IN_PROGRESS_JOBS, PARTIALLY_COMPLETED_JOBS)
BREAKDOWN_METRICS = (WORKSPACE_STATUS_COUNT, WORKSPACE_FILE_SIZE)

STATUS_COLUMNS = ("processStatus", "status")
COUNT_COLUMNS = ("totalCount", "count")
SIZE_COLUMNS = ("totalFileSize", "size", "totalSize")


def classify_card(card_name: str | None) -> str | None:
    """Metric a card reports, judged from its display name; ``None`` if unrelated."""

    name = (card_name or "").lower()
    if "total jobs" in name:
        return TOTAL_JOBS
    if "completed jobs" in name and "partially" not in name:
        return COMPLETED_JOBS
    if "in progress" in name or "in_progress" in name:
        return IN_PROGRESS_JOBS
    if "partially completed" in name:
        return PARTIALLY_COMPLETED_JOBS
    if "status count" in name and "workspace" in name:
        return WORKSPACE_STATUS_COUNT
    if "file size" in name and "workspace" in name:
        return WORKSPACE_FILE_SIZE
    return None


def scalar_value(data: dict[str, Any] | None) -> int:
    """Last column of the first row."""

    rows = result_rows(data)
    cols = column_names(data)
    if not rows or not rows[0]:
        return 0
    index = len(cols) - 1 if cols else len(rows[0]) - 1
    if index < 0 or index >= len(rows[0]):
        return 0
    return safe_int(rows[0][index])


def total_jobs_value(data: dict[str, Any] | None) -> int:
    """Sum of the count column over every row, falling back to the last column."""

    cols = column_names(data)
    index = find_column(cols, COUNT_COLUMNS)
    if index < 0:
        index = len(cols) - 1
    total = 0
    for row in result_rows(data):
        if 0 <= index < len(row):
            total += safe_int(row[index])
    return total


def status_breakdown(data: dict[str, Any] | None, value_columns: Iterable[str], value_key: str) -> list[dict[str, Any]]:
    """Split every row into a status label and a numeric value."""

    cols = column_names(data)
    status_index = find_column(cols, STATUS_COLUMNS)
    value_index = find_column(cols, value_columns)
    status_index = status_index if status_index >= 0 else 0
    value_index = value_index if value_index >= 0 else 1

    items: list[dict[str, Any]] = []
    for row in result_rows(data):
        status = row[status_index] if status_index < len(row) else None
        value = safe_int(row[value_index]) if value_index < len(row) else 0
        items.append({"status": status, value_key: value})
    return items


def sum_by_status(breakdowns: Iterable[Iterable[dict[str, Any]]], value_key: str) -> list[dict[str, Any]]:
    """Merge per-dashboard breakdowns, keeping the first-seen order of labels."""

    totals: dict[Any, int] = {}
    for breakdown in breakdowns:
        for item in breakdown:
            status = item.get("status")
            totals[status] = totals.get(status, 0) + safe_int(item.get(value_key))
    return [{"status": status, value_key: value} for status, value in totals.items()]
