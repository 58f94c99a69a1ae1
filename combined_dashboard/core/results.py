"""Helpers for Metabase's columnar query results."""
from __future__ import annotations

import math
import re
from typing import Any, Iterable

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def _data_section(result: dict[str, Any] | None) -> dict[str, Any] | None:
    if not isinstance(result, dict):
        return None
    data = result.get("data")
    if isinstance(data, dict):
        return data
    # A bare ``data`` object has ``rows`` at the top level.
    if "rows" in result:
        return result
    return None


def column_names(result: dict[str, Any] | None) -> list[str]:
    data = _data_section(result) or {}
    names: list[str] = []
    for col in data.get("cols") or []:
        names.append(str(col.get("name")) if isinstance(col, dict) else str(col))
    return names


def result_rows(result: dict[str, Any] | None) -> list[list[Any]]:
    data = _data_section(result) or {}
    rows = data.get("rows") or []
    return [list(row) for row in rows if isinstance(row, (list, tuple))]


def normalize(result: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Turn ``{data: {cols, rows}}`` into one ``{column: value}`` record per row.

    Returns an empty list when the result, its ``data`` or its ``rows`` is missing.
    """

    data = _data_section(result)
    if not data or data.get("rows") is None:
        return []

    cols = column_names(data)
    records: list[dict[str, Any]] = []
    for row in result_rows(data):
        records.append({col: (row[i] if i < len(row) else None) for i, col in enumerate(cols)})
    return records


def find_column(cols: list[str], candidates: Iterable[str]) -> int:
    """Index of the first column named in ``candidates``, or ``-1``."""

    wanted = set(candidates)
    for index, name in enumerate(cols):
        if name in wanted:
            return index
    return -1


def safe_int(value: Any) -> int:
    """Leading integer of ``value``, so ``"12abc"`` is 12 and ``"n/a"`` is 0."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(0)) if match else 0
