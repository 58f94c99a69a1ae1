from __future__ import annotations

from conftest import card_result

from combined_dashboard.core import metrics
from combined_dashboard.core.results import find_column, normalize, safe_int


def test_normalize_maps_columns_by_position():
    result = card_result(["moveWorkSpaceId", "processStatus", "totalFileSize"], [["ws-1", "COMPLETED", 10], ["ws-2", "CONFLICT", 3]])

    assert normalize(result) == [
        {"moveWorkSpaceId": "ws-1", "processStatus": "COMPLETED", "totalFileSize": 10},
        {"moveWorkSpaceId": "ws-2", "processStatus": "CONFLICT", "totalFileSize": 3},
    ]


def test_normalize_returns_empty_list_for_missing_parts():
    assert normalize(None) == []
    assert normalize({}) == []
    assert normalize({"data": None}) == []
    assert normalize({"data": {"cols": [{"name": "a"}]}}) == []
    assert normalize(card_result(["a", "b"], [])) == []


def test_normalize_accepts_bare_data_section():
    data = card_result(["status", "count"], [["COMPLETED", 4]])["data"]
    assert normalize(data) == [{"status": "COMPLETED", "count": 4}]


def test_normalize_pads_short_rows():
    assert normalize(card_result(["a", "b"], [[1]])) == [{"a": 1, "b": None}]


def test_safe_int_coerces_like_a_lenient_parser():
    assert safe_int(7) == 7
    assert safe_int("12") == 12
    assert safe_int(" 3.9 ") == 3
    assert safe_int(2.5) == 2
    assert safe_int(None) == 0
    assert safe_int("12abc") == 12
    assert safe_int("-4 files") == -4
    assert safe_int("n/a") == 0
    assert safe_int(float("nan")) == 0


def test_find_column():
    assert find_column(["processStatus", "count"], metrics.COUNT_COLUMNS) == 1
    assert find_column(["a", "b"], metrics.COUNT_COLUMNS) == -1


def test_classify_card_by_name():
    assert metrics.classify_card("WP1 - Total Jobs") == metrics.TOTAL_JOBS
    assert metrics.classify_card("Completed Jobs") == metrics.COMPLETED_JOBS
    assert metrics.classify_card("Partially Completed Jobs") == metrics.PARTIALLY_COMPLETED_JOBS
    assert metrics.classify_card("Jobs IN_PROGRESS") == metrics.IN_PROGRESS_JOBS
    assert metrics.classify_card("Workspace Status Count") == metrics.WORKSPACE_STATUS_COUNT
    assert metrics.classify_card("Workspace File Size by Status") == metrics.WORKSPACE_FILE_SIZE
    assert metrics.classify_card("File Size") is None
    assert metrics.classify_card(None) is None


def test_total_jobs_sums_count_column_across_rows():
    data = card_result(["jobStatus", "count"], [["COMPLETED", "40"], ["FAILED", 60]])["data"]
    assert metrics.total_jobs_value(data) == 100


def test_total_jobs_falls_back_to_last_column():
    data = card_result(["label", "n"], [["a", 1], ["b", 2]])["data"]
    assert metrics.total_jobs_value(data) == 3


def test_scalar_value_reads_last_column_of_first_row():
    data = card_result(["label", "value"], [["completed", "42"], ["ignored", 99]])["data"]
    assert metrics.scalar_value(data) == 42
    assert metrics.scalar_value(card_result(["value"], [])["data"]) == 0
    assert metrics.scalar_value(card_result(["value"], [["oops"]])["data"]) == 0


def test_status_breakdown_uses_named_columns_or_position():
    named = card_result(["totalCount", "processStatus"], [[5, "COMPLETED"]])["data"]
    assert metrics.status_breakdown(named, metrics.COUNT_COLUMNS, "count") == [{"status": "COMPLETED", "count": 5}]

    positional = card_result(["label", "bytes"], [["CONFLICT", "2048"]])["data"]
    assert metrics.status_breakdown(positional, metrics.SIZE_COLUMNS, "size") == [{"status": "CONFLICT", "size": 2048}]


def test_sum_by_status_keeps_first_seen_order():
    merged = metrics.sum_by_status(
        [
            [{"status": "COMPLETED", "count": 10}, {"status": "CONFLICT", "count": 2}],
            [{"status": "COMPLETED", "count": 5}],
        ],
        "count",
    )
    assert merged == [{"status": "COMPLETED", "count": 15}, {"status": "CONFLICT", "count": 2}]
