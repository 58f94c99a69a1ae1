from __future__ import annotations

from combined_dashboard.core.parameters import build_parameters, match_parameter
from combined_dashboard.domain import CardMetadata


def _metadata(**tags) -> CardMetadata:
    return CardMetadata(card_id=1, name="card", template_tags=tags)


def test_match_parameter_strategies_in_order():
    supplied = {"workspaceId": "a", "WORKSPACEID": "b", "move_workspace_id": "c"}
    assert match_parameter("workspaceId", supplied) == "workspaceId"
    assert match_parameter("workspaceid", {"WorkspaceId": "x"}) == "WorkspaceId"
    assert match_parameter("moveWorkSpaceId", {"move_workspace_id": "x"}) == "move_workspace_id"
    assert match_parameter("jobStatus", {"workspaceId": "x"}) is None


def test_build_parameters_uses_declared_types_and_targets():
    metadata = _metadata(
        moveWorkSpaceId={"type": "text"},
        process_status={"type": "dimension"},
    )

    params = build_parameters(metadata, {"move_workspace_id": "ws-9", "processStatus": "CONFLICT"})

    assert params == [
        {"type": "text", "value": "ws-9", "target": ["variable", ["template-tag", "moveWorkSpaceId"]]},
        {"type": "category", "value": "CONFLICT", "target": ["dimension", ["template-tag", "process_status"]]},
    ]


def test_unmatched_required_tags_default_to_all():
    metadata = _metadata(jobStatus={"type": "text", "required": True}, region={"type": "text"})

    params = build_parameters(metadata, {})

    assert params == [{"type": "text", "value": "ALL", "target": ["variable", ["template-tag", "jobStatus"]]}]


def test_empty_values_are_not_substituted():
    metadata = _metadata(processStatus={"type": "text"})
    assert build_parameters(metadata, {"processStatus": None}) == []
    assert build_parameters(metadata, {"processStatus": ""}) == []


def test_status_only_fills_status_tags_and_defaults_the_rest():
    metadata = _metadata(job_status={"type": "text"}, customer={"type": "text"})

    params = build_parameters(metadata, {"jobStatus": "FAILED", "customer": "acme"}, status_only=True)

    assert [(p["target"][1][1], p["value"]) for p in params] == [("job_status", "FAILED"), ("customer", "ALL")]


def test_explicit_mapping_wins_over_name_matching():
    metadata = _metadata(ws={"type": "text"}, workspaceId={"type": "text"})

    params = build_parameters(
        metadata,
        {"workspaceId": "ws-1", "moveWorkSpaceId": "ws-2"},
        explicit={"moveWorkSpaceId": "ws"},
    )

    values = {p["target"][1][1]: p["value"] for p in params}
    assert values == {"ws": "ws-2", "workspaceId": "ws-1"}
