"""Map caller-supplied filter values onto a card's template tags."""
from __future__ import annotations

from typing import Any, Mapping

from combined_dashboard.domain import CardMetadata

ALL = "ALL"


def _squash(name: str) -> str:
    return name.replace("_", "").lower()


def match_parameter(tag: str, supplied: Mapping[str, Any]) -> str | None:
    """Return the key in ``supplied`` that best names ``tag``.

    Tried in order: exact, case-insensitive, then ignoring underscores.
    """

    if tag in supplied:
        return tag
    lowered = tag.lower()
    for key in supplied:
        if key.lower() == lowered:
            return key
    squashed = _squash(tag)
    for key in supplied:
        if _squash(key) == squashed:
            return key
    return None


def _has_value(value: Any) -> bool:
    return value is not None and str(value) != ""


def parameter_type(details: Mapping[str, Any]) -> str:
    return "text" if details.get("type") == "text" else "category"


def parameter_target(tag: str, details: Mapping[str, Any]) -> list[Any]:
    if details.get("type") == "dimension":
        return ["dimension", ["template-tag", tag]]
    return ["variable", ["template-tag", tag]]


def build_parameters(
    metadata: CardMetadata,
    supplied: Mapping[str, Any],
    *,
    explicit: Mapping[str, str] | None = None,
    status_only: bool = False,
) -> list[dict[str, Any]]:
    """Build the ``parameters`` list for ``POST /api/card/:id/query``.

    ``explicit`` maps caller keys to tag names and wins over name matching.
    With ``status_only`` only tags mentioning ``status`` are substituted and
    every other tag is sent as ``ALL``.
    """

    supplied = {key: value for key, value in supplied.items() if _has_value(value)}
    pinned: dict[str, str] = {}
    for key, tag in (explicit or {}).items():
        if key in supplied:
            pinned.setdefault(tag, key)

    parameters: list[dict[str, Any]] = []
    for tag, details in metadata.template_tags.items():
        details = details or {}
        value: Any = None
        if status_only and "status" not in tag.lower():
            value = ALL
        else:
            key = pinned.get(tag) or match_parameter(tag, supplied)
            if key is not None:
                value = supplied[key]
            elif status_only or details.get("required"):
                value = ALL
        if value is None:
            continue
        parameters.append(
            {
                "type": parameter_type(details),
                "value": value,
                "target": parameter_target(tag, details),
            }
        )
    return parameters
