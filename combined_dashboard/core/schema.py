from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CardParameter(BaseModel):
    """One ``{type, value, target}`` entry of a Metabase card query."""

    type: str = "category"
    value: Any = None
    target: list[Any]


class CardQueryRequest(BaseModel):
    parameters: list[CardParameter] = Field(default_factory=list)
