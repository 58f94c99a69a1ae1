"""Domain entities for the Metabase-backed dashboard."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class SessionCredential:
    """Credential sent to Metabase on every request.

    ``expires_at`` is ``None`` for static API keys, which never expire.
    """

    token: str
    expires_at: float | None = None
    api_key: bool = False

    def is_valid(self, now: float) -> bool:
        if self.expires_at is None:
            return True
        return now < self.expires_at

    @property
    def header(self) -> dict[str, str]:
        if self.api_key:
            return {"X-API-KEY": self.token}
        return {"X-Metabase-Session": self.token}


@dataclass(slots=True)
class CardMetadata:
    """Template tags declared by a saved question."""

    card_id: int
    name: str | None = None
    template_tags: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def tag_names(self) -> list[str]:
        return list(self.template_tags)


@dataclass(slots=True)
class MainDashboard:
    """One of the top-level summary dashboards combined on the overview."""

    id: int
    name: str
    short_name: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "shortName": self.short_name, "index": self.index}


@dataclass(slots=True)
class CardRef:
    """A card found on a main dashboard, with the dashboard that owns it."""

    card_id: int
    card_name: str | None
    display_type: str | None
    dashboard_id: int | None
    dashboard_name: str
    dashboard_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "cardId": self.card_id,
            "cardName": self.card_name,
            "displayType": self.display_type,
            "dashboardId": self.dashboard_id,
            "dashboardName": self.dashboard_name,
            "dashboardIndex": self.dashboard_index,
        }


@dataclass(slots=True)
class DashboardRegistry:
    """Card ids per dashboard group, grouped by the dashboard they replicate."""

    job_details: dict[str, dict[str, int]] = field(default_factory=dict)
    workspace_details: dict[str, dict[str, int]] = field(default_factory=dict)
    file_folder_info: dict[str, dict[str, int]] = field(default_factory=dict)
    hyperlinks: dict[str, dict[str, int]] = field(default_factory=dict)
    permissions: dict[str, dict[str, int]] = field(default_factory=dict)
    card_parameters: dict[int, dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobDetails": self.job_details,
            "workspaceDetails": self.workspace_details,
            "fileFolderInfo": self.file_folder_info,
            "hyperlinks": self.hyperlinks,
            "permissions": self.permissions,
        }
