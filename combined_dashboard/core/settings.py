from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from combined_dashboard.domain import DashboardRegistry, MainDashboard

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

DEFAULT_METABASE_URL = "http://localhost:3000"
DEFAULT_DASHBOARD_IDS = "42,43,51,52,81"


def _split_ids(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass
class Settings:
    metabase_url: str = DEFAULT_METABASE_URL
    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    dashboard_ids: list[str] = field(default_factory=lambda: _split_ids(DEFAULT_DASHBOARD_IDS))
    registry_path: Path = CONFIG_DIR / "dashboards.yaml"
    metadata_ttl: float | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.metabase_url = self.metabase_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``METABASE_*`` and related environment variables."""

        registry_env = os.getenv("DASHBOARD_REGISTRY")
        origins = _split_ids(os.getenv("API_CORS_ORIGINS", "")) or ["*"]
        try:
            port = int(os.getenv("PORT", "3000"))
        except ValueError:
            port = 3000
        return cls(
            metabase_url=os.getenv("METABASE_URL") or DEFAULT_METABASE_URL,
            username=os.getenv("METABASE_USERNAME") or None,
            password=os.getenv("METABASE_PASSWORD") or None,
            api_key=os.getenv("METABASE_API_KEY") or None,
            dashboard_ids=_split_ids(os.getenv("DASHBOARD_IDS") or DEFAULT_DASHBOARD_IDS),
            registry_path=Path(registry_env).expanduser() if registry_env else CONFIG_DIR / "dashboards.yaml",
            metadata_ttl=_optional_float(os.getenv("METABASE_METADATA_TTL")),
            cors_origins=origins,
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password) or bool(self.api_key)

    def main_dashboards(self) -> list[MainDashboard]:
        dashboards: list[MainDashboard] = []
        for index, raw_id in enumerate(self.dashboard_ids):
            try:
                dashboard_id = int(raw_id)
            except ValueError:
                continue
            dashboards.append(
                MainDashboard(
                    id=dashboard_id,
                    name=f"Washington Post {index + 1}",
                    short_name=f"WP{index + 1}",
                    index=index,
                )
            )
        return dashboards


def _card_sections(data: dict[str, Any], key: str) -> dict[str, dict[str, int]]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        return {}
    parsed: dict[str, dict[str, int]] = {}
    for group, cards in section.items():
        if not isinstance(cards, dict):
            continue
        parsed[str(group)] = {str(name): int(value) for name, value in cards.items() if value is not None}
    return parsed


def registry_from_dict(data: dict[str, Any]) -> DashboardRegistry:
    card_parameters: dict[int, dict[str, str]] = {}
    for card_id, mapping in (data.get("cardParameters") or {}).items():
        if isinstance(mapping, dict):
            card_parameters[int(card_id)] = {str(key): str(tag) for key, tag in mapping.items()}

    return DashboardRegistry(
        job_details=_card_sections(data, "jobDetails"),
        workspace_details=_card_sections(data, "workspaceDetails"),
        file_folder_info=_card_sections(data, "fileFolderInfo"),
        hyperlinks=_card_sections(data, "hyperlinks"),
        permissions=_card_sections(data, "permissions"),
        card_parameters=card_parameters,
    )


def load_registry(path: Path | None = None) -> DashboardRegistry:
    """Load the dashboard group registry, returning an empty one when the file is missing."""

    path = path or CONFIG_DIR / "dashboards.yaml"
    if not path.exists():
        return DashboardRegistry()
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    return registry_from_dict(data)
