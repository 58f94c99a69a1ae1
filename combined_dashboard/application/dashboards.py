"""Application service combining the Metabase dashboards."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from combined_dashboard.core import metrics
from combined_dashboard.core.parameters import ALL
from combined_dashboard.core.results import normalize
from combined_dashboard.core.settings import Settings
from combined_dashboard.domain import CardRef, DashboardRegistry, MainDashboard
from combined_dashboard.infrastructure import MetabaseClient, MetabaseError

logger = logging.getLogger(__name__)

WORKSPACE_ID_ALIASES = ("workspaceId", "moveWorkSpaceId", "workspace_id", "move_workspace_id")
STATUS_ALIASES = ("processStatus", "process_status")


class NotConfigured(LookupError):
    """Raised when a request names a dashboard group that is not in the registry."""

    def __init__(self, database: str | None) -> None:
        super().__init__(f"Dashboard group {database!r} is not configured")
        self.database = database


def _filters_on(status: str | None) -> bool:
    return bool(status) and status != ALL


def _workspace_parameters(workspace_id: str, status: str | None = None, *, with_status: bool = True) -> dict[str, Any]:
    params: dict[str, Any] = {alias: workspace_id for alias in WORKSPACE_ID_ALIASES}
    if with_status:
        params.update({alias: status for alias in STATUS_ALIASES})
    return params


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DashboardService:
    """Fans requests out over the dashboard groups and merges the answers."""

    def __init__(self, client: MetabaseClient, settings: Settings, registry: DashboardRegistry) -> None:
        self._client = client
        self._settings = settings
        self._registry = registry
        self._main_dashboards = settings.main_dashboards()

    @property
    def client(self) -> MetabaseClient:
        return self._client

    @property
    def registry(self) -> DashboardRegistry:
        return self._registry

    def dashboard_config(self) -> dict[str, Any]:
        config = {"main": [dashboard.to_dict() for dashboard in self._main_dashboards]}
        config.update(self._registry.to_dict())
        return config

    def config_summary(self) -> dict[str, Any]:
        return {
            "metabaseUrl": self._settings.metabase_url,
            "dashboardIds": list(self._settings.dashboard_ids),
            "dashboardConfig": self.dashboard_config(),
            "hasCredentials": self._settings.has_credentials,
        }

    async def health(self) -> dict[str, Any]:
        user = await self._client.get_current_user()
        return {
            "status": "connected",
            "metabaseUrl": self._settings.metabase_url,
            "user": user.get("common_name") or user.get("email"),
        }

    # ------------------------------------------------------------------
    # main dashboards
    # ------------------------------------------------------------------
    async def _fetch_dashboard(self, dashboard: MainDashboard) -> dict[str, Any] | None:
        try:
            return await self._client.get_dashboard(dashboard.id)
        except MetabaseError as exc:
            logger.error("Failed to fetch dashboard %s: %s", dashboard.id, exc)
            return None

    async def list_dashboards(self) -> list[dict[str, Any]]:
        fetched = await asyncio.gather(*(self._fetch_dashboard(d) for d in self._main_dashboards))
        dashboards: list[dict[str, Any]] = []
        for dashboard, data in zip(self._main_dashboards, fetched):
            if data is None:
                dashboards.append({"id": dashboard.id, "name": f"Dashboard {dashboard.id}", "error": True})
            else:
                dashboards.append(data)
        return dashboards

    @staticmethod
    def _collect_cards(dashboards: list[dict[str, Any] | None]) -> tuple[list[str], list[CardRef]]:
        names: list[str] = []
        cards: list[CardRef] = []
        for index, dashboard in enumerate(dashboards):
            if not dashboard:
                continue
            db_name = dashboard.get("name") or f"Database {index + 1}"
            names.append(db_name)
            for dashcard in dashboard.get("dashcards") or dashboard.get("ordered_cards") or []:
                card = dashcard.get("card") or {}
                if not card.get("id"):
                    continue
                cards.append(
                    CardRef(
                        card_id=card["id"],
                        card_name=card.get("name"),
                        display_type=card.get("display"),
                        dashboard_id=dashboard.get("id"),
                        dashboard_name=db_name,
                        dashboard_index=index,
                    )
                )
        return names, cards

    async def _fetch_card(self, card: CardRef) -> dict[str, Any]:
        entry = card.to_dict()
        try:
            result = await self._client.run_card_query(card.card_id)
        except MetabaseError as exc:
            logger.error("Failed to query card %s: %s", card.card_id, exc)
            entry.update(data=None, error=str(exc))
            return entry
        data = result.get("data") if isinstance(result, dict) else None
        entry.update(data=data, error=None)
        return entry

    async def combined_data(self) -> dict[str, Any]:
        logger.info("Fetching combined data from %d dashboards", len(self._main_dashboards))
        dashboards = await asyncio.gather(*(self._fetch_dashboard(d) for d in self._main_dashboards))
        dashboard_names, cards = self._collect_cards(list(dashboards))
        card_results = await asyncio.gather(*(self._fetch_card(card) for card in cards))

        combined: dict[str, list[dict[str, Any]]] = {
            name: [] for name in (*metrics.SCALAR_METRICS, *metrics.BREAKDOWN_METRICS)
        }
        for card in card_results:
            data = card.get("data")
            if not data:
                continue
            kind = metrics.classify_card(card.get("cardName"))
            if kind is None:
                continue
            entry: dict[str, Any] = {"database": card["dashboardName"], "dbIndex": card["dashboardIndex"]}
            if kind == metrics.TOTAL_JOBS:
                entry["value"] = metrics.total_jobs_value(data)
            elif kind in metrics.SCALAR_METRICS:
                entry["value"] = metrics.scalar_value(data)
            elif kind == metrics.WORKSPACE_STATUS_COUNT:
                entry["data"] = metrics.status_breakdown(data, metrics.COUNT_COLUMNS, "count")
            else:
                entry["data"] = metrics.status_breakdown(data, metrics.SIZE_COLUMNS, "size")
            combined[kind].append(entry)

        totals = {name: sum(item["value"] for item in combined[name]) for name in metrics.SCALAR_METRICS}
        aggregated_status = metrics.sum_by_status(
            (item["data"] for item in combined[metrics.WORKSPACE_STATUS_COUNT]), "count"
        )
        aggregated_size = metrics.sum_by_status(
            (item["data"] for item in combined[metrics.WORKSPACE_FILE_SIZE]), "size"
        )

        return {
            "dashboardNames": dashboard_names,
            "metrics": combined,
            "totals": totals,
            "aggregatedStatus": aggregated_status,
            "aggregatedFileSize": aggregated_size,
            "dashboardConfig": self.dashboard_config(),
            "lastUpdated": _timestamp(),
        }

    # ------------------------------------------------------------------
    # job & workspace listings
    # ------------------------------------------------------------------
    @staticmethod
    def _groups_to_query(section: dict[str, dict[str, int]], database: str | None) -> list[tuple[str, dict[str, int] | None]]:
        if database and database != ALL:
            return [(database, section.get(database))]
        return list(section.items())

    async def _list_group_rows(
        self,
        database: str,
        config: dict[str, int] | None,
        card_key: str,
        status: str | None,
        status_param: str,
        status_fields: tuple[str, str],
    ) -> list[dict[str, Any]]:
        card_id = (config or {}).get(card_key)
        if card_id is None:
            return []

        result = None
        if _filters_on(status):
            result = await self._client.query_card_with_status(card_id, {status_param: status})
        if not isinstance(result, dict) or not result.get("data"):
            result = await self._client.query_card_no_params(card_id)

        records: list[dict[str, Any]] = []
        for row in normalize(result):
            record: dict[str, Any] = {"database": database}
            record.update(row)
            if _filters_on(status) and not any(record.get(field) == status for field in status_fields):
                continue
            records.append(record)
        return records

    async def _list_rows(
        self,
        section: dict[str, dict[str, int]],
        card_key: str,
        status: str | None,
        database: str | None,
        status_param: str,
        status_fields: tuple[str, str],
    ) -> list[dict[str, Any]]:
        groups = self._groups_to_query(section, database)
        results = await asyncio.gather(
            *(
                self._list_group_rows(name, config, card_key, status, status_param, status_fields)
                for name, config in groups
            )
        )
        rows: list[dict[str, Any]] = []
        for group_rows in results:
            rows.extend(group_rows)
        return rows

    async def list_jobs(self, status: str | None = None, database: str | None = None) -> dict[str, Any]:
        logger.info("Fetching jobs - status: %s, database: %s", status or ALL, database or ALL)
        jobs = await self._list_rows(
            self._registry.job_details,
            "jobListCardId",
            status,
            database,
            "jobStatus",
            ("jobStatus", "job_status"),
        )
        return {"jobs": jobs, "total": len(jobs), "filter": {"status": status, "database": database}}

    async def list_workspaces(self, status: str | None = None, database: str | None = None) -> dict[str, Any]:
        logger.info("Fetching workspaces - status: %s, database: %s", status or ALL, database or ALL)
        workspaces = await self._list_rows(
            self._registry.workspace_details,
            "workspaceListCardId",
            status,
            database,
            "processStatus",
            ("processStatus", "process_status"),
        )
        return {
            "workspaces": workspaces,
            "total": len(workspaces),
            "filter": {"status": status, "database": database},
        }

    # ------------------------------------------------------------------
    # single workspace drill-downs
    # ------------------------------------------------------------------
    @staticmethod
    def _group_config(section: dict[str, dict[str, int]], database: str | None) -> dict[str, int]:
        if not database or database not in section:
            raise NotConfigured(database)
        return section[database]

    async def _query_optional(self, card_id: int | None, parameters: dict[str, Any]) -> dict[str, Any] | None:
        if card_id is None:
            return None
        return await self._client.query_card(card_id, parameters)

    async def workspace_details(self, workspace_id: str, database: str | None) -> dict[str, Any]:
        config = self._group_config(self._registry.workspace_details, database)
        params = _workspace_parameters(workspace_id, with_status=False)
        file_folder, hyperlinks, permissions, total_size = await asyncio.gather(
            self._query_optional(config.get("fileFolderStatusCardId"), params),
            self._query_optional(config.get("hyperlinksStatusCardId"), params),
            self._query_optional(config.get("permissionsStatusCardId"), params),
            self._query_optional(config.get("totalFileSizeCardId"), params),
        )
        return {
            "workspaceId": workspace_id,
            "database": database,
            "fileFolderStatus": normalize(file_folder),
            "hyperlinksStatus": normalize(hyperlinks),
            "permissionsStatus": normalize(permissions),
            "totalFileSize": normalize(total_size),
        }

    async def workspace_files(self, workspace_id: str, database: str | None, status: str | None = None) -> dict[str, Any]:
        config = self._group_config(self._registry.file_folder_info, database)
        params = _workspace_parameters(workspace_id, status)
        conflicts, files = await asyncio.gather(
            self._query_optional(config.get("conflictsCardId"), params),
            self._query_optional(config.get("filesListCardId"), params),
        )
        return {
            "workspaceId": workspace_id,
            "database": database,
            "status": status,
            "conflicts": normalize(conflicts),
            "files": normalize(files),
        }

    async def workspace_hyperlinks(
        self, workspace_id: str, database: str | None, status: str | None = None
    ) -> dict[str, Any]:
        config = self._group_config(self._registry.hyperlinks, database)
        result = await self._query_optional(
            config.get("hyperlinksListCardId"), _workspace_parameters(workspace_id, status)
        )
        return {"workspaceId": workspace_id, "database": database, "hyperlinks": normalize(result)}

    async def workspace_permissions(
        self, workspace_id: str, database: str | None, status: str | None = None
    ) -> dict[str, Any]:
        config = self._group_config(self._registry.permissions, database)
        result = await self._query_optional(
            config.get("permissionsListCardId"), _workspace_parameters(workspace_id, status)
        )
        return {"workspaceId": workspace_id, "database": database, "permissions": normalize(result)}


_service: DashboardService | None = None


def configure_dashboard_service(service: DashboardService | None) -> None:
    """Install the service used by the HTTP routes."""

    global _service
    _service = service


def get_dashboard_service() -> DashboardService:
    """Return the configured dashboard service."""

    if _service is None:
        raise RuntimeError("Dashboard service has not been configured")
    return _service
