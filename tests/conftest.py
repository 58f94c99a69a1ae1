"""Shared fixtures: an in-memory Metabase served through ``httpx.MockTransport``."""
from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from combined_dashboard.core.settings import Settings, registry_from_dict

BASE_URL = "http://metabase.test"


def card_result(cols: list[str], rows: list[list[Any]]) -> dict[str, Any]:
    return {"data": {"cols": [{"name": col} for col in cols], "rows": rows}, "status": "completed"}


def dashboard(dashboard_id: int, name: str, cards: list[tuple[int, str]]) -> dict[str, Any]:
    return {
        "id": dashboard_id,
        "name": name,
        "dashcards": [{"card": {"id": card_id, "name": card_name, "display": "scalar"}} for card_id, card_name in cards],
    }


class FakeMetabase:
    """Just enough of the Metabase API for the client and service tests."""

    def __init__(self) -> None:
        self.dashboards: dict[int, dict[str, Any] | int] = {}
        self.cards: dict[int, dict[str, Any] | int] = {}
        self.results: dict[int, dict[str, Any] | int | Callable[[list[dict]], dict[str, Any]]] = {}
        self.user: dict[str, Any] = {"common_name": "Ada Admin", "email": "ada@example.com"}
        self.api_keys: set[str] = set()
        self.valid_tokens: set[str] = set()
        self.reject_login = False
        self.always_unauthorized: set[str] = set()
        self.calls: list[dict[str, Any]] = []
        self._issued = 0

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]

    def expire_sessions(self) -> None:
        self.valid_tokens.clear()

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content.decode("utf-8")) if request.content else None
        token = request.headers.get("X-Metabase-Session") or request.headers.get("X-API-KEY")
        self.calls.append({"method": request.method, "path": path, "json": body, "token": token})

        if path == "/api/session" and request.method == "POST":
            if self.reject_login:
                return httpx.Response(401, json={"errors": {"password": "did not match stored password"}})
            self._issued += 1
            issued = f"token-{self._issued}"
            self.valid_tokens.add(issued)
            return httpx.Response(200, json={"id": issued})

        if path in self.always_unauthorized or (token not in self.valid_tokens and token not in self.api_keys):
            return httpx.Response(401, text="Unauthenticated")

        if path == "/api/user/current":
            return httpx.Response(200, json=self.user)

        match = re.fullmatch(r"/api/dashboard/(\d+)", path)
        if match:
            return self._respond(self.dashboards.get(int(match.group(1)), 404))

        match = re.fullmatch(r"/api/card/(\d+)", path)
        if match:
            return self._respond(self.cards.get(int(match.group(1)), 404))

        match = re.fullmatch(r"/api/card/(\d+)/query", path)
        if match and request.method == "POST":
            result = self.results.get(int(match.group(1)), 404)
            if callable(result):
                result = result((body or {}).get("parameters") or [])
            return self._respond(result)

        return httpx.Response(404, json={"message": "Not found"})

    @staticmethod
    def _respond(value: dict[str, Any] | int) -> httpx.Response:
        if isinstance(value, int):
            return httpx.Response(value, json={"message": f"upstream status {value}"})
        return httpx.Response(200, json=value)


@pytest.fixture()
def fake_metabase() -> FakeMetabase:
    return FakeMetabase()


@pytest.fixture()
def http_client(fake_metabase):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_metabase.handler))


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        metabase_url=BASE_URL,
        username="admin@example.com",
        password="secret",
        dashboard_ids=["42", "43"],
    )


@pytest.fixture()
def registry():
    return registry_from_dict(
        {
            "jobDetails": {
                "WP1": {"dashboardId": 29, "jobListCardId": 143},
                "WP2": {"dashboardId": 37, "jobListCardId": 161},
            },
            "workspaceDetails": {
                "WP1": {
                    "dashboardId": 30,
                    "workspaceListCardId": 156,
                    "fileFolderStatusCardId": 137,
                    "hyperlinksStatusCardId": 140,
                    "permissionsStatusCardId": 149,
                    "totalFileSizeCardId": 152,
                },
            },
            "fileFolderInfo": {"WP1": {"dashboardId": 27, "conflictsCardId": 136, "filesListCardId": 138}},
            "hyperlinks": {"WP1": {"dashboardId": 28, "hyperlinksListCardId": 139}},
            "permissions": {"WP1": {"dashboardId": 31, "permissionsListCardId": 148}},
        }
    )
