"""Client for the Metabase REST API."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

import httpx

from combined_dashboard.core.parameters import build_parameters
from combined_dashboard.core.settings import Settings
from combined_dashboard.domain import CardMetadata, SessionCredential

from .cache import CardMetadataCache

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 12 * 60 * 60
SESSION_TIMEOUT = 10.0
REQUEST_TIMEOUT = 60.0


class MetabaseError(RuntimeError):
    """Raised when a Metabase call fails."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail or message


class AuthError(MetabaseError):
    """Credentials are missing or were rejected by Metabase."""


class UpstreamUnavailable(MetabaseError):
    """Metabase could not be reached or did not answer in time."""


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "errors"):
            if body.get(key):
                return str(body[key])
    return str(body)


class MetabaseSession:
    """Owns the credential used for Metabase calls.

    A static API key always wins and never expires. Otherwise a session token
    is obtained from ``/api/session`` and reused for twelve hours.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        *,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client
        self._username = username
        self._password = password
        self._api_key = api_key
        self._ttl = ttl_seconds
        self._clock = clock
        self._credential: SessionCredential | None = None

    @property
    def credential(self) -> SessionCredential | None:
        return self._credential

    def clear(self) -> None:
        self._credential = None

    async def get_credential(self, force_refresh: bool = False) -> SessionCredential:
        if self._api_key:
            return SessionCredential(token=self._api_key, api_key=True)

        current = self._credential
        if current is not None and not force_refresh and current.is_valid(self._clock()):
            return current

        if not (self._username and self._password):
            self.clear()
            raise AuthError("Metabase username/password or API key must be configured")

        logger.info("Authenticating with Metabase at %s", self._base_url)
        try:
            response = await self._client.post(
                f"{self._base_url}/api/session",
                json={"username": self._username, "password": self._password},
                timeout=SESSION_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            self.clear()
            logger.error("Failed to reach Metabase for a session: %s", exc)
            raise UpstreamUnavailable(f"Could not reach Metabase at {self._base_url}: {exc}") from exc

        if not response.is_success:
            self.clear()
            detail = _error_detail(response)
            logger.error("Failed to get Metabase session: %s", detail)
            raise AuthError(
                f"Metabase rejected the session request ({response.status_code}): {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            token = (response.json() or {}).get("id")
        except (ValueError, AttributeError):
            token = None
        if not token:
            self.clear()
            raise AuthError("Metabase session response did not include a token")

        self._credential = SessionCredential(token=str(token), expires_at=self._clock() + self._ttl)
        logger.info("Authenticated with Metabase")
        return self._credential


class MetabaseClient:
    """Authenticated access to dashboards and cards."""

    def __init__(
        self,
        base_url: str,
        session: MetabaseSession,
        *,
        metadata_cache: CardMetadataCache | None = None,
        card_parameters: Mapping[int, Mapping[str, str]] | None = None,
        timeout: float = REQUEST_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._metadata = metadata_cache if metadata_cache is not None else CardMetadataCache()
        self._card_parameters = {int(key): dict(value) for key, value in (card_parameters or {}).items()}
        self._timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        card_parameters: Mapping[int, Mapping[str, str]] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "MetabaseClient":
        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        session = MetabaseSession(
            settings.metabase_url,
            client,
            username=settings.username,
            password=settings.password,
            api_key=settings.api_key,
        )
        instance = cls(
            settings.metabase_url,
            session,
            metadata_cache=CardMetadataCache(settings.metadata_ttl),
            card_parameters=card_parameters,
            http_client=client,
        )
        instance._owns_client = owns_client
        return instance

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session(self) -> MetabaseSession:
        return self._session

    @property
    def metadata_cache(self) -> CardMetadataCache:
        return self._metadata

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    async def _send(
        self,
        method: str,
        endpoint: str,
        payload: Any | None,
        *,
        force_refresh: bool = False,
    ) -> httpx.Response:
        credential = await self._session.get_credential(force_refresh)
        try:
            return await self._client.request(
                method,
                f"{self._base_url}{endpoint}",
                headers=credential.header,
                json=payload,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable(f"Timed out calling Metabase {endpoint}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Could not reach Metabase for {endpoint}: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response, endpoint: str) -> Any:
        if not response.is_success:
            detail = _error_detail(response)
            raise MetabaseError(
                f"Metabase returned {response.status_code} for {endpoint}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MetabaseError(f"Metabase returned invalid JSON for {endpoint}") from exc

    async def request(self, method: str, endpoint: str, payload: Any | None = None) -> Any:
        """Call Metabase, refreshing the session and retrying once on 401."""

        response = await self._send(method, endpoint, payload)
        if response.status_code == 401:
            logger.info("Metabase session expired, refreshing")
            response = await self._send(method, endpoint, payload, force_refresh=True)
        return self._decode(response, endpoint)

    # ------------------------------------------------------------------
    # pass-through calls
    # ------------------------------------------------------------------
    async def get_current_user(self) -> dict[str, Any]:
        return await self.request("GET", "/api/user/current") or {}

    async def get_dashboard(self, dashboard_id: int | str) -> dict[str, Any]:
        return await self.request("GET", f"/api/dashboard/{dashboard_id}") or {}

    async def run_card_query(self, card_id: int | str, parameters: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        return await self.request("POST", f"/api/card/{card_id}/query", {"parameters": parameters or []}) or {}

    # ------------------------------------------------------------------
    # card queries
    # ------------------------------------------------------------------
    async def get_card_metadata(self, card_id: int) -> CardMetadata:
        cached = self._metadata.get(card_id)
        if cached is not None:
            return cached

        try:
            card = await self.request("GET", f"/api/card/{card_id}")
        except MetabaseError as exc:
            logger.error("Failed to get card %s metadata: %s", card_id, exc)
            return CardMetadata(card_id=card_id)

        card = card if isinstance(card, dict) else {}
        native = (card.get("dataset_query") or {}).get("native") or {}
        tags = native.get("template-tags") or {}
        metadata = CardMetadata(
            card_id=card_id,
            name=card.get("name"),
            template_tags={str(name): dict(details or {}) for name, details in tags.items()},
        )
        self._metadata.set(metadata)
        return metadata

    async def _query(self, card_id: int, parameters: Mapping[str, Any], *, status_only: bool) -> dict[str, Any] | None:
        metadata = await self.get_card_metadata(card_id)
        param_list = build_parameters(
            metadata,
            parameters,
            explicit=self._card_parameters.get(card_id),
            status_only=status_only,
        )
        try:
            result = await self.run_card_query(card_id, param_list)
        except MetabaseError as exc:
            logger.error("Failed to query card %s: %s", card_id, exc.detail)
            return None
        if isinstance(result, dict) and result.get("status") == "failed":
            logger.error("Card %s query failed: %s", card_id, result.get("error"))
            return None
        return result

    async def query_card(self, card_id: int, parameters: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        """Run a card with whichever of ``parameters`` its template tags accept.

        Returns ``None`` instead of raising when the query fails.
        """

        return await self._query(card_id, parameters or {}, status_only=False)

    async def query_card_with_status(
        self, card_id: int, parameters: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Like :meth:`query_card`, but only status tags are filled; the rest are ``ALL``."""

        return await self._query(card_id, parameters or {}, status_only=True)

    async def query_card_no_params(self, card_id: int) -> dict[str, Any] | None:
        try:
            return await self.run_card_query(card_id, [])
        except MetabaseError as exc:
            logger.error("Failed to query card %s (no params): %s", card_id, exc.detail)
            return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "AuthError",
    "MetabaseClient",
    "MetabaseError",
    "MetabaseSession",
    "UpstreamUnavailable",
]
