"""Thin async client for Supabase PostgREST (tables and RPC functions)."""

from typing import Any

import httpx

from leitordocs.config import Settings, get_settings
from leitordocs.shared.exceptions import SupabaseError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


def _supabase_error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None

    if not isinstance(payload, dict):
        return None

    for field in ("message", "detail", "hint"):
        detail = payload.get(field)
        if isinstance(detail, str) and detail:
            return detail
    return None


class SupabaseRestClient:
    """Service-role client for system operations (bypasses RLS).

    Only server-side code uses this; user-scoped reads go through the
    frontend's own Supabase client.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.supabase_url = settings.supabase_url.rstrip("/")
        self.service_role_key = settings.supabase_service_role_key
        self.timeout = settings.supabase_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.service_role_key)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the REST HTTP client."""
        if not self.is_configured:
            raise SupabaseError("Supabase não configurado")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.supabase_url}/rest/v1",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = await self.client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.error("supabase_request_failed", method=method, path=path, error=str(exc))
            raise SupabaseError("Falha de conexão com o Supabase") from exc

        if response.is_error:
            detail = _supabase_error_detail(response)
            logger.error(
                "supabase_error_response",
                method=method,
                path=path,
                status=response.status_code,
                detail=detail,
            )
            raise SupabaseError(
                detail or f"Supabase respondeu {response.status_code}",
                details={"status_code": response.status_code},
            )

        if not response.content:
            return None
        return response.json()

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> Any:
        """Call a Postgres function exposed through PostgREST."""
        return await self._request("POST", f"/rpc/{function}", json=params or {})

    async def select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        """Select rows using PostgREST query params (``col=eq.value``)."""
        payload = await self._request("GET", f"/{table}", params=params)
        if not isinstance(payload, list):
            raise SupabaseError(f"Resposta inválida do Supabase para {table}")
        return payload

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any] | None:
        """Insert one row and return it as stored."""
        payload = await self._request(
            "POST",
            f"/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        if isinstance(payload, list):
            return payload[0] if payload else None
        return payload

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
