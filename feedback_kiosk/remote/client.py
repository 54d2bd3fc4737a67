"""PostgREST client for the hosted feedback table.

Talks raw HTTP through httpx; the kiosk only needs insert, filtered select,
exact counts and a reachability probe. Every failure, transport or
server-side, surfaces as ``RemoteServiceError`` carrying the HTTP status
and the PostgREST/Postgres error code so the caller can classify it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import httpx

from feedback_kiosk.config import RemoteConfig
from feedback_kiosk.errors import RemoteServiceError
from feedback_kiosk.remote.query import Filter, Order, SelectResult, parse_content_range

logger = logging.getLogger(__name__)

NETWORK_ERROR_CODE = "network_error"

AccessTokenProvider = Callable[[], str | None]


def error_from_response(response: httpx.Response) -> RemoteServiceError:
    code: str | None = None
    message = response.reason_phrase or f"HTTP {response.status_code}"
    details: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        raw_code = body.get("code") or body.get("error_code") or body.get("error")
        code = str(raw_code) if raw_code is not None else None
        message = str(body.get("message") or body.get("msg") or body.get("error_description") or message)
        raw_details = body.get("details") or body.get("hint")
        details = str(raw_details) if raw_details is not None else None
    return RemoteServiceError(message, code=code, status=response.status_code, details=details)


class SupabaseRestClient:
    """Data API client implementing ``DataServiceClient``.

    ``access_token`` supplies the signed-in user's JWT when there is one;
    otherwise requests are made with the anon key, as the kiosk does.
    """

    def __init__(
        self,
        config: RemoteConfig,
        http_client: httpx.AsyncClient | None = None,
        access_token: AccessTokenProvider | None = None,
    ) -> None:
        self._config = config
        # Injected in tests to avoid real HTTP
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_s))
        self._owns_http = http_client is None
        self._access_token = access_token

    @property
    def rest_url(self) -> str:
        return f"{self._config.url}/rest/v1"

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = (self._access_token() if self._access_token else None) or self._config.anon_key
        headers = {
            "apikey": self._config.anon_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json_body: object | None = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                f"{self.rest_url}/{path}",
                params=params,
                json=json_body,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(
                f"{method} {path} failed: {exc.__class__.__name__}",
                code=NETWORK_ERROR_CODE,
            ) from exc
        if response.status_code >= 400:
            raise error_from_response(response)
        return response

    async def insert(self, table: str, record: dict[str, object]) -> dict[str, object]:
        response = await self._request(
            "POST",
            table,
            params=[("select", "*")],
            json_body=record,
            prefer="return=representation",
        )
        rows = response.json() if response.content else []
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            return rows[0]
        return dict(record)

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Order | None = None,
        limit: int | None = None,
        offset: int | None = None,
        count: bool = False,
    ) -> SelectResult:
        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(f.as_param() for f in filters)
        if order is not None:
            params.append(("order", order.as_param()))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset is not None:
            params.append(("offset", str(offset)))

        response = await self._request(
            "GET",
            table,
            params=params,
            prefer="count=exact" if count else None,
        )
        rows = response.json()
        if not isinstance(rows, list):
            raise RemoteServiceError("unexpected select payload", status=response.status_code)
        total = parse_content_range(response.headers.get("content-range")) if count else None
        return SelectResult(rows=rows, count=total)

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        params: list[tuple[str, str]] = [("select", "id")]
        params.extend(f.as_param() for f in filters)
        response = await self._request("HEAD", table, params=params, prefer="count=exact")
        total = parse_content_range(response.headers.get("content-range"))
        return total or 0

    async def ping(self) -> bool:
        try:
            response = await self._http.get(f"{self.rest_url}/", headers=self._headers(), timeout=5.0)
        except httpx.HTTPError:
            return False
        # Any answer from the gateway, even 401, proves the network path works.
        return response.status_code < 500

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()


__all__ = ["NETWORK_ERROR_CODE", "AccessTokenProvider", "SupabaseRestClient", "error_from_response"]
