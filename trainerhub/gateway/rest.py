"""
trainerhub/gateway/rest.py

Gateway for the hosted backend's REST endpoint (``{BAAS_URL}/rest/v1``).

Query mapping:
- select columns/embeds  -> ``select=`` (whitespace stripped)
- eq / in filters        -> ``col=eq.v`` / ``col=in.("a","b")``
- order                  -> ``order=col.desc`` / ``<embed>.order=col.asc``
- insert/update/delete   -> POST/PATCH/DELETE with ``Prefer: return=representation``
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from trainerhub.core.errors import GatewayError
from trainerhub.gateway.base import Action, DataGateway, Filter, Query, shape_rows
from trainerhub.gateway.select import compact

logger = logging.getLogger("trainerhub")

_METHODS = {
    Action.SELECT: "GET",
    Action.INSERT: "POST",
    Action.UPDATE: "PATCH",
    Action.DELETE: "DELETE",
}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    text = _format_value(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _filter_param(f: Filter) -> Tuple[str, str]:
    if f.op == "in":
        return f.column, "in.(" + ",".join(_quote(v) for v in f.value) + ")"
    if f.value is None:
        return f.column, "is.null"
    return f.column, f"eq.{_format_value(f.value)}"


def build_params(query: Query) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if query.action == Action.SELECT:
        params.append(("select", compact(query.columns)))
    elif query.returning:
        params.append(("select", compact(query.returning)))
    params.extend(_filter_param(f) for f in query.filters)

    grouped: Dict[Optional[str], List[str]] = {}
    for order in query.orders:
        direction = "desc" if order.descending else "asc"
        grouped.setdefault(order.foreign_table, []).append(f"{order.column}.{direction}")
    for foreign_table, parts in grouped.items():
        name = f"{foreign_table}.order" if foreign_table else "order"
        params.append((name, ",".join(parts)))
    return params


class RestGateway(DataGateway):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._client = client or httpx.AsyncClient(
            base_url=f"{self._base_url}/rest/v1",
            timeout=timeout,
            transport=transport,
        )

    def for_token(self, access_token: Optional[str]) -> "RestGateway":
        if not access_token or access_token == self._access_token:
            return self
        return RestGateway(self._base_url, self._api_key, access_token=access_token, client=self._client)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, query: Query) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
        }
        if query.action != Action.SELECT:
            headers["Prefer"] = "return=representation"
        return headers

    async def execute(self, query: Query):
        if query.action in (Action.UPDATE, Action.DELETE) and not query.filters:
            raise GatewayError(f"{query.describe()}: refusing unscoped {query.action.value}", upstream_status=400)

        method = _METHODS[query.action]
        payload = query.payload if query.action in (Action.INSERT, Action.UPDATE) else None
        try:
            response = await self._client.request(
                method,
                f"/{query.table}",
                params=build_params(query),
                json=payload,
                headers=self._headers(query),
            )
        except httpx.HTTPError as exc:
            logger.warning("gateway.transport_error", extra={"error_code": "gateway_error", "query": query.describe()})
            raise GatewayError(f"{query.describe()}: {exc.__class__.__name__}") from exc

        if response.status_code >= 400:
            raise GatewayError(
                f"{query.describe()}: {self._error_message(response)}",
                upstream_status=response.status_code,
            )

        rows = response.json() if response.content else []
        if isinstance(rows, dict):
            rows = [rows]
        return shape_rows(query, rows)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
        return f"HTTP {response.status_code}"
