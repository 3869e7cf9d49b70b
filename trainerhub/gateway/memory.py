"""
trainerhub/gateway/memory.py

In-process table store with the same surface as the REST gateway, including
embedded joins. Used when BAAS_URL is unset (local dev) and by the tests.

Like the hosted store it fills ``id`` and timestamp columns on insert, keeps
natural (insertion) order and sorts stably. It enforces no uniqueness: the
hosted schema's constraints are not known to the client.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from trainerhub.core.errors import GatewayError
from trainerhub.gateway.base import Action, DataGateway, Filter, Order, Query, shape_rows
from trainerhub.gateway.schema import MANY_TO_ONE, ONE_TO_MANY, RELATIONSHIPS, TIMESTAMP_COLUMNS
from trainerhub.gateway.select import Embed, Selection, parse_select


@dataclass(frozen=True)
class Call:
    """One executed query, recorded for inspection."""

    action: Action
    table: str
    filters: Tuple[Filter, ...]

    def has_filter(self, column: str, op: Optional[str] = None) -> bool:
        return any(f.column == column and (op is None or f.op == op) for f in self.filters)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _matches(row: Dict[str, Any], filters: Iterable[Filter]) -> bool:
    for f in filters:
        value = row.get(f.column)
        if f.op == "eq" and value != f.value:
            return False
        if f.op == "in" and value not in f.value:
            return False
    return True


def _sorted(rows: List[Dict[str, Any]], orders: Iterable[Order]) -> List[Dict[str, Any]]:
    # Apply keys last-to-first; sorted() is stable, also with reverse=True
    result = list(rows)
    for order in reversed(list(orders)):
        present = [r for r in result if r.get(order.column) is not None]
        missing = [r for r in result if r.get(order.column) is None]
        present = sorted(present, key=lambda r: r[order.column], reverse=order.descending)
        result = present + missing
    return result


class InMemoryGateway(DataGateway):
    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._clock = clock or _utcnow
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TIMESTAMP_COLUMNS}
        self._failures: Dict[Tuple[str, Optional[Action]], int] = {}
        self.calls: List[Call] = []

    # ----- test and dev helpers -----

    def seed(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows directly, without recording a call."""
        return [self._insert_row(table, row) for row in rows]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._table(table)]

    def fail_next(self, table: str, action: Optional[Action] = None, times: int = 1) -> None:
        """Make the next ``times`` matching queries raise GatewayError."""
        self._failures[(table, action)] = times

    def calls_to(self, table: str, action: Optional[Action] = None) -> List[Call]:
        return [c for c in self.calls if c.table == table and (action is None or c.action == action)]

    def reset_calls(self) -> None:
        self.calls.clear()

    # ----- execution -----

    async def execute(self, query: Query):
        self.calls.append(Call(query.action, query.table, tuple(query.filters)))
        self._raise_if_failing(query)

        if query.action == Action.SELECT:
            rows = self._select(query.table, parse_select(query.columns), query.filters, query.orders)
        elif query.action == Action.INSERT:
            row = self._insert_row(query.table, query.payload or {})
            rows = [self._project_returning(query, row)]
        elif query.action == Action.UPDATE:
            rows = [self._project_returning(query, r) for r in self._update(query)]
        else:
            rows = [self._project_returning(query, r) for r in self._delete(query)]
        return shape_rows(query, rows)

    def _raise_if_failing(self, query: Query) -> None:
        for key in ((query.table, query.action), (query.table, None)):
            remaining = self._failures.get(key, 0)
            if remaining > 0:
                self._failures[key] = remaining - 1
                raise GatewayError(f"{query.describe()}: injected failure", upstream_status=503)

    def _table(self, table: str) -> List[Dict[str, Any]]:
        if table not in self._tables:
            raise GatewayError(f"Unknown table '{table}'", upstream_status=404)
        return self._tables[table]

    def _insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        stored.setdefault("id", self._id_factory())
        now = self._clock()
        for column in TIMESTAMP_COLUMNS.get(table, ()):
            if stored.get(column) is None:
                stored[column] = now
        self._table(table).append(stored)
        return dict(stored)

    def _update(self, query: Query) -> List[Dict[str, Any]]:
        if not query.filters:
            raise GatewayError(f"{query.describe()}: refusing unscoped update", upstream_status=400)
        table = self._table(query.table)
        updated = []
        for index, row in enumerate(table):
            if _matches(row, query.filters):
                new_row = {**row, **(query.payload or {})}
                if "updated_at" in TIMESTAMP_COLUMNS.get(query.table, ()):
                    new_row["updated_at"] = self._clock()
                table[index] = new_row
                updated.append(dict(new_row))
        return updated

    def _delete(self, query: Query) -> List[Dict[str, Any]]:
        if not query.filters:
            raise GatewayError(f"{query.describe()}: refusing unscoped delete", upstream_status=400)
        table = self._table(query.table)
        removed = [dict(r) for r in table if _matches(r, query.filters)]
        table[:] = [r for r in table if not _matches(r, query.filters)]
        return removed

    def _project_returning(self, query: Query, row: Dict[str, Any]) -> Dict[str, Any]:
        if not query.returning:
            return row
        return self._project(query.table, row, parse_select(query.returning), [])

    # ----- reads and joins -----

    def _select(self, table: str, selection: Selection, filters: Iterable[Filter], orders: List[Order]):
        base_orders = [o for o in orders if o.foreign_table is None]
        matched = [r for r in self._table(table) if _matches(r, filters)]
        return [self._project(table, r, selection, orders) for r in _sorted(matched, base_orders)]

    def _project(self, table: str, row: Dict[str, Any], selection: Selection, orders: List[Order]) -> Dict[str, Any]:
        if selection.star:
            result = dict(row)
        else:
            result = {column: row.get(column) for column in selection.columns}
        for embed in selection.embeds:
            result[embed.key] = self._resolve_embed(table, row, embed, orders)
        return result

    def _resolve_embed(self, table: str, row: Dict[str, Any], embed: Embed, orders: List[Order]):
        if embed.hint:
            kind, column = MANY_TO_ONE, embed.hint
        else:
            relation = RELATIONSHIPS.get((table, embed.table))
            if relation is None:
                raise GatewayError(f"No relationship between '{table}' and '{embed.table}'", upstream_status=400)
            kind, column = relation

        if kind == MANY_TO_ONE:
            target_id = row.get(column)
            for candidate in self._table(embed.table):
                if candidate.get("id") == target_id:
                    return self._project(embed.table, candidate, embed.selection, [])
            return None

        if kind != ONE_TO_MANY:
            raise GatewayError(f"Unsupported relationship kind '{kind}' for '{embed.table}'", upstream_status=400)
        children = [c for c in self._table(embed.table) if c.get(column) == row.get("id")]
        child_orders = [
            Order(o.column, o.descending)
            for o in orders
            if o.foreign_table in (embed.key, embed.table)
        ]
        return [self._project(embed.table, c, embed.selection, []) for c in _sorted(children, child_orders)]
