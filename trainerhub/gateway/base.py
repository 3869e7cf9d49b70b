"""
trainerhub/gateway/base.py

Remote Data Gateway: a fluent query builder over an async executor.

    rows = await gateway.from_("posts").select(POST_COLUMNS).in_("trainer_id", ids).order("created_at", desc=True).execute()
    row = await gateway.from_("comments").insert({...}).select("*").single().execute()

Every failure surfaces as GatewayError; callers translate it into FetchError or
MutationError depending on what they were doing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from trainerhub.core.errors import GatewayError


class Action(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Cardinality(str, Enum):
    MANY = "many"
    SINGLE = "single"
    MAYBE_SINGLE = "maybe_single"


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # "eq" | "in"
    value: Any


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False
    foreign_table: Optional[str] = None


class Query:
    """Mutable builder; every method returns self so calls chain."""

    def __init__(self, gateway: "DataGateway", table: str):
        self._gateway = gateway
        self.table = table
        self.action = Action.SELECT
        self.columns = "*"
        self.returning: Optional[str] = None
        self.payload: Optional[Dict[str, Any]] = None
        self.filters: List[Filter] = []
        self.orders: List[Order] = []
        self.cardinality = Cardinality.MANY

    def select(self, columns: str = "*") -> "Query":
        if self.action == Action.SELECT:
            self.columns = columns
        else:
            self.returning = columns
        return self

    def insert(self, row: Dict[str, Any]) -> "Query":
        self.action = Action.INSERT
        self.payload = dict(row)
        return self

    def update(self, values: Dict[str, Any]) -> "Query":
        self.action = Action.UPDATE
        self.payload = dict(values)
        return self

    def delete(self) -> "Query":
        self.action = Action.DELETE
        return self

    def eq(self, column: str, value: Any) -> "Query":
        self.filters.append(Filter(column, "eq", value))
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "Query":
        self.filters.append(Filter(column, "in", tuple(values)))
        return self

    def order(self, column: str, *, desc: bool = False, foreign_table: Optional[str] = None) -> "Query":
        self.orders.append(Order(column, desc, foreign_table))
        return self

    def single(self) -> "Query":
        self.cardinality = Cardinality.SINGLE
        return self

    def maybe_single(self) -> "Query":
        self.cardinality = Cardinality.MAYBE_SINGLE
        return self

    async def execute(self):
        return await self._gateway.execute(self)

    def describe(self) -> str:
        parts = [f"{self.action.value} {self.table}"]
        parts.extend(f"{f.column}={f.op}" for f in self.filters)
        return " ".join(parts)


class DataGateway(ABC):
    """Query/mutation client against the hosted relational store."""

    def from_(self, table: str) -> Query:
        return Query(self, table)

    def for_token(self, access_token: Optional[str]) -> "DataGateway":
        """Gateway acting with the given user token (row-level authorization)."""
        return self

    async def aclose(self) -> None:
        return None

    @abstractmethod
    async def execute(self, query: Query):
        """Run the query.

        Returns a list of rows for MANY, one row for SINGLE (error if not exactly
        one) and a row or None for MAYBE_SINGLE.
        """


def shape_rows(query: Query, rows: List[Dict[str, Any]]):
    """Apply the query's cardinality to a list of result rows."""
    if query.cardinality == Cardinality.MANY:
        return rows
    if len(rows) > 1:
        raise GatewayError(f"{query.describe()}: expected at most one row, got {len(rows)}", upstream_status=406)
    if not rows:
        if query.cardinality == Cardinality.MAYBE_SINGLE:
            return None
        raise GatewayError(f"{query.describe()}: expected one row, got none", upstream_status=406)
    return rows[0]
