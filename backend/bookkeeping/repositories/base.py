"""
Backend-neutral record access

Services read and write plain dict rows keyed by snake_case field names
(id, created_at, company_id, ...). Dates are ISO strings ("YYYY-MM-DD"),
timestamps ISO datetimes, enums their string values. Each backend
translates these rows to its own storage.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

Row = Dict[str, Any]


class Table(str, enum.Enum):
    """Logical tables (LeanCloud classes)"""
    COMPANIES = "companies"
    PROFILES = "profiles"
    STORES = "stores"
    CATEGORIES = "transaction_categories"
    TRANSACTIONS = "transactions"
    FINANCIAL_SETTINGS = "financial_settings"
    INVITATIONS = "invitations"


FILTER_OPS = ("eq", "ne", "gte", "lte", "in")


@dataclass(frozen=True)
class Filter:
    """Single field condition; filters passed together are ANDed"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter op: {self.op}")


def eq(field: str, value: Any) -> Filter:
    return Filter(field, "eq", value)


def ne(field: str, value: Any) -> Filter:
    return Filter(field, "ne", value)


def gte(field: str, value: Any) -> Filter:
    return Filter(field, "gte", value)


def lte(field: str, value: Any) -> Filter:
    return Filter(field, "lte", value)


def in_(field: str, values: Sequence[Any]) -> Filter:
    return Filter(field, "in", list(values))


def parse_order(order_by: Optional[Sequence[str]]) -> List[tuple]:
    """Turn ["-date", "name"] into [("date", True), ("name", False)]"""
    parsed = []
    for item in order_by or ():
        if item.startswith("-"):
            parsed.append((item[1:], True))
        else:
            parsed.append((item, False))
    return parsed


class Repository(ABC):
    """Record store used by every domain service"""

    backend: str = ""

    @abstractmethod
    def find(
        self,
        table: Table,
        filters: Sequence[Filter] = (),
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        """Return rows matching all filters"""

    @abstractmethod
    def count(self, table: Table, filters: Sequence[Filter] = ()) -> int:
        """Count rows matching all filters"""

    @abstractmethod
    def get(self, table: Table, record_id: str) -> Optional[Row]:
        """Return one row by id, or None"""

    @abstractmethod
    def insert(self, table: Table, values: Row) -> Row:
        """Insert a row and return it with id and timestamps"""

    @abstractmethod
    def update(self, table: Table, record_id: str, values: Row) -> Optional[Row]:
        """Update one row; returns the updated row or None if missing"""

    @abstractmethod
    def delete(self, table: Table, record_id: str) -> bool:
        """Delete one row; returns False if it did not exist"""

    def find_one(self, table: Table, filters: Sequence[Filter] = (), order_by: Optional[Sequence[str]] = None) -> Optional[Row]:
        rows = self.find(table, filters, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def update_where(self, table: Table, filters: Sequence[Filter], values: Row) -> int:
        """Update every matching row; returns the number of rows touched"""
        rows = self.find(table, filters)
        for row in rows:
            self.update(table, row["id"], values)
        return len(rows)

    def bind_session(self, session_token: Optional[str]) -> None:
        """Scope later requests to a freshly signed-in user (no-op by default)"""

    def commit(self) -> None:
        """Persist pending writes (no-op for auto-committing backends)"""

    def rollback(self) -> None:
        """Discard pending writes (no-op for auto-committing backends)"""

    def ping(self) -> bool:
        """Connectivity check used by /ready"""
        return True
