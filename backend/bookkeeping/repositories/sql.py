"""
SQLAlchemy repository (Supabase Postgres backend)
"""

import enum
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Type

from sqlalchemy import Date, DateTime, Numeric, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookkeeping.core import (
    Company,
    FinancialSettings,
    Invitation,
    Profile,
    Store,
    Transaction,
    TransactionCategory,
)
from bookkeeping.core.common.base_model import BaseModel
from bookkeeping.repositories.base import Filter, Repository, Row, Table, parse_order

logger = logging.getLogger(__name__)

MODELS: Dict[Table, Type[BaseModel]] = {
    Table.COMPANIES: Company,
    Table.PROFILES: Profile,
    Table.STORES: Store,
    Table.CATEGORIES: TransactionCategory,
    Table.TRANSACTIONS: Transaction,
    Table.FINANCIAL_SETTINGS: FinancialSettings,
    Table.INVITATIONS: Invitation,
}


def parse_datetime(value: str) -> datetime:
    """Parse an ISO timestamp, accepting a trailing Z"""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _coerce(column, value: Any) -> Any:
    """Convert a row value into what the column type expects"""
    if value is None:
        return None
    column_type = column.type
    if value == "" and isinstance(column_type, (Date, DateTime, Numeric)):
        return None
    if isinstance(column_type, DateTime):
        if isinstance(value, str):
            return parse_datetime(value)
        return value
    if isinstance(column_type, Date):
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
        if isinstance(value, datetime):
            return value.date()
        return value
    if isinstance(column_type, Numeric) and isinstance(value, (int, float, str)):
        return Decimal(str(value))
    return value


def _serialize(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def model_to_row(obj: BaseModel) -> Row:
    """Convert a model instance into a plain row dict"""
    return {
        column.key: _serialize(getattr(obj, column.key))
        for column in obj.__table__.columns
    }


class SqlRepository(Repository):
    """
    Repository over a SQLAlchemy session.

    Writes are flushed, not committed: the route commits once the whole
    operation succeeded (closing the session discards everything else).
    """

    backend = "supabase"

    def __init__(self, db: Session):
        self.db = db

    def _model(self, table: Table) -> Type[BaseModel]:
        return MODELS[Table(table)]

    def _column(self, model: Type[BaseModel], field: str):
        try:
            return model.__table__.columns[field]
        except KeyError:
            raise ValueError(f"Unknown field '{field}' on {model.__tablename__}")

    def _conditions(self, model: Type[BaseModel], filters: Sequence[Filter]) -> List[Any]:
        conditions = []
        for f in filters:
            column = self._column(model, f.field)
            attr = getattr(model, column.key)
            if f.op == "in":
                conditions.append(attr.in_([_coerce(column, v) for v in f.value]))
                continue
            value = _coerce(column, f.value)
            if f.op == "eq":
                conditions.append(attr.is_(None) if value is None else attr == value)
            elif f.op == "ne":
                conditions.append(attr.is_not(None) if value is None else attr != value)
            elif f.op == "gte":
                conditions.append(attr >= value)
            elif f.op == "lte":
                conditions.append(attr <= value)
        return conditions

    def find(
        self,
        table: Table,
        filters: Sequence[Filter] = (),
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        model = self._model(table)
        stmt = select(model).where(*self._conditions(model, filters))
        for field, descending in parse_order(order_by):
            attr = getattr(model, self._column(model, field).key)
            stmt = stmt.order_by(attr.desc() if descending else attr.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [model_to_row(obj) for obj in self.db.execute(stmt).scalars().all()]

    def count(self, table: Table, filters: Sequence[Filter] = ()) -> int:
        model = self._model(table)
        stmt = select(func.count()).select_from(model).where(*self._conditions(model, filters))
        return int(self.db.execute(stmt).scalar_one())

    def _get_obj(self, table: Table, record_id: str) -> Optional[BaseModel]:
        if not record_id:
            return None
        return self.db.get(self._model(table), str(record_id))

    def get(self, table: Table, record_id: str) -> Optional[Row]:
        obj = self._get_obj(table, record_id)
        return model_to_row(obj) if obj else None

    def _assign(self, obj: BaseModel, values: Row) -> None:
        for field, value in values.items():
            if field in ("created_at", "updated_at"):
                continue
            column = self._column(type(obj), field)
            setattr(obj, column.key, _coerce(column, value))

    def insert(self, table: Table, values: Row) -> Row:
        model = self._model(table)
        obj = model()
        self._assign(obj, values)
        self.db.add(obj)
        self.db.flush()
        self.db.refresh(obj)
        return model_to_row(obj)

    def update(self, table: Table, record_id: str, values: Row) -> Optional[Row]:
        obj = self._get_obj(table, record_id)
        if obj is None:
            return None
        self._assign(obj, {k: v for k, v in values.items() if k != "id"})
        self.db.flush()
        self.db.refresh(obj)
        return model_to_row(obj)

    def delete(self, table: Table, record_id: str) -> bool:
        obj = self._get_obj(table, record_id)
        if obj is None:
            return False
        self.db.delete(obj)
        self.db.flush()
        return True

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def ping(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database ping failed: {e}")
            return False
