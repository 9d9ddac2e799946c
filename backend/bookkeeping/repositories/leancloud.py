"""
LeanCloud repository (REST backend)
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from bookkeeping.backends.leancloud.client import (
    ERROR_OBJECT_NOT_FOUND,
    LeanCloudClient,
    LeanCloudError,
)
from bookkeeping.backends.leancloud.classes import (
    class_name,
    from_lc_object,
    to_lc_field,
    to_lc_object,
    to_lc_value,
)
from bookkeeping.repositories.base import Filter, Repository, Row, Table, parse_order

logger = logging.getLogger(__name__)

# LeanCloud caps a single query at 1000 rows
PAGE_SIZE = 1000


def build_where(table: Table, filters: Sequence[Filter]) -> Dict[str, Any]:
    """Translate filters into a LeanCloud `where` document"""
    where: Dict[str, Any] = {}
    for f in filters:
        key = to_lc_field(table, f.field)
        value = to_lc_value(f.value)

        if f.op == "eq" and value is None:
            condition = {"$exists": False}
        elif f.op == "ne" and value is None:
            condition = {"$exists": True}
        elif f.op == "eq":
            if key not in where:
                where[key] = value
                continue
            condition = {"$eq": value}
        else:
            condition = {f"${f.op}": value}

        existing = where.get(key)
        if existing is None:
            where[key] = condition
        elif isinstance(existing, dict):
            existing.update(condition)
        else:
            where[key] = {"$eq": existing, **condition}
    return where


def build_order(table: Table, order_by: Optional[Sequence[str]]) -> Optional[str]:
    parts = [
        ("-" if descending else "") + to_lc_field(table, field)
        for field, descending in parse_order(order_by)
    ]
    return ",".join(parts) or None


class LeanCloudRepository(Repository):
    """
    Repository over LeanCloud classes.

    Requests carry the user's session token; with use_master_key the
    master key is used instead (ACL-bypassing lookups). Every write is
    committed by LeanCloud immediately, so commit/rollback are no-ops.
    """

    backend = "leancloud"

    def __init__(
        self,
        client: LeanCloudClient,
        session_token: Optional[str] = None,
        use_master_key: bool = False,
    ):
        self.client = client
        self.session_token = session_token
        self.use_master_key = use_master_key

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return self.client.request(
            method,
            path,
            session_token=self.session_token,
            use_master_key=self.use_master_key,
            **kwargs,
        )

    def _path(self, table: Table, record_id: Optional[str] = None) -> str:
        path = f"/classes/{class_name(table)}"
        return f"{path}/{record_id}" if record_id else path

    def find(
        self,
        table: Table,
        filters: Sequence[Filter] = (),
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        params: Dict[str, Any] = {}
        where = build_where(table, filters)
        if where:
            params["where"] = json.dumps(where, ensure_ascii=False)
        order = build_order(table, order_by)
        if order:
            params["order"] = order

        rows: List[Row] = []
        skip = offset
        remaining = limit
        while True:
            page_size = PAGE_SIZE if remaining is None else min(PAGE_SIZE, remaining)
            if page_size <= 0:
                break
            result = self._request("GET", self._path(table), params={**params, "limit": page_size, "skip": skip})
            page = result.get("results") or []
            rows.extend(from_lc_object(table, obj) for obj in page)
            if len(page) < page_size:
                break
            skip += len(page)
            if remaining is not None:
                remaining -= len(page)
        return rows

    def count(self, table: Table, filters: Sequence[Filter] = ()) -> int:
        params: Dict[str, Any] = {"count": 1, "limit": 0}
        where = build_where(table, filters)
        if where:
            params["where"] = json.dumps(where, ensure_ascii=False)
        result = self._request("GET", self._path(table), params=params)
        return int(result.get("count") or 0)

    def _get_object(self, table: Table, record_id: str) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        try:
            result = self._request("GET", self._path(table, record_id))
        except LeanCloudError as e:
            if e.code == ERROR_OBJECT_NOT_FOUND or e.status_code == 404:
                return None
            raise
        return result if result.get("objectId") else None

    def get(self, table: Table, record_id: str) -> Optional[Row]:
        obj = self._get_object(table, record_id)
        return from_lc_object(table, obj) if obj else None

    def insert(self, table: Table, values: Row) -> Row:
        payload = to_lc_object(table, values)
        result = self._request("POST", self._path(table), json=payload)
        # POST only returns objectId and createdAt
        return from_lc_object(table, {**payload, "updatedAt": result.get("createdAt"), **result})

    def update(self, table: Table, record_id: str, values: Row) -> Optional[Row]:
        existing = self._get_object(table, record_id)
        if existing is None:
            return None
        payload = to_lc_object(table, values)
        result = self._request("PUT", self._path(table, record_id), json=payload)
        return from_lc_object(table, {**existing, **payload, **result})

    def delete(self, table: Table, record_id: str) -> bool:
        try:
            self._request("DELETE", self._path(table, record_id))
        except LeanCloudError as e:
            if e.code == ERROR_OBJECT_NOT_FOUND or e.status_code == 404:
                return False
            raise
        return True

    def bind_session(self, session_token: Optional[str]) -> None:
        if not self.use_master_key:
            self.session_token = session_token

    def ping(self) -> bool:
        return self.client.check_connection()
