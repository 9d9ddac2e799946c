"""
Store management
"""

import logging
from typing import Any, Dict, List, Optional

from bookkeeping.core.stores.models import StoreStatus, StoreType
from bookkeeping.repositories.base import Repository, Row, Table, eq, ne
from bookkeeping.security.permissions import get_accessible_store_ids, has_permission
from bookkeeping.services.errors import ConflictError, PermissionDeniedError, ValidationError
from bookkeeping.services.scope import get_company_record, require_company_id
from bookkeeping.utils.amounts import as_date, to_decimal

logger = logging.getLogger(__name__)

STORE_FIELDS = (
    "name",
    "code",
    "type",
    "status",
    "address",
    "phone",
    "manager_name",
    "city",
    "province",
    "description",
    "initial_balance",
    "initial_balance_date",
)

STORE_NOT_FOUND = "店铺不存在或无权限访问"


def _visible(profile: Row, stores: List[Row]) -> List[Row]:
    accessible = get_accessible_store_ids(profile)
    if accessible is None:
        return stores
    return [s for s in stores if s["id"] in accessible]


def get_stores(repo: Repository, profile: Row) -> List[Row]:
    """Stores the caller can see, oldest first"""
    company_id = require_company_id(profile)
    stores = repo.find(Table.STORES, [eq("company_id", company_id)], order_by=["created_at"])
    return _visible(profile, stores)


def get_active_stores(repo: Repository, profile: Row) -> List[Row]:
    company_id = require_company_id(profile)
    stores = repo.find(
        Table.STORES,
        [eq("company_id", company_id), eq("status", StoreStatus.ACTIVE.value)],
        order_by=["created_at"],
    )
    return _visible(profile, stores)


def get_store(repo: Repository, profile: Row, store_id: str) -> Row:
    company_id = require_company_id(profile)
    store = get_company_record(repo, Table.STORES, store_id, company_id, STORE_NOT_FOUND)
    if not _visible(profile, [store]):
        raise PermissionDeniedError("无权访问该店铺")
    return store


def _clean(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in values.items() if k in STORE_FIELDS}
    if "type" in cleaned and cleaned["type"] is not None:
        try:
            cleaned["type"] = StoreType(cleaned["type"]).value
        except ValueError:
            raise ValidationError("店铺类型无效")
    if "status" in cleaned and cleaned["status"] is not None:
        try:
            cleaned["status"] = StoreStatus(cleaned["status"]).value
        except ValueError:
            raise ValidationError("店铺状态无效")
    if "initial_balance" in cleaned:
        cleaned["initial_balance"] = to_decimal(cleaned["initial_balance"])
    if "initial_balance_date" in cleaned:
        try:
            parsed = as_date(cleaned["initial_balance_date"])
        except ValueError:
            raise ValidationError("期初余额日期格式错误")
        cleaned["initial_balance_date"] = parsed.isoformat() if parsed else None
    if cleaned.get("code") == "":
        cleaned["code"] = None
    return cleaned


def _check_code_unique(repo: Repository, company_id: str, code: Optional[str], exclude_id: Optional[str] = None) -> None:
    if not code:
        return
    filters = [eq("company_id", company_id), eq("code", code)]
    if exclude_id:
        filters.append(ne("id", exclude_id))
    if repo.find_one(Table.STORES, filters) is not None:
        raise ConflictError("店铺编码已存在")


def _require_manage(profile: Row) -> None:
    if not has_permission(profile, "can_manage_stores"):
        raise PermissionDeniedError("无权限管理店铺")


def create_store(repo: Repository, profile: Row, values: Dict[str, Any]) -> Row:
    company_id = require_company_id(profile)
    _require_manage(profile)

    values = _clean(values)
    name = (values.get("name") or "").strip()
    if not name:
        raise ValidationError("店铺名称不能为空")
    _check_code_unique(repo, company_id, values.get("code"))

    store = repo.insert(Table.STORES, {
        **values,
        "name": name,
        "company_id": company_id,
        "type": values.get("type") or StoreType.DIRECT.value,
        "status": values.get("status") or StoreStatus.ACTIVE.value,
    })
    logger.info("Store created", extra={"company_id": company_id, "store_id": store["id"]})
    return store


def update_store(repo: Repository, profile: Row, store_id: str, values: Dict[str, Any]) -> Row:
    company_id = require_company_id(profile)
    _require_manage(profile)
    get_company_record(repo, Table.STORES, store_id, company_id, STORE_NOT_FOUND)

    values = _clean(values)
    if "name" in values:
        values["name"] = (values["name"] or "").strip()
        if not values["name"]:
            raise ValidationError("店铺名称不能为空")
    _check_code_unique(repo, company_id, values.get("code"), exclude_id=store_id)

    return repo.update(Table.STORES, store_id, values)


def delete_store(repo: Repository, profile: Row, store_id: str) -> Dict[str, Any]:
    """
    Delete a store, or close it when transactions reference it.

    Returns:
        dict with id and action ("closed" or "deleted")
    """
    company_id = require_company_id(profile)
    _require_manage(profile)
    get_company_record(repo, Table.STORES, store_id, company_id, STORE_NOT_FOUND)

    if repo.count(Table.TRANSACTIONS, [eq("store_id", store_id)]) > 0:
        repo.update(Table.STORES, store_id, {"status": StoreStatus.CLOSED.value})
        logger.info("Store closed", extra={"company_id": company_id, "store_id": store_id})
        return {"id": store_id, "action": "closed"}

    repo.delete(Table.STORES, store_id)
    logger.info("Store deleted", extra={"company_id": company_id, "store_id": store_id})
    return {"id": store_id, "action": "deleted"}
