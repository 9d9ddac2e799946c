"""
Transaction categories

A category fixes the reporting classification of the transactions filed
under it: cash-flow activity, profit-and-loss nature and whether it counts
in the profit and loss statement. Transactions keep a copy of the name and
of the classification, so renames and reclassifications cascade to them.
"""

import logging
from typing import Any, Dict, List, Optional

from bookkeeping.core.transactions.models import CashFlowActivity, TransactionNature, TransactionType
from bookkeeping.repositories.base import Repository, Row, Table, eq, ne
from bookkeeping.security.permissions import is_admin
from bookkeeping.services.errors import ConflictError, PermissionDeniedError, ValidationError
from bookkeeping.services.scope import get_company_record, require_company_id

logger = logging.getLogger(__name__)

CATEGORY_NOT_FOUND = "类型不存在"

# Classification fields copied onto transactions
CLASSIFICATION_FIELDS = ("cash_flow_activity", "transaction_nature", "include_in_profit_loss")


def _require_admin(profile: Row) -> None:
    if not is_admin(profile):
        raise PermissionDeniedError("只有老板或财务可以管理交易类型")


def _validate_choice(value: Optional[str], enum_cls, message: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(message)


def get_categories(repo: Repository, profile: Row, transaction_type: Optional[str] = None) -> List[Row]:
    company_id = require_company_id(profile)
    filters = [eq("company_id", company_id)]
    if transaction_type:
        filters.append(eq("type", _validate_choice(transaction_type, TransactionType, "交易类型无效")))
    return repo.find(Table.CATEGORIES, filters, order_by=["sort_order", "name"])


def find_category(repo: Repository, company_id: str, name: str, transaction_type: str) -> Optional[Row]:
    return repo.find_one(
        Table.CATEGORIES,
        [eq("company_id", company_id), eq("type", transaction_type), eq("name", name)],
    )


def add_category(repo: Repository, profile: Row, values: Dict[str, Any]) -> Row:
    company_id = require_company_id(profile)
    _require_admin(profile)

    name = (values.get("name") or "").strip()
    if not name:
        raise ValidationError("请输入类型名称")
    transaction_type = _validate_choice(values.get("type"), TransactionType, "交易类型无效")
    if transaction_type is None:
        raise ValidationError("请选择收入或支出")

    if find_category(repo, company_id, name, transaction_type) is not None:
        raise ConflictError("该类型名称已存在")

    category = repo.insert(Table.CATEGORIES, {
        "company_id": company_id,
        "name": name,
        "type": transaction_type,
        "cash_flow_activity": _validate_choice(
            values.get("cash_flow_activity") or CashFlowActivity.OPERATING.value,
            CashFlowActivity,
            "现金流活动无效",
        ),
        "transaction_nature": _validate_choice(
            values.get("transaction_nature") or TransactionNature.OPERATING.value,
            TransactionNature,
            "交易性质无效",
        ),
        "include_in_profit_loss": values.get("include_in_profit_loss", True) is not False,
        "is_system": False,
        "sort_order": values.get("sort_order") or 0,
    })
    logger.info("Category added", extra={"company_id": company_id, "category_id": category["id"]})
    return category


def update_category(repo: Repository, profile: Row, category_id: str, values: Dict[str, Any]) -> Row:
    """
    Update a category.

    A rename cascades to transactions filed under the old name; a changed
    classification cascades to transactions linked to the category.
    """
    company_id = require_company_id(profile)
    _require_admin(profile)
    category = get_company_record(repo, Table.CATEGORIES, category_id, company_id, CATEGORY_NOT_FOUND)

    changes: Dict[str, Any] = {}
    if values.get("type") is not None:
        new_type = _validate_choice(values["type"], TransactionType, "交易类型无效")
        if category.get("is_system") and new_type != category["type"]:
            raise ValidationError("系统预设类型不能修改类型（收入/支出）")
        changes["type"] = new_type
    if values.get("cash_flow_activity") is not None:
        changes["cash_flow_activity"] = _validate_choice(values["cash_flow_activity"], CashFlowActivity, "现金流活动无效")
    if values.get("transaction_nature") is not None:
        changes["transaction_nature"] = _validate_choice(values["transaction_nature"], TransactionNature, "交易性质无效")
    if values.get("include_in_profit_loss") is not None:
        changes["include_in_profit_loss"] = bool(values["include_in_profit_loss"])
    if values.get("sort_order") is not None:
        changes["sort_order"] = values["sort_order"]

    new_name = (values.get("name") or "").strip()
    if new_name and new_name != category["name"]:
        duplicate = repo.find_one(Table.CATEGORIES, [
            eq("company_id", company_id),
            eq("type", changes.get("type", category["type"])),
            eq("name", new_name),
            ne("id", category_id),
        ])
        if duplicate is not None:
            raise ConflictError("该类型名称已存在")
        changes["name"] = new_name
        moved = repo.update_where(
            Table.TRANSACTIONS,
            [eq("company_id", company_id), eq("category", category["name"]), eq("type", category["type"])],
            {"category": new_name},
        )
        logger.info("Category renamed", extra={"category_id": category_id, "transactions": moved})

    reclassified = {k: v for k, v in changes.items() if k in CLASSIFICATION_FIELDS and v != category.get(k)}
    if reclassified:
        repo.update_where(
            Table.TRANSACTIONS,
            [eq("company_id", company_id), eq("category_id", category_id)],
            reclassified,
        )

    if not changes:
        return category
    return repo.update(Table.CATEGORIES, category_id, changes)


def get_category_usage_count(repo: Repository, profile: Row, category_id: str) -> int:
    """Number of transactions filed under the category"""
    company_id = require_company_id(profile)
    category = get_company_record(repo, Table.CATEGORIES, category_id, company_id, CATEGORY_NOT_FOUND)
    return repo.count(
        Table.TRANSACTIONS,
        [eq("company_id", company_id), eq("category", category["name"]), eq("type", category["type"])],
    )


def merge_categories(repo: Repository, profile: Row, source_id: str, target_id: str) -> Dict[str, Any]:
    """
    Move every transaction of the source category to the target and delete
    the source.

    Returns:
        dict with target (row) and moved (transaction count)
    """
    company_id = require_company_id(profile)
    _require_admin(profile)
    if source_id == target_id:
        raise ValidationError("不能合并到同一个分类")

    source = get_company_record(repo, Table.CATEGORIES, source_id, company_id, "源分类不存在")
    target = get_company_record(repo, Table.CATEGORIES, target_id, company_id, "目标分类不存在")
    if source["type"] != target["type"]:
        raise ValidationError("只能合并相同类型（收入/支出）的分类")

    moved = repo.update_where(
        Table.TRANSACTIONS,
        [eq("company_id", company_id), eq("category", source["name"]), eq("type", source["type"])],
        {
            "category": target["name"],
            "category_id": target["id"],
            "cash_flow_activity": target.get("cash_flow_activity"),
            "transaction_nature": target.get("transaction_nature"),
            "include_in_profit_loss": target.get("include_in_profit_loss"),
        },
    )
    repo.delete(Table.CATEGORIES, source_id)
    logger.info("Categories merged", extra={"source_id": source_id, "target_id": target_id, "transactions": moved})
    return {"target": target, "moved": moved}


def delete_category(repo: Repository, profile: Row, category_id: str) -> None:
    company_id = require_company_id(profile)
    _require_admin(profile)
    category = get_company_record(repo, Table.CATEGORIES, category_id, company_id, CATEGORY_NOT_FOUND)

    used = repo.count(
        Table.TRANSACTIONS,
        [eq("company_id", company_id), eq("category", category["name"]), eq("type", category["type"])],
    )
    if used > 0:
        raise ConflictError("该类型已被使用，无法删除")
    repo.delete(Table.CATEGORIES, category_id)
