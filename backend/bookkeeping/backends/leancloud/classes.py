"""
LeanCloud class and field mapping

LeanCloud objects use camelCase fields and objectId/createdAt/updatedAt;
rows inside the service use snake_case. Older LeanCloud data may also
carry Chinese enum values, normalized here on read.
"""

import enum
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from bookkeeping.repositories.base import Table

CLASS_NAMES: Dict[Table, str] = {
    Table.COMPANIES: "Company",
    Table.PROFILES: "Profile",
    Table.STORES: "Store",
    Table.CATEGORIES: "TransactionCategory",
    Table.TRANSACTIONS: "Transaction",
    Table.FINANCIAL_SETTINGS: "FinancialSettings",
    Table.INVITATIONS: "Invitation",
}

COMMON_FIELDS = {
    "id": "objectId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

# Fields whose LeanCloud name is not the plain camelCase form
FIELD_OVERRIDES: Dict[Table, Dict[str, str]] = {
    Table.TRANSACTIONS: {"transaction_nature": "nature"},
    Table.STORES: {"manager_name": "manager"},
}

# Object metadata never copied into rows
IGNORED_FIELDS = {"ACL", "__type", "className"}

CASH_FLOW_ACTIVITY_MAP = {
    "操作": "operating",
    "经营": "operating",
    "投资": "investing",
    "融资": "financing",
    "operating": "operating",
    "investing": "investing",
    "financing": "financing",
}

TRANSACTION_NATURE_MAP = {
    "营业": "operating",
    "营业内": "operating",
    "非营业": "non_operating",
    "营业外": "non_operating",
    "所得税": "income_tax",
    "operating": "operating",
    "non_operating": "non_operating",
    "income_tax": "income_tax",
}

CATEGORY_TYPE_MAP = {
    "收入": "income",
    "支出": "expense",
    "费用": "expense",
    "income": "income",
    "expense": "expense",
}


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def class_name(table: Table) -> str:
    return CLASS_NAMES[Table(table)]


def to_lc_field(table: Table, field: str) -> str:
    """Service field name to LeanCloud field name"""
    if field in COMMON_FIELDS:
        return COMMON_FIELDS[field]
    overrides = FIELD_OVERRIDES.get(Table(table), {})
    return overrides.get(field, snake_to_camel(field))


def from_lc_field(table: Table, field: str) -> str:
    """LeanCloud field name to service field name"""
    for snake, camel in COMMON_FIELDS.items():
        if camel == field:
            return snake
    for snake, camel in FIELD_OVERRIDES.get(Table(table), {}).items():
        if camel == field:
            return snake
    return camel_to_snake(field)


def to_lc_value(value: Any) -> Any:
    """Make a value JSON-safe for the REST API"""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_lc_value(v) for v in value]
    return value


def _from_lc_value(value: Any) -> Any:
    # LeanCloud Date type: {"__type": "Date", "iso": "..."}
    if isinstance(value, dict) and value.get("__type") == "Date":
        return value.get("iso")
    return value


def to_lc_object(table: Table, values: Dict[str, Any]) -> Dict[str, Any]:
    """Row values to a LeanCloud payload (server-managed fields dropped)"""
    return {
        to_lc_field(table, field): to_lc_value(value)
        for field, value in values.items()
        if field not in COMMON_FIELDS
    }


def _normalize(mapping: Dict[str, str], value: Optional[str], default: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return default
    return mapping.get(value, value)


def from_lc_object(table: Table, obj: Dict[str, Any]) -> Dict[str, Any]:
    """LeanCloud object to a service row, with enum values normalized"""
    table = Table(table)
    row = {
        from_lc_field(table, field): _from_lc_value(value)
        for field, value in obj.items()
        if field not in IGNORED_FIELDS
    }

    if table == Table.CATEGORIES:
        row["type"] = _normalize(CATEGORY_TYPE_MAP, row.get("type"), "expense")
        row["cash_flow_activity"] = _normalize(CASH_FLOW_ACTIVITY_MAP, row.get("cash_flow_activity"), "operating")
        row["transaction_nature"] = _normalize(TRANSACTION_NATURE_MAP, row.get("transaction_nature"), "operating")
        row["include_in_profit_loss"] = row.get("include_in_profit_loss", True) is not False
        row["is_system"] = bool(row.get("is_system") or row.get("is_default"))
        row["sort_order"] = row.get("sort_order") or 0
    elif table == Table.TRANSACTIONS:
        row["type"] = _normalize(CATEGORY_TYPE_MAP, row.get("type"), None)
        # Left as None when missing so reports fall back to the category mapping
        row["cash_flow_activity"] = _normalize(CASH_FLOW_ACTIVITY_MAP, row.get("cash_flow_activity"), None)
        row["transaction_nature"] = _normalize(TRANSACTION_NATURE_MAP, row.get("transaction_nature"), None)
        row["include_in_profit_loss"] = row.get("include_in_profit_loss", True) is not False
        row.setdefault("store_id", None)
    elif table in (Table.PROFILES, Table.INVITATIONS):
        row["managed_store_ids"] = row.get("managed_store_ids") or []
    elif table == Table.FINANCIAL_SETTINGS:
        # Written as initialCashBalance by this service, initialBalance by older clients
        balance = row.get("initial_cash_balance")
        if balance is None:
            balance = row.pop("initial_balance", None)
        row["initial_cash_balance"] = balance or 0

    return row
