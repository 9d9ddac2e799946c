"""
Default mapping of transaction categories to cash-flow activities

Categories created by the user carry their own cash_flow_activity; this
table covers the built-in category names and anything recorded without one.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

ACTIVITY_OPERATING = "operating"
ACTIVITY_INVESTING = "investing"
ACTIVITY_FINANCING = "financing"

ACTIVITIES = (ACTIVITY_OPERATING, ACTIVITY_INVESTING, ACTIVITY_FINANCING)

ACTIVITY_NAMES = {
    ACTIVITY_OPERATING: "经营活动",
    ACTIVITY_INVESTING: "投资活动",
    ACTIVITY_FINANCING: "筹资活动",
}


@dataclass(frozen=True)
class CategoryMapping:
    activity: str
    direction: str  # inflow | outflow
    label: str


def _inflow(activity: str, label: str) -> CategoryMapping:
    return CategoryMapping(activity=activity, direction="inflow", label=label)


def _outflow(activity: str, label: str) -> CategoryMapping:
    return CategoryMapping(activity=activity, direction="outflow", label=label)


INCOME_CATEGORY_MAPPING: Dict[str, CategoryMapping] = {
    "房费收入": _inflow(ACTIVITY_OPERATING, "房费收入"),
    "押金收入": _inflow(ACTIVITY_OPERATING, "押金收入"),
    "额外服务": _inflow(ACTIVITY_OPERATING, "额外服务收入"),
    "其他收入": _inflow(ACTIVITY_OPERATING, "其他营业收入"),
    "资产处置收入": _inflow(ACTIVITY_INVESTING, "处置固定资产收入"),
    "银行贷款": _inflow(ACTIVITY_FINANCING, "取得借款收入"),
    "股东投资": _inflow(ACTIVITY_FINANCING, "股东投资收入"),
}

EXPENSE_CATEGORY_MAPPING: Dict[str, CategoryMapping] = {
    "水电费": _outflow(ACTIVITY_OPERATING, "水电费支出"),
    "维修费": _outflow(ACTIVITY_OPERATING, "维修保养费"),
    "清洁费": _outflow(ACTIVITY_OPERATING, "清洁费支出"),
    "采购费": _outflow(ACTIVITY_OPERATING, "采购支出"),
    "人工费": _outflow(ACTIVITY_OPERATING, "人工工资"),
    "租金": _outflow(ACTIVITY_OPERATING, "租金支出"),
    "营销费": _outflow(ACTIVITY_OPERATING, "营销推广费"),
    "其他支出": _outflow(ACTIVITY_OPERATING, "其他运营支出"),
    "固定资产购置": _outflow(ACTIVITY_INVESTING, "购置固定资产"),
    "设备升级": _outflow(ACTIVITY_INVESTING, "设备升级改造"),
    "装修改造": _outflow(ACTIVITY_INVESTING, "装修改造支出"),
    "系统软件": _outflow(ACTIVITY_INVESTING, "软件系统购置"),
    "偿还贷款": _outflow(ACTIVITY_FINANCING, "偿还借款本金"),
    "支付利息": _outflow(ACTIVITY_FINANCING, "支付利息费用"),
    "股东分红": _outflow(ACTIVITY_FINANCING, "股东分红支出"),
}


def find_category_mapping(category: str, transaction_type: str) -> Optional[CategoryMapping]:
    """Built-in mapping for a category, or None when the name is unknown"""
    if transaction_type == "income":
        return INCOME_CATEGORY_MAPPING.get(category)
    return EXPENSE_CATEGORY_MAPPING.get(category)


def get_category_mapping(category: str, transaction_type: str) -> CategoryMapping:
    """
    Cash-flow mapping for a category.

    Unknown categories are treated as operating activity and labelled
    with their own name.
    """
    mapping = find_category_mapping(category, transaction_type)
    if mapping is not None:
        return mapping
    direction = "inflow" if transaction_type == "income" else "outflow"
    return CategoryMapping(activity=ACTIVITY_OPERATING, direction=direction, label=category)


def get_category_activity(category: str, transaction_type: str) -> str:
    return get_category_mapping(category, transaction_type).activity


def get_categories_by_activity(activity: str) -> Dict[str, List[str]]:
    """Built-in income and expense category names for one activity"""
    return {
        "income": [name for name, m in INCOME_CATEGORY_MAPPING.items() if m.activity == activity],
        "expense": [name for name, m in EXPENSE_CATEGORY_MAPPING.items() if m.activity == activity],
    }
