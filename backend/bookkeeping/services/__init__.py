"""
Services layer - Application business logic
"""

from bookkeeping.services.profit_loss import (
    calculate_monthly_profit_loss,
    calculate_profit_loss,
)
from bookkeeping.services.cash_flow import (
    calc_consolidated_cash_flow,
    calc_consolidated_monthly_cash_flow,
    calculate_beginning_balance,
    calculate_cash_flow,
    calculate_monthly_cash_flow,
    get_date_range,
)
from bookkeeping.services.metrics import calc_all_metrics, calc_global_overview

__all__ = [
    # Profit and loss
    "calculate_profit_loss",
    "calculate_monthly_profit_loss",
    # Cash flow
    "calculate_cash_flow",
    "calculate_beginning_balance",
    "calculate_monthly_cash_flow",
    "calc_consolidated_cash_flow",
    "calc_consolidated_monthly_cash_flow",
    "get_date_range",
    # Metrics
    "calc_all_metrics",
    "calc_global_overview",
]
