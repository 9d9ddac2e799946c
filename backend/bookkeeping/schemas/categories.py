"""
Pydantic schemas for the categories API
"""

from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str
    type: str = Field(..., description="income or expense")
    cash_flow_activity: Optional[str] = Field(None, description="operating, investing or financing")
    transaction_nature: Optional[str] = Field(None, description="operating, non_operating or income_tax")
    include_in_profit_loss: bool = True
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    cash_flow_activity: Optional[str] = None
    transaction_nature: Optional[str] = None
    include_in_profit_loss: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryMerge(BaseModel):
    source_id: str = Field(..., description="Category to remove")
    target_id: str = Field(..., description="Category receiving the transactions")
