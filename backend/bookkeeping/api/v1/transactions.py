"""
Transactions API endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bookkeeping.api.responses import success
from bookkeeping.auth.adapters import SessionUser
from bookkeeping.auth.dependencies import get_current_profile, get_current_user, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.transactions import TransactionCreate, TransactionTextParse, TransactionUpdate
from bookkeeping.services import text_parser
from bookkeeping.services import transactions as transaction_service

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("")
def list_transactions(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    store_ids: Optional[str] = Query(None, description="Comma-separated store ids"),
    type: Optional[str] = Query(None, description="income or expense"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Transactions newest first; count is the total before paging"""
    rows, count = transaction_service.get_transactions(
        repo,
        profile,
        start_date=start_date,
        end_date=end_date,
        store_id=store_id,
        store_ids=store_ids,
        transaction_type=type,
        limit=limit,
        offset=offset,
    )
    return success(rows, count=count)


@router.post("")
def create_transaction(
    body: TransactionCreate,
    user: SessionUser = Depends(get_current_user),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    row = transaction_service.create_transaction(repo, profile, body.model_dump(), created_by=user.id)
    repo.commit()
    return success(row)


@router.post("/parse")
def parse_transactions(
    body: TransactionTextParse,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Draft transactions from free text; nothing is saved"""
    result = text_parser.parse_transactions(repo, profile, body.text, input_method=body.input_method)
    return success(result)


@router.get("/summary/monthly")
def monthly_summary(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None),
    store_ids: Optional[str] = Query(None, description="Comma-separated store ids"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    rows = transaction_service.get_monthly_summary(repo, profile, year=year, month=month, store_ids=store_ids)
    return success(rows, count=len(rows))


@router.get("/summary/categories")
def category_summary(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None),
    store_ids: Optional[str] = Query(None, description="Comma-separated store ids"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    rows = transaction_service.get_category_summary(repo, profile, year=year, month=month, store_ids=store_ids)
    return success(rows, count=len(rows))


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    return success(transaction_service.get_transaction(repo, profile, transaction_id))


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    row = transaction_service.update_transaction(repo, profile, transaction_id, body.model_dump(exclude_unset=True))
    repo.commit()
    return success(row)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    transaction_service.delete_transaction(repo, profile, transaction_id)
    repo.commit()
    return success({"id": transaction_id})
