"""
Transaction categories API endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bookkeeping.api.responses import success
from bookkeeping.auth.dependencies import get_current_profile, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.categories import CategoryCreate, CategoryMerge, CategoryUpdate
from bookkeeping.services import categories as category_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(
    type: Optional[str] = Query(None, description="income or expense"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    categories = category_service.get_categories(repo, profile, transaction_type=type)
    return success(categories, count=len(categories))


@router.post("")
def add_category(
    body: CategoryCreate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    category = category_service.add_category(repo, profile, body.model_dump())
    repo.commit()
    return success(category)


@router.post("/merge")
def merge_categories(
    body: CategoryMerge,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Move the source category's transactions to the target and delete the source"""
    result = category_service.merge_categories(repo, profile, body.source_id, body.target_id)
    repo.commit()
    return success(result)


@router.put("/{category_id}")
def update_category(
    category_id: str,
    body: CategoryUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    category = category_service.update_category(repo, profile, category_id, body.model_dump(exclude_unset=True))
    repo.commit()
    return success(category)


@router.get("/{category_id}/usage")
def category_usage(
    category_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    count = category_service.get_category_usage_count(repo, profile, category_id)
    return success({"id": category_id, "usage_count": count})


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    category_service.delete_category(repo, profile, category_id)
    repo.commit()
    return success({"id": category_id})
