"""
Stores API endpoints
"""

from fastapi import APIRouter, Depends, Query

from bookkeeping.api.responses import success
from bookkeeping.auth.dependencies import get_current_profile, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.stores import StoreCreate, StoreUpdate
from bookkeeping.services import stores as store_service

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("")
def list_stores(
    active_only: bool = Query(False, description="Only stores with status active"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Stores the caller can access, oldest first"""
    if active_only:
        stores = store_service.get_active_stores(repo, profile)
    else:
        stores = store_service.get_stores(repo, profile)
    return success(stores, count=len(stores))


@router.post("")
def create_store(
    body: StoreCreate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    store = store_service.create_store(repo, profile, body.model_dump(exclude_unset=True))
    repo.commit()
    return success(store)


@router.get("/{store_id}")
def get_store(
    store_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    return success(store_service.get_store(repo, profile, store_id))


@router.put("/{store_id}")
def update_store(
    store_id: str,
    body: StoreUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    store = store_service.update_store(repo, profile, store_id, body.model_dump(exclude_unset=True))
    repo.commit()
    return success(store)


@router.delete("/{store_id}")
def delete_store(
    store_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Delete a store, or close it when it has transactions"""
    result = store_service.delete_store(repo, profile, store_id)
    repo.commit()
    return success(result)
