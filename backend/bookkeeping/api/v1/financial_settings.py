"""
Financial settings API endpoints
"""

from fastapi import APIRouter, Depends

from bookkeeping.api.responses import success
from bookkeeping.auth.dependencies import get_current_profile, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.financial_settings import FinancialSettingsUpdate
from bookkeeping.security.permissions import is_admin
from bookkeeping.services import financial_settings as settings_service
from bookkeeping.services.errors import PermissionDeniedError
from bookkeeping.services.scope import require_company_id

router = APIRouter(prefix="/financial-settings", tags=["financial-settings"])


@router.get("")
def get_financial_settings(
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Company opening balance; data is null until configured"""
    company_id = require_company_id(profile)
    return success(settings_service.get_financial_settings(repo, company_id))


@router.put("")
def update_financial_settings(
    body: FinancialSettingsUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    company_id = require_company_id(profile)
    if not is_admin(profile):
        raise PermissionDeniedError("只有老板或财务可以修改财务设置")
    row = settings_service.upsert_financial_settings(
        repo,
        company_id,
        body.initial_cash_balance,
        body.initial_balance_date,
        notes=body.notes,
    )
    repo.commit()
    return success(row)
