"""
API routes - bookkeeping API
"""

from fastapi import APIRouter
from bookkeeping.infrastructure.settings import get_settings
from bookkeeping.api.v1.auth import router as auth_router
from bookkeeping.api.v1.transactions import router as transactions_router
from bookkeeping.api.v1.stores import router as stores_router
from bookkeeping.api.v1.categories import router as categories_router
from bookkeeping.api.v1.financial_settings import router as financial_settings_router
from bookkeeping.api.v1.users import router as users_router
from bookkeeping.api.v1.invitations import router as invitations_router
from bookkeeping.api.v1.reports import router as reports_router

settings = get_settings()
router = APIRouter(prefix=settings.API_PREFIX)

# Register sub-routers
router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(transactions_router)
router.include_router(stores_router)
router.include_router(categories_router)
router.include_router(financial_settings_router)
router.include_router(users_router)
router.include_router(invitations_router)
router.include_router(reports_router)
