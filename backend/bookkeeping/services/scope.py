"""
Company scoping helpers

Every record belongs to a company; callers only ever see rows of the
company on their profile.
"""

from typing import Optional

from bookkeeping.repositories.base import Repository, Row, Table
from bookkeeping.services.errors import NotAuthenticatedError, NotFoundError


def require_company_id(profile: Optional[Row]) -> str:
    """Company of the caller's profile; raises when the user has none"""
    if not profile or not profile.get("company_id"):
        raise NotAuthenticatedError("用户未关联公司")
    return profile["company_id"]


def get_company_record(repo: Repository, table: Table, record_id: str, company_id: str, message: str) -> Row:
    """
    Fetch a record and make sure it belongs to the company.

    Raises:
        NotFoundError: If missing or owned by another company
    """
    row = repo.get(table, record_id) if record_id else None
    if row is None or row.get("company_id") != company_id:
        raise NotFoundError(message)
    return row
