"""
Pytest configuration and fixtures

Tests run on the Supabase backend against an in-memory SQLite database;
Supabase auth is served by FakeGoTrue through httpx.MockTransport.
"""

import pytest
import os
import httpx
from typing import Callable, List, Optional
from uuid import uuid4
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["BACKEND"] = "supabase"
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-min-32-chars-for-testing-only"

import bookkeeping.core  # noqa: F401  (registers models on Base.metadata)
from bookkeeping.infrastructure.database import Base, get_db
from bookkeeping.main import app
from bookkeeping.auth.dependencies import get_auth_adapter
from bookkeeping.auth.supabase import SupabaseAuthAdapter
from bookkeeping.auth.username import username_to_email
from bookkeeping.backends.supabase.client import SupabaseAuthClient
from bookkeeping.repositories.base import Row, Table
from bookkeeping.repositories.sql import SqlRepository
from tests.auth_utils import auth_headers
from tests.fakes import FakeGoTrue

TEST_PASSWORD = "secret123"
TEST_COMPANY_CODE = "ABC234"


# Create test database engine
test_engine = create_engine(
    os.environ["DATABASE_URL"],
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Create a fresh database session for each test.
    Clears all tables before and after each test.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def repo(db_session: Session) -> SqlRepository:
    return SqlRepository(db_session)


@pytest.fixture
def gotrue() -> FakeGoTrue:
    return FakeGoTrue()


@pytest.fixture
def auth_adapter(gotrue: FakeGoTrue) -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter(SupabaseAuthClient(transport=httpx.MockTransport(gotrue)))


@pytest.fixture(scope="function")
def client(db_session: Session, auth_adapter: SupabaseAuthAdapter):
    """
    Create FastAPI test client with dependency overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_adapter] = lambda: auth_adapter

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def company(repo: SqlRepository) -> Row:
    """Company with a fixed code"""
    row = repo.insert(Table.COMPANIES, {"name": "测试公司", "code": TEST_COMPANY_CODE})
    repo.commit()
    return row


@pytest.fixture
def make_member(repo: SqlRepository, gotrue: FakeGoTrue, company: Row) -> Callable[..., Row]:
    """
    Factory creating an auth user plus profile in the test company.

    The auth user signs in as `username` with TEST_PASSWORD.
    """
    def _make(
        role: str,
        username: Optional[str] = None,
        managed_store_ids: Optional[List[str]] = None,
        full_name: Optional[str] = None,
        company_id: Optional[str] = None,
    ) -> Row:
        username = username or f"{role}_{uuid4().hex[:6]}"
        user = gotrue.add_user(
            username_to_email(username),
            TEST_PASSWORD,
            {"username": username, "full_name": full_name or username},
        )
        profile = repo.insert(Table.PROFILES, {
            "user_id": user["id"],
            "company_id": company_id or company["id"],
            "full_name": full_name or username,
            "role": role,
            "managed_store_ids": list(managed_store_ids or []),
        })
        repo.commit()
        return profile

    return _make


@pytest.fixture
def owner(make_member) -> Row:
    return make_member("owner", username="boss", full_name="王老板")


@pytest.fixture
def accountant(make_member) -> Row:
    return make_member("accountant", username="finance", full_name="李财务")


@pytest.fixture
def owner_headers(owner: Row):
    return auth_headers(owner["user_id"])


@pytest.fixture
def make_store(repo: SqlRepository, company: Row) -> Callable[..., Row]:
    """Factory inserting a store directly"""
    def _make(name: str, **values) -> Row:
        store = repo.insert(Table.STORES, {
            "company_id": company["id"],
            "name": name,
            "type": "direct",
            "status": "active",
            **values,
        })
        repo.commit()
        return store

    return _make


@pytest.fixture
def make_transaction(repo: SqlRepository, company: Row) -> Callable[..., Row]:
    """Factory inserting a transaction directly (no validation)"""
    def _make(type: str, category: str, amount, date: str, store_id: Optional[str] = None, **values) -> Row:
        row = repo.insert(Table.TRANSACTIONS, {
            "company_id": company["id"],
            "store_id": store_id,
            "type": type,
            "category": category,
            "amount": amount,
            "date": date,
            "cash_flow_activity": values.pop("cash_flow_activity", "operating"),
            "transaction_nature": values.pop("transaction_nature", "operating"),
            "include_in_profit_loss": values.pop("include_in_profit_loss", True),
            **values,
        })
        repo.commit()
        return row

    return _make
