"""
Pytest configuration and fixtures for Safeguard70E tests.

Service and API tests run against an in-memory SQLite database; document
storage is mocked.
"""

import os
import uuid
from datetime import date
from unittest.mock import MagicMock

import pytest

# Set test environment before any application module is imported
os.environ["JWT_SECRET_KEY"] = "safeguard-signing-key-0123456789abcdef0123456789abcdef"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.safeguard.config import get_settings
from src.safeguard.database.core import Base
from src.safeguard.dependencies import create_access_token, get_asset_service
from src.safeguard.models.assets import Asset
from src.safeguard.schemas.auth import Caller, OrgRole
from src.safeguard.services.asset_service import AssetLifecycleService
from src.safeguard.services.status_calculator import calculate_next_certification_date, compute_status
from src.safeguard.services.storage.document_storage import DocumentStorage

TODAY = date(2024, 6, 1)
STORED_URL = "https://files.example.com/org-a/doc.pdf"


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    """Document storage with a canned URL"""
    mock_storage = MagicMock(spec=DocumentStorage)
    mock_storage.upload_certification.return_value = STORED_URL
    return mock_storage


@pytest.fixture
def service(db_session, storage):
    return AssetLifecycleService(db_session, storage=storage, clock=lambda: TODAY)


@pytest.fixture
def admin():
    return Caller(org_id="org-a", user_id="admin-1", role=OrgRole.ADMIN)


@pytest.fixture
def member():
    return Caller(org_id="org-a", user_id="u1", role=OrgRole.MEMBER)


@pytest.fixture
def other_member():
    return Caller(org_id="org-a", user_id="u2", role=OrgRole.MEMBER)


@pytest.fixture
def outsider():
    """Admin of a different organization"""
    return Caller(org_id="org-b", user_id="admin-b", role=OrgRole.ADMIN)


@pytest.fixture
def make_asset(db_session):
    """Insert an asset directly, bypassing the service rules"""
    async def _make(org_id="org-a", serial_number=None, last_certification_date=date(2024, 3, 1),
                    assigned_user_id=None, status=None, **fields):
        next_date = calculate_next_certification_date(last_certification_date)
        asset = Asset(
            id=uuid.uuid4(),
            org_id=org_id,
            serial_number=serial_number or f"G-{uuid.uuid4().hex[:6]}",
            asset_class=fields.pop("asset_class", "Class 1"),
            issue_date=fields.pop("issue_date", date(2023, 1, 1)),
            last_certification_date=last_certification_date,
            next_certification_date=next_date,
            status=status or compute_status(next_date, TODAY).value,
            assigned_user_id=assigned_user_id,
            certification_documents=[],
            **fields,
        )
        db_session.add(asset)
        await db_session.commit()
        return asset
    return _make


def auth_headers(caller: Caller) -> dict:
    """Bearer header carrying the caller's organization claims"""
    token = create_access_token(
        {"sub": caller.user_id, "org_id": caller.org_id, "org_role": f"org:{caller.role.value}"},
        get_settings(),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(service):
    """API client wired to the test database and mocked storage"""
    from src.safeguard.main import app
    from src.safeguard.middleware.rate_limiter import limiter

    limiter.reset()
    app.dependency_overrides[get_asset_service] = lambda: service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
