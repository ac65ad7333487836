"""
Centralized Test Configuration.
"""

import os

# Tests never reach PostgreSQL; the app engine is replaced below
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.config import settings
from backend.app.core.jwt import create_access_token
from backend.app.core.redis_client import get_redis
import backend.app.core.redis_client as redis_client_module
from backend.app.models import deployment, deployment_event  # noqa: F401
from backend.app.models.enums import UserRole
from backend.app.models.registry_document import RegistryDocument

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        self.expiry.pop(key, None)
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.expiry = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def redis(redis_client_session):
    return redis_client_session


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_header(role: UserRole, username: str = "tester", user_id: int = 1) -> dict:
    token = create_access_token(username, role, user_id=user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def supervisor_headers():
    return auth_header(UserRole.SUPERVISOR, "supervisor1", 10)


@pytest.fixture
def admin_headers():
    return auth_header(UserRole.ADMIN, "admin", 1)


@pytest.fixture
def pilot_headers():
    return auth_header(UserRole.PILOT, "pilot1", 20)


@pytest.fixture
def employee_headers():
    return auth_header(UserRole.EMPLOYEE, "office1", 30)


REGISTRY_VEHICLES = [
    # proper-case naming
    {
        "Registration_Number": "KA01AB1234",
        "Vehicle_ID": "EV-001",
        "Brand": "Tata",
        "Model": "Nexon EV",
        "Battery_Capacity": "40.5 kWh",
        "Range": 437,
        "Status": "Active",
        "Current_Hub": "Koramangala",
        "isActive": True,
    },
    {
        "Registration_Number": "KA01AB5678",
        "Vehicle_ID": "EV-002",
        "Brand": "MG",
        "Model": "ZS EV",
        "Status": "Maintenance",
        "Current_Hub": "Whitefield",
        "isActive": True,
    },
    {
        "Registration_Number": "KA02CD0001",
        "Vehicle_ID": "EV-005",
        "Brand": "BYD",
        "Model": "e6",
        "Status": "Deployed",
        "Current_Hub": "Koramangala",
        "Assigned_Pilot_ID": "P-9",
        "isActive": True,
    },
    # camel-case naming
    {
        "registrationNumber": "KA05MN4321",
        "vehicleId": "EV-003",
        "brand": "Mahindra",
        "model": "XUV400",
        "year": 2024,
        "status": "Active",
        "currentHub": "Whitefield",
        "isActive": True,
    },
    {
        "registrationNumber": "KA05MN9999",
        "vehicleId": "EV-004",
        "brand": "Tata",
        "model": "Tigor EV",
        "status": "Active",
        "currentHub": "Koramangala",
        "isActive": False,
    },
]


@pytest.fixture
async def registry(db_session):
    """Seed the vehicle registry with both field namings."""
    for document in REGISTRY_VEHICLES:
        db_session.add(RegistryDocument(collection=settings.registry_vehicle_collection, document=document))
    await db_session.commit()
    return REGISTRY_VEHICLES
