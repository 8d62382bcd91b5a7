"""
Centralized Test Configuration.
"""

import pytest
from datetime import timedelta
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base, utcnow
from backend.app.core.jwt import create_access_token
import backend.app.core.redis_client as redis_client_module
from backend.app.models.shipment import Shipment
from backend.app.models.shipment_history import HistoryEntry
from backend.app.models.booking import Booking
from backend.app.models.shipment_enums import ShipmentStatus, BookingStatus
from backend.app.models.enums import UserRole

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Swap the module-level redis client used by token revocation."""
    client = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    return client


@pytest.fixture
async def client(session_factory):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(user_id: str, role: UserRole, **claims) -> str:
    return create_access_token({"sub": f"user-{user_id}", "user_id": user_id, "role": role.value, **claims})


def auth_headers(user_id: str, role: UserRole, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role, **claims)}"}


@pytest.fixture
def actor_token():
    """Token factory: actor_token(user_id, role, **claims)."""
    return make_token


@pytest.fixture
def actor_headers():
    """Header factory: actor_headers(user_id, role, **claims)."""
    return auth_headers


@pytest.fixture
def admin_headers():
    return auth_headers("admin-1", UserRole.ADMIN, name="Ops Admin")


@pytest.fixture
def courier_headers():
    return auth_headers("c-17", UserRole.COURIER, name="Budi")


@pytest.fixture
def branch_headers():
    return auth_headers("b-1", UserRole.BRANCH, origin_branch="BANGKA")


@pytest.fixture
def make_shipment(db_session):
    """Insert a shipment, optionally backdated by age_days."""
    async def _make(
        tracking_code: str,
        status: ShipmentStatus = ShipmentStatus.OUT_FOR_DELIVERY,
        courier_ref: str = "c-17",
        age_days: float = 0,
    ) -> Shipment:
        created = utcnow() - timedelta(days=age_days)
        shipment = Shipment(
            tracking_code=tracking_code,
            current_status=status,
            courier_ref=courier_ref,
            receiver_name="Siti",
            weight=1,
            created_at=created,
            updated_at=created,
        )
        db_session.add(shipment)
        await db_session.commit()
        return shipment
    return _make


@pytest.fixture
def add_history(db_session):
    """Insert a history entry directly, bypassing the append service."""
    async def _add(tracking_code: str, status: ShipmentStatus, minutes_ago: float = 0, location: str = "Hub"):
        entry = HistoryEntry(
            tracking_code=tracking_code,
            status=status,
            location=location,
            created_at=utcnow() - timedelta(minutes=minutes_ago),
        )
        db_session.add(entry)
        await db_session.commit()
        return entry
    return _add


@pytest.fixture
def make_booking(db_session):
    async def _make(
        tracking_code: str = "BCE900001",
        origin_branch: str = "BANGKA",
        **fields,
    ) -> Booking:
        values = {
            "destination_city": "JAKARTA BARAT",
            "destination_district": "Cengkareng",
            "sender_name": "Agent Toko",
            "receiver_name": "Rina",
            "receiver_address": "Jl. Daan Mogot 1",
            "weight": 1,
            "price_per_weight": 27000,
            "subtotal": 27000,
            "total": 27000,
            "agent_ref": "agent-3",
            "status": BookingStatus.PENDING,
        }
        values.update(fields)
        booking = Booking(tracking_code=tracking_code, origin_branch=origin_branch, **values)
        db_session.add(booking)
        await db_session.commit()
        return booking
    return _make
