# tests/conftest.py
"""
Pytest configuration for the slot-booking core.

Each test gets its own SQLite file database so that concurrency tests can
open several independent sessions against the same store.
"""

import os
import tempfile

# Point the store and broker at throwaway targets BEFORE any slotbook imports
os.environ.setdefault("SITE_MODE", "local")
os.environ.setdefault(
    "database_url", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'slotbook-import.db')}"
)
os.environ.setdefault("redis_url", "memory://")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

from pydantic import SecretStr
import pytest
from sqlalchemy.orm import Session, sessionmaker
import ulid

from slotbook.core.config import settings
from slotbook.core.enums import RoleName
from slotbook.database import Base, create_db_engine
import slotbook.models  # noqa: F401  (registers every table on Base.metadata)
from slotbook.integrations.payment_gateway import FakePaymentGateway
from slotbook.models.slot import Slot, SlotStatus
from slotbook.models.user import User
from slotbook.principal import CallerPrincipal

TEST_PAYMENT_SECRET = "test_key_secret"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Known payment secret and default policies for every test."""
    monkeypatch.setattr(settings, "payment_key_id", "")
    monkeypatch.setattr(settings, "payment_key_secret", SecretStr(TEST_PAYMENT_SECRET))
    monkeypatch.setattr(settings, "retain_completed_slots", False)
    monkeypatch.setattr(settings, "sweep_booked_slots", False)
    monkeypatch.setattr(settings, "restrict_booking_reads", False)
    return settings


@pytest.fixture
def engine(tmp_path):
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'slotbook-test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    """A fresh session per test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def reload(db: Session):
    """Read a row straight from the store, bypassing stale identity-map state."""

    def _reload(model, row_id):
        return db.query(model).filter(model.id == row_id).populate_existing().first()

    return _reload


@pytest.fixture
def future_start() -> datetime:
    """A whole-minute instant one day ahead."""
    return datetime.now(timezone.utc).replace(second=0, microsecond=0) + timedelta(days=1)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(
        role: RoleName = RoleName.CLIENT,
        name: Optional[str] = None,
        hourly_rate: Optional[Decimal] = None,
        **fields,
    ) -> User:
        suffix = str(ulid.ULID()).lower()[-8:]
        user = User(
            name=name or f"{role.value.title()} {suffix}",
            email=fields.pop("email", f"{role.value.lower()}-{suffix}@example.com"),
            role=role.value,
            hourly_rate=hourly_rate,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def provider(make_user) -> User:
    return make_user(
        RoleName.PROVIDER,
        name="Dr. Priya Rao",
        hourly_rate=Decimal("1200.00"),
        phone_number="+91-9800000000",
        image="https://img.example.com/priya.png",
    )


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(RoleName.CLIENT, name="Arjun Mehta")


@pytest.fixture
def provider_actor(provider) -> CallerPrincipal:
    return CallerPrincipal.of(provider.id, RoleName.PROVIDER)


@pytest.fixture
def client_actor(client_user) -> CallerPrincipal:
    return CallerPrincipal.of(client_user.id, RoleName.CLIENT)


@pytest.fixture
def make_slot(db: Session, future_start: datetime) -> Callable[..., Slot]:
    def _make_slot(
        provider: User,
        offset_hours: int = 0,
        duration: int = 60,
        status: SlotStatus = SlotStatus.AVAILABLE,
        start_time: Optional[datetime] = None,
    ) -> Slot:
        start = start_time or future_start + timedelta(hours=offset_hours)
        slot = Slot(
            provider_id=provider.id,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            duration=duration,
            status=status.value,
        )
        db.add(slot)
        db.commit()
        return slot

    return _make_slot


@pytest.fixture
def slot(make_slot, provider) -> Slot:
    return make_slot(provider)


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()
