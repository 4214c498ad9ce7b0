"""
Shared fixtures for the Traffic Fines test-suite.

Every test runs against a fresh in-memory SQLite schema, OTP delivery goes
to a recording notifier and time is driven by a fake clock.
"""

import os

os.environ["DB_URL"] = "sqlite://"
os.environ["OTP_STORE"] = "memory"
os.environ["OPENOBSERVE_ENABLED"] = "false"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from trafficfines.src import crud, getters
from trafficfines.src.db import ORMbase, engine, sessionMaker
from trafficfines.src.enums import Role, VehicleType
from trafficfines.src.otp import MemoryOTPStore, PasswordResetOTP
from trafficfines.api.controller import app_public
from trafficfines.main import app

ADMIN_EMAIL = "chief@trafficpolice.com"
ADMIN_PASSWORD = "Admin1234"
OWNER_PASSWORD = "Owner1234"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class FakeNotifier:
    """Records every code handed over for delivery."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent = []

    def send(self, email: str, code: str) -> bool:
        self.sent.append((email, code))
        return self.ok

    @property
    def lastCode(self) -> str:
        return self.sent[-1][1]


# ============================================
# Database
# ============================================

@pytest.fixture(autouse=True)
def database():
    """Create all tables before a test and drop them afterwards"""
    ORMbase.metadata.create_all(engine)
    yield
    ORMbase.metadata.drop_all(engine)


@pytest.fixture
def session(database):
    session = sessionMaker()
    yield session
    session.close()


@pytest.fixture
def admin(session):
    return crud.createUser(
        session, "Traffic Chief", ADMIN_EMAIL, ADMIN_PASSWORD, "9000000000", Role.ADMIN
    )


@pytest.fixture
def owner(session):
    return crud.createUser(
        session, "Ram Owner", "ram@gmail.com", OWNER_PASSWORD, "9800000001"
    )


@pytest.fixture
def otherOwner(session):
    return crud.createUser(
        session, "Hari Owner", "hari@gmail.com", OWNER_PASSWORD, "9800000002"
    )


@pytest.fixture
def rules(session):
    """Three rules keyed by a short name"""
    return {
        "speed": crud.createRule(session, "Over Speeding", Decimal("1000")),
        "helmet": crud.createRule(session, "No Helmet", Decimal("500")),
        "drunk": crud.createRule(session, "Drunk Driving", Decimal("5000")),
    }


@pytest.fixture
def car(session, owner):
    return crud.createVehicle(session, owner.id, "Ko-01-PA-1111", VehicleType.CAR)


@pytest.fixture
def bike(session, owner):
    return crud.createVehicle(session, owner.id, "Ko-01-PA-2222", VehicleType.BIKE)


@pytest.fixture
def truck(session, otherOwner):
    return crud.createVehicle(session, otherOwner.id, "Me-02-PA-3333", VehicleType.TRUCK)


# ============================================
# OTP
# ============================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def resetOTP(clock, notifier):
    return PasswordResetOTP(MemoryOTPStore(), notifier, ttl=300, clock=clock)


# ============================================
# API
# ============================================

@pytest.fixture
def client(database, resetOTP):
    """Test client without the startup seeding, sharing the OTP manager fixture"""
    app_public.dependency_overrides[getters.passwordResetOTP] = lambda: resetOTP
    yield TestClient(app)
    app_public.dependency_overrides.clear()


def login(client: TestClient, email: str, password: str) -> dict:
    response = client.post(
        "/public/account/token", data={"email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def adminHeaders(client, admin):
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def ownerHeaders(client, owner):
    return login(client, owner.email, OWNER_PASSWORD)
