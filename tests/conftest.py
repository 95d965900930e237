import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import date, time  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from booking_engine.database import Base, get_db  # noqa: E402
from booking_engine.main import app  # noqa: E402
from booking_engine.models import Booking, PricingTier, ServicePackage  # noqa: E402


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def tiered_package(db):
    """Tiered package with two adjacent tiers: 50-100 and 101-200 sqm"""
    package = ServicePackage(id="pkg-tiered", name="Deep Clean", pricing_model="tiered")
    db.add(package)
    db.add_all(
        [
            PricingTier(
                id="tier-small",
                package_id=package.id,
                area_min=50,
                area_max=100,
                required_staff=2,
                estimated_hours=3,
                price_1_time=2500,
                price_2_times=4800,
                price_4_times=9200,
                price_8_times=None,
            ),
            PricingTier(
                id="tier-medium",
                package_id=package.id,
                area_min=101,
                area_max=200,
                required_staff=4,
                estimated_hours=5,
                price_1_time=3900,
                price_2_times=7600,
                price_4_times=14900,
                price_8_times=28800,
            ),
        ]
    )
    db.commit()
    return package


@pytest.fixture
def fixed_package(db):
    package = ServicePackage(id="pkg-fixed", name="Basic Clean", pricing_model="fixed", base_price=1200)
    db.add(package)
    db.commit()
    return package


@pytest.fixture
def make_booking(db):
    """Insert a booking directly, bypassing the service layer"""

    def _make(**overrides):
        values = {
            "booking_date": date(2025, 3, 10),
            "start_time": time(10, 0),
            "end_time": time(12, 0),
            "staff_id": "staff-1",
            "status": "confirmed",
        }
        values.update(overrides)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def fail_on_insert():
    """
    Make the nth booking insert (1-based) fail with a storage error.

    Usage: fail_on_insert(3) arms the fault; it is removed after the test.
    """
    listeners = []

    def _arm(n: int):
        calls = {"count": 0}

        def _listener(_mapper, _connection, target):
            calls["count"] += 1
            if calls["count"] == n:
                raise OperationalError("INSERT INTO bookings", {}, Exception("injected failure"))

        event.listen(Booking, "before_insert", _listener)
        listeners.append(_listener)
        return calls

    yield _arm
    for listener in listeners:
        event.remove(Booking, "before_insert", listener)
