import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.db.base  # noqa: F401
from app.db.session import Base, get_db, make_engine
from app.main import app as fastapi_app
from app.models.booking import BookingStatus
from app.models.car import Car
from app.models.customer import Customer
from app.services import booking_service

T0 = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def customer(db):
    c = Customer(email="greggy@example.com", first_name="Greggy", last_name="Marayanz", contact_no="09171234567")
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def car(db):
    # 1,000.00 per day
    c = Car(make="Toyota", model="Vios", year=2022, license_plate="ABC-1234", rent_price_cents=1000_00)
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def make_booking(db, customer, car):
    def _make(total=None, status=None, days=4):
        b = booking_service.create_booking(db, customer.id, car.id, T0, T0 + timedelta(days=days))
        if total is not None:
            b = booking_service.price_booking(db, b.id, total)
        if status is not None:
            b.booking_status = status
            db.commit()
        return b
    return _make


@pytest.fixture
def in_progress_booking(make_booking):
    return lambda total: make_booking(total=total, status=BookingStatus.IN_PROGRESS)


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
