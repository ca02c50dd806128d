from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError, OperationalError

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.core.logging import get_logger, setup_logging
from app.models.customer import Customer
from app.models.car import Car
from app.models.booking import Booking
from app.services.booking_service import create_booking, price_booking

logger = get_logger(__name__)


def ensure_customer(db: Session, email: str, first_name: str, last_name: str, contact_no: str) -> Customer:
    c = db.query(Customer).filter(Customer.email == email).first()
    if c:
        return c
    c = Customer(email=email, first_name=first_name, last_name=last_name, contact_no=contact_no)
    db.add(c)
    db.commit()
    return c


def ensure_car(db: Session, plate: str, make: str, model: str, year: int, rent_price_cents: int) -> Car:
    car = db.query(Car).filter(Car.license_plate == plate).first()
    if car:
        return car
    car = Car(license_plate=plate, make=make, model=model, year=year, rent_price_cents=rent_price_cents)
    db.add(car)
    db.commit()
    return car


def run(db=None):
    setup_logging()
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM customers LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("[seed] customers table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        customer = ensure_customer(db, "greggy@example.com", "Greggy", "Marayanz", "09171234567")
        cars = [
            ensure_car(db, "ABC-1234", "Toyota", "Vios", 2022, 2_500_00),
            ensure_car(db, "XYZ-5678", "Mitsubishi", "Montero Sport", 2023, 4_500_00),
            ensure_car(db, "NAV-2024", "Nissan", "Navara", 2024, 3_800_00),
        ]

        # one priced demo booking so the dashboard has a ledger to show
        if not db.query(Booking).first():
            start = datetime.now(timezone.utc).replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=1)
            b = create_booking(db, customer.id, cars[0].id, start, start + timedelta(days=4),
                               pickup_loc="Main Office", dropoff_loc="Main Office", actor="seed")
            price_booking(db, b.id, "10000", actor="seed")
        logger.info("[seed] done")
    finally:
        db.close()


if __name__ == "__main__":
    run()
