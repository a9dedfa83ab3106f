"""Shared fixtures: file-backed SQLite store, fixed business clock, seeded professional."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app import models_mercadopago  # noqa: F401
from app.database import Base, build_engine, get_session_factory
from app.domain.scheduling.router import rate_limit_bookings
from app.domain.scheduling.service import BookingService
from app.models import Appointment, Professional, Sale, ScheduleOverride
from app.shared.clock import Clock, get_clock

TODAY = date(2026, 10, 19)  # Monday
NEXT_MONDAY = date(2026, 10, 26)
NEXT_SUNDAY = date(2026, 11, 1)

WEEKLY_SCHEDULE = {
    "monday": {
        "enabled": True,
        "start": "09:00",
        "end": "17:00",
        "breaks": [{"start": "13:00", "end": "14:00"}],
    },
    "tuesday": {"enabled": True, "start": "10:00", "end": "14:00", "breaks": []},
    "sunday": {"enabled": False},
}


class FixedClock(Clock):
    """Business clock frozen at a given local time"""

    def __init__(self, current: datetime):
        super().__init__("America/Mexico_City")
        self.current = current.replace(tzinfo=self.zone)

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate connections (and threads) share one store."""
    engine = build_engine(f"sqlite:///{tmp_path / 'agenda.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 19, 8, 0))


@pytest.fixture
def professional_id(session_factory):
    db = session_factory()
    try:
        professional = Professional(name="Carlos", location_id="centro", weekly_schedule=WEEKLY_SCHEDULE)
        db.add(professional)
        db.commit()
        return professional.id
    finally:
        db.close()


@pytest.fixture
def booking_service(session_factory, clock):
    return BookingService(session_factory, clock)


@pytest.fixture
def add_override(session_factory):
    """Insert a special-day row for a professional."""

    def _add(professional_id, day, closed=False, intervals=None, breaks=None):
        db = session_factory()
        try:
            db.add(
                ScheduleOverride(
                    professional_id=professional_id,
                    date=day,
                    closed=closed,
                    intervals=intervals or [],
                    breaks=breaks or [],
                )
            )
            db.commit()
        finally:
            db.close()

    return _add


@pytest.fixture
def sale_with_appointment(session_factory, professional_id):
    """Pending sale of 500.00 linked to a booked appointment."""
    db = session_factory()
    try:
        appointment = Appointment(
            professional_id=professional_id,
            date=NEXT_MONDAY,
            start_time="10:00",
            end_time="11:00",
            client_ref="client-1",
            service_ref="haircut",
            sale_id="sale-1",
        )
        db.add(appointment)
        db.flush()
        db.add(Sale(id="sale-1", total=Decimal("500.00"), appointment_id=appointment.id))
        db.commit()
        return {"sale_id": "sale-1", "appointment_id": appointment.id}
    finally:
        db.close()


@pytest.fixture
def client(session_factory, clock):
    """TestClient wired to the test store and clock, without rate limiting."""
    from app.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[rate_limit_bookings] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()
