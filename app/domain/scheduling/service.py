"""Scheduling service - Availability and conflict-free booking"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from ...database import run_in_transaction
from ...exceptions import ConflictError, NotFoundError, ValidationError
from ...models import (
    APPOINTMENT_BOOKED,
    APPOINTMENT_STATUSES,
    FINAL_APPOINTMENT_STATUSES,
    PAYMENT_PENDING,
)
from ...shared.clock import Clock
from ...shared.validators import MINUTES_PER_DAY, format_hhmm, parse_hhmm, parse_iso_date
from .intervals import Interval, overlaps
from .repository import SchedulingRepository
from .resolver import resolve_day
from .schemas import BlockCreate, BookingCreate
from .slots import Slot, free_fragments, generate_slots
from .weekly_schedule import WeeklySchedule

logger = logging.getLogger(__name__)

MAX_GRANULARITY_MINUTES = MINUTES_PER_DAY


def parse_requested_interval(start_time: str, end_time: str) -> Interval:
    """Validate an HH:MM range on a single day"""
    start = parse_hhmm(start_time, "start_time")
    end = parse_hhmm(end_time, "end_time")
    if end <= start:
        raise ValidationError("end_time must be after start_time")
    return Interval.of(start, end)


class BookingService:
    """Service for slot generation and booking transactions"""

    def __init__(self, session_factory: sessionmaker, clock: Clock):
        self.session_factory = session_factory
        self.clock = clock
        self.repo = SchedulingRepository()

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def _load_schedule(self, db: Session, professional, day: date) -> WeeklySchedule:
        overrides = self.repo.get_overrides(db, professional.id, day)
        return WeeklySchedule.from_storage(professional.weekly_schedule, overrides)

    def get_available_slots(
        self,
        resource_id: int,
        day_value,
        granularity: int,
        step: Optional[int] = None,
    ) -> list[Slot]:
        """
        Candidate slots for a professional and date. Advisory only: nothing is
        held, book_appointment re-checks at write time.
        """
        day = parse_iso_date(day_value)
        if granularity <= 0 or granularity > MAX_GRANULARITY_MINUTES:
            raise ValidationError("granularity must be between 1 and 1440 minutes")
        if step is not None and (step <= 0 or step > MAX_GRANULARITY_MINUTES):
            raise ValidationError("step must be between 1 and 1440 minutes")

        today = self.clock.today()
        not_before = self.clock.minutes_now() if day == today else None

        db = self.session_factory()
        try:
            professional = self.repo.get_professional(db, resource_id)
            if not professional:
                raise NotFoundError(f"Professional {resource_id} not found")
            if day < today:
                return []
            schedule = self._load_schedule(db, professional, day)
            busy = self.repo.get_busy_intervals(db, resource_id, day)
        finally:
            db.close()

        slots = generate_slots(
            resource_id, schedule, day, busy, granularity, step=step, not_before=not_before
        )
        logger.info(
            f"📅 {len(slots)} slots for professional {resource_id} on {day.isoformat()} "
            f"(granularity={granularity}, step={step or granularity})"
        )
        return slots

    # ------------------------------------------------------------------
    # Booking transaction
    # ------------------------------------------------------------------

    def _check_free(
        self,
        db: Session,
        resource_id: int,
        day: date,
        requested: Interval,
        enforce_schedule: bool,
    ) -> None:
        """Re-validate the requested interval against current commitments"""
        professional = self.repo.get_professional(db, resource_id, lock=True)
        if not professional:
            raise NotFoundError(f"Professional {resource_id} not found")

        if enforce_schedule:
            plan = resolve_day(self._load_schedule(db, professional, day), day)
            if not any(fragment.contains(requested) for fragment in free_fragments(plan, [])):
                raise ConflictError("Requested time is outside working hours")

        for busy in self.repo.get_busy_intervals(db, resource_id, day):
            if overlaps(requested, busy):
                raise ConflictError("Time slot is no longer available, please pick another time")

    def book_appointment(self, data: BookingCreate, enforce_schedule: bool = True) -> int:
        """
        Atomically re-check commitments and insert the appointment.

        Raises:
            ValidationError: malformed date or time range (no store access)
            NotFoundError: professional missing or inactive
            ConflictError: the interval overlaps a non-cancelled commitment
        """
        day = parse_iso_date(data.date)
        requested = parse_requested_interval(data.start_time, data.end_time)
        if enforce_schedule:
            self._reject_past(day, requested)

        def work(db: Session) -> int:
            self._check_free(db, data.resource_id, day, requested, enforce_schedule)
            appointment = self.repo.create_appointment(
                db,
                professional_id=data.resource_id,
                date=day,
                start_time=format_hhmm(requested.start),
                end_time=format_hhmm(requested.end),
                status=APPOINTMENT_BOOKED,
                payment_status=PAYMENT_PENDING,
                client_ref=data.client_ref,
                service_ref=data.service_ref,
                sale_id=data.sale_id,
                notes=data.notes,
            )
            return appointment.id

        try:
            appointment_id = run_in_transaction(self.session_factory, work)
        except ConflictError as e:
            logger.warning(
                f"⚠️ Booking conflict for professional {data.resource_id} on {day.isoformat()} "
                f"{format_hhmm(requested.start)}-{format_hhmm(requested.end)}: {e.message}"
            )
            raise

        logger.info(
            f"✅ Appointment {appointment_id} booked for professional {data.resource_id} on "
            f"{day.isoformat()} {format_hhmm(requested.start)}-{format_hhmm(requested.end)}"
        )
        return appointment_id

    def _reject_past(self, day: date, requested: Interval) -> None:
        today = self.clock.today()
        if day < today or (day == today and requested.start < self.clock.minutes_now()):
            raise ValidationError("Cannot book a time in the past")

    def create_block(self, data: BlockCreate) -> int:
        """Block part of a professional's day; same overlap guarantee as bookings"""
        day = parse_iso_date(data.date)
        requested = parse_requested_interval(data.start_time, data.end_time)

        def work(db: Session) -> int:
            self._check_free(db, data.resource_id, day, requested, enforce_schedule=False)
            block = self.repo.create_block(
                db,
                professional_id=data.resource_id,
                date=day,
                start_time=format_hhmm(requested.start),
                end_time=format_hhmm(requested.end),
                reason=data.reason,
            )
            return block.id

        block_id = run_in_transaction(self.session_factory, work)
        logger.info(f"✅ Block {block_id} created for professional {data.resource_id} on {day.isoformat()}")
        return block_id

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def change_status(self, appointment_id: int, status: str) -> dict:
        """
        Move an appointment to a new status. Finalized appointments (attended,
        no-show, cancelled) are not changed again, so a cancelled interval
        never re-enters the conflict set behind the booking check's back.
        """
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")

        def work(db: Session) -> dict:
            appointment = self.repo.get_appointment(db, appointment_id, lock=True)
            if not appointment:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            if appointment.status in FINAL_APPOINTMENT_STATUSES and appointment.status != status:
                raise ValidationError(
                    f"Appointment {appointment_id} is already {appointment.status}"
                )
            old_status = appointment.status
            appointment.status = status
            return {
                "appointment_id": appointment.id,
                "old_status": old_status,
                "status": status,
            }

        result = run_in_transaction(self.session_factory, work)
        logger.info(
            f"📅 Appointment {appointment_id} status updated: {result['old_status']} → {status}"
        )
        return result
