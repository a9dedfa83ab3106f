"""Scheduling repository - Database operations for professionals and commitments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    APPOINTMENT_CANCELLED,
    Appointment,
    Professional,
    ScheduleBlock,
    ScheduleOverride,
)
from ...shared.validators import parse_hhmm
from .intervals import Interval


class SchedulingRepository:
    """Repository for scheduling database operations"""

    @staticmethod
    def get_professional(db: Session, professional_id: int, lock: bool = False) -> Optional[Professional]:
        """
        Get an active professional by ID.

        With lock=True the row is selected FOR UPDATE so concurrent bookings
        for the same professional are serialized until commit.
        """
        query = db.query(Professional).filter(
            Professional.id == professional_id, Professional.active.is_(True)
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_overrides(db: Session, professional_id: int, day: date) -> list[ScheduleOverride]:
        """Get the special-day override rows for one date"""
        return (
            db.query(ScheduleOverride)
            .filter(ScheduleOverride.professional_id == professional_id, ScheduleOverride.date == day)
            .all()
        )

    @staticmethod
    def get_active_appointments(db: Session, professional_id: int, day: date) -> list[Appointment]:
        """Get the appointments that occupy time (everything except cancelled)"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.professional_id == professional_id,
                Appointment.date == day,
                Appointment.status != APPOINTMENT_CANCELLED,
            )
            .order_by(Appointment.start_time)
            .all()
        )

    @staticmethod
    def get_blocks(db: Session, professional_id: int, day: date) -> list[ScheduleBlock]:
        return (
            db.query(ScheduleBlock)
            .filter(ScheduleBlock.professional_id == professional_id, ScheduleBlock.date == day)
            .order_by(ScheduleBlock.start_time)
            .all()
        )

    @classmethod
    def get_busy_intervals(cls, db: Session, professional_id: int, day: date) -> list[Interval]:
        """Intervals of every non-cancelled commitment for (professional, day)"""
        rows = cls.get_active_appointments(db, professional_id, day) + cls.get_blocks(
            db, professional_id, day
        )
        return [
            Interval.of(
                parse_hhmm(row.start_time, "start_time"), parse_hhmm(row.end_time, "end_time")
            )
            for row in rows
        ]

    @staticmethod
    def get_appointment(db: Session, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        """Insert an appointment; the caller owns the transaction"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def create_block(db: Session, **block_data) -> ScheduleBlock:
        """Insert a block; the caller owns the transaction"""
        block = ScheduleBlock(**block_data)
        db.add(block)
        db.flush()
        return block
