import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Appointment lifecycle
APPOINTMENT_BOOKED = "booked"
APPOINTMENT_CONFIRMED = "confirmed"
APPOINTMENT_ATTENDED = "attended"
APPOINTMENT_NO_SHOW = "no_show"
APPOINTMENT_CANCELLED = "cancelled"

APPOINTMENT_STATUSES = (
    APPOINTMENT_BOOKED,
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_ATTENDED,
    APPOINTMENT_NO_SHOW,
    APPOINTMENT_CANCELLED,
)
FINAL_APPOINTMENT_STATUSES = (APPOINTMENT_ATTENDED, APPOINTMENT_NO_SHOW, APPOINTMENT_CANCELLED)

# Payment status shared by sales and appointments
PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"


def generate_sale_id():
    """Generate the sale id that is sent to the gateway as merchant reference"""
    return str(uuid.uuid4())


class Professional(Base):
    """A bookable resource. Schedule data is owned by the admin screens."""

    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    location_id = Column(String(100), nullable=True, index=True)  # External location reference
    active = Column(Boolean, default=True, nullable=False)
    # {"monday": {"enabled": true, "start": "09:00", "end": "17:00", "breaks": [{"start": "13:00", "end": "14:00"}]}, ...}
    weekly_schedule = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    overrides = relationship(
        "ScheduleOverride", back_populates="professional", cascade="all, delete-orphan"
    )


class ScheduleOverride(Base):
    """Special day: replaces the weekly entry for one calendar date"""

    __tablename__ = "schedule_overrides"
    __table_args__ = (UniqueConstraint("professional_id", "date", name="uq_override_day"),)

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    date = Column(Date, nullable=False)
    closed = Column(Boolean, default=False, nullable=False)
    intervals = Column(JSON, nullable=False, default=list)  # [{"start": "HH:MM", "end": "HH:MM"}]
    breaks = Column(JSON, nullable=False, default=list)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    professional = relationship("Professional", back_populates="overrides")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_professional_day", "professional_id", "date"),)

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default=APPOINTMENT_BOOKED, nullable=False)
    payment_status = Column(String(20), default=PAYMENT_PENDING, nullable=False)
    client_ref = Column(String(255), nullable=False)
    service_ref = Column(String(255), nullable=False)
    sale_id = Column(String(64), nullable=True, index=True)
    notes = Column(String(1000), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ScheduleBlock(Base):
    """Manual block of a professional's calendar (lunch, errand, time off)"""

    __tablename__ = "schedule_blocks"
    __table_args__ = (Index("ix_schedule_blocks_professional_day", "professional_id", "date"),)

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Sale(Base):
    """Point-of-sale ticket; the core only flips its payment fields"""

    __tablename__ = "sales"

    id = Column(String(64), primary_key=True, default=generate_sale_id)
    total = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(String(20), default=PAYMENT_PENDING, nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    amount_paid_actual = Column(Numeric(12, 2), nullable=True)
    tip = Column(Numeric(12, 2), nullable=True)
    # Gateway linkage
    gateway_charge_id = Column(String(64), nullable=True, index=True)
    gateway_order_id = Column(String(64), nullable=True)
    gateway_status = Column(String(50), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment")
