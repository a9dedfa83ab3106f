"""Scheduling router - FastAPI endpoints for availability and booking"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import sessionmaker

from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS, SLOT_GRANULARITY_MINUTES
from ...database import get_session_factory
from ...exceptions import NotFoundError
from ...rate_limiter import create_rate_limiter
from ...shared.clock import Clock, get_clock
from ...shared.validators import format_hhmm, parse_iso_date
from .schemas import (
    BlockCreate,
    BlockResponse,
    BookingCreate,
    BookingResponse,
    SlotItem,
    SlotsResponse,
    StatusResponse,
    StatusUpdate,
)
from .service import BookingService, parse_requested_interval

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])

rate_limit_bookings = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT, window_seconds=BOOKING_RATE_WINDOW_SECONDS, key_prefix="booking"
)


def get_booking_service(
    session_factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(session_factory, clock)


@router.get("/resources/{resource_id}/slots", response_model=SlotsResponse)
async def get_available_slots(
    resource_id: int,
    date: str,
    granularity: int = Query(SLOT_GRANULARITY_MINUTES),
    step: Optional[int] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """
    Public endpoint returning candidate slots for a professional and date.
    Slots are not reserved; POST /scheduling/bookings re-validates them.
    """
    try:
        slots = service.get_available_slots(resource_id, date, granularity, step)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from None

    return {
        "resource_id": resource_id,
        "date": date,
        "granularity": granularity,
        "step": step or granularity,
        "slots": [
            SlotItem(
                resource_id=slot.resource_id,
                date=slot.date.isoformat(),
                start_time=slot.start_time,
                end_time=slot.end_time,
            )
            for slot in slots
        ],
    }


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_bookings),
):
    """
    Public endpoint to book an appointment.
    Returns 409 when the slot was taken since it was offered.
    """
    logger.info(f"📅 Booking request for professional {data.resource_id} on {data.date}")
    try:
        appointment_id = service.book_appointment(data)
    except NotFoundError as e:
        # Unknown professional is a bad request from the booking page's point of view
        raise HTTPException(status_code=400, detail=e.message) from None

    requested = parse_requested_interval(data.start_time, data.end_time)
    return {
        "appointment_id": appointment_id,
        "resource_id": data.resource_id,
        "date": parse_iso_date(data.date).isoformat(),
        "start_time": format_hhmm(requested.start),
        "end_time": format_hhmm(requested.end),
        "status": "booked",
    }


@router.post("/blocks", response_model=BlockResponse, status_code=201)
async def create_block(data: BlockCreate, service: BookingService = Depends(get_booking_service)):
    """Block part of a professional's calendar"""
    try:
        block_id = service.create_block(data)
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail=e.message) from None

    requested = parse_requested_interval(data.start_time, data.end_time)
    return {
        "block_id": block_id,
        "resource_id": data.resource_id,
        "date": parse_iso_date(data.date).isoformat(),
        "start_time": format_hhmm(requested.start),
        "end_time": format_hhmm(requested.end),
    }


@router.patch("/appointments/{appointment_id}/status", response_model=StatusResponse)
async def update_appointment_status(
    appointment_id: int,
    data: StatusUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Change an appointment's status (confirm, attended, no-show, cancel)"""
    return service.change_status(appointment_id, data.status)
