"""Booking endpoints.

Thin adapter over BookingOrchestrator and the read paths: parse the body,
call the engine, translate BookingError categories into status codes.
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from roombook.api.deps import get_clock, get_orchestrator, get_settings, get_store
from roombook.api.identity import get_caller, get_optional_caller
from roombook.domain.bookings import BookingOrchestrator
from roombook.domain.errors import (
    AuthorizationError,
    BookingError,
    ConflictError,
    NotFoundError,
    PastBookingError,
    ValidationError,
)
from roombook.domain.models import (
    Actor,
    BookingUpdate,
    CreatePreview,
    RecurrenceKind,
    UpdateMode,
    UpdateResult,
)
from roombook.domain.queries import (
    list_bookings as query_bookings,
    list_room_bookings,
    list_user_bookings,
    present_booking,
)
from roombook.infra.settings import BookingSettings
from roombook.infra.store import BookingStore
from roombook.infra.time import Clock
from roombook.observability.correlation import get_correlation_id
from roombook.observability.logging import get_logger
from roombook.observability.redaction import safe_log_context


class CreateBookingRequest(BaseModel):
    room_id: str
    start_time: datetime
    end_time: datetime
    topic: str = ""
    is_private: bool = False
    recurring_type: RecurrenceKind | None = None
    recurring_end_date: date | None = None
    dry_run: bool = False


class UpdateBookingRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    topic: str = ""
    is_private: bool = False
    room_id: str | None = None
    recurring_type: RecurrenceKind | None = None
    recurring_end_date: date | None = None
    update_mode: UpdateMode = UpdateMode.SINGLE


router = APIRouter(prefix="/bookings", tags=["bookings"])

logger = get_logger(__name__)


def _http_error(exc: BookingError) -> HTTPException:
    """Map a booking failure onto an HTTP error without leaking internals."""
    if isinstance(exc, PastBookingError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AuthorizationError):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=500, detail="Booking failed")


@router.post("")
def create_booking(
    body: CreateBookingRequest,
    caller: Actor = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Create a booking (or a recurring series) for the caller.

    With dry_run the response is a preview of what would be booked.
    """
    try:
        result = orchestrator.create(
            room_id=body.room_id,
            user_id=caller.user_id,
            start_time=body.start_time,
            end_time=body.end_time,
            topic=body.topic,
            is_private=body.is_private,
            recurring_type=body.recurring_type,
            recurring_end_date=body.recurring_end_date,
            dry_run=body.dry_run,
        )
    except BookingError as exc:
        raise _http_error(exc) from exc

    if isinstance(result, CreatePreview):
        return {
            "preview": True,
            "total_slots": result.total_slots,
            "available_count": result.available_count,
            "skipped_count": result.skipped_count,
            "skipped_dates": [d.isoformat() for d in result.skipped_dates],
        }

    logger.info(
        "create booking completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                room_id=body.room_id,
                total_booked=result.total_booked,
                total_skipped=result.total_skipped,
            )
        },
    )

    return {
        "booking": present_booking(result.booking, caller).to_dict(),
        "booking_ids": [b.id for b in result.bookings],
        "skipped_dates": [d.isoformat() for d in result.skipped_dates],
        "total_booked": result.total_booked,
        "total_skipped": result.total_skipped,
    }


@router.get("")
def list_bookings(
    start: datetime | None = Query(None, description="Filter start_time >= start"),
    end: datetime | None = Query(None, description="Filter start_time <= end"),
    caller: Actor | None = Depends(get_optional_caller),
    store: BookingStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    settings: BookingSettings = Depends(get_settings),
) -> dict:
    """List non-cancelled bookings in a window; private ones are redacted."""
    views = query_bookings(
        store,
        caller,
        start_from=start,
        start_to=end,
        clock=clock,
        settings=settings,
    )
    return {"bookings": [v.to_dict() for v in views]}


@router.get("/my")
def my_bookings(
    caller: Actor = Depends(get_caller),
    store: BookingStore = Depends(get_store),
    settings: BookingSettings = Depends(get_settings),
) -> dict:
    """The caller's upcoming and recent non-cancelled bookings."""
    rows = list_user_bookings(store, caller.user_id, limit=settings.my_bookings_limit)
    return {"bookings": [present_booking(b, caller).to_dict() for b in rows]}


@router.get("/rooms/{room_id}")
def room_bookings(
    room_id: str = Path(..., description="Room ID"),
    caller: Actor = Depends(get_caller),
    store: BookingStore = Depends(get_store),
) -> dict:
    """Scheduling view of one room: times and recurrence, no topics."""
    return {"bookings": list_room_bookings(store, room_id)}


@router.put("/{booking_id}")
def update_booking(
    body: UpdateBookingRequest,
    booking_id: str = Path(..., description="Booking ID"),
    caller: Actor = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Update one booking, or its whole series with update_mode=series."""
    changes = BookingUpdate(
        start_time=body.start_time,
        end_time=body.end_time,
        topic=body.topic,
        is_private=body.is_private,
        room_id=body.room_id,
        recurring_type=body.recurring_type or RecurrenceKind.NONE,
        recurring_end_date=body.recurring_end_date,
    )

    try:
        result = orchestrator.update(
            booking_id, changes, actor=caller, mode=body.update_mode
        )
    except BookingError as exc:
        raise _http_error(exc) from exc

    if isinstance(result, UpdateResult):
        return {
            "booking": present_booking(result.booking, caller).to_dict(),
            "created_ids": [b.id for b in result.created],
            "cancelled_count": result.cancelled_count,
        }

    return {
        "bookings": [present_booking(b, caller).to_dict() for b in result.bookings],
        "cancelled_count": result.cancelled_count,
        "detached": result.detached,
    }


@router.post("/{booking_id}/actions/cancel")
def cancel_booking(
    booking_id: str = Path(..., description="Booking ID"),
    caller: Actor = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Cancel one booking. Repeating the call is harmless."""
    try:
        result = orchestrator.cancel(booking_id, actor=caller)
    except BookingError as exc:
        raise _http_error(exc) from exc

    return {
        "status": "already_cancelled" if result.already_cancelled else "cancelled",
        "booking_id": booking_id,
    }


@router.post("/series/{group_id}/actions/cancel")
def cancel_series(
    group_id: str = Path(..., description="Series (group) ID"),
    caller: Actor = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Cancel every future booking of a series."""
    try:
        result = orchestrator.cancel_series(group_id, actor=caller)
    except BookingError as exc:
        raise _http_error(exc) from exc

    return {
        "status": "cancelled",
        "group_id": result.group_id,
        "cancelled_count": result.cancelled_count,
    }
