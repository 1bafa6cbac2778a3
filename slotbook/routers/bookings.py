"""Slot availability and booking."""
from datetime import date

from fastapi import APIRouter, Depends

from slotbook.dependencies import get_booking_service, get_current_claims
from slotbook.schemas.bookings import NotificationReport, ReservationCreate, ReservationCreated, ReservationResponse
from slotbook.services.auth import TokenClaims
from slotbook.services.booking import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/available-slots/{provider_id}/{day}", response_model=list[str])
def available_slots(provider_id: int, day: date, booking: BookingService = Depends(get_booking_service)):
    # Public on purpose: reserve() re-checks inside its own transaction
    return booking.list_available(provider_id, day)


@router.post("", response_model=ReservationCreated, status_code=201)
def book(
    data: ReservationCreate,
    claims: TokenClaims = Depends(get_current_claims),
    booking: BookingService = Depends(get_booking_service),
):
    result = booking.reserve(data.provider_id, claims.account_id, data.date, data.time_slot)
    return ReservationCreated(
        id=result.id,
        provider_id=result.provider_id,
        requester_id=result.requester_id,
        date=result.date,
        time_slot=result.time_slot,
        status=result.status,
        notifications=NotificationReport(**result.delivery.to_dict()),
    )


@router.get("/me", response_model=list[ReservationResponse])
def my_bookings(
    claims: TokenClaims = Depends(get_current_claims),
    booking: BookingService = Depends(get_booking_service),
):
    return [ReservationResponse(**vars(r)) for r in booking.list_for_account(claims.account_id, claims.role)]
