"""Reservation persistence. All functions run inside the caller's session."""
from datetime import date as Date, time

from sqlalchemy.orm import Session

from slotbook.models import Reservation, RESERVATION_CONFIRMED


def booked_starts(db: Session, provider_id: int, day: Date) -> set[time]:
    rows = (
        db.query(Reservation.time_slot)
        .filter(Reservation.provider_id == provider_id, Reservation.date == day)
        .all()
    )
    return {row.time_slot for row in rows}


def slot_taken(db: Session, provider_id: int, day: Date, start: time) -> bool:
    return (
        db.query(Reservation.id)
        .filter(
            Reservation.provider_id == provider_id,
            Reservation.date == day,
            Reservation.time_slot == start,
        )
        .first()
        is not None
    )


def add_reservation(db: Session, provider_id: int, requester_id: int, day: Date, start: time) -> Reservation:
    """Insert a confirmed reservation and flush so the unique triple is enforced immediately."""
    row = Reservation(
        provider_id=provider_id,
        requester_id=requester_id,
        date=day,
        time_slot=start,
        status=RESERVATION_CONFIRMED,
    )
    db.add(row)
    db.flush()
    return row


def reservations_for(db: Session, account_id: int, as_provider: bool) -> list[Reservation]:
    column = Reservation.provider_id if as_provider else Reservation.requester_id
    return (
        db.query(Reservation)
        .filter(column == account_id)
        .order_by(Reservation.date, Reservation.time_slot)
        .all()
    )
