"""
Slot availability and race-safe reservation.

Each provider has a fixed daily grid of one-hour sessions. Reservation relies
on the unique (provider_id, date, time_slot) constraint: the existence check is
only a shortcut, and a concurrent insert that loses at flush time is reported
exactly like a slot that was already taken.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date as Date, datetime, time

from sqlalchemy.exc import IntegrityError

from slotbook.database import SessionFactory, SessionLocal, unit_of_work
from slotbook.exceptions import InvalidSlot, NotFound, SlotUnavailable, ValidationError
from slotbook.models.account import AccountRole
from slotbook.services import credential_store, slot_ledger
from slotbook.services.dispatch import (
    DeliveryReport,
    EmailCalendarDispatcher,
    NotificationDispatcher,
    dispatch_after_commit,
    format_slot,
)

log = logging.getLogger("uvicorn.error")

# Hours listed by availability (9:00 through 16:00)
SLOT_HOURS = tuple(range(9, 17))
# Hours a session may start at; the last session runs 15:00-16:00
BOOKABLE_HOURS = range(9, 16)

_SLOT_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_slot(raw: str) -> time:
    """Parse "H:MM"/"HH:MM" on the hour within bookable hours. Raises InvalidSlot."""
    m = _SLOT_RE.match((raw or "").strip())
    if not m or m.group(2) != "00":
        raise InvalidSlot(raw)
    hour = int(m.group(1))
    if hour not in BOOKABLE_HOURS:
        raise InvalidSlot(raw)
    return time(hour, 0)


def parse_date(raw: Date | str) -> Date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, Date):
        return raw
    try:
        return Date.fromisoformat((raw or "").strip())
    except ValueError:
        raise ValidationError("Date must be YYYY-MM-DD", code="INVALID_DATE", details={"date": raw})


@dataclass
class ReservationResult:
    id: int
    provider_id: int
    requester_id: int
    date: Date
    time_slot: str
    status: str
    delivery: DeliveryReport


@dataclass
class ReservationView:
    id: int
    provider_id: int
    requester_id: int
    date: Date
    time_slot: str
    status: str


class BookingService:
    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or EmailCalendarDispatcher()

    def list_available(self, provider_id: int, day: Date | str) -> list[str]:
        """Ordered free slot labels for a provider on a date. A stale read is acceptable here."""
        day = parse_date(day)
        with unit_of_work(self.session_factory) as db:
            taken = slot_ledger.booked_starts(db, provider_id, day)
        taken_hours = {t.hour for t in taken}
        return [f"{hour}:00" for hour in SLOT_HOURS if hour not in taken_hours]

    def reserve(self, provider_id: int, requester_id: int, day: Date | str, time_slot: str) -> ReservationResult:
        start = parse_slot(time_slot)
        day = parse_date(day)
        if provider_id == requester_id:
            raise ValidationError("You cannot book a session with yourself", code="SELF_BOOKING")

        try:
            with unit_of_work(self.session_factory) as db:
                provider = credential_store.get_account(db, provider_id)
                if provider is None or provider.role != AccountRole.provider:
                    raise NotFound("Provider not found", code="PROVIDER_NOT_FOUND",
                                   details={"provider_id": provider_id})
                requester = credential_store.get_account(db, requester_id)
                if requester is None:
                    raise NotFound("Account not found", code="ACCOUNT_NOT_FOUND",
                                   details={"account_id": requester_id})
                if slot_ledger.slot_taken(db, provider_id, day, start):
                    raise SlotUnavailable(provider_id, day.isoformat(), format_slot(start))
                row = slot_ledger.add_reservation(db, provider_id, requester_id, day, start)
                reservation_id, status = row.id, row.status
                provider_email, requester_email = provider.email, requester.email
        except IntegrityError:
            # Concurrent reservation committed first
            raise SlotUnavailable(provider_id, day.isoformat(), format_slot(start))

        log.info("[Booking] Reserved id=%s provider=%s date=%s slot=%s",
                 reservation_id, provider_id, day.isoformat(), format_slot(start))
        delivery = dispatch_after_commit({
            "booking_email": lambda: self.dispatcher.notify_booking(requester_email, provider_email, day, start),
            "calendar_invite": lambda: self.dispatcher.create_calendar_invite(
                requester_email, provider_email, day, start
            ),
        })
        return ReservationResult(
            id=reservation_id,
            provider_id=provider_id,
            requester_id=requester_id,
            date=day,
            time_slot=format_slot(start),
            status=status,
            delivery=delivery,
        )

    def list_for_account(self, account_id: int, role: AccountRole) -> list[ReservationView]:
        with unit_of_work(self.session_factory) as db:
            rows = slot_ledger.reservations_for(db, account_id, as_provider=role == AccountRole.provider)
            return [
                ReservationView(
                    id=r.id,
                    provider_id=r.provider_id,
                    requester_id=r.requester_id,
                    date=r.date,
                    time_slot=format_slot(r.time_slot),
                    status=r.status,
                )
                for r in rows
            ]
