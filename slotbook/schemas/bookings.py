"""Booking schemas."""
from datetime import date as Date

from pydantic import BaseModel


class ReservationCreate(BaseModel):
    provider_id: int
    date: Date
    time_slot: str


class NotificationReport(BaseModel):
    delivered: dict[str, bool]
    degraded: bool
    failures: list[dict]


class ReservationResponse(BaseModel):
    id: int
    provider_id: int
    requester_id: int
    date: Date
    time_slot: str
    status: str


class ReservationCreated(ReservationResponse):
    message: str = "Session booked successfully"
    notifications: NotificationReport
