"""Reservations of one-hour slots. (provider_id, date, time_slot) is unique."""
from sqlalchemy import Column, Integer, String, Date, Time, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from slotbook.database import Base

RESERVATION_CONFIRMED = "confirmed"


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("provider_id", "date", "time_slot", name="uq_reservations_provider_date_slot"),
        Index("ix_reservations_provider_date", "provider_id", "date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    requester_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time_slot = Column(Time, nullable=False)
    status = Column(String(50), nullable=False, default=RESERVATION_CONFIRMED)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
