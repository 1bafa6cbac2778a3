"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from slotbook.models.account import Account, AccountRole
from slotbook.models.verification_code import VerificationCode
from slotbook.models.profile import Profile
from slotbook.models.reservation import Reservation, RESERVATION_CONFIRMED

__all__ = [
    "Account",
    "AccountRole",
    "VerificationCode",
    "Profile",
    "Reservation",
    "RESERVATION_CONFIRMED",
]
