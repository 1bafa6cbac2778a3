"""
Error taxonomy for Slotbook.

Services raise these; the handler registered in slotbook.main renders them as
JSON with the status code carried by each class. Routers do not translate
domain errors themselves.
"""
from typing import Any, Optional


class SlotbookError(Exception):
    """Base exception for all Slotbook errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SlotbookError):
    """Input was malformed or out of range. Raised before any state change."""

    status_code = 422


class InvalidSlot(ValidationError):
    """Time slot is not one of the bookable hourly starts."""

    def __init__(self, time_slot: str):
        super().__init__(
            "Time slot must be on the hour between 9:00 and 15:00",
            code="INVALID_SLOT",
            details={"time_slot": time_slot},
        )


class NotFound(SlotbookError):
    status_code = 404


class DuplicateIdentity(SlotbookError):
    """An account with this email already exists."""

    status_code = 409

    def __init__(self, email: str):
        super().__init__(
            "Email already registered",
            code="DUPLICATE_IDENTITY",
            details={"email": email},
        )


class SlotUnavailable(SlotbookError):
    """The (provider, date, slot) triple is already reserved."""

    status_code = 409

    def __init__(self, provider_id: int, date: str, time_slot: str):
        super().__init__(
            "Time slot already booked",
            code="SLOT_UNAVAILABLE",
            details={"provider_id": provider_id, "date": date, "time_slot": time_slot},
        )


class InvalidCredentials(SlotbookError):
    status_code = 401

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class Unauthorized(SlotbookError):
    """No bearer token, or the token did not verify."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="UNAUTHORIZED")


class UnverifiedAccount(SlotbookError):
    status_code = 403

    def __init__(self, message: str = "Please verify your email first"):
        super().__init__(message, code="UNVERIFIED_ACCOUNT")


class Forbidden(SlotbookError):
    status_code = 403

    def __init__(self, required_role: str, role: str):
        super().__init__(
            f"Insufficient permissions. Required: {required_role}, has: {role}",
            code="FORBIDDEN",
            details={"required_role": required_role, "role": role},
        )


class InvalidOrExpiredCode(SlotbookError):
    status_code = 400

    def __init__(self, message: str = "Invalid or expired verification code"):
        super().__init__(message, code="INVALID_OR_EXPIRED_CODE")


class StorageUnavailable(SlotbookError):
    """Database fault. The unit of work was rolled back; callers may retry."""

    status_code = 503

    def __init__(self, message: str = "Storage is temporarily unavailable. Please try again."):
        super().__init__(message, code="STORAGE_UNAVAILABLE")


class NotificationDegraded(SlotbookError):
    """
    A mail or calendar side effect failed after the primary mutation committed.

    Never rendered as an HTTP error: the dispatcher records it in the delivery
    report returned alongside the successful result.
    """

    def __init__(self, channel: str, reason: str = "delivery failed"):
        super().__init__(
            f"{channel}: {reason}",
            code="NOTIFICATION_DEGRADED",
            details={"channel": channel, "reason": reason},
        )
        self.channel = channel
        self.reason = reason
