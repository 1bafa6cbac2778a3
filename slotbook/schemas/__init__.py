from slotbook.schemas.auth import (
    AccountCreate,
    AccountLogin,
    AccountResponse,
    RegisterResponse,
    ResendVerificationRequest,
    Token,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from slotbook.schemas.providers import ProfileUpsert, ProviderResponse
from slotbook.schemas.bookings import NotificationReport, ReservationCreate, ReservationCreated, ReservationResponse
