"""Shared dependencies: services, current account, role checks."""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from slotbook.exceptions import Forbidden, Unauthorized
from slotbook.models.account import AccountRole
from slotbook.services.auth import TokenClaims, TokenIssuer, get_token_issuer
from slotbook.services.booking import BookingService
from slotbook.services.identity import IdentityService
from slotbook.services.profiles import ProfileService

security = HTTPBearer(auto_error=False)


def get_identity_service() -> IdentityService:
    return IdentityService()


def get_booking_service() -> BookingService:
    return BookingService()


def get_profile_service() -> ProfileService:
    return ProfileService()


def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    if not credentials:
        raise Unauthorized()
    claims = tokens.verify((credentials.credentials or "").strip())
    if claims is None:
        raise Unauthorized("Invalid or expired token")
    return claims


def require_provider(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    if claims.role != AccountRole.provider:
        raise Forbidden(AccountRole.provider.value, claims.role.value)
    return claims
