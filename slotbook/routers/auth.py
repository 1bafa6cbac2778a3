"""Signup, email verification and login."""
from fastapi import APIRouter, Depends

from slotbook.dependencies import get_current_claims, get_identity_service
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
from slotbook.services.auth import TokenClaims
from slotbook.services.identity import IdentityService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(data: AccountCreate, identity: IdentityService = Depends(get_identity_service)):
    result = identity.register(data.first_name, data.last_name, data.email, data.password, data.role)
    return RegisterResponse(account_id=result.account_id, verification_email_sent=result.code_sent)


@router.post("/verify-email", response_model=VerifyEmailResponse)
def verify_email(data: VerifyEmailRequest, identity: IdentityService = Depends(get_identity_service)):
    account_id = identity.redeem_code(data.email, data.code)
    return VerifyEmailResponse(account_id=account_id)


@router.post("/resend-verification")
def resend_verification(data: ResendVerificationRequest, identity: IdentityService = Depends(get_identity_service)):
    # Same answer whether or not the email belongs to an unverified account
    identity.resend_code(data.email)
    return {"message": "If the account exists and is not yet verified, a new code has been sent."}


@router.post("/login", response_model=Token)
def login(data: AccountLogin, identity: IdentityService = Depends(get_identity_service)):
    return Token(access_token=identity.authenticate(data.email, data.password))


@router.get("/me", response_model=AccountResponse)
def me(
    claims: TokenClaims = Depends(get_current_claims),
    identity: IdentityService = Depends(get_identity_service),
):
    return identity.get_account(claims.account_id)
