"""
Signup, email verification and login.

An account is provisional until its 6-digit code is redeemed. The account row
and its code are written in one unit of work; the code goes out by mail only
after that commit, and a failed delivery never undoes the signup.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError

from slotbook.config import get_settings
from slotbook.database import SessionFactory, SessionLocal, unit_of_work
from slotbook.exceptions import (
    DuplicateIdentity,
    InvalidCredentials,
    InvalidOrExpiredCode,
    NotFound,
    UnverifiedAccount,
    ValidationError,
)
from slotbook.models.account import AccountRole
from slotbook.services import credential_store
from slotbook.services.auth import BcryptPasswordHasher, PasswordHasher, TokenIssuer, get_token_issuer
from slotbook.services.dispatch import DeliveryReport, EmailCalendarDispatcher, NotificationDispatcher, dispatch_after_commit

log = logging.getLogger("uvicorn.error")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_verification_code() -> str:
    """Uniform 6-digit decimal string; leading zeros allowed."""
    return f"{secrets.randbelow(1_000_000):06d}"


def normalize_email(raw: str) -> str:
    """Validate format and return the lower-cased address. Raises ValidationError."""
    try:
        info = validate_email((raw or "").strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Valid email is required", code="INVALID_EMAIL", details={"email": raw}) from e
    return info.normalized.lower()


def lookup_email(raw: str | None) -> str:
    """Normalize an address the way signup stored it; malformed input is only stripped and lower-cased."""
    s = (raw or "").strip()
    try:
        return validate_email(s, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return s.lower()


def _normalize_code(raw: str | None) -> str:
    """Return stripped string, or empty string if not exactly 6 digits."""
    s = (raw or "").strip()
    if len(s) != 6 or not s.isdigit():
        return ""
    return s


@dataclass
class AccountView:
    id: int
    first_name: str
    last_name: str
    email: str
    role: AccountRole
    verified: bool


@dataclass
class RegistrationResult:
    account_id: int
    delivery: DeliveryReport

    @property
    def code_sent(self) -> bool:
        return self.delivery.delivered.get("verification_email", False)


class IdentityService:
    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        hasher: PasswordHasher | None = None,
        tokens: TokenIssuer | None = None,
        dispatcher: NotificationDispatcher | None = None,
        clock: Clock = utcnow,
        code_ttl: timedelta | None = None,
        password_min_length: int | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.hasher = hasher or BcryptPasswordHasher()
        self.tokens = tokens or get_token_issuer()
        self.dispatcher = dispatcher or EmailCalendarDispatcher()
        self.clock = clock
        self.code_ttl = code_ttl or timedelta(minutes=settings.verification_code_ttl_minutes)
        self.password_min_length = password_min_length or settings.password_min_length

    def _send_code(self, email: str, code: str) -> DeliveryReport:
        return dispatch_after_commit({"verification_email": lambda: self.dispatcher.notify_code(email, code)})

    def register(self, first_name: str, last_name: str, email: str, raw_password: str,
                 role: AccountRole | str) -> RegistrationResult:
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name:
            raise ValidationError("First name is required", code="FIRST_NAME_REQUIRED")
        if not last_name:
            raise ValidationError("Last name is required", code="LAST_NAME_REQUIRED")
        email = normalize_email(email)
        if len(raw_password or "") < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters",
                code="PASSWORD_TOO_SHORT",
            )
        try:
            role = AccountRole(role)
        except ValueError:
            raise ValidationError(
                "Role must be either requester or provider", code="INVALID_ROLE", details={"role": str(role)}
            )

        verifier = self.hasher.hash(raw_password)
        code = generate_verification_code()
        try:
            with unit_of_work(self.session_factory) as db:
                if credential_store.email_taken(db, email):
                    raise DuplicateIdentity(email)
                account = credential_store.add_account(db, first_name, last_name, email, verifier, role)
                credential_store.add_code(db, account.id, code, self.clock() + self.code_ttl)
                account_id = account.id
        except IntegrityError:
            # Lost the race between pre-check and insert
            raise DuplicateIdentity(email)

        log.info("[Auth] Registered account id=%s role=%s; sending verification code", account_id, role.value)
        delivery = self._send_code(email, code)
        if delivery.degraded:
            log.warning("[Auth] Verification email not delivered for account id=%s", account_id)
        return RegistrationResult(account_id=account_id, delivery=delivery)

    def authenticate(self, email: str, raw_password: str) -> str:
        """Return a signed token for a verified account with a matching password."""
        email = lookup_email(email)
        with unit_of_work(self.session_factory) as db:
            account = credential_store.find_account_by_email(db, email)
            if account is None or not self.hasher.verify(raw_password or "", account.password_verifier):
                raise InvalidCredentials()
            if not account.verified:
                raise UnverifiedAccount()
            account_id, role = account.id, account.role
        return self.tokens.issue(account_id, role)

    def redeem_code(self, email: str, code: str) -> int:
        """Verify the account owning `email`. Single use: the code row is deleted on success."""
        email = lookup_email(email)
        code = _normalize_code(code)
        if not email or not code:
            raise InvalidOrExpiredCode()
        with unit_of_work(self.session_factory) as db:
            row = credential_store.find_active_code(db, email, code, self.clock())
            if row is None:
                raise InvalidOrExpiredCode()
            account_id = row.account_id
            if not credential_store.consume_code(db, row.id):
                # A concurrent redemption removed it first
                raise InvalidOrExpiredCode()
            credential_store.mark_verified(db, account_id)
        log.info("[Auth] Email verified for account id=%s", account_id)
        return account_id

    def resend_code(self, email: str) -> DeliveryReport | None:
        """Replace any outstanding code for an unverified account and send the new one."""
        email = lookup_email(email)
        code = generate_verification_code()
        with unit_of_work(self.session_factory) as db:
            account = credential_store.find_account_by_email(db, email)
            if account is None or account.verified:
                return None
            credential_store.delete_codes_for(db, account.id)
            credential_store.add_code(db, account.id, code, self.clock() + self.code_ttl)
            account_id = account.id
        log.info("[Auth] Reissued verification code for account id=%s", account_id)
        return self._send_code(email, code)

    def get_account(self, account_id: int) -> AccountView:
        with unit_of_work(self.session_factory) as db:
            account = credential_store.get_account(db, account_id)
            if account is None:
                raise NotFound("Account not found", code="ACCOUNT_NOT_FOUND", details={"account_id": account_id})
            return AccountView(
                id=account.id,
                first_name=account.first_name,
                last_name=account.last_name,
                email=account.email,
                role=account.role,
                verified=account.verified,
            )
