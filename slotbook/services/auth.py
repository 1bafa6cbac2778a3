"""Password hashing and signed bearer tokens (bcrypt, PyJWT)."""
from dataclasses import dataclass
from functools import lru_cache
from datetime import datetime, timedelta, timezone
from typing import Protocol

import bcrypt
import jwt

from slotbook.config import Settings, get_settings
from slotbook.models import AccountRole


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, verifier: str) -> bool: ...


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


class BcryptPasswordHasher:
    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")

    def verify(self, password: str, verifier: str) -> bool:
        try:
            return bcrypt.checkpw(_pwd_bytes(password), verifier.encode("utf-8"))
        except ValueError:
            # Stored verifier is not a bcrypt hash
            return False


@dataclass(frozen=True)
class TokenConfig:
    """Signing material, read-only after startup and shared by all workers."""

    secret: str
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            secret=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
        )


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    role: AccountRole
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    def __init__(self, config: TokenConfig):
        self.config = config

    def issue(self, account_id: int, role: AccountRole, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        # PyJWT expects "sub" to be a string
        payload = {
            "sub": str(account_id),
            "role": AccountRole(role).value,
            "iat": issued_at,
            "exp": issued_at + self.config.ttl,
        }
        raw = jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)
        return raw if isinstance(raw, str) else raw.decode("utf-8")

    def verify(self, token: str | None) -> TokenClaims | None:
        """Decode a token. Returns None for anything that is not a valid, unexpired claim."""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token.strip(),
                self.config.secret,
                algorithms=[self.config.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError:
            return None
        try:
            return TokenClaims(
                account_id=int(payload["sub"]),
                role=AccountRole(payload.get("role")),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            return None


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(TokenConfig.from_settings(get_settings()))
