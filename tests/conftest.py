"""
Shared test fixtures.

Services run against a throwaway SQLite file so that threaded race tests get
real, separate connections. Hashing, mail/calendar delivery and the clock are
replaced with deterministic fakes.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from slotbook.database import Base, build_engine
from slotbook.models import Account, AccountRole
from slotbook.services.auth import TokenConfig, TokenIssuer
from slotbook.services.booking import BookingService
from slotbook.services.identity import IdentityService
from slotbook.services.profiles import ProfileService

TEST_JWT_SECRET = "test-secret-key-for-testing-only"
START = datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc)


class FakeHasher:
    def hash(self, password: str) -> str:
        return "hashed:" + password

    def verify(self, password: str, verifier: str) -> bool:
        return verifier == "hashed:" + password


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeDispatcher:
    """Records every side effect; `fail` makes the named channels report failure."""

    def __init__(self, fail: tuple[str, ...] = ()):
        self.fail = set(fail)
        self.codes: dict[str, str] = {}
        self.bookings: list[tuple[str, str, date, time]] = []
        self.invites: list[tuple[str, str, date, time]] = []

    def notify_code(self, email: str, code: str) -> bool:
        self.codes[email] = code
        return "code" not in self.fail

    def notify_booking(self, requester_email, provider_email, day, start) -> bool:
        self.bookings.append((requester_email, provider_email, day, start))
        return "booking" not in self.fail

    def create_calendar_invite(self, requester_email, provider_email, day, start) -> bool:
        self.invites.append((requester_email, provider_email, day, start))
        if "calendar" in self.fail:
            raise RuntimeError("calendar API down")
        return True


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(
        f"sqlite:///{tmp_path / 'slotbook-test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def tokens():
    return TokenIssuer(TokenConfig(secret=TEST_JWT_SECRET))


@pytest.fixture
def identity(session_factory, dispatcher, tokens, clock):
    return IdentityService(
        session_factory=session_factory,
        hasher=FakeHasher(),
        tokens=tokens,
        dispatcher=dispatcher,
        clock=clock,
    )


@pytest.fixture
def booking(session_factory, dispatcher):
    return BookingService(session_factory=session_factory, dispatcher=dispatcher)


@pytest.fixture
def profiles(session_factory):
    return ProfileService(session_factory=session_factory)


@pytest.fixture
def make_account(session_factory):
    """Insert an account directly, bypassing signup."""

    def _make(email: str, role: AccountRole = AccountRole.requester, verified: bool = True) -> int:
        db = session_factory()
        try:
            account = Account(
                first_name="Test",
                last_name=role.value.title(),
                email=email,
                password_verifier="hashed:secret123",
                role=role,
                verified=verified,
            )
            db.add(account)
            db.commit()
            return account.id
        finally:
            db.close()

    return _make


@pytest.fixture
def provider_id(make_account):
    return make_account("provider@slotbook.io", AccountRole.provider)


@pytest.fixture
def requester_id(make_account):
    return make_account("requester@slotbook.io", AccountRole.requester)


@pytest.fixture
def client(identity, booking, profiles, tokens):
    from slotbook.dependencies import get_booking_service, get_identity_service, get_profile_service
    from slotbook.main import app
    from slotbook.services.auth import get_token_issuer

    app.dependency_overrides[get_identity_service] = lambda: identity
    app.dependency_overrides[get_booking_service] = lambda: booking
    app.dependency_overrides[get_profile_service] = lambda: profiles
    app.dependency_overrides[get_token_issuer] = lambda: tokens
    # No context manager: startup (create_all on the configured DB, scheduler) is not wanted here
    yield TestClient(app)
    app.dependency_overrides.clear()
