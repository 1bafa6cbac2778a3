from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from slotbook.exceptions import (
    DuplicateIdentity,
    InvalidCredentials,
    InvalidOrExpiredCode,
    UnverifiedAccount,
    ValidationError,
)
from slotbook.models import Account, AccountRole, VerificationCode
from slotbook.services.code_cleanup import run_code_cleanup_job
from slotbook.services.identity import generate_verification_code, lookup_email, normalize_email

EMAIL = "ada@slotbook.io"


def _register(identity, email=EMAIL, role="requester", password="secret123"):
    return identity.register("Ada", "Lovelace", email, password, role)


def _count(session_factory, model):
    db = session_factory()
    try:
        return db.query(model).count()
    finally:
        db.close()


class TestCodeGeneration:
    def test_six_digits(self):
        """Should always produce exactly six decimal digits."""
        for _ in range(200):
            code = generate_verification_code()
            assert len(code) == 6
            assert code.isdigit()

    def test_leading_zero_is_kept(self, monkeypatch):
        """Should zero-pad small values."""
        monkeypatch.setattr("slotbook.services.identity.secrets.randbelow", lambda n: 42)
        assert generate_verification_code() == "000042"


class TestNormalizeEmail:
    def test_lowercases(self):
        assert normalize_email("  Ada@SlotBook.IO ") == "ada@slotbook.io"

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError):
            normalize_email("not-an-email")


class TestRegister:
    def test_creates_unverified_account_and_code(self, identity, session_factory, dispatcher, clock):
        """Should write the account and its code together, then send the code."""
        result = _register(identity)

        db = session_factory()
        try:
            account = db.query(Account).filter(Account.id == result.account_id).one()
            assert account.verified is False
            assert account.role == AccountRole.requester
            code = db.query(VerificationCode).filter(VerificationCode.account_id == account.id).one()
            assert code.code == dispatcher.codes[EMAIL]
        finally:
            db.close()
        assert result.code_sent is True
        assert result.delivery.degraded is False

    def test_email_is_normalized(self, identity, session_factory, dispatcher):
        _register(identity, email="Ada@SlotBook.io")
        assert "ada@slotbook.io" in dispatcher.codes

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"password": "short"},
            {"role": "admin"},
            {"email": "nope"},
        ],
    )
    def test_validation_before_any_write(self, identity, session_factory, kwargs):
        """Should reject bad input without touching storage."""
        with pytest.raises(ValidationError):
            _register(identity, **kwargs)
        assert _count(session_factory, Account) == 0

    def test_blank_names_rejected(self, identity):
        with pytest.raises(ValidationError):
            identity.register(" ", "Lovelace", EMAIL, "secret123", "provider")

    def test_duplicate_in_sequence(self, identity, session_factory):
        """Should fail the second signup and keep exactly one row."""
        _register(identity)
        with pytest.raises(DuplicateIdentity):
            _register(identity, role="provider")
        assert _count(session_factory, Account) == 1
        assert _count(session_factory, VerificationCode) == 1

    def test_duplicate_when_precheck_is_raced(self, identity, session_factory, monkeypatch):
        """Should map the storage unique violation to DuplicateIdentity."""
        _register(identity)
        monkeypatch.setattr("slotbook.services.credential_store.email_taken", lambda db, email: False)
        with pytest.raises(DuplicateIdentity):
            _register(identity)
        assert _count(session_factory, Account) == 1
        assert _count(session_factory, VerificationCode) == 1

    def test_duplicate_concurrently(self, identity, session_factory):
        """Should let exactly one of several concurrent signups win."""
        n = 6
        barrier = Barrier(n)

        def attempt(_):
            barrier.wait()
            try:
                _register(identity)
                return "ok"
            except DuplicateIdentity:
                return "dup"

        with ThreadPoolExecutor(max_workers=n) as pool:
            outcomes = list(pool.map(attempt, range(n)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == n - 1
        assert _count(session_factory, Account) == 1

    def test_delivery_failure_keeps_account(self, session_factory, tokens, clock):
        """Should commit the signup even when the code email fails."""
        from conftest import FakeDispatcher, FakeHasher
        from slotbook.services.identity import IdentityService

        failing = FakeDispatcher(fail=("code",))
        service = IdentityService(session_factory, FakeHasher(), tokens, failing, clock)
        result = _register(service)

        assert result.code_sent is False
        assert result.delivery.degraded is True
        assert _count(session_factory, Account) == 1
        # Still redeemable with the code that was generated
        assert service.redeem_code(EMAIL, failing.codes[EMAIL]) == result.account_id

    def test_failure_inside_unit_leaves_no_orphan(self, identity, session_factory, monkeypatch):
        """Should roll back the account when the code insert fails."""

        def boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("slotbook.services.credential_store.add_code", boom)
        with pytest.raises(RuntimeError):
            _register(identity)
        assert _count(session_factory, Account) == 0


class TestInternationalAddresses:
    def test_punycode_signup_works_with_same_spelling(self, identity, dispatcher, tokens):
        """Should verify, resend and log in with the exact address typed at signup."""
        typed = "ada@xn--bcher-kva.de"
        result = _register(identity, email=typed)
        stored = normalize_email(typed)
        assert stored == lookup_email(typed)

        assert identity.resend_code(typed) is not None
        assert identity.redeem_code(typed, dispatcher.codes[stored]) == result.account_id
        claims = tokens.verify(identity.authenticate(typed, "secret123"))
        assert claims.account_id == result.account_id

    def test_unicode_spelling_matches_punycode_signup(self, identity, dispatcher):
        result = _register(identity, email="ada@xn--bcher-kva.de")
        code = dispatcher.codes[normalize_email("ada@bücher.de")]
        assert identity.redeem_code("Ada@Bücher.de", code) == result.account_id

    def test_malformed_lookup_is_not_an_error(self, identity):
        assert lookup_email("  Not-An-Email ") == "not-an-email"
        assert identity.resend_code("not-an-email") is None
        with pytest.raises(InvalidCredentials):
            identity.authenticate("not-an-email", "secret123")


class TestRedeemCode:
    def test_verifies_once(self, identity, session_factory, dispatcher):
        """Should verify on first use and reject the same code afterwards."""
        result = _register(identity)
        code = dispatcher.codes[EMAIL]

        assert identity.redeem_code(EMAIL, code) == result.account_id
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code(EMAIL, code)

        db = session_factory()
        try:
            assert db.query(Account).one().verified is True
            assert db.query(VerificationCode).count() == 0
        finally:
            db.close()

    def test_succeeds_at_59_minutes(self, identity, dispatcher, clock):
        _register(identity)
        clock.advance(minutes=59)
        identity.redeem_code(EMAIL, dispatcher.codes[EMAIL])

    def test_fails_at_61_minutes(self, identity, dispatcher, clock, session_factory):
        _register(identity)
        clock.advance(minutes=61)
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code(EMAIL, dispatcher.codes[EMAIL])
        db = session_factory()
        try:
            assert db.query(Account).one().verified is False
        finally:
            db.close()

    def test_wrong_code(self, identity, dispatcher):
        _register(identity)
        wrong = "000000" if dispatcher.codes[EMAIL] != "000000" else "111111"
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code(EMAIL, wrong)

    def test_unknown_email(self, identity):
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code("ghost@slotbook.io", "123456")

    @pytest.mark.parametrize("code", ["", "12345", "abcdef", None])
    def test_malformed_code(self, identity, code):
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code(EMAIL, code)

    def test_code_of_other_account_rejected(self, identity, dispatcher):
        """Should only accept a code owned by the account with that email."""
        _register(identity)
        _register(identity, email="grace@slotbook.io")
        if dispatcher.codes[EMAIL] == dispatcher.codes["grace@slotbook.io"]:
            pytest.skip("codes collided")
        with pytest.raises(InvalidOrExpiredCode):
            identity.redeem_code("grace@slotbook.io", dispatcher.codes[EMAIL])

    def test_concurrent_redemption_single_winner(self, identity, dispatcher):
        """Should let exactly one concurrent redemption succeed."""
        _register(identity)
        code = dispatcher.codes[EMAIL]
        n = 5
        barrier = Barrier(n)

        def attempt(_):
            barrier.wait()
            try:
                identity.redeem_code(EMAIL, code)
                return "ok"
            except InvalidOrExpiredCode:
                return "invalid"

        with ThreadPoolExecutor(max_workers=n) as pool:
            outcomes = list(pool.map(attempt, range(n)))
        assert outcomes.count("ok") == 1


class TestAuthenticate:
    def test_unverified_gate(self, identity):
        """Should refuse a correct password until the email is verified."""
        _register(identity)
        with pytest.raises(UnverifiedAccount):
            identity.authenticate(EMAIL, "secret123")

    def test_wrong_password(self, identity, dispatcher):
        _register(identity)
        identity.redeem_code(EMAIL, dispatcher.codes[EMAIL])
        with pytest.raises(InvalidCredentials):
            identity.authenticate(EMAIL, "wrong-password")

    def test_unknown_email(self, identity):
        with pytest.raises(InvalidCredentials):
            identity.authenticate("ghost@slotbook.io", "secret123")

    def test_token_carries_id_and_role(self, identity, dispatcher, tokens):
        result = _register(identity, role="provider")
        identity.redeem_code(EMAIL, dispatcher.codes[EMAIL])

        claims = tokens.verify(identity.authenticate(EMAIL, "secret123"))
        assert claims.account_id == result.account_id
        assert claims.role == AccountRole.provider
        assert claims.expires_at - claims.issued_at == tokens.config.ttl


class TestResendCode:
    def test_replaces_outstanding_code(self, identity, dispatcher, session_factory, clock):
        """Should keep one active code and invalidate the previous one."""
        _register(identity)
        first = dispatcher.codes[EMAIL]
        clock.advance(minutes=50)
        report = identity.resend_code(EMAIL)
        second = dispatcher.codes[EMAIL]

        assert report is not None and report.degraded is False
        assert _count(session_factory, VerificationCode) == 1
        if first != second:
            with pytest.raises(InvalidOrExpiredCode):
                identity.redeem_code(EMAIL, first)
        # New code has a fresh hour
        clock.advance(minutes=30)
        identity.redeem_code(EMAIL, second)

    def test_noop_for_unknown_or_verified(self, identity, dispatcher):
        assert identity.resend_code("ghost@slotbook.io") is None
        _register(identity)
        identity.redeem_code(EMAIL, dispatcher.codes[EMAIL])
        assert identity.resend_code(EMAIL) is None


class TestCodeCleanup:
    def test_purges_only_expired(self, identity, session_factory, clock):
        """Should delete codes whose expiry has passed and keep live ones."""
        clock.now = clock.now.replace(year=2000)
        _register(identity)
        clock.now = clock.now.replace(year=2999)
        _register(identity, email="grace@slotbook.io")

        assert run_code_cleanup_job(session_factory) == 1
        assert _count(session_factory, VerificationCode) == 1
