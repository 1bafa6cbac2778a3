"""Account and verification-code persistence. All functions run inside the caller's session."""
from datetime import datetime

from sqlalchemy.orm import Session

from slotbook.models import Account, AccountRole, VerificationCode


def find_account_by_email(db: Session, email: str) -> Account | None:
    return db.query(Account).filter(Account.email == email).first()


def get_account(db: Session, account_id: int) -> Account | None:
    return db.query(Account).filter(Account.id == account_id).first()


def email_taken(db: Session, email: str) -> bool:
    return db.query(Account.id).filter(Account.email == email).first() is not None


def add_account(db: Session, first_name: str, last_name: str, email: str, password_verifier: str,
                role: AccountRole) -> Account:
    """Insert an unverified account and flush so the unique email constraint is checked now."""
    account = Account(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_verifier=password_verifier,
        role=role,
        verified=False,
    )
    db.add(account)
    db.flush()
    return account


def add_code(db: Session, account_id: int, code: str, expires_at: datetime) -> VerificationCode:
    row = VerificationCode(account_id=account_id, code=code, expires_at=expires_at)
    db.add(row)
    db.flush()
    return row


def delete_codes_for(db: Session, account_id: int) -> int:
    return db.query(VerificationCode).filter(VerificationCode.account_id == account_id).delete(
        synchronize_session=False
    )


def find_active_code(db: Session, email: str, code: str, now: datetime) -> VerificationCode | None:
    """Unexpired code row matching both the account email and the code value."""
    return (
        db.query(VerificationCode)
        .join(Account, Account.id == VerificationCode.account_id)
        .filter(
            Account.email == email,
            VerificationCode.code == code,
            VerificationCode.expires_at > now,
        )
        .first()
    )


def consume_code(db: Session, code_id: int) -> bool:
    """Delete a code row. False when another transaction already removed it."""
    deleted = db.query(VerificationCode).filter(VerificationCode.id == code_id).delete(
        synchronize_session=False
    )
    return deleted == 1


def mark_verified(db: Session, account_id: int) -> None:
    db.query(Account).filter(Account.id == account_id).update(
        {Account.verified: True}, synchronize_session=False
    )


def purge_expired_codes(db: Session, now: datetime) -> int:
    return db.query(VerificationCode).filter(VerificationCode.expires_at <= now).delete(
        synchronize_session=False
    )
