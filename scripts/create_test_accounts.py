"""
Create a verified test provider (with profile) and a verified test requester.
Use when verification emails are not configured so you can log in and book sessions.

Run from project root:
  python scripts/create_test_accounts.py

Credentials are printed at the end.
"""
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from slotbook.database import Base, SessionLocal, engine
from slotbook.models import Account, AccountRole, Profile
from slotbook.services.auth import BcryptPasswordHasher

PASSWORD = "Password123!"

ACCOUNTS = [
    ("provider@slotbook.demo", "Test", "Provider", AccountRole.provider),
    ("requester@slotbook.demo", "Test", "Requester", AccountRole.requester),
]


def main():
    Base.metadata.create_all(bind=engine)
    hasher = BcryptPasswordHasher()
    db = SessionLocal()
    try:
        for email, first_name, last_name, role in ACCOUNTS:
            account = db.query(Account).filter(Account.email == email).first()
            if account:
                print(f"Already exists: {email} ({role.value}, id={account.id})")
                continue
            account = Account(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password_verifier=hasher.hash(PASSWORD),
                role=role,
                verified=True,
            )
            db.add(account)
            db.flush()
            if role == AccountRole.provider:
                db.add(Profile(account_id=account.id, expertise="Public speaking", price=Decimal("50.00")))
            print(f"Created {role.value}: {email} (id={account.id})")
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print("\nLog in with POST /auth/login:")
    for email, _, _, role in ACCOUNTS:
        print(f"  {role.value:<10} {email} / {PASSWORD}")


if __name__ == "__main__":
    main()
