"""Delete verification codes that expired without being redeemed."""
import logging
from datetime import datetime, timezone

from slotbook.database import SessionFactory, SessionLocal, unit_of_work
from slotbook.services.credential_store import purge_expired_codes


def run_code_cleanup_job(session_factory: SessionFactory = SessionLocal) -> int:
    """Remove expired codes. Redemption already ignores them; this only keeps the table small."""
    with unit_of_work(session_factory) as db:
        deleted = purge_expired_codes(db, datetime.now(timezone.utc))
    if deleted:
        logging.getLogger("uvicorn.error").info("Code cleanup: deleted %d expired verification code(s).", deleted)
    return deleted
