"""
Database connection, sessions and the unit of work.

Schema source of truth: slotbook.models. On startup, Base.metadata.create_all(bind=engine)
creates all tables from the current models.

Every multi-step mutation goes through unit_of_work(): one session, commit on
success, rollback on any exception, close on every exit path. Storage faults
other than constraint violations surface as StorageUnavailable; IntegrityError
is re-raised untouched so services can map it to their own conflict error.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from slotbook.config import get_settings
from slotbook.exceptions import StorageUnavailable

log = logging.getLogger("uvicorn.error")

settings = get_settings()


def build_engine(url: str, **kwargs):
    """Create an engine; SQLite gets thread-sharing and foreign keys turned on."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    eng = create_engine(url, pool_pre_ping=True, **kwargs)
    if url.startswith("sqlite"):
        @event.listens_for(eng, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    return eng


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

SessionFactory = Callable[[], Session]


@contextmanager
def unit_of_work(session_factory: SessionFactory = SessionLocal) -> Iterator[Session]:
    """Open a session, commit when the block exits cleanly, roll back otherwise."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except (DBAPIError, SQLAlchemyError) as e:
        db.rollback()
        log.warning("[DB] Unit of work rolled back: %s", type(e).__name__)
        raise StorageUnavailable() from e
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()
