"""Slotbook – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from slotbook.config import get_settings
from slotbook.database import Base, engine
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from slotbook.models import Account, VerificationCode, Profile, Reservation  # noqa: F401
from slotbook.exceptions import SlotbookError
from slotbook.routers import auth, providers, bookings
from slotbook.services import dispatch

log = logging.getLogger("uvicorn.error")

settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(providers.router)
app.include_router(bookings.router)


@app.exception_handler(SlotbookError)
def slotbook_error_handler(request: Request, exc: SlotbookError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.on_event("startup")
def startup():
    if settings.mailgun_api_key and settings.mailgun_domain:
        log.info("[Mailgun] App using domain=%s (verification & booking emails use this)", settings.mailgun_domain)
    elif settings.sendgrid_api_key:
        log.info("[SendGrid] App using SendGrid for outbound email")
    else:
        log.warning("[Email] Not configured - verification and booking emails will be skipped; set MAILGUN_API_KEY and MAILGUN_DOMAIN in .env")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        log.warning("Database startup failed (tables skipped). Check DATABASE_URL and network. Error: %s", e)

    if settings.code_purge_enabled:
        from apscheduler.schedulers.background import BackgroundScheduler
        from slotbook.services.code_cleanup import run_code_cleanup_job

        scheduler = BackgroundScheduler()
        scheduler.add_job(run_code_cleanup_job, "cron", hour=settings.code_purge_hour, minute=0)
        scheduler.start()
        app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    dispatch.shutdown_pool()


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
