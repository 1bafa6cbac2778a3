"""
Google Calendar invites for confirmed sessions.

Uses the Calendar v3 REST API directly with a long-lived OAuth refresh token
(see scripts/get_google_refresh_token.py). Every call exchanges the refresh
token for a short-lived access token; nothing is cached between requests.
"""
import logging
from datetime import date as Date, datetime, time, timedelta

import httpx

from slotbook.config import Settings, get_settings

log = logging.getLogger("uvicorn.error")

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CALENDAR_EVENTS_SCOPE = "https://www.googleapis.com/auth/calendar.events"

SESSION_LENGTH = timedelta(hours=1)


def calendar_configured(settings: Settings | None = None) -> bool:
    s = settings or get_settings()
    return bool(s.google_client_id and s.google_client_secret and s.google_refresh_token)


def _access_token(client: httpx.Client, settings: Settings) -> str | None:
    response = client.post(
        GOOGLE_TOKEN_URL,
        data={
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "refresh_token": settings.google_refresh_token,
            "grant_type": "refresh_token",
        },
    )
    if response.status_code != 200:
        log.warning("[Calendar] Token refresh failed: status=%s body=%s", response.status_code, response.text[:300])
        return None
    return response.json().get("access_token")


def build_session_event(requester_email: str, provider_email: str, day: Date, start: time,
                        time_zone: str = "UTC") -> dict:
    starts_at = datetime.combine(day, start)
    ends_at = starts_at + SESSION_LENGTH
    return {
        "summary": "Speaker Session",
        "description": "Booked speaker session",
        "start": {"dateTime": starts_at.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": time_zone},
        "end": {"dateTime": ends_at.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": time_zone},
        "attendees": [{"email": requester_email}, {"email": provider_email}],
        "reminders": {"useDefault": True},
    }


def create_calendar_event(requester_email: str, provider_email: str, day: Date, start: time,
                          settings: Settings | None = None) -> bool:
    """Insert the session on the configured calendar and invite both parties."""
    settings = settings or get_settings()
    if not calendar_configured(settings):
        log.warning("[Calendar] NOT CREATED: set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN in .env.")
        return False
    event = build_session_event(requester_email, provider_email, day, start, settings.google_calendar_time_zone)
    try:
        with httpx.Client(timeout=10.0) as client:
            token = _access_token(client, settings)
            if not token:
                return False
            response = client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{settings.google_calendar_id}/events",
                params={"sendUpdates": "all"},
                headers={"Authorization": f"Bearer {token}"},
                json=event,
            )
    except httpx.HTTPError as e:
        log.warning("[Calendar] Transport error: %s: %s", type(e).__name__, e)
        return False
    if response.status_code not in (200, 201):
        log.warning("[Calendar] Event insert failed: status=%s body=%s", response.status_code, response.text[:300])
        return False
    log.info("[Calendar] Event created: id=%s", response.json().get("id", ""))
    return True
