"""
After-commit side effects: verification mail, booking mail, calendar invites.

Services call these only once their unit of work has committed. Jobs run
concurrently on a shared pool and the caller waits at most
notification_timeout_seconds; a failed, raising or unfinished job becomes a
NotificationDegraded entry in the DeliveryReport instead of an error.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date as Date, time
from threading import Lock
from typing import Callable, Protocol

from slotbook.config import get_settings
from slotbook.exceptions import NotificationDegraded
from slotbook.services import calendar, notifications

log = logging.getLogger("uvicorn.error")

_pool: ThreadPoolExecutor | None = None
_pool_lock = Lock()


def _get_pool() -> ThreadPoolExecutor:
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="notify")
        return _pool


def shutdown_pool() -> None:
    """Drop queued jobs and release the pool; the next dispatch starts a fresh one."""
    global _pool
    with _pool_lock:
        pool, _pool = _pool, None
    if pool is not None:
        pool.shutdown(wait=False, cancel_futures=True)


class NotificationDispatcher(Protocol):
    def notify_code(self, email: str, code: str) -> bool: ...

    def notify_booking(self, requester_email: str, provider_email: str, day: Date, start: time) -> bool: ...

    def create_calendar_invite(self, requester_email: str, provider_email: str, day: Date, start: time) -> bool: ...


def format_slot(start: time) -> str:
    return f"{start.hour}:{start.minute:02d}"


class EmailCalendarDispatcher:
    """Production dispatcher: Mailgun/SendGrid mail and Google Calendar."""

    def notify_code(self, email: str, code: str) -> bool:
        return notifications.send_verification_email(
            email, code, ttl_minutes=get_settings().verification_code_ttl_minutes
        )

    def notify_booking(self, requester_email: str, provider_email: str, day: Date, start: time) -> bool:
        return notifications.send_booking_confirmation(
            requester_email, provider_email, day.isoformat(), format_slot(start)
        )

    def create_calendar_invite(self, requester_email: str, provider_email: str, day: Date, start: time) -> bool:
        return calendar.create_calendar_event(requester_email, provider_email, day, start)


@dataclass
class DeliveryReport:
    delivered: dict[str, bool] = field(default_factory=dict)
    failures: list[NotificationDegraded] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> dict:
        return {
            "delivered": dict(self.delivered),
            "degraded": self.degraded,
            "failures": [f.details for f in self.failures],
        }


def dispatch_after_commit(jobs: dict[str, Callable[[], bool]], timeout: float | None = None) -> DeliveryReport:
    """Run side-effect jobs concurrently and collect what happened within the timeout."""
    if timeout is None:
        timeout = get_settings().notification_timeout_seconds
    report = DeliveryReport()
    pool = _get_pool()
    futures = {name: pool.submit(job) for name, job in jobs.items()}
    wait(futures.values(), timeout=timeout)
    for name, future in futures.items():
        if not future.done():
            # Left running in the pool; the outcome is unknown to this response
            report.delivered[name] = False
            report.failures.append(NotificationDegraded(name, "timed out"))
            continue
        exc = future.exception()
        if exc is not None:
            log.warning("[Notify] %s raised %s: %s", name, type(exc).__name__, exc)
            report.delivered[name] = False
            report.failures.append(NotificationDegraded(name, type(exc).__name__))
        elif not future.result():
            report.delivered[name] = False
            report.failures.append(NotificationDegraded(name))
        else:
            report.delivered[name] = True
    if report.degraded:
        log.warning("[Notify] Degraded delivery: %s", ", ".join(f.channel for f in report.failures))
    return report
