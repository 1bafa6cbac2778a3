"""Email notifications (Mailgun preferred, SendGrid fallback)."""
import logging

import httpx

from slotbook.config import Settings, get_settings

log = logging.getLogger("uvicorn.error")

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None,
               settings: Settings | None = None) -> bool:
    """Send email via Mailgun (preferred) or SendGrid. Returns False when unconfigured or rejected."""
    settings = settings or get_settings()
    if settings.mailgun_api_key and settings.mailgun_domain:
        return _send_email_mailgun(to_email, subject, html_content, text_content=text_content, settings=settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to_email, subject, html_content, text_content=text_content, settings=settings)
    log.warning(
        "[Email] NOT SENT: to=%s subject=%s. Set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY) in .env.",
        to_email, subject,
    )
    return False


def _mailgun_from(settings: Settings) -> str:
    domain = (settings.mailgun_domain or "").strip().lower()
    from_addr = (settings.mailgun_from_email or "").strip()
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun drops mail whose sender domain differs from the sending domain
        from_addr = f"noreply@{domain}"
    return f"{settings.mailgun_from_name} <{from_addr}>"


def _send_email_mailgun(to_email: str, subject: str, html_content: str, text_content: str | None,
                        settings: Settings) -> bool:
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = settings.mailgun_domain.strip().lower()
    data = {
        "from": _mailgun_from(settings),
        "to": to_email,
        "subject": subject,
        "text": text_content or "",
        "html": html_content or "",
    }
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if 200 <= r.status_code < 300:
                log.info("[Mailgun] Sent: to=%s status=%s", to_email, r.status_code)
                return True
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                log.info("[Mailgun] 401 with US endpoint. Retrying with EU endpoint...")
                r2 = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages",
                                 auth=("api", settings.mailgun_api_key), data=data)
                if 200 <= r2.status_code < 300:
                    log.info("[Mailgun] Sent (EU): to=%s", to_email)
                    return True
                log.warning("[Mailgun] EU request failed: status=%s body=%s", r2.status_code, r2.text[:500])
                return False
            log.warning("[Mailgun] API failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
            return False
    except httpx.HTTPError as e:
        log.warning("[Mailgun] Transport error: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False


def _send_email_sendgrid(to_email: str, subject: str, html_content: str, text_content: str | None,
                         settings: Settings) -> bool:
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or "",
    )
    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:  # the SDK raises python_http_client errors for any non-2xx
        log.warning("[SendGrid] Send failed: to=%s error=%s", to_email, type(e).__name__)
        return False
    return 200 <= response.status_code < 300


def send_verification_email(to_email: str, code: str, ttl_minutes: int = 60) -> bool:
    """Send the 6-digit signup verification code."""
    subject = "[Slotbook] Your verification code"
    text_content = f"Your Slotbook verification code is: {code}. It expires in {ttl_minutes} minutes."
    html_content = f"""
    <p>Hello,</p>
    <p>Your Slotbook verification code is: <strong style="font-size:1.2em;letter-spacing:0.2em;">{code}</strong></p>
    <p>This code expires in {ttl_minutes} minutes. If you did not sign up, you can ignore this email.</p>
    <p>The Slotbook team</p>
    """
    return send_email(to_email, subject, html_content, text_content=text_content)


def send_booking_confirmation(requester_email: str, provider_email: str, date: str, time_slot: str) -> bool:
    """Confirm a reservation to both parties. True only if both messages were accepted."""
    requester_ok = send_email(
        requester_email,
        "Session Booking Confirmation",
        f"<p>Your session has been booked successfully for {date} at {time_slot}.</p>",
        text_content=f"Your session has been booked successfully for {date} at {time_slot}.",
    )
    provider_ok = send_email(
        provider_email,
        "New Session Booking",
        f"<p>You have a new session booked for {date} at {time_slot}.</p>",
        text_content=f"You have a new session booked for {date} at {time_slot}.",
    )
    return requester_ok and provider_ok
