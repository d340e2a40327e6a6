"""Email dispatch via SMTP – logs instead of sending when SMTP is unconfigured."""

from __future__ import annotations

import logging
import os
import smtplib
from email.message import EmailMessage

log = logging.getLogger(__name__)


class SendError(RuntimeError):
    """A mail or messaging provider rejected or failed a delivery."""


def _smtp_settings() -> dict | None:
    """Return SMTP settings, or None when any required variable is missing."""
    host = os.getenv("SMTP_HOST")
    port = os.getenv("SMTP_PORT")
    user = os.getenv("SMTP_USER")
    password = os.getenv("SMTP_PASSWORD") or os.getenv("SMTP_PASS")
    if not (host and port and user and password):
        return None
    return {
        "host": host,
        "port": int(port),
        "user": user,
        "password": password,
        "sender": os.getenv("EMAIL_FROM") or user,
    }


def send_email(to: str, subject: str, body: str) -> None:
    """Send one plaintext email.

    Required env vars (otherwise the message is only logged):
      SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD
    Optional: EMAIL_FROM (defaults to SMTP_USER).
    Port 465 uses implicit TLS, anything else STARTTLS.
    """
    settings = _smtp_settings()
    if settings is None:
        log.info("[Email mock] To: %s | Subject: %s | Text: %s", to, subject, body)
        return

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings["sender"]
    msg["To"] = to
    msg.set_content(body)

    host, port = settings["host"], settings["port"]
    log.info("Sending email to %s via %s:%d", to, host, port)
    try:
        if port == 465:
            with smtplib.SMTP_SSL(host, port, timeout=30) as server:
                server.login(settings["user"], settings["password"])
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=30) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(settings["user"], settings["password"])
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise SendError(f"email to {to} failed: {exc}") from exc
    log.info("Email sent to %s", to)
