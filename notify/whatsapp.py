"""WhatsApp Cloud API sender – logs instead of sending when unconfigured."""

from __future__ import annotations

import logging
import os

import requests

from notify.mail import SendError

log = logging.getLogger(__name__)

_API_URL = "https://graph.facebook.com/v17.0/{phone_id}/messages"
_TIMEOUT = 15  # seconds


def send_whatsapp(to: str, body: str) -> None:
    """Send a text message to *to* (international format, '+' optional).

    Env vars: WHATSAPP_API_TOKEN, WHATSAPP_PHONE_ID.
    """
    token = os.getenv("WHATSAPP_API_TOKEN")
    phone_id = os.getenv("WHATSAPP_PHONE_ID")
    if not token or not phone_id:
        log.info("[WhatsApp mock] To: %s — Message: %s", to, body)
        return

    payload = {
        "messaging_product": "whatsapp",
        "to": to.replace("+", ""),
        "type": "text",
        "text": {"body": body},
    }
    try:
        resp = requests.post(
            _API_URL.format(phone_id=phone_id),
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
            timeout=_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise SendError(f"WhatsApp to {to} failed: {exc}") from exc

    if resp.status_code >= 400:
        raise SendError(f"WhatsApp API HTTP {resp.status_code} for {to}: {resp.text[:300]}")
    log.info("WhatsApp message sent to %s", to)
