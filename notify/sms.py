"""SMS channel – no provider wired up yet, messages are only logged."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def send_sms(to: str, body: str) -> None:
    log.info("[SMS mock] To: %s — %s", to, body)
