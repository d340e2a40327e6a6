"""Alert message template shared by every delivery channel."""

from __future__ import annotations

import os
from datetime import datetime, timezone

from storage.models import Report

_PREVIEW_CHARS = 150


def brand() -> str:
    return os.getenv("ALERT_BRAND", "CIEPD")


def _format_date(value: datetime | None) -> str:
    value = value or datetime.now(timezone.utc)
    return value.strftime("%d %b %Y, %H:%M")


def build_message(report: Report) -> str:
    preview = report.description or (report.content or "")[:_PREVIEW_CHARS]
    categories = ", ".join(report.categories)
    return (
        f"{brand()} Alert — {report.title}\n"
        f"Location: {report.location}\n"
        f"Categories: {categories}\n"
        f"Date: {_format_date(report.created_at)}\n"
        f"\n"
        f"Details: {preview}\n"
    )


def email_subject(report: Report) -> str:
    return f"{brand()} Alert — {report.title}"


def email_body(report: Report) -> str:
    return f"{build_message(report)}\nVisit admin for more."
