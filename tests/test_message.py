from datetime import datetime

from notify.message import build_message, email_body, email_subject
from storage.models import Report


def _report(**overrides):
    fields = dict(
        title="Clash at market",
        location="Rivers",
        content="Two groups clashed near the main market. " * 10,
        description="",
        categories=["Violence", "Communal"],
        created_at=datetime(2025, 3, 4, 15, 30),
    )
    fields.update(overrides)
    return Report(**fields)


def test_message_template():
    message = build_message(_report())

    lines = message.splitlines()
    assert lines[0] == "CIEPD Alert — Clash at market"
    assert lines[1] == "Location: Rivers"
    assert lines[2] == "Categories: Violence, Communal"
    assert lines[3] == "Date: 04 Mar 2025, 15:30"
    assert lines[5].startswith("Details: Two groups clashed")


def test_preview_prefers_description_then_truncated_content():
    assert "Details: Short summary" in build_message(_report(description="Short summary"))

    preview = build_message(_report()).splitlines()[5][len("Details: "):]
    assert len(preview) == 150


def test_brand_is_configurable(monkeypatch):
    monkeypatch.setenv("ALERT_BRAND", "PeaceWatch")
    report = _report()
    assert email_subject(report) == "PeaceWatch Alert — Clash at market"
    assert email_body(report).endswith("Visit admin for more.")
