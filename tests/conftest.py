from __future__ import annotations

import pytest

from storage import db


@pytest.fixture
def database(tmp_path):
    db.init_db(f"sqlite:///{tmp_path / 'test.db'}")
    yield
    db._engine.dispose()


@pytest.fixture(autouse=True)
def _no_provider_credentials(monkeypatch):
    for var in (
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASSWORD",
        "SMTP_PASS",
        "WHATSAPP_API_TOKEN",
        "WHATSAPP_PHONE_ID",
        "REQUIRE_VERIFIED_BEFORE_APPROVE",
        "DEFAULT_COUNTRY_CODE",
        "ALERT_BRAND",
        "FEED_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
