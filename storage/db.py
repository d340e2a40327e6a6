"""Database helpers – SQLite by default, Postgres via DATABASE_URL."""

from __future__ import annotations

import json
import logging
import math
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, Sequence

from sqlalchemy import create_engine, func, insert, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from storage.models import (
    AlertRow,
    Base,
    Report,
    ReportRow,
    Subscriber,
    SubscriptionRow,
)

log = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """The persistence layer failed or is unavailable."""


class ReportStateError(RuntimeError):
    """A moderation transition is not allowed for the report's current state."""


@dataclass(frozen=True)
class RecordResult:
    created: bool


# ── Engine / session factory ─────────────────────────────────────────

_engine = None
_SessionFactory: sessionmaker[Session] | None = None


def _get_database_url() -> str:
    """Return the DB URL.  Postgres swap: set DATABASE_URL env var."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    db_path = os.getenv("SQLITE_PATH", "incident_alerts.db")
    return f"sqlite:///{db_path}"


def init_db(url: str | None = None) -> None:
    """Create engine, session factory, and tables (idempotent)."""
    global _engine, _SessionFactory
    url = url or _get_database_url()
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    _engine = create_engine(url, echo=False, connect_args=connect_args)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)
    Base.metadata.create_all(_engine)
    log.info("Database initialised (%s)", url.split("///")[0] + "///…")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Provide a transactional session scope.

    Driver and ORM failures surface as StoreError.
    """
    if _SessionFactory is None:
        raise StoreError("Call init_db() first")
    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ── Alerts ───────────────────────────────────────────────────────────


def _insert_alert_if_absent(session: Session, values: dict) -> bool:
    """Insert one alert row unless its text already exists.  True if inserted."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    else:
        dialect_insert = None

    if dialect_insert is not None:
        stmt = (
            dialect_insert(AlertRow)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["text"])
        )
        return session.execute(stmt).rowcount == 1

    # Other backends: rely on the unique constraint.
    try:
        session.execute(insert(AlertRow).values(**values))
        session.flush()
    except IntegrityError:
        session.rollback()
        return False
    return True


def record_if_new(text: str, url: str = "", timestamp: datetime | None = None) -> RecordResult:
    """Persist an alert unless one with the exact same *text* already exists."""
    values = {"text": text, "url": url or "", "timestamp": timestamp or _utcnow()}
    with get_session() as session:
        created = _insert_alert_if_absent(session, values)
    if created:
        log.debug("Recorded alert: %s", text[:80])
    else:
        log.debug("Alert already stored: %s", text[:80])
    return RecordResult(created=created)


def list_alerts() -> list[dict]:
    """All alerts, newest first."""
    with get_session() as session:
        rows = session.query(AlertRow).order_by(AlertRow.timestamp.desc(), AlertRow.id.desc()).all()
        return [row.to_dict() for row in rows]


def count_alerts() -> int:
    with get_session() as session:
        return session.query(func.count(AlertRow.id)).scalar() or 0


def delete_alert(alert_id: int) -> bool:
    with get_session() as session:
        row = session.get(AlertRow, alert_id)
        if row is None:
            return False
        session.delete(row)
    log.info("Deleted alert %d", alert_id)
    return True


# ── Subscriptions ────────────────────────────────────────────────────


def normalize_phone(phone: str, country_code: str | None = None) -> str:
    """Rewrite a local number into international form (leading '+')."""
    country_code = country_code or os.getenv("DEFAULT_COUNTRY_CODE", "+234")
    phone = str(phone).strip()
    if phone.startswith("+"):
        return phone
    if phone.startswith("0"):
        phone = phone[1:]
    return country_code + phone


def create_subscription(
    phone: str,
    location: str,
    email: str | None = None,
    method: str | None = None,
) -> Subscriber:
    row = SubscriptionRow(
        phone=normalize_phone(phone),
        email=email or None,
        location=location.strip(),
        method=method or None,
    )
    with get_session() as session:
        session.add(row)
        session.flush()
        sub = row.to_subscriber()
    log.info("New subscription %d for %r via %s", sub.id, sub.location, sub.method or "default")
    return sub


def list_subscribers() -> list[Subscriber]:
    with get_session() as session:
        return [row.to_subscriber() for row in session.query(SubscriptionRow).all()]


# ── Reports ──────────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 20


def create_report(
    title: str,
    content: str,
    location: str,
    categories: Sequence[str] = (),
    image: str = "",
) -> Report:
    """Persist a newly submitted report and return a detached copy."""
    row = ReportRow(
        external_id=f"web-{int(time.time() * 1000)}",
        title=title,
        description=content[:200],
        content=content,
        location=location,
        categories=json.dumps([c for c in categories if c]),
        image=image or "",
        verified=False,
        approved=False,
        created_at=_utcnow(),
    )
    with get_session() as session:
        session.add(row)
        session.flush()
        report = row.to_report()
    log.info("Report %d created: %s", report.id, title[:80])
    return report


def _find_report(session: Session, ident: str | int) -> ReportRow | None:
    """Look a report up by numeric primary key, then by external id."""
    ident = str(ident)
    if ident.isdigit():
        row = session.get(ReportRow, int(ident))
        if row is not None:
            return row
    return session.query(ReportRow).filter(ReportRow.external_id == ident).first()


def get_report(ident: str | int) -> Report | None:
    with get_session() as session:
        row = _find_report(session, ident)
        return row.to_report() if row else None


def verify_report(ident: str | int) -> Report | None:
    with get_session() as session:
        row = _find_report(session, ident)
        if row is None:
            return None
        row.verified = True
        return row.to_report()


def _require_verified_default() -> bool:
    return os.getenv("REQUIRE_VERIFIED_BEFORE_APPROVE", "").lower() in ("1", "true", "yes")


def approve_report(ident: str | int, require_verified: bool | None = None) -> Report | None:
    if require_verified is None:
        require_verified = _require_verified_default()
    with get_session() as session:
        row = _find_report(session, ident)
        if row is None:
            return None
        if require_verified and not row.verified:
            raise ReportStateError(f"Report {row.id} must be verified before approval")
        row.approved = True
        return row.to_report()


def delete_report(ident: str | int) -> bool:
    with get_session() as session:
        row = _find_report(session, ident)
        if row is None:
            return False
        session.delete(row)
    log.info("Deleted report %s", ident)
    return True


def search_reports(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str = "",
    location: str = "",
) -> dict:
    """Paginated report listing, newest first."""
    page = page if page > 0 else 1
    limit = limit if limit > 0 else DEFAULT_PAGE_SIZE
    with get_session() as session:
        query = session.query(ReportRow)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    ReportRow.title.ilike(pattern),
                    ReportRow.description.ilike(pattern),
                    ReportRow.content.ilike(pattern),
                    ReportRow.location.ilike(pattern),
                )
            )
        if location.strip():
            query = query.filter(ReportRow.location == location)

        total = query.count()
        rows = (
            query.order_by(ReportRow.created_at.desc(), ReportRow.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        items = [row.to_report().to_dict() for row in rows]

    return {
        "items": items,
        "totalItems": total,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
    }


def latest_reports(limit: int = 200) -> list[dict]:
    with get_session() as session:
        rows = (
            session.query(ReportRow)
            .order_by(ReportRow.created_at.desc(), ReportRow.id.desc())
            .limit(limit)
            .all()
        )
        return [row.to_report().to_dict() for row in rows]


def report_categories() -> list[str]:
    """Distinct, non-blank categories across all reports."""
    seen: set[str] = set()
    with get_session() as session:
        for (raw,) in session.query(ReportRow.categories).all():
            for cat in json.loads(raw or "[]"):
                if isinstance(cat, str) and cat.strip():
                    seen.add(cat)
    return sorted(seen)
