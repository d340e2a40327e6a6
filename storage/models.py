"""SQLAlchemy models and shared data classes for incident_alerts."""

from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# ── ORM base ────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


class AlertRow(Base):
    """A feed item that matched a keyword (one row per distinct title)."""

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    url = Column(String(2048), nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("text", name="uq_alerts_text"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "url": self.url,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self) -> str:
        return f"<AlertRow id={self.id} text={self.text!r:.40}>"


class SubscriptionRow(Base):
    """A recipient registered for location-based notifications."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(32), nullable=False)
    email = Column(String(320), nullable=True)
    location = Column(String(256), nullable=False)
    method = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def to_subscriber(self) -> Subscriber:
        return Subscriber(
            id=self.id,
            phone=self.phone,
            email=self.email,
            location=self.location,
            method=self.method,
        )


class ReportRow(Base):
    """A community-submitted incident report."""

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(64), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    location = Column(String(256), nullable=False)
    categories = Column(Text, nullable=False, default="[]")  # JSON-encoded list
    image = Column(String(2048), nullable=False, default="")
    verified = Column(Boolean, nullable=False, default=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def to_report(self) -> Report:
        return Report(
            id=self.id,
            external_id=self.external_id,
            title=self.title,
            description=self.description or "",
            content=self.content or "",
            location=self.location,
            categories=json.loads(self.categories or "[]"),
            image=self.image or "",
            verified=bool(self.verified),
            approved=bool(self.approved),
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<ReportRow id={self.id} title={self.title!r:.40}>"


# ── Plain data classes used outside the session scope ────────────────
@dataclass
class FeedItem:
    title: str
    link: str
    description: str


@dataclass
class Subscriber:
    id: Optional[int]
    phone: str
    email: Optional[str]
    location: str
    method: Optional[str] = None


@dataclass
class Report:
    title: str
    location: str
    content: str = ""
    description: str = ""
    categories: list[str] = field(default_factory=list)
    id: Optional[int] = None
    external_id: Optional[str] = None
    image: str = ""
    verified: bool = False
    approved: bool = False
    created_at: Optional[dt.datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "location": self.location,
            "categories": self.categories,
            "image": self.image,
            "verified": self.verified,
            "approved": self.approved,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
