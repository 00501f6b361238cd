"""Database models."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionRecord(Base):
    """Session document keyed by session id."""

    __tablename__ = "chat_sessions"

    id = Column(String, primary_key=True)
    owner = Column(String, index=True, nullable=False)
    mode = Column(String, default="recommendation", nullable=False)  # recommendation, ordering
    messages = Column(JSON, default=list, nullable=False)  # List of ChatMessage dicts
    draft = Column(JSON, nullable=True)  # OrderDraft dict
    draft_sequence = Column(Integer, default=0, nullable=False)
    version = Column(Integer, default=0, nullable=False)  # Bumped on every write
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class SubmittedOrderRecord(Base):
    """Submitted order document keyed by order id."""

    __tablename__ = "submitted_orders"

    id = Column(String, primary_key=True)
    session_id = Column(String, index=True, nullable=False)
    draft_id = Column(String, unique=True, nullable=False)  # One order per draft
    owner = Column(String, index=True, nullable=False)
    items = Column(JSON, nullable=False)  # List of OrderLineItem dicts
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, default=0.0, nullable=False)
    total = Column(Float, nullable=False)
    summary = Column(Text, nullable=False)
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
