"""EventPointer and PointerRepair ORM models — the per-group feed projection.

One EventPointer row exists per (group, event) association. Its fields are
written only from ``app.services.projection`` output; ``version`` holds the
canonical event version that was projected and guards against regressions.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, BigInteger, DateTime, JSON, Index, UniqueConstraint,
)
from sqlalchemy.sql import func
from app.database import Base

POINTER_SCHEMA_VERSION = 1


class EventPointer(Base):
    __tablename__ = "event_pointers"
    __table_args__ = (
        # Time-ordering index: group partition, start key, event id tie-break.
        Index("ix_event_pointers_group_time", "group_id", "start_timestamp", "event_id"),
        Index("ix_event_pointers_event", "event_id"),
    )

    group_id = Column(String(36), primary_key=True)
    event_id = Column(String(36), primary_key=True)

    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    visibility = Column(String(20), nullable=True)
    carpool_enabled = Column(Boolean, nullable=True)
    time_input = Column(JSON, nullable=True)
    start_timestamp = Column(BigInteger, nullable=True)  # epoch seconds, NULL = unscheduled
    end_timestamp = Column(BigInteger, nullable=True)
    location = Column(JSON, nullable=True)
    series_id = Column(String(36), nullable=True)
    ticket_link = Column(String(500), nullable=True)
    tickets_required = Column(Boolean, nullable=True)
    discount_code = Column(String(100), nullable=True)

    participant_count = Column(Integer, nullable=True)
    polls = Column(JSON, nullable=True)
    cars = Column(JSON, nullable=True)
    needs_ride = Column(JSON, nullable=True)
    attributes = Column(JSON, nullable=True)
    interest_levels = Column(JSON, nullable=True)

    version = Column(Integer, nullable=False, default=0)
    schema_version = Column(Integer, nullable=False, default=POINTER_SCHEMA_VERSION)
    projected_at = Column(DateTime(timezone=True), nullable=True)


class PointerRepair(Base):
    """Queue of pointers whose last write failed; presence marks the pointer STALE."""

    __tablename__ = "pointer_repairs"
    __table_args__ = (UniqueConstraint("group_id", "event_id", name="uq_pointer_repairs_pointer"),)

    repair_id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(String(36), nullable=False)
    event_id = Column(String(36), nullable=False)
    reason = Column(String(500), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
