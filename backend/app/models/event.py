"""Canonical Event (hangout) ORM model and its group associations."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, Integer, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class EventVisibility(str, enum.Enum):
    invite_only = "invite_only"
    public = "public"


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    visibility = Column(SAEnum(EventVisibility), nullable=False, default=EventVisibility.invite_only)
    carpool_enabled = Column(Boolean, nullable=False, default=False)
    time_input = Column(JSON, nullable=True)  # raw exact or fuzzy time specification
    start_time_utc = Column(DateTime(timezone=True), nullable=True)  # NULL = unscheduled
    end_time_utc = Column(DateTime(timezone=True), nullable=True)
    location = Column(JSON, nullable=True)
    series_id = Column(String(36), nullable=True)
    ticket_link = Column(String(500), nullable=True)
    tickets_required = Column(Boolean, nullable=True)
    discount_code = Column(String(100), nullable=True)
    created_by = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    groups = relationship("EventGroup", back_populates="event", cascade="all, delete-orphan")
    polls = relationship("Poll", cascade="all, delete-orphan")
    cars = relationship("Car", cascade="all, delete-orphan")
    car_riders = relationship("CarRider", cascade="all, delete-orphan")
    needs_ride = relationship("NeedsRide", cascade="all, delete-orphan")
    attributes = relationship("EventAttribute", cascade="all, delete-orphan")
    interest_levels = relationship("InterestLevel", cascade="all, delete-orphan")

    # Every flush of this row runs UPDATE ... WHERE version = <loaded>, SET version + 1.
    __mapper_args__ = {"version_id_col": version}

    @property
    def group_ids(self) -> list[str]:
        return sorted(link.group_id for link in self.groups)


class EventGroup(Base):
    __tablename__ = "event_groups"

    event_id = Column(String(36), ForeignKey("events.event_id"), primary_key=True)
    group_id = Column(String(36), ForeignKey("groups.group_id"), primary_key=True, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="groups")
