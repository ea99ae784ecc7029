"""EventAttribute ORM model — free-form name/value pairs on a hangout."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base


class EventAttribute(Base):
    __tablename__ = "event_attributes"
    __table_args__ = (UniqueConstraint("event_id", "name", name="uq_event_attributes_name"),)

    attribute_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)  # NULL / blank = undecided
    created_at = Column(DateTime(timezone=True), server_default=func.now())
