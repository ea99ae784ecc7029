"""InterestLevel ORM model — a user's attendance answer for a hangout."""
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base


class AttendanceStatus(str, enum.Enum):
    going = "GOING"
    interested = "INTERESTED"
    not_going = "NOT_GOING"


class InterestLevel(Base):
    __tablename__ = "interest_levels"

    event_id = Column(String(36), ForeignKey("events.event_id"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    user_name = Column(String(100), nullable=False)
    status = Column(SAEnum(AttendanceStatus), nullable=False, default=AttendanceStatus.interested)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)
