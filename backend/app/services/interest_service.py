"""Attendance answers (GOING / INTERESTED / NOT_GOING) for a hangout.

Attendance changes the going count rendered in calendar feeds, so these writes
also move the calendar ETag of every group the event is in.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import NotFound, ValidationFailed
from app.models.interest import AttendanceStatus, InterestLevel
from app.services.event_service import (
    commit_child_change, get_event_or_404, get_user_or_404, require_event_member, utcnow,
)
from app.services.pointer_projector import PointerProjector

logger = logging.getLogger(__name__)


def set_interest(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    user_id: str,
    status: str,
    notes: Optional[str] = None,
) -> InterestLevel:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, user_id)
    user = get_user_or_404(db, user_id)
    try:
        answer = AttendanceStatus(status.upper())
    except ValueError:
        raise ValidationFailed(f"Unknown attendance status: {status}")

    now = utcnow()
    level = (
        db.query(InterestLevel)
        .filter(InterestLevel.event_id == event_id, InterestLevel.user_id == user_id)
        .first()
    )
    if level is None:
        level = InterestLevel(event_id=event_id, user_id=user_id, user_name=user.display_name, created_at=now)
        db.add(level)
    level.status = answer
    level.notes = notes
    level.responded_at = now

    commit_child_change(db, projector, event, level, touch_calendar=True)
    logger.info("User %s is %s for event %s", user_id, answer.value, event_id)
    return (
        db.query(InterestLevel)
        .filter(InterestLevel.event_id == event_id, InterestLevel.user_id == user_id)
        .first()
    )


def clear_interest(db: Session, projector: PointerProjector, event_id: str, user_id: str) -> None:
    event = get_event_or_404(db, event_id)
    level = (
        db.query(InterestLevel)
        .filter(InterestLevel.event_id == event_id, InterestLevel.user_id == user_id)
        .first()
    )
    if not level:
        raise NotFound("Attendance answer not found")
    db.delete(level)
    commit_child_change(db, projector, event, level, touch_calendar=True)
    logger.info("User %s cleared their attendance for event %s", user_id, event_id)
