"""Attribute service — free-form name/value details on a hangout."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import Conflict, NotFound, ValidationFailed
from app.models.attribute import EventAttribute
from app.services.event_service import (
    commit_child_change, get_event_or_404, require_event_member, utcnow,
)
from app.services.pointer_projector import PointerProjector

logger = logging.getLogger(__name__)


def _get_attribute(db: Session, event_id: str, attribute_id: str) -> EventAttribute:
    attribute = (
        db.query(EventAttribute)
        .filter(EventAttribute.attribute_id == attribute_id, EventAttribute.event_id == event_id)
        .first()
    )
    if not attribute:
        raise NotFound("Attribute not found")
    return attribute


def _check_name_free(db: Session, event_id: str, name: str, attribute_id: Optional[str] = None) -> str:
    name = name.strip()
    if not name:
        raise ValidationFailed("Attribute name is required")
    query = db.query(EventAttribute).filter(EventAttribute.event_id == event_id, EventAttribute.name == name)
    if attribute_id:
        query = query.filter(EventAttribute.attribute_id != attribute_id)
    if query.first():
        raise Conflict(f"Attribute '{name}' already exists on this event")
    return name


def create_attribute(
    db: Session, projector: PointerProjector, event_id: str, actor_user_id: str, name: str, value: Optional[str] = None
) -> EventAttribute:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    name = _check_name_free(db, event_id, name)

    attribute = EventAttribute(event_id=event_id, name=name, value=value, created_at=utcnow())
    db.add(attribute)
    db.flush()
    attribute_id = attribute.attribute_id
    commit_child_change(db, projector, event, attribute)
    logger.info("Added attribute '%s' to event %s", name, event_id)
    return _get_attribute(db, event_id, attribute_id)


def update_attribute(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    attribute_id: str,
    actor_user_id: str,
    name: Optional[str] = None,
    value: Optional[str] = None,
) -> EventAttribute:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    attribute = _get_attribute(db, event_id, attribute_id)
    if name is not None:
        attribute.name = _check_name_free(db, event_id, name, attribute_id)
    attribute.value = value

    commit_child_change(db, projector, event, attribute)
    logger.info("Updated attribute %s on event %s", attribute_id, event_id)
    return _get_attribute(db, event_id, attribute_id)


def delete_attribute(
    db: Session, projector: PointerProjector, event_id: str, attribute_id: str, actor_user_id: str
) -> None:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    attribute = _get_attribute(db, event_id, attribute_id)
    db.delete(attribute)
    commit_child_change(db, projector, event, attribute)
    logger.info("Deleted attribute %s from event %s", attribute_id, event_id)
