"""Core event service — canonical hangout writes.

Responsibilities:
- Membership checks: only members of an event's groups may change it
- Optimistic locking via the ``version`` field on updates
- Derived UTC start/end from the raw time specification
- ``Group.last_modified_at`` bumped in the same transaction (calendar ETag)
- Pointer fan-out through the projector, strictly after the commit
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.models.event import Event, EventGroup, EventVisibility
from app.models.group import Group, GroupMember
from app.models.interest import AttendanceStatus, InterestLevel
from app.models.user import User
from app.services import time_service
from app.services.pointer_projector import PointerProjector

logger = logging.getLogger(__name__)

# Fields a PUT may change; everything else on the row is owned by the service.
UPDATABLE_FIELDS = (
    "title",
    "description",
    "visibility",
    "carpool_enabled",
    "time_input",
    "location",
    "series_id",
    "ticket_link",
    "tickets_required",
    "discount_code",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def require_member(db: Session, group_id: str, user_id: str) -> GroupMember:
    member = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )
    if not member:
        raise Forbidden(f"User {user_id} is not a member of group {group_id}")
    return member


def require_event_member(db: Session, event: Event, user_id: str) -> None:
    """The actor must belong to at least one group the event is posted in."""
    found = (
        db.query(GroupMember.user_id)
        .filter(GroupMember.group_id.in_(event.group_ids), GroupMember.user_id == user_id)
        .first()
    )
    if not found:
        raise Forbidden("Only members of the event's groups may change it")


def bump_version(event: Event, at: datetime) -> None:
    """Mark the event row dirty; the mapper allocates the next version on flush."""
    event.updated_at = at


def commit_versioned(db: Session, event: Event) -> int:
    """Commit the transaction and return the version it allocated to ``event``.

    The version UPDATE is guarded by the version that was loaded, so a writer
    that lost a race gets a ``Conflict`` instead of reusing the winner's number.
    """
    event_id = event.event_id
    try:
        db.flush()
        version = event.version
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Concurrent write to event %s lost the version race", event_id)
        raise Conflict("Event was changed by another request. Re-fetch and retry.")
    return version


def touch_groups(db: Session, group_ids: Iterable[str], at: datetime) -> None:
    """Move the calendar ETag of every listed group."""
    ids = list(group_ids)
    if ids:
        db.query(Group).filter(Group.group_id.in_(ids)).update(
            {Group.last_modified_at: at}, synchronize_session=False
        )


def commit_child_change(
    db: Session,
    projector: PointerProjector,
    event: Event,
    child: Any,
    touch_calendar: bool = False,
) -> int:
    """Commit a child-record write and project just its section onto the pointers."""
    now = utcnow()
    bump_version(event, now)
    if touch_calendar:
        touch_groups(db, event.group_ids, now)
    event_id = event.event_id
    version = commit_versioned(db, event)
    projector.on_child_mutated(db, event_id, child, version)
    return version


def _parse_visibility(value: str) -> EventVisibility:
    try:
        return EventVisibility(value)
    except ValueError:
        raise ValidationFailed(f"Unknown visibility: {value}")


def _normalize_time_input(time_input: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not time_input:
        return None
    cleaned = {k: v for k, v in time_input.items() if v is not None}
    return cleaned or None


def create_event(
    db: Session,
    projector: PointerProjector,
    title: str,
    created_by: str,
    group_ids: list[str],
    description: Optional[str] = None,
    visibility: str = "invite_only",
    carpool_enabled: bool = False,
    time_input: Optional[dict[str, Any]] = None,
    location: Optional[dict[str, Any]] = None,
    series_id: Optional[str] = None,
    ticket_link: Optional[str] = None,
    tickets_required: Optional[bool] = None,
    discount_code: Optional[str] = None,
) -> Event:
    """Create a hangout in one or more groups; the creator is recorded as GOING."""
    group_ids = sorted(set(group_ids))
    if not group_ids:
        raise ValidationFailed("An event must belong to at least one group")

    creator = get_user_or_404(db, created_by)
    for group_id in group_ids:
        if not db.query(Group).filter(Group.group_id == group_id).first():
            raise NotFound(f"Group {group_id} not found")
        require_member(db, group_id, created_by)

    time_input = _normalize_time_input(time_input)
    start_utc, end_utc = time_service.convert(time_input)
    now = utcnow()

    event = Event(
        title=title,
        description=description,
        visibility=_parse_visibility(visibility),
        carpool_enabled=carpool_enabled,
        time_input=time_input,
        start_time_utc=start_utc,
        end_time_utc=end_utc,
        location=location,
        series_id=series_id,
        ticket_link=ticket_link,
        tickets_required=tickets_required,
        discount_code=discount_code,
        created_by=created_by,
        version=1,
        created_at=now,
        updated_at=now,
    )
    db.add(event)
    db.flush()

    for group_id in group_ids:
        db.add(EventGroup(event_id=event.event_id, group_id=group_id, added_at=now))
    db.add(InterestLevel(
        event_id=event.event_id,
        user_id=creator.user_id,
        user_name=creator.display_name,
        status=AttendanceStatus.going,
        created_at=now,
        responded_at=now,
    ))
    touch_groups(db, group_ids, now)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) in groups %s by user %s", title, event.event_id, group_ids, created_by)

    projector.on_event_created(db, event)
    return event


def update_event(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    actor_user_id: str,
    version: int,
    updates: dict[str, Any],
) -> Event:
    """Update an event with optimistic locking."""
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)

    if event.version != version:
        raise Conflict(f"Version mismatch: expected {event.version}, got {version}. Re-fetch and retry.")

    for field, value in updates.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "visibility" and value is not None:
            value = _parse_visibility(value)
        if field == "time_input":
            value = _normalize_time_input(value)
            event.start_time_utc, event.end_time_utc = time_service.convert(value)
        if field in ("title", "visibility", "carpool_enabled") and value is None:
            raise ValidationFailed(f"{field} cannot be cleared")
        setattr(event, field, value)

    now = utcnow()
    bump_version(event, now)
    touch_groups(db, event.group_ids, now)
    commit_versioned(db, event)
    db.refresh(event)
    logger.info("Updated event %s to version %d", event_id, event.version)

    projector.on_event_updated(db, event)
    return event


def delete_event(db: Session, projector: PointerProjector, event_id: str, actor_user_id: str) -> None:
    """Hard-delete an event and its children; only the creator may do this."""
    event = get_event_or_404(db, event_id)
    if event.created_by != actor_user_id:
        raise Forbidden("Only the creator may delete this event")

    group_ids = event.group_ids
    touch_groups(db, group_ids, utcnow())
    db.delete(event)
    commit_versioned(db, event)
    logger.info("Deleted event %s from groups %s", event_id, group_ids)

    projector.on_event_deleted(event_id, group_ids)


def associate_group(
    db: Session, projector: PointerProjector, event_id: str, group_id: str, actor_user_id: str
) -> Event:
    """Post an existing event into another group."""
    event = get_event_or_404(db, event_id)
    if not db.query(Group).filter(Group.group_id == group_id).first():
        raise NotFound("Group not found")
    require_event_member(db, event, actor_user_id)
    require_member(db, group_id, actor_user_id)
    if group_id in event.group_ids:
        raise Conflict("Event is already in this group")

    now = utcnow()
    db.add(EventGroup(event_id=event_id, group_id=group_id, added_at=now))
    bump_version(event, now)
    touch_groups(db, [group_id], now)
    commit_versioned(db, event)
    db.refresh(event)
    logger.info("Added event %s to group %s", event_id, group_id)

    projector.on_event_updated(db, event)
    return event


def disassociate_group(
    db: Session, projector: PointerProjector, event_id: str, group_id: str, actor_user_id: str
) -> Event:
    """Remove an event from one of its groups; an event always keeps at least one."""
    event = get_event_or_404(db, event_id)
    link = (
        db.query(EventGroup)
        .filter(EventGroup.event_id == event_id, EventGroup.group_id == group_id)
        .first()
    )
    if not link:
        raise NotFound("Event is not in this group")
    require_member(db, group_id, actor_user_id)
    if len(event.group_ids) == 1:
        raise ValidationFailed("An event must belong to at least one group")

    now = utcnow()
    db.delete(link)
    bump_version(event, now)
    touch_groups(db, [group_id], now)
    commit_versioned(db, event)
    db.refresh(event)
    logger.info("Removed event %s from group %s", event_id, group_id)

    projector.on_event_disassociated(event_id, group_id)
    return event
