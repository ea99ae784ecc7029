"""Calendar feed cache — token validation, ETag short-circuit, ICS rendering.

The ETag is derived from ``Group.last_modified_at``, which every canonical write
that changes the group's calendar bumps inside its own transaction. A client
presenting the current ETag gets a 304 without any pointer being read.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Forbidden, NotFound
from app.models.group import Group, GroupMember
from app.models.pointer import EventPointer
from app.services.ics_encoder import encode_calendar
from app.services.time_service import to_epoch_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarNotModified:
    etag: str


@dataclass(frozen=True)
class CalendarBody:
    body: str
    etag: str


CalendarResult = Union[CalendarNotModified, CalendarBody]


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def mask_token(token: str) -> str:
    return f"{token[:8]}..."


def compute_etag(group: Group) -> str:
    """Quoted ``<group_id>-<last modified epoch microseconds>``; 0 when the group never changed."""
    modified = group.last_modified_at
    micros = 0
    if modified is not None:
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        micros = (modified - _EPOCH) // timedelta(microseconds=1)
    return f'"{group.group_id}-{micros}"'


def cache_control() -> str:
    return f"public, max-age={settings.CALENDAR_CACHE_MAX_AGE_MINUTES * 60}, must-revalidate"


def _validate_token(db: Session, group_id: str, token: str) -> GroupMember:
    membership = db.query(GroupMember).filter(GroupMember.calendar_token == token).first()
    if membership is None:
        raise Forbidden("Invalid subscription token")
    if membership.group_id != group_id:
        raise Forbidden("Token does not match group")
    return membership


def get_calendar_feed(
    db: Session,
    group_id: str,
    token: str,
    client_etag: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CalendarResult:
    """Resolve a calendar subscription request to a 304 marker or an ICS body."""
    logger.debug("Calendar feed requested for group %s with token %s", group_id, mask_token(token))
    membership = _validate_token(db, group_id, token)

    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise NotFound("Group not found")

    etag = compute_etag(group)
    if client_etag and client_etag == etag:
        logger.debug("Calendar feed for group %s not modified", group_id)
        return CalendarNotModified(etag=etag)

    now = now or datetime.now(timezone.utc)
    pointers = (
        db.query(EventPointer)
        .filter(
            EventPointer.group_id == group_id,
            EventPointer.start_timestamp.isnot(None),
            EventPointer.start_timestamp >= to_epoch_seconds(now),
        )
        .order_by(EventPointer.start_timestamp, EventPointer.event_id)
        .limit(settings.CALENDAR_MAX_EVENTS)
        .all()
    )
    body = encode_calendar(group, pointers, now)
    logger.info("Served calendar for group %s to user %s with %d events", group_id, membership.user_id, len(pointers))
    return CalendarBody(body=body, etag=etag)
