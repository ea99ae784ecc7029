"""Group feed query engine — reads pointers only.

A page is built from one range query over the (group_id, start_timestamp,
event_id) index plus one bounded query for the group's unscheduled pointers.
Canonical event tables are never touched here; every field comes from the
pointer row. Rows that fail validation are skipped and logged so one bad
projection cannot take the whole feed down.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Forbidden, InvalidCursor, NotFound, ValidationFailed
from app.models.group import Group, GroupMember
from app.models.pointer import EventPointer, POINTER_SCHEMA_VERSION
from app.schemas.feed import FeedOut, PointerOut
from app.services.pagination import CursorDirection, FeedCursor, decode_cursor, encode_cursor
from app.services.time_service import to_epoch_seconds

logger = logging.getLogger(__name__)


def _require_reader(db: Session, group_id: str, user_id: Optional[str]) -> Group:
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise NotFound("Group not found")
    if group.is_public:
        return group
    member = None
    if user_id:
        member = (
            db.query(GroupMember)
            .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
            .first()
        )
    if member is None:
        raise Forbidden("Only group members can read this feed")
    return group


def _decode(value: str, expected: CursorDirection) -> FeedCursor:
    cursor = decode_cursor(value)
    if cursor.direction != expected:
        raise InvalidCursor("Pagination cursor was issued for the other direction")
    return cursor


def _cursor_at(row: EventPointer, direction: CursorDirection) -> str:
    return encode_cursor(FeedCursor(start_timestamp=row.start_timestamp, event_id=row.event_id, direction=direction))


def _render(row: EventPointer) -> Optional[PointerOut]:
    if row.schema_version != POINTER_SCHEMA_VERSION:
        logger.warning(
            "Skipping pointer for group %s and event %s: schema version %s",
            row.group_id, row.event_id, row.schema_version,
        )
        return None
    try:
        return PointerOut.model_validate(row)
    except ValidationError as exc:
        logger.warning(
            "Skipping malformed pointer for group %s and event %s: %d validation errors",
            row.group_id, row.event_id, exc.error_count(),
        )
        return None


def _render_all(rows: list[EventPointer]) -> list[PointerOut]:
    return [item for item in (_render(row) for row in rows) if item is not None]


def get_feed(
    db: Session,
    group_id: str,
    requesting_user_id: Optional[str],
    limit: Optional[int] = None,
    starting_after: Optional[str] = None,
    ending_before: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FeedOut:
    """One page of the group's upcoming events plus its unscheduled events."""
    _require_reader(db, group_id, requesting_user_id)
    if starting_after and ending_before:
        raise ValidationFailed("startingAfter and endingBefore cannot be combined")

    limit = min(max(limit or settings.FEED_DEFAULT_LIMIT, 1), settings.FEED_MAX_LIMIT)
    now_ts = to_epoch_seconds(now or datetime.now(timezone.utc))
    ts, event_id = EventPointer.start_timestamp, EventPointer.event_id

    upcoming = db.query(EventPointer).filter(
        EventPointer.group_id == group_id,
        ts.isnot(None),
        ts >= now_ts,
    )

    next_cursor = prev_cursor = None
    if ending_before:
        cursor = _decode(ending_before, CursorDirection.backward)
        rows = (
            upcoming.filter(or_(ts < cursor.start_timestamp, and_(ts == cursor.start_timestamp, event_id < cursor.event_id)))
            .order_by(ts.desc(), event_id.desc())
            .limit(limit + 1)
            .all()
        )
        has_more = len(rows) > limit
        rows = list(reversed(rows[:limit]))
        if rows:
            next_cursor = _cursor_at(rows[-1], CursorDirection.forward)
            if has_more:
                prev_cursor = _cursor_at(rows[0], CursorDirection.backward)
    else:
        cursor = _decode(starting_after, CursorDirection.forward) if starting_after else None
        query = upcoming
        if cursor is not None:
            query = query.filter(
                or_(ts > cursor.start_timestamp, and_(ts == cursor.start_timestamp, event_id > cursor.event_id))
            )
        rows = query.order_by(ts.asc(), event_id.asc()).limit(limit + 1).all()
        has_more = len(rows) > limit
        rows = rows[:limit]
        if rows:
            if has_more:
                next_cursor = _cursor_at(rows[-1], CursorDirection.forward)
            if cursor is not None:
                prev_cursor = _cursor_at(rows[0], CursorDirection.backward)

    unscheduled = (
        db.query(EventPointer)
        .filter(EventPointer.group_id == group_id, ts.is_(None))
        .order_by(event_id)
        .limit(settings.FEED_UNSCHEDULED_LIMIT)
        .all()
    )

    logger.debug("Feed page for group %s: %d scheduled, %d unscheduled", group_id, len(rows), len(unscheduled))
    return FeedOut(
        group_id=group_id,
        scheduled=_render_all(rows),
        unscheduled=_render_all(unscheduled),
        next_cursor=next_cursor,
        prev_cursor=prev_cursor,
    )
