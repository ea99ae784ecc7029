"""RFC 5545 encoding of a group's pointers for calendar subscriptions."""
import logging
from datetime import datetime, timezone
from typing import Optional

from icalendar import Calendar, Event as ICalEvent

from app.config import settings
from app.models.group import Group
from app.models.pointer import EventPointer

logger = logging.getLogger(__name__)

UID_DOMAIN = "groupfeed.app"


def _instant(epoch_seconds: Optional[int]) -> Optional[datetime]:
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def build_description(pointer: EventPointer) -> str:
    """Event description followed by the number of people going."""
    parts = []
    if pointer.description and pointer.description.strip():
        parts.append(pointer.description)
    going = pointer.participant_count or 0
    if going > 0:
        parts.append(f"{going} {'person' if going == 1 else 'people'} going")
    return "\n\n".join(parts)


def _vevent(pointer: EventPointer, stamp: datetime) -> ICalEvent:
    vevent = ICalEvent()
    vevent.add("uid", f"{pointer.event_id}@{UID_DOMAIN}")
    vevent.add("dtstamp", stamp)
    if pointer.title:
        vevent.add("summary", pointer.title)
    start = _instant(pointer.start_timestamp)
    if start is not None:
        vevent.add("dtstart", start)
    end = _instant(pointer.end_timestamp)
    if end is not None:
        vevent.add("dtend", end)
    vevent.add("description", build_description(pointer))
    location = pointer.location if isinstance(pointer.location, dict) else None
    if location and location.get("name"):
        vevent.add("location", location["name"])
    vevent.add("status", "CONFIRMED")
    vevent.add("sequence", 0)
    return vevent


def encode_calendar(group: Group, pointers: list[EventPointer], now: Optional[datetime] = None) -> str:
    """Render ``pointers`` as one VCALENDAR document named after ``group``."""
    stamp = now or datetime.now(timezone.utc)
    calendar = Calendar()
    calendar.add("prodid", settings.CALENDAR_PRODUCT_ID)
    calendar.add("version", "2.0")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", group.name)
    calendar.add("x-wr-timezone", settings.CALENDAR_TIMEZONE)
    calendar.add("x-wr-caldesc", f"Hangouts for {group.name} group")

    for pointer in pointers:
        try:
            calendar.add_component(_vevent(pointer, stamp))
        except (TypeError, ValueError) as exc:
            logger.warning("Leaving event %s out of the calendar for group %s: %s",
                           pointer.event_id, group.group_id, exc)

    logger.debug("Encoded %d events for group %s", len(calendar.subcomponents), group.group_id)
    return calendar.to_ical().decode("utf-8")
