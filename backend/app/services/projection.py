"""Projection function — canonical event + children → denormalized pointer fields.

This module is the only place that decides what a pointer contains. Event
creation, event updates, child mutations and the reconciliation sweep all call
``project`` or ``project_section``; nothing else assembles pointer values.

Everything here is pure: no session, no clock. Children are sorted by
(created_at, id) so the same canonical state always yields byte-identical
``PointerFields.model_dump_json()`` output.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from app.services.time_service import to_epoch_seconds


class PointerSection(str, enum.Enum):
    polls = "polls"
    carpool = "carpool"
    attributes = "attributes"
    interest = "interest"


# Pointer columns owned by each section; a child mutation rewrites exactly these.
SECTION_COLUMNS: dict[PointerSection, tuple[str, ...]] = {
    PointerSection.polls: ("polls",),
    PointerSection.carpool: ("cars", "needs_ride"),
    PointerSection.attributes: ("attributes",),
    PointerSection.interest: ("interest_levels", "participant_count"),
}


class PollOptionView(BaseModel):
    option_id: str
    text: str
    vote_count: int
    voter_ids: list[str]

    model_config = {"frozen": True}


class PollView(BaseModel):
    poll_id: str
    title: str
    description: Optional[str] = None
    multiple_choice: bool
    total_votes: int
    options: list[PollOptionView]

    model_config = {"frozen": True}


class RiderView(BaseModel):
    rider_id: str
    rider_name: str
    plus_one_count: int
    notes: Optional[str] = None

    model_config = {"frozen": True}


class CarView(BaseModel):
    driver_id: str
    driver_name: str
    total_capacity: int
    available_seats: int
    notes: Optional[str] = None
    riders: list[RiderView]

    model_config = {"frozen": True}


class NeedsRideView(BaseModel):
    user_id: str
    notes: Optional[str] = None

    model_config = {"frozen": True}


class AttributeView(BaseModel):
    attribute_id: str
    name: str
    value: Optional[str] = None

    model_config = {"frozen": True}


class InterestView(BaseModel):
    user_id: str
    user_name: str
    status: str
    notes: Optional[str] = None

    model_config = {"frozen": True}


class PointerFields(BaseModel):
    """Every feed-rendering field of a pointer, minus the group partition key."""

    event_id: str
    title: str
    description: Optional[str] = None
    visibility: Optional[str] = None
    carpool_enabled: bool = False
    time_input: Optional[dict[str, Any]] = None
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    location: Optional[dict[str, Any]] = None
    series_id: Optional[str] = None
    ticket_link: Optional[str] = None
    tickets_required: Optional[bool] = None
    discount_code: Optional[str] = None
    participant_count: int = 0
    polls: list[PollView] = []
    cars: list[CarView] = []
    needs_ride: list[NeedsRideView] = []
    attributes: list[AttributeView] = []
    interest_levels: list[InterestView] = []

    model_config = {"frozen": True}

    def to_row(self) -> dict[str, Any]:
        """Column values for an ``EventPointer`` row (JSON-safe)."""
        return self.model_dump(mode="json", exclude={"event_id"})


@dataclass
class EventChildren:
    """Canonical child records of one event, as loaded by the write path."""

    polls: list = field(default_factory=list)
    poll_options: list = field(default_factory=list)
    votes: list = field(default_factory=list)
    cars: list = field(default_factory=list)
    car_riders: list = field(default_factory=list)
    needs_ride: list = field(default_factory=list)
    attributes: list = field(default_factory=list)
    interest_levels: list = field(default_factory=list)


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _created_key(record: Any, *id_attrs: str) -> tuple:
    created: Optional[datetime] = getattr(record, "created_at", None)
    stamp = created.replace(tzinfo=None).isoformat() if created is not None else ""
    return (stamp, *(str(getattr(record, attr)) for attr in id_attrs))


def project_polls(polls: list, options: list, votes: list) -> list[PollView]:
    """Nest options under polls and tally votes per option."""
    voters_by_option: dict[str, list[str]] = {}
    for vote in sorted(votes, key=lambda v: _created_key(v, "user_id", "vote_id")):
        voters_by_option.setdefault(vote.option_id, []).append(vote.user_id)

    options_by_poll: dict[str, list] = {}
    for option in sorted(options, key=lambda o: _created_key(o, "option_id")):
        options_by_poll.setdefault(option.poll_id, []).append(option)

    views = []
    for poll in sorted(polls, key=lambda p: _created_key(p, "poll_id")):
        option_views = [
            PollOptionView(
                option_id=option.option_id,
                text=option.text,
                vote_count=len(voters_by_option.get(option.option_id, [])),
                voter_ids=voters_by_option.get(option.option_id, []),
            )
            for option in options_by_poll.get(poll.poll_id, [])
        ]
        views.append(PollView(
            poll_id=poll.poll_id,
            title=poll.title,
            description=poll.description,
            multiple_choice=bool(poll.multiple_choice),
            total_votes=sum(o.vote_count for o in option_views),
            options=option_views,
        ))
    return views


def project_carpool(cars: list, riders: list, needs_ride: list) -> tuple[list[CarView], list[NeedsRideView]]:
    """Group riders under their driver's car and derive the remaining seats."""
    riders_by_driver: dict[str, list] = {}
    for rider in sorted(riders, key=lambda r: _created_key(r, "rider_id")):
        riders_by_driver.setdefault(rider.driver_id, []).append(rider)

    car_views = []
    for car in sorted(cars, key=lambda c: _created_key(c, "driver_id")):
        car_riders = riders_by_driver.get(car.driver_id, [])
        taken = sum(1 + (r.plus_one_count or 0) for r in car_riders)
        car_views.append(CarView(
            driver_id=car.driver_id,
            driver_name=car.driver_name,
            total_capacity=car.total_capacity,
            available_seats=max(car.total_capacity - 1 - taken, 0),
            notes=car.notes,
            riders=[
                RiderView(
                    rider_id=r.rider_id,
                    rider_name=r.rider_name,
                    plus_one_count=r.plus_one_count or 0,
                    notes=r.notes,
                )
                for r in car_riders
            ],
        ))

    ride_views = [
        NeedsRideView(user_id=n.user_id, notes=n.notes)
        for n in sorted(needs_ride, key=lambda n: _created_key(n, "user_id"))
    ]
    return car_views, ride_views


def project_attributes(attributes: list) -> list[AttributeView]:
    return [
        AttributeView(attribute_id=a.attribute_id, name=a.name, value=a.value)
        for a in sorted(attributes, key=lambda a: _created_key(a, "attribute_id"))
    ]


def project_interest(levels: list) -> tuple[list[InterestView], int]:
    """Attendance list plus the cached count of GOING answers."""
    views = [
        InterestView(
            user_id=level.user_id,
            user_name=level.user_name,
            status=_enum_value(level.status),
            notes=level.notes,
        )
        for level in sorted(levels, key=lambda lv: _created_key(lv, "user_id"))
    ]
    going = sum(1 for v in views if v.status == "GOING")
    return views, going


def project_section(section: PointerSection, children: EventChildren) -> dict[str, Any]:
    """JSON-ready column values for one section of the pointer."""
    if section == PointerSection.polls:
        polls = project_polls(children.polls, children.poll_options, children.votes)
        return {"polls": [p.model_dump(mode="json") for p in polls]}
    if section == PointerSection.carpool:
        cars, needs_ride = project_carpool(children.cars, children.car_riders, children.needs_ride)
        return {
            "cars": [c.model_dump(mode="json") for c in cars],
            "needs_ride": [n.model_dump(mode="json") for n in needs_ride],
        }
    if section == PointerSection.attributes:
        return {"attributes": [a.model_dump(mode="json") for a in project_attributes(children.attributes)]}
    if section == PointerSection.interest:
        levels, going = project_interest(children.interest_levels)
        return {
            "interest_levels": [lv.model_dump(mode="json") for lv in levels],
            "participant_count": going,
        }
    raise ValueError(f"Unknown pointer section: {section}")


def project(event: Any, children: EventChildren) -> PointerFields:
    """Build the full pointer projection of ``event``."""
    values: dict[str, Any] = {
        "event_id": event.event_id,
        "title": event.title,
        "description": event.description,
        "visibility": _enum_value(event.visibility),
        "carpool_enabled": bool(event.carpool_enabled),
        "time_input": event.time_input,
        "start_timestamp": to_epoch_seconds(event.start_time_utc),
        "end_timestamp": to_epoch_seconds(event.end_time_utc),
        "location": event.location,
        "series_id": event.series_id,
        "ticket_link": event.ticket_link,
        "tickets_required": event.tickets_required,
        "discount_code": event.discount_code,
    }
    for section in PointerSection:
        values.update(project_section(section, children))
    return PointerFields(**values)
