"""Pydantic schemas for the group feed."""
from __future__ import annotations
from typing import Any, Optional
from pydantic import BaseModel, Field

from app.services.projection import AttributeView, CarView, InterestView, NeedsRideView, PollView


class PointerOut(BaseModel):
    """One feed item, rendered straight from an event pointer row."""

    event_id: str
    title: str
    description: Optional[str] = None
    visibility: Optional[str] = None
    carpool_enabled: bool
    time_input: Optional[dict[str, Any]] = None
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    location: Optional[dict[str, Any]] = None
    series_id: Optional[str] = None
    ticket_link: Optional[str] = None
    tickets_required: Optional[bool] = None
    discount_code: Optional[str] = None
    participant_count: int
    polls: list[PollView]
    cars: list[CarView]
    needs_ride: list[NeedsRideView]
    attributes: list[AttributeView]
    interest_levels: list[InterestView]
    version: int

    model_config = {"from_attributes": True}


class FeedOut(BaseModel):
    group_id: str
    scheduled: list[PointerOut] = []
    unscheduled: list[PointerOut] = []
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    prev_cursor: Optional[str] = Field(None, alias="prevCursor")

    # Cursors go out as nextCursor / prevCursor, matching the startingAfter / endingBefore query names.
    model_config = {"populate_by_name": True}
