"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class TimeInput(BaseModel):
    """Exact (start_time/end_time) or fuzzy (period_granularity/period_start) time."""

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    period_granularity: Optional[str] = None
    period_start: Optional[str] = None


class EventCreate(BaseModel):
    title: str
    created_by: str
    group_ids: list[str]
    description: Optional[str] = None
    visibility: str = "invite_only"
    carpool_enabled: bool = False
    time_input: Optional[TimeInput] = None
    location: Optional[dict[str, Any]] = None
    series_id: Optional[str] = None
    ticket_link: Optional[str] = None
    tickets_required: Optional[bool] = None
    discount_code: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[str] = None
    carpool_enabled: Optional[bool] = None
    time_input: Optional[TimeInput] = None
    location: Optional[dict[str, Any]] = None
    series_id: Optional[str] = None
    ticket_link: Optional[str] = None
    tickets_required: Optional[bool] = None
    discount_code: Optional[str] = None
    version: int  # required for optimistic locking


class EventOut(BaseModel):
    event_id: str
    title: str
    description: Optional[str] = None
    visibility: str
    carpool_enabled: bool
    time_input: Optional[dict[str, Any]] = None
    start_time_utc: Optional[datetime] = None
    end_time_utc: Optional[datetime] = None
    location: Optional[dict[str, Any]] = None
    series_id: Optional[str] = None
    ticket_link: Optional[str] = None
    tickets_required: Optional[bool] = None
    discount_code: Optional[str] = None
    created_by: str
    group_ids: list[str] = []
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
