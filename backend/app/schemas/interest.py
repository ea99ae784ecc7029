"""Pydantic schemas for attendance answers."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class InterestSet(BaseModel):
    user_id: str
    status: str
    notes: Optional[str] = None


class InterestOut(BaseModel):
    event_id: str
    user_id: str
    user_name: str
    status: str
    notes: Optional[str] = None
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
