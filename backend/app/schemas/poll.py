"""Pydantic schemas for polls and votes."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class PollCreate(BaseModel):
    title: str
    description: Optional[str] = None
    multiple_choice: bool = False
    options: list[str] = []


class PollOptionCreate(BaseModel):
    text: str


class PollOptionOut(BaseModel):
    option_id: str
    poll_id: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PollOut(BaseModel):
    poll_id: str
    event_id: str
    title: str
    description: Optional[str] = None
    multiple_choice: bool
    created_at: datetime
    options: list[PollOptionOut] = []

    model_config = {"from_attributes": True}


class VoteOut(BaseModel):
    vote_id: str
    poll_id: str
    option_id: str
    user_id: str
    created_at: datetime

    model_config = {"from_attributes": True}
