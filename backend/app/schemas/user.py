"""Pydantic schemas for Users."""
from datetime import datetime
from pydantic import BaseModel


class UserCreate(BaseModel):
    display_name: str


class UserOut(BaseModel):
    user_id: str
    display_name: str
    created_at: datetime

    model_config = {"from_attributes": True}
