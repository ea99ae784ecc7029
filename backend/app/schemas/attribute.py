"""Pydantic schemas for event attributes."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class AttributeCreate(BaseModel):
    name: str
    value: Optional[str] = None


class AttributeUpdate(BaseModel):
    name: Optional[str] = None
    value: Optional[str] = None


class AttributeOut(BaseModel):
    attribute_id: str
    event_id: str
    name: str
    value: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
