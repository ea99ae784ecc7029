"""Pydantic schemas for carpooling."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CarOffer(BaseModel):
    driver_id: str
    total_capacity: int = Field(..., ge=1, description="Seats including the driver")
    notes: Optional[str] = None


class CarOut(BaseModel):
    event_id: str
    driver_id: str
    driver_name: str
    total_capacity: int
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RiderJoin(BaseModel):
    rider_id: str
    plus_one_count: int = Field(0, ge=0)
    notes: Optional[str] = None


class RiderOut(BaseModel):
    event_id: str
    driver_id: str
    rider_id: str
    rider_name: str
    plus_one_count: int
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class RideRequest(BaseModel):
    user_id: str
    notes: Optional[str] = None


class RideRequestOut(BaseModel):
    event_id: str
    user_id: str
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
