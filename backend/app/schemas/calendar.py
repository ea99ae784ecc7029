"""Pydantic schemas for calendar subscriptions."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class SubscriptionOut(BaseModel):
    subscription_id: str
    group_id: str
    group_name: str
    subscription_url: str
    webcal_url: str
    created_at: Optional[datetime] = None


class SubscriptionListOut(BaseModel):
    subscriptions: list[SubscriptionOut] = []
