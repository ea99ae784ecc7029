"""Pydantic schemas for Groups."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class GroupCreate(BaseModel):
    name: str
    created_by: str
    is_public: bool = False


class GroupOut(BaseModel):
    group_id: str
    name: str
    is_public: bool
    created_by: str
    created_at: datetime
    last_modified_at: Optional[datetime] = None
    members: list[GroupMemberOut] = []

    model_config = {"from_attributes": True}


class GroupMemberAdd(BaseModel):
    user_id: str
    role: str = "member"


class GroupMemberOut(BaseModel):
    user_id: str
    role: str
    joined_at: datetime

    model_config = {"from_attributes": True}


# Rebuild GroupOut now that GroupMemberOut is defined
GroupOut.model_rebuild()
