"""Group, membership and group feed API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.group import Group
from app.schemas.feed import FeedOut
from app.schemas.group import GroupCreate, GroupMemberAdd, GroupOut, GroupMemberOut
from app.services import feed_service, group_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupCreate, db: Session = Depends(get_db)):
    """Create a group. The creator is added as admin."""
    return group_service.create_group(db, payload.name, payload.created_by, payload.is_public)


@router.get("/", response_model=list[GroupOut])
def list_groups(public_only: bool = Query(False), db: Session = Depends(get_db)):
    query = db.query(Group)
    if public_only:
        query = query.filter(Group.is_public.is_(True))
    return query.order_by(Group.created_at, Group.group_id).all()


@router.get("/{group_id}", response_model=GroupOut)
def get_group(group_id: str, db: Session = Depends(get_db)):
    return group_service.get_group_or_404(db, group_id)


@router.get("/{group_id}/feed", response_model=FeedOut)
def get_group_feed(
    group_id: str,
    limit: Optional[int] = Query(None, ge=1, le=settings.FEED_MAX_LIMIT),
    starting_after: Optional[str] = Query(None, alias="startingAfter"),
    ending_before: Optional[str] = Query(None, alias="endingBefore"),
    actor_user_id: Optional[str] = Query(None, description="ID of the user reading the feed"),
    db: Session = Depends(get_db),
):
    """Upcoming and unscheduled events of a group, read from its pointers."""
    return feed_service.get_feed(
        db=db,
        group_id=group_id,
        requesting_user_id=actor_user_id,
        limit=limit,
        starting_after=starting_after,
        ending_before=ending_before,
    )


@router.post("/{group_id}/members", response_model=GroupMemberOut, status_code=status.HTTP_201_CREATED)
def add_member(group_id: str, payload: GroupMemberAdd, db: Session = Depends(get_db)):
    return group_service.add_member(db, group_id, payload.user_id, payload.role)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(group_id: str, user_id: str, db: Session = Depends(get_db)):
    """Remove a member; their calendar subscription stops working with it."""
    group_service.remove_member(db, group_id, user_id)
