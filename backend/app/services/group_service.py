"""Group service — groups and their memberships.

Membership is what the feed and the calendar subscriptions check, so removing
a member also drops their calendar token (it lives on the membership row).
"""
import logging

from sqlalchemy.orm import Session

from app.errors import Conflict, NotFound, ValidationFailed
from app.models.group import Group, GroupMember, GroupRole
from app.services.event_service import get_user_or_404

logger = logging.getLogger(__name__)


def get_group_or_404(db: Session, group_id: str) -> Group:
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise NotFound("Group not found")
    return group


def _parse_role(role: str) -> GroupRole:
    try:
        return GroupRole(role.lower())
    except ValueError:
        raise ValidationFailed(f"Unknown group role: {role}")


def create_group(db: Session, name: str, created_by: str, is_public: bool = False) -> Group:
    """Create a group; the creator joins it as admin."""
    if not name.strip():
        raise ValidationFailed("Group name is required")
    get_user_or_404(db, created_by)

    group = Group(name=name.strip(), is_public=is_public, created_by=created_by)
    db.add(group)
    db.flush()
    db.add(GroupMember(group_id=group.group_id, user_id=created_by, role=GroupRole.admin))
    db.commit()
    db.refresh(group)
    logger.info("Created %s group '%s' (%s) by user %s",
                "public" if is_public else "private", group.name, group.group_id, created_by)
    return group


def add_member(db: Session, group_id: str, user_id: str, role: str = "member") -> GroupMember:
    get_group_or_404(db, group_id)
    get_user_or_404(db, user_id)
    member_role = _parse_role(role)

    existing = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )
    if existing:
        raise Conflict("User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id, role=member_role)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("Added user %s to group %s as %s", user_id, group_id, member_role.value)
    return member


def remove_member(db: Session, group_id: str, user_id: str) -> None:
    member = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )
    if not member:
        raise NotFound("Membership not found")
    had_calendar = member.calendar_token is not None
    db.delete(member)
    db.commit()
    logger.info("Removed user %s from group %s%s", user_id, group_id,
                " and revoked their calendar subscription" if had_calendar else "")
