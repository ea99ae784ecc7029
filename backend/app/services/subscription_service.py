"""Calendar subscription lifecycle — one token per group membership."""
import logging
import uuid

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Forbidden, NotFound
from app.models.group import Group, GroupMember
from app.schemas.calendar import SubscriptionListOut, SubscriptionOut
from app.services.calendar_service import mask_token

logger = logging.getLogger(__name__)


def _to_response(membership: GroupMember, group: Group) -> SubscriptionOut:
    subscription_url = (
        f"{settings.CALENDAR_BASE_URL.rstrip('/')}/api/calendar/subscribe/"
        f"{membership.group_id}/{membership.calendar_token}"
    )
    webcal_url = subscription_url.replace("https://", "webcal://").replace("http://", "webcal://")
    return SubscriptionOut(
        subscription_id=membership.group_id,
        group_id=membership.group_id,
        group_name=group.name,
        subscription_url=subscription_url,
        webcal_url=webcal_url,
        created_at=membership.joined_at,
    )


def _membership(db: Session, group_id: str, user_id: str):
    return (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )


def create_subscription(db: Session, group_id: str, user_id: str) -> SubscriptionOut:
    """Issue a calendar token for a member; returns the existing one if present."""
    membership = _membership(db, group_id, user_id)
    if membership is None:
        raise Forbidden("You must be a member of this group to subscribe to its calendar")

    if membership.calendar_token is None:
        membership.calendar_token = str(uuid.uuid4())
        db.commit()
        db.refresh(membership)
        logger.info("Created calendar subscription for user %s in group %s with token %s",
                    user_id, group_id, mask_token(membership.calendar_token))
    else:
        logger.debug("User %s already has a calendar subscription for group %s", user_id, group_id)
    return _to_response(membership, membership.group)


def list_subscriptions(db: Session, user_id: str) -> SubscriptionListOut:
    memberships = (
        db.query(GroupMember)
        .filter(GroupMember.user_id == user_id, GroupMember.calendar_token.isnot(None))
        .order_by(GroupMember.group_id)
        .all()
    )
    return SubscriptionListOut(subscriptions=[_to_response(m, m.group) for m in memberships])


def delete_subscription(db: Session, group_id: str, user_id: str) -> None:
    membership = _membership(db, group_id, user_id)
    if membership is None or membership.calendar_token is None:
        raise NotFound("Subscription not found")
    membership.calendar_token = None
    db.commit()
    logger.info("Deleted calendar subscription for user %s in group %s", user_id, group_id)
