"""Calendar subscription and ICS feed routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.calendar import SubscriptionListOut, SubscriptionOut
from app.services import calendar_service, subscription_service
from app.services.calendar_service import CalendarNotModified

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/subscriptions/{group_id}", response_model=SubscriptionOut, status_code=status.HTTP_201_CREATED)
def create_subscription(group_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Issue (or return the existing) calendar subscription for a group member."""
    return subscription_service.create_subscription(db, group_id, actor_user_id)


@router.get("/subscriptions", response_model=SubscriptionListOut)
def list_subscriptions(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    return subscription_service.list_subscriptions(db, actor_user_id)


@router.delete("/subscriptions/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subscription(group_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    subscription_service.delete_subscription(db, group_id, actor_user_id)


@router.get("/subscribe/{group_id}/{token}")
def calendar_feed(
    group_id: str,
    token: str,
    if_none_match: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """ICS feed for calendar apps; honours If-None-Match with a 304."""
    result = calendar_service.get_calendar_feed(db, group_id, token, if_none_match)
    headers = {"ETag": result.etag, "Cache-Control": calendar_service.cache_control()}
    if isinstance(result, CalendarNotModified):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    return Response(content=result.body, media_type="text/calendar; charset=utf-8", headers=headers)
