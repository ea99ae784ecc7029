"""Attendance (interest level) API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.interest import InterestOut, InterestSet
from app.services import interest_service
from app.services.pointer_projector import PointerProjector, get_projector

logger = logging.getLogger(__name__)
router = APIRouter()


@router.put("/{event_id}/interest", response_model=InterestOut)
def set_interest(
    event_id: str,
    payload: InterestSet,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Record GOING / INTERESTED / NOT_GOING for a user."""
    return interest_service.set_interest(db, projector, event_id, payload.user_id, payload.status, payload.notes)


@router.delete("/{event_id}/interest/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def clear_interest(
    event_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    interest_service.clear_interest(db, projector, event_id, user_id)
