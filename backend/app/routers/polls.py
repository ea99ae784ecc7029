"""Poll API routes, nested under an event."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.poll import PollCreate, PollOptionCreate, PollOptionOut, PollOut, VoteOut
from app.services import poll_service
from app.services.pointer_projector import PointerProjector, get_projector

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/polls", response_model=PollOut, status_code=status.HTTP_201_CREATED)
def create_poll(
    event_id: str,
    payload: PollCreate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return poll_service.create_poll(
        db, projector, event_id, actor_user_id,
        title=payload.title,
        description=payload.description,
        multiple_choice=payload.multiple_choice,
        options=payload.options,
    )


@router.delete("/{event_id}/polls/{poll_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_poll(
    event_id: str,
    poll_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    poll_service.delete_poll(db, projector, event_id, poll_id, actor_user_id)


@router.post("/{event_id}/polls/{poll_id}/options", response_model=PollOptionOut, status_code=status.HTTP_201_CREATED)
def add_option(
    event_id: str,
    poll_id: str,
    payload: PollOptionCreate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return poll_service.add_option(db, projector, event_id, poll_id, actor_user_id, payload.text)


@router.post(
    "/{event_id}/polls/{poll_id}/options/{option_id}/votes",
    response_model=VoteOut,
    status_code=status.HTTP_201_CREATED,
)
def vote(
    event_id: str,
    poll_id: str,
    option_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Vote for an option; replaces an earlier vote on single-choice polls."""
    return poll_service.vote(db, projector, event_id, poll_id, option_id, actor_user_id)


@router.delete("/{event_id}/polls/{poll_id}/options/{option_id}/votes", status_code=status.HTTP_204_NO_CONTENT)
def remove_vote(
    event_id: str,
    poll_id: str,
    option_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    poll_service.remove_vote(db, projector, event_id, poll_id, option_id, actor_user_id)
