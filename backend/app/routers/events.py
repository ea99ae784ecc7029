"""Event API routes — delegates to event_service for canonical writes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.event import Event, EventGroup
from app.schemas.event import EventCreate, EventUpdate, EventOut
from app.services import event_service
from app.services.pointer_projector import PointerProjector, get_projector

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Create a hangout in one or more groups."""
    return event_service.create_event(
        db=db,
        projector=projector,
        title=payload.title,
        created_by=payload.created_by,
        group_ids=payload.group_ids,
        description=payload.description,
        visibility=payload.visibility,
        carpool_enabled=payload.carpool_enabled,
        time_input=payload.time_input.model_dump(exclude_none=True) if payload.time_input else None,
        location=payload.location,
        series_id=payload.series_id,
        ticket_link=payload.ticket_link,
        tickets_required=payload.tickets_required,
        discount_code=payload.discount_code,
    )


@router.get("/", response_model=list[EventOut])
def list_events(group_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """List canonical events, optionally limited to one group."""
    query = db.query(Event)
    if group_id:
        query = query.join(EventGroup).filter(EventGroup.group_id == group_id)
    return query.order_by(Event.created_at, Event.event_id).all()


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single canonical event."""
    return event_service.get_event_or_404(db, event_id)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor_user_id: str = Query(..., description="ID of the user performing the update"),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Update an event (group members only, optimistic locking enforced)."""
    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    return event_service.update_event(
        db=db,
        projector=projector,
        event_id=event_id,
        actor_user_id=actor_user_id,
        version=payload.version,
        updates=updates,
    )


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Delete an event and everything attached to it (creator only)."""
    event_service.delete_event(db, projector, event_id, actor_user_id)


@router.post("/{event_id}/groups/{group_id}", response_model=EventOut)
def add_event_to_group(
    event_id: str,
    group_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return event_service.associate_group(db, projector, event_id, group_id, actor_user_id)


@router.delete("/{event_id}/groups/{group_id}", response_model=EventOut)
def remove_event_from_group(
    event_id: str,
    group_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return event_service.disassociate_group(db, projector, event_id, group_id, actor_user_id)
