"""Event attribute API routes."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.attribute import AttributeCreate, AttributeOut, AttributeUpdate
from app.services import attribute_service
from app.services.pointer_projector import PointerProjector, get_projector

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/attributes", response_model=AttributeOut, status_code=status.HTTP_201_CREATED)
def create_attribute(
    event_id: str,
    payload: AttributeCreate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return attribute_service.create_attribute(db, projector, event_id, actor_user_id, payload.name, payload.value)


@router.patch("/{event_id}/attributes/{attribute_id}", response_model=AttributeOut)
def update_attribute(
    event_id: str,
    attribute_id: str,
    payload: AttributeUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return attribute_service.update_attribute(
        db, projector, event_id, attribute_id, actor_user_id, name=payload.name, value=payload.value
    )


@router.delete("/{event_id}/attributes/{attribute_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attribute(
    event_id: str,
    attribute_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    attribute_service.delete_attribute(db, projector, event_id, attribute_id, actor_user_id)
