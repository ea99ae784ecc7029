"""Operational routes for the pointer projection."""
import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.pointer_projector import PointerProjector, get_projector, pointer_state
from app.services.reconciliation import reconcile_group, reconcile_pending

logger = logging.getLogger(__name__)
router = APIRouter()


class ReconcileReportOut(BaseModel):
    checked: int
    repaired: int
    created: int
    deleted: int
    failed: int


class PointerStateOut(BaseModel):
    group_id: str
    event_id: str
    state: str


@router.post("/pointers/reconcile", response_model=ReconcileReportOut)
def reconcile(
    group_id: Optional[str] = Query(None, description="Sweep one group instead of the repair queue"),
    batch_size: Optional[int] = Query(None, ge=1, le=1000),
    projector: PointerProjector = Depends(get_projector),
):
    """Rebuild stale or drifted pointers from canonical state."""
    if group_id:
        report = reconcile_group(projector.session_factory, projector, group_id, batch_size)
    else:
        report = reconcile_pending(projector.session_factory, projector, batch_size)
    return asdict(report)


@router.get("/pointers/{group_id}/{event_id}", response_model=PointerStateOut)
def get_pointer_state(group_id: str, event_id: str, db: Session = Depends(get_db)):
    state = pointer_state(db, group_id, event_id)
    return PointerStateOut(group_id=group_id, event_id=event_id, state=state.value)
