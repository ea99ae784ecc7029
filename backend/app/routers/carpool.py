"""Carpool API routes, nested under an event."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.carpool import CarOffer, CarOut, RideRequest, RideRequestOut, RiderJoin, RiderOut
from app.services import carpool_service
from app.services.pointer_projector import PointerProjector, get_projector

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/carpool/cars", response_model=CarOut, status_code=status.HTTP_201_CREATED)
def offer_car(
    event_id: str,
    payload: CarOffer,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return carpool_service.offer_car(
        db, projector, event_id, payload.driver_id, payload.total_capacity, payload.notes
    )


@router.delete("/{event_id}/carpool/cars/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_car(
    event_id: str,
    driver_id: str,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    carpool_service.cancel_car(db, projector, event_id, driver_id)


@router.post("/{event_id}/carpool/cars/{driver_id}/riders", response_model=RiderOut, status_code=status.HTTP_201_CREATED)
def join_car(
    event_id: str,
    driver_id: str,
    payload: RiderJoin,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    """Take seats in a car; 409 when it is full."""
    return carpool_service.join_car(
        db, projector, event_id, driver_id, payload.rider_id, payload.plus_one_count, payload.notes
    )


@router.delete("/{event_id}/carpool/cars/{driver_id}/riders/{rider_id}", status_code=status.HTTP_204_NO_CONTENT)
def leave_car(
    event_id: str,
    driver_id: str,
    rider_id: str,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    carpool_service.leave_car(db, projector, event_id, driver_id, rider_id)


@router.post("/{event_id}/carpool/needs-ride", response_model=RideRequestOut, status_code=status.HTTP_201_CREATED)
def request_ride(
    event_id: str,
    payload: RideRequest,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    return carpool_service.request_ride(db, projector, event_id, payload.user_id, payload.notes)


@router.delete("/{event_id}/carpool/needs-ride/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def withdraw_ride_request(
    event_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    projector: PointerProjector = Depends(get_projector),
):
    carpool_service.withdraw_ride_request(db, projector, event_id, user_id)
