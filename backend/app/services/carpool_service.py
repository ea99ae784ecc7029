"""Carpool service — cars, riders and ride requests on a hangout."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import BadRequest, Conflict, NotFound, ValidationFailed
from app.models.carpool import Car, CarRider, NeedsRide
from app.models.event import Event
from app.services.event_service import (
    commit_child_change, get_event_or_404, get_user_or_404, require_event_member, utcnow,
)
from app.services.pointer_projector import PointerProjector

logger = logging.getLogger(__name__)


def _carpool_event(db: Session, event_id: str, actor_user_id: str) -> Event:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    if not event.carpool_enabled:
        raise BadRequest("Carpooling is not enabled for this event")
    return event


def _get_car(db: Session, event_id: str, driver_id: str) -> Car:
    car = db.query(Car).filter(Car.event_id == event_id, Car.driver_id == driver_id).first()
    if not car:
        raise NotFound("Car not found")
    return car


def offer_car(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    driver_id: str,
    total_capacity: int,
    notes: Optional[str] = None,
) -> Car:
    event = _carpool_event(db, event_id, driver_id)
    driver = get_user_or_404(db, driver_id)
    if total_capacity < 1:
        raise ValidationFailed("total_capacity must include the driver")
    if db.query(Car).filter(Car.event_id == event_id, Car.driver_id == driver_id).first():
        raise Conflict("Driver already offered a car for this event")

    car = Car(event_id=event_id, driver_id=driver_id, driver_name=driver.display_name,
              total_capacity=total_capacity, notes=notes, created_at=utcnow())
    db.add(car)
    commit_child_change(db, projector, event, car)
    logger.info("User %s offered a car with %d seats for event %s", driver_id, total_capacity, event_id)
    return _get_car(db, event_id, driver_id)


def cancel_car(db: Session, projector: PointerProjector, event_id: str, driver_id: str) -> None:
    event = get_event_or_404(db, event_id)
    car = _get_car(db, event_id, driver_id)
    riders = db.query(CarRider).filter(CarRider.event_id == event_id, CarRider.driver_id == driver_id).all()
    for rider in riders:
        db.delete(rider)
    db.delete(car)
    commit_child_change(db, projector, event, car)
    logger.info("User %s withdrew their car from event %s (%d riders released)", driver_id, event_id, len(riders))


def join_car(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    driver_id: str,
    rider_id: str,
    plus_one_count: int = 0,
    notes: Optional[str] = None,
) -> CarRider:
    """Reserve seats in a driver's car; the driver's own seat is never available."""
    event = _carpool_event(db, event_id, rider_id)
    rider_user = get_user_or_404(db, rider_id)
    car = _get_car(db, event_id, driver_id)
    if rider_id == driver_id:
        raise ValidationFailed("Drivers cannot ride in their own car")
    if db.query(CarRider).filter(CarRider.event_id == event_id, CarRider.rider_id == rider_id).first():
        raise Conflict("User already has a seat for this event")

    riders = db.query(CarRider).filter(CarRider.event_id == event_id, CarRider.driver_id == driver_id).all()
    taken = sum(1 + (r.plus_one_count or 0) for r in riders)
    available = car.total_capacity - 1 - taken
    if 1 + plus_one_count > available:
        raise Conflict(f"Only {max(available, 0)} seats left in this car")

    rider = CarRider(event_id=event_id, driver_id=driver_id, rider_id=rider_id,
                     rider_name=rider_user.display_name, plus_one_count=plus_one_count,
                     notes=notes, created_at=utcnow())
    db.add(rider)
    # A seat fulfils an open ride request.
    db.query(NeedsRide).filter(NeedsRide.event_id == event_id, NeedsRide.user_id == rider_id).delete(
        synchronize_session=False
    )
    commit_child_change(db, projector, event, rider)
    logger.info("User %s joined %s's car for event %s", rider_id, driver_id, event_id)
    return (
        db.query(CarRider)
        .filter(CarRider.event_id == event_id, CarRider.driver_id == driver_id, CarRider.rider_id == rider_id)
        .first()
    )


def leave_car(db: Session, projector: PointerProjector, event_id: str, driver_id: str, rider_id: str) -> None:
    event = get_event_or_404(db, event_id)
    rider = (
        db.query(CarRider)
        .filter(CarRider.event_id == event_id, CarRider.driver_id == driver_id, CarRider.rider_id == rider_id)
        .first()
    )
    if not rider:
        raise NotFound("Rider not found in this car")
    db.delete(rider)
    commit_child_change(db, projector, event, rider)
    logger.info("User %s left %s's car for event %s", rider_id, driver_id, event_id)


def request_ride(
    db: Session, projector: PointerProjector, event_id: str, user_id: str, notes: Optional[str] = None
) -> NeedsRide:
    event = _carpool_event(db, event_id, user_id)
    if db.query(NeedsRide).filter(NeedsRide.event_id == event_id, NeedsRide.user_id == user_id).first():
        raise Conflict("Ride already requested")
    request = NeedsRide(event_id=event_id, user_id=user_id, notes=notes, created_at=utcnow())
    db.add(request)
    commit_child_change(db, projector, event, request)
    logger.info("User %s needs a ride to event %s", user_id, event_id)
    return db.query(NeedsRide).filter(NeedsRide.event_id == event_id, NeedsRide.user_id == user_id).first()


def withdraw_ride_request(db: Session, projector: PointerProjector, event_id: str, user_id: str) -> None:
    event = get_event_or_404(db, event_id)
    request = db.query(NeedsRide).filter(NeedsRide.event_id == event_id, NeedsRide.user_id == user_id).first()
    if not request:
        raise NotFound("Ride request not found")
    db.delete(request)
    commit_child_change(db, projector, event, request)
    logger.info("User %s withdrew their ride request for event %s", user_id, event_id)
