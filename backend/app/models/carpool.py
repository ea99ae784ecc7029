"""Carpool ORM models: Car, CarRider and NeedsRide."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base


class Car(Base):
    """A car offered by a driver; identified by (event_id, driver_id)."""

    __tablename__ = "cars"

    event_id = Column(String(36), ForeignKey("events.event_id"), primary_key=True)
    driver_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    driver_name = Column(String(100), nullable=False)
    total_capacity = Column(Integer, nullable=False)  # seats including the driver
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CarRider(Base):
    __tablename__ = "car_riders"

    event_id = Column(String(36), ForeignKey("events.event_id"), primary_key=True)
    driver_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    rider_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    rider_name = Column(String(100), nullable=False)
    plus_one_count = Column(Integer, nullable=False, default=0)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class NeedsRide(Base):
    __tablename__ = "needs_ride"

    event_id = Column(String(36), ForeignKey("events.event_id"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
