"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import Base, engine

# Import routers
from app.routers import users, groups, events, polls, carpool, attributes, interest, calendar, maintenance
from app.services.pointer_projector import get_projector

# Import all models so Base.metadata knows about them
from app.models.user import User                                   # noqa: F401
from app.models.group import Group, GroupMember                    # noqa: F401
from app.models.event import Event, EventGroup                     # noqa: F401
from app.models.poll import Poll, PollOption, Vote                 # noqa: F401
from app.models.carpool import Car, CarRider, NeedsRide            # noqa: F401
from app.models.attribute import EventAttribute                    # noqa: F401
from app.models.interest import InterestLevel                      # noqa: F401
from app.models.pointer import EventPointer, PointerRepair         # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Group Hangout Feed",
    description="Group-scoped hangouts with a denormalized per-group feed and calendar subscriptions",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(groups.router, prefix="/api/groups", tags=["Groups"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(polls.router, prefix="/api/events", tags=["Polls"])
app.include_router(carpool.router, prefix="/api/events", tags=["Carpool"])
app.include_router(attributes.router, prefix="/api/events", tags=["Attributes"])
app.include_router(interest.router, prefix="/api/events", tags=["Interest"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(maintenance.router, prefix="/api/maintenance", tags=["Maintenance"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
def on_shutdown():
    """Let queued pointer writes finish before the process exits."""
    get_projector().shutdown(wait=True)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
