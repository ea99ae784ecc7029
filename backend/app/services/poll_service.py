"""Poll service — polls, options and votes on a hangout."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import Conflict, NotFound, ValidationFailed
from app.models.poll import Poll, PollOption, Vote
from app.services.event_service import (
    commit_child_change, get_event_or_404, require_event_member, utcnow,
)
from app.services.pointer_projector import PointerProjector

logger = logging.getLogger(__name__)


def _get_poll(db: Session, event_id: str, poll_id: str) -> Poll:
    poll = db.query(Poll).filter(Poll.poll_id == poll_id, Poll.event_id == event_id).first()
    if not poll:
        raise NotFound("Poll not found")
    return poll


def _get_option(db: Session, poll_id: str, option_id: str) -> PollOption:
    option = (
        db.query(PollOption)
        .filter(PollOption.option_id == option_id, PollOption.poll_id == poll_id)
        .first()
    )
    if not option:
        raise NotFound("Poll option not found")
    return option


def create_poll(
    db: Session,
    projector: PointerProjector,
    event_id: str,
    actor_user_id: str,
    title: str,
    description: Optional[str] = None,
    multiple_choice: bool = False,
    options: Optional[list[str]] = None,
) -> Poll:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    if not title.strip():
        raise ValidationFailed("Poll title is required")

    now = utcnow()
    poll = Poll(event_id=event_id, title=title, description=description,
                multiple_choice=multiple_choice, created_at=now)
    db.add(poll)
    db.flush()
    for text in options or []:
        db.add(PollOption(poll_id=poll.poll_id, event_id=event_id, text=text, created_at=now))

    poll_id = poll.poll_id
    commit_child_change(db, projector, event, poll)
    logger.info("Created poll %s on event %s with %d options", poll_id, event_id, len(options or []))
    return _get_poll(db, event_id, poll_id)


def add_option(
    db: Session, projector: PointerProjector, event_id: str, poll_id: str, actor_user_id: str, text: str
) -> PollOption:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    _get_poll(db, event_id, poll_id)

    option = PollOption(poll_id=poll_id, event_id=event_id, text=text, created_at=utcnow())
    db.add(option)
    db.flush()
    option_id = option.option_id
    commit_child_change(db, projector, event, option)
    logger.info("Added option %s to poll %s", option_id, poll_id)
    return _get_option(db, poll_id, option_id)


def vote(
    db: Session, projector: PointerProjector, event_id: str, poll_id: str, option_id: str, actor_user_id: str
) -> Vote:
    """Cast a vote; on a single-choice poll any earlier vote by the same user is replaced."""
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    poll = _get_poll(db, event_id, poll_id)
    _get_option(db, poll_id, option_id)

    existing = (
        db.query(Vote)
        .filter(Vote.poll_id == poll_id, Vote.user_id == actor_user_id)
        .all()
    )
    if any(v.option_id == option_id for v in existing):
        raise Conflict("User has already voted for this option")
    if not poll.multiple_choice:
        for previous in existing:
            db.delete(previous)

    ballot = Vote(poll_id=poll_id, option_id=option_id, event_id=event_id,
                  user_id=actor_user_id, created_at=utcnow())
    db.add(ballot)
    db.flush()
    vote_id = ballot.vote_id
    commit_child_change(db, projector, event, ballot)
    logger.info("User %s voted for option %s in poll %s", actor_user_id, option_id, poll_id)
    return db.query(Vote).filter(Vote.vote_id == vote_id).first()


def remove_vote(
    db: Session, projector: PointerProjector, event_id: str, poll_id: str, option_id: str, actor_user_id: str
) -> None:
    event = get_event_or_404(db, event_id)
    _get_poll(db, event_id, poll_id)
    ballot = (
        db.query(Vote)
        .filter(Vote.poll_id == poll_id, Vote.option_id == option_id, Vote.user_id == actor_user_id)
        .first()
    )
    if not ballot:
        raise NotFound("Vote not found")
    db.delete(ballot)
    commit_child_change(db, projector, event, ballot)
    logger.info("User %s removed vote for option %s in poll %s", actor_user_id, option_id, poll_id)


def delete_poll(db: Session, projector: PointerProjector, event_id: str, poll_id: str, actor_user_id: str) -> None:
    event = get_event_or_404(db, event_id)
    require_event_member(db, event, actor_user_id)
    poll = _get_poll(db, event_id, poll_id)
    db.delete(poll)
    commit_child_change(db, projector, event, poll)
    logger.info("Deleted poll %s from event %s", poll_id, event_id)
