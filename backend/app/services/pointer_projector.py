"""Pointer projector — fans canonical event mutations out to per-group pointers.

The event-mutation services call these hooks after their canonical transaction
has committed:

- ``on_event_created`` / ``on_event_updated``: project once, overwrite the pointer
  of every associated group.
- ``on_child_mutated``: recompute only the section a child record belongs to
  (poll tally, carpool, attributes, attendance) and write it onto every pointer of
  the event. The canonical event row is not reloaded.
- ``on_event_deleted`` / ``on_event_disassociated``: remove pointers.

Pointer writes never fail the caller. Each write runs in its own session, is
retried a bounded number of times, and on exhaustion is logged as a
``PartialFanoutFailure`` and queued in ``pointer_repairs`` for the
reconciliation sweep. Every write is guarded by the projected canonical
``version`` so late or replayed deliveries cannot regress a pointer.

Pointer lifecycle: ABSENT → ACTIVE (create) → ACTIVE (update) → STALE (failed
write, repair queued) → ACTIVE (reconciled) → DELETED (terminal, row removed).
"""
import enum
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.errors import PartialFanoutFailure
from app.models.attribute import EventAttribute
from app.models.carpool import Car, CarRider, NeedsRide
from app.models.event import Event, EventGroup
from app.models.interest import InterestLevel
from app.models.pointer import EventPointer, PointerRepair, POINTER_SCHEMA_VERSION
from app.models.poll import Poll, PollOption, Vote
from app.services.projection import EventChildren, PointerFields, PointerSection, project, project_section

logger = logging.getLogger(__name__)


class PointerState(str, enum.Enum):
    absent = "ABSENT"
    active = "ACTIVE"
    stale = "STALE"
    deleted = "DELETED"


class WriteOutcome(str, enum.Enum):
    created = "created"
    applied = "applied"
    superseded = "superseded"  # stored pointer already carries a newer version
    missing = "missing"  # section write found no pointer to update
    skipped = "skipped"  # event no longer associated with the group
    deleted = "deleted"
    failed = "failed"


SECTION_BY_CHILD: dict[type, PointerSection] = {
    Poll: PointerSection.polls,
    PollOption: PointerSection.polls,
    Vote: PointerSection.polls,
    Car: PointerSection.carpool,
    CarRider: PointerSection.carpool,
    NeedsRide: PointerSection.carpool,
    EventAttribute: PointerSection.attributes,
    InterestLevel: PointerSection.interest,
}


@dataclass(frozen=True)
class FanoutPolicy:
    """How pointer writes are dispatched and how failures are retried."""

    mode: str = "background"
    max_workers: int = 4
    retry_attempts: int = 2
    retry_delay_ms: int = 50
    retry_backoff: float = 2.0

    @classmethod
    def from_settings(cls) -> "FanoutPolicy":
        return cls(
            mode=settings.FANOUT_MODE,
            max_workers=settings.FANOUT_MAX_WORKERS,
            retry_attempts=settings.FANOUT_RETRY_ATTEMPTS,
            retry_delay_ms=settings.FANOUT_RETRY_DELAY_MS,
            retry_backoff=settings.FANOUT_RETRY_BACKOFF,
        )


@dataclass(frozen=True)
class PointerWrite:
    """One pointer write. ``values=None`` means delete the pointer."""

    group_id: str
    event_id: str
    operation: str
    version: int = 0
    values: Optional[dict[str, Any]] = None
    create_if_missing: bool = False
    projected_at: Optional[datetime] = None


def section_for(child: Any) -> PointerSection:
    for child_type, section in SECTION_BY_CHILD.items():
        if isinstance(child, child_type):
            return section
    raise TypeError(f"{type(child).__name__} is not projected onto event pointers")


def load_children(db: Session, event_id: str, sections: Optional[Iterable[PointerSection]] = None) -> EventChildren:
    """Read the canonical child records of an event, limited to ``sections``."""
    wanted = set(sections) if sections is not None else set(PointerSection)
    children = EventChildren()
    if PointerSection.polls in wanted:
        children.polls = db.query(Poll).filter(Poll.event_id == event_id).all()
        children.poll_options = db.query(PollOption).filter(PollOption.event_id == event_id).all()
        children.votes = db.query(Vote).filter(Vote.event_id == event_id).all()
    if PointerSection.carpool in wanted:
        children.cars = db.query(Car).filter(Car.event_id == event_id).all()
        children.car_riders = db.query(CarRider).filter(CarRider.event_id == event_id).all()
        children.needs_ride = db.query(NeedsRide).filter(NeedsRide.event_id == event_id).all()
    if PointerSection.attributes in wanted:
        children.attributes = db.query(EventAttribute).filter(EventAttribute.event_id == event_id).all()
    if PointerSection.interest in wanted:
        children.interest_levels = db.query(InterestLevel).filter(InterestLevel.event_id == event_id).all()
    return children


def pointer_state(db: Session, group_id: str, event_id: str) -> PointerState:
    """Current lifecycle state of one pointer (a deleted pointer reads as ABSENT)."""
    queued = (
        db.query(PointerRepair.repair_id)
        .filter(PointerRepair.group_id == group_id, PointerRepair.event_id == event_id)
        .first()
    )
    if queued is not None:
        return PointerState.stale
    if db.get(EventPointer, (group_id, event_id)) is not None:
        return PointerState.active
    return PointerState.absent


class PointerProjector:
    """Writes pointer projections on behalf of the canonical write path."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: Optional[FanoutPolicy] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._session_factory = session_factory
        self._policy = policy or FanoutPolicy()
        self._executor = executor
        self._executor_lock = threading.Lock()

    @property
    def policy(self) -> FanoutPolicy:
        return self._policy

    @property
    def session_factory(self) -> Callable[[], Session]:
        return self._session_factory

    # ── hooks called by the event-mutation services ───────────────────

    def on_event_created(self, db: Session, event: Event) -> None:
        self._fan_out_full(db, event, "create")

    def on_event_updated(self, db: Session, event: Event) -> None:
        self._fan_out_full(db, event, "update")

    def on_child_mutated(self, db: Session, event_id: str, child: Any, version: int) -> None:
        """Recompute the section ``child`` belongs to on every pointer of the event."""
        section = section_for(child)
        values = project_section(section, load_children(db, event_id, [section]))
        group_ids = [
            row.group_id
            for row in db.query(EventGroup.group_id).filter(EventGroup.event_id == event_id).all()
        ]
        projected_at = datetime.now(timezone.utc)
        self._dispatch([
            PointerWrite(
                group_id=group_id,
                event_id=event_id,
                operation=section.value,
                version=version,
                values=values,
                projected_at=projected_at,
            )
            for group_id in group_ids
        ])

    def on_event_deleted(self, event_id: str, group_ids: Optional[Iterable[str]] = None) -> None:
        if group_ids is None:
            group_ids = self._pointer_group_ids(event_id)
        self._dispatch([
            PointerWrite(group_id=group_id, event_id=event_id, operation="delete")
            for group_id in group_ids
        ])

    def on_event_disassociated(self, event_id: str, group_id: str) -> None:
        self._dispatch([PointerWrite(group_id=group_id, event_id=event_id, operation="disassociate")])

    # ── writes ────────────────────────────────────────────────────────

    def write_projection(
        self,
        session: Session,
        group_id: str,
        fields: PointerFields,
        version: int,
        projected_at: datetime,
        operation: str = "reconcile",
    ) -> WriteOutcome:
        """Guarded full overwrite inside the caller's session (reconciliation path)."""
        write = PointerWrite(
            group_id=group_id,
            event_id=fields.event_id,
            operation=operation,
            version=version,
            values=fields.to_row(),
            create_if_missing=True,
            projected_at=projected_at,
        )
        return self._apply(session, write)

    def delete_pointer(self, session: Session, group_id: str, event_id: str) -> WriteOutcome:
        return self._apply(session, PointerWrite(group_id=group_id, event_id=event_id, operation="delete"))

    def enqueue_repair(self, group_id: str, event_id: str, reason: str) -> None:
        """Mark a pointer STALE so the reconciliation sweep rebuilds it."""
        session = self._session_factory()
        try:
            existing = (
                session.query(PointerRepair)
                .filter(PointerRepair.group_id == group_id, PointerRepair.event_id == event_id)
                .first()
            )
            if existing is not None:
                existing.reason = reason[:500]
            else:
                session.add(PointerRepair(group_id=group_id, event_id=event_id, reason=reason[:500]))
            session.commit()
            logger.info("Queued pointer repair for group %s and event %s", group_id, event_id)
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not queue pointer repair for group %s and event %s", group_id, event_id)
        finally:
            session.close()

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None

    # ── internals ─────────────────────────────────────────────────────

    def _fan_out_full(self, db: Session, event: Event, operation: str) -> None:
        fields = project(event, load_children(db, event.event_id))
        values = fields.to_row()
        projected_at = datetime.now(timezone.utc)
        self._dispatch([
            PointerWrite(
                group_id=group_id,
                event_id=event.event_id,
                operation=operation,
                version=event.version,
                values=values,
                create_if_missing=True,
                projected_at=projected_at,
            )
            for group_id in event.group_ids
        ])

    def _pointer_group_ids(self, event_id: str) -> list[str]:
        session = self._session_factory()
        try:
            rows = session.execute(
                select(EventPointer.group_id).where(EventPointer.event_id == event_id)
            ).all()
            return [row.group_id for row in rows]
        finally:
            session.close()

    def _dispatch(self, writes: list[PointerWrite]) -> None:
        if not writes:
            return
        if self._policy.mode == "inline":
            for write in writes:
                self._execute(write)
            return
        executor = self._get_executor()
        for write in writes:
            future = executor.submit(self._execute, write)
            future.add_done_callback(_log_unexpected_failure)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._policy.max_workers,
                    thread_name_prefix="pointer-fanout",
                )
            return self._executor

    def _execute(self, write: PointerWrite) -> WriteOutcome:
        """Apply one write with bounded retries; queue a repair when they run out."""
        delay = self._policy.retry_delay_ms / 1000.0
        attempts = self._policy.retry_attempts + 1
        last_error: Optional[BaseException] = None
        for attempt in range(1, attempts + 1):
            session = self._session_factory()
            try:
                outcome = self._apply(session, write)
            except Exception as exc:
                session.rollback()
                last_error = exc
                logger.warning(
                    "Pointer %s failed for group %s and event %s (attempt %d/%d): %s",
                    write.operation, write.group_id, write.event_id, attempt, attempts, exc,
                )
                if attempt < attempts:
                    time.sleep(delay)
                    delay *= self._policy.retry_backoff
                continue
            finally:
                session.close()
            self._after_write(write, outcome)
            return outcome

        failure = PartialFanoutFailure(write.group_id, write.event_id, write.operation, last_error)
        logger.error("%s; queued for repair", failure)
        self.enqueue_repair(write.group_id, write.event_id, str(failure))
        return WriteOutcome.failed

    def _after_write(self, write: PointerWrite, outcome: WriteOutcome) -> None:
        if outcome in (WriteOutcome.superseded, WriteOutcome.missing):
            logger.warning(
                "Pointer %s for group %s and event %s was %s at version %d",
                write.operation, write.group_id, write.event_id, outcome.value, write.version,
            )
            self.enqueue_repair(write.group_id, write.event_id, f"{write.operation} {outcome.value}")
        elif outcome == WriteOutcome.deleted:
            logger.info("Pointer for group %s and event %s is %s",
                        write.group_id, write.event_id, PointerState.deleted.value)
        else:
            logger.debug("Pointer %s for group %s and event %s: %s (version %d)",
                         write.operation, write.group_id, write.event_id, outcome.value, write.version)

    def _apply(self, session: Session, write: PointerWrite) -> WriteOutcome:
        key = (EventPointer.group_id == write.group_id, EventPointer.event_id == write.event_id)

        if write.values is None:
            session.execute(delete(EventPointer).where(*key))
            session.commit()
            return WriteOutcome.deleted

        stamped = dict(
            write.values,
            version=write.version,
            schema_version=POINTER_SCHEMA_VERSION,
            projected_at=write.projected_at,
        )
        result = session.execute(
            update(EventPointer)
            .where(*key, EventPointer.version <= write.version)
            .values(**stamped)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            session.commit()
            return WriteOutcome.applied

        stored_version = session.execute(select(EventPointer.version).where(*key)).scalar_one_or_none()
        if stored_version is not None:
            session.rollback()
            return WriteOutcome.superseded
        if not write.create_if_missing:
            session.rollback()
            return WriteOutcome.missing
        # Only (re)create while the association still exists, so late writes cannot resurrect.
        if session.get(EventGroup, (write.event_id, write.group_id)) is None:
            session.rollback()
            return WriteOutcome.skipped

        session.add(EventPointer(group_id=write.group_id, event_id=write.event_id, **stamped))
        session.commit()
        return WriteOutcome.created


def _log_unexpected_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Pointer fan-out task crashed: %s", exc, exc_info=exc)


_projector: Optional[PointerProjector] = None
_projector_lock = threading.Lock()


def get_projector() -> PointerProjector:
    """FastAPI dependency — the process-wide projector built from settings."""
    global _projector
    with _projector_lock:
        if _projector is None:
            _projector = PointerProjector(SessionLocal, FanoutPolicy.from_settings())
        return _projector
