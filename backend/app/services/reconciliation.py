"""Reconciliation sweep — rebuilds pointers from canonical state.

Two entry points:

- ``reconcile_pending`` drains the ``pointer_repairs`` queue filled by failed or
  superseded fan-out writes.
- ``reconcile_group`` walks every association of one group in bounded keyset
  batches, heals drifted pointers, creates missing ones and removes orphans.

Both are idempotent and safe to run alongside live traffic: writes go through
the projector's version guard, so a sweep never regresses a pointer that a
newer fan-out write has already updated.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ConsistencyDrift
from app.models.event import Event, EventGroup
from app.models.pointer import EventPointer, PointerRepair, POINTER_SCHEMA_VERSION
from app.services.pointer_projector import PointerProjector, WriteOutcome, load_children
from app.services.projection import PointerFields, project

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    checked: int = 0
    repaired: int = 0
    created: int = 0
    deleted: int = 0
    failed: int = 0


def drifted_fields(pointer: EventPointer, fields: PointerFields) -> list[str]:
    """Names of pointer columns whose stored value differs from the rebuild."""
    drift = [key for key, value in fields.to_row().items() if getattr(pointer, key) != value]
    if pointer.schema_version != POINTER_SCHEMA_VERSION:
        drift.append("schema_version")
    return drift


def _clear_repair(session: Session, group_id: str, event_id: str) -> None:
    session.query(PointerRepair).filter(
        PointerRepair.group_id == group_id, PointerRepair.event_id == event_id
    ).delete(synchronize_session=False)
    session.commit()


def _reconcile_pointer(
    session: Session,
    projector: PointerProjector,
    group_id: str,
    event_id: str,
    report: ReconcileReport,
) -> bool:
    """Bring one pointer in line with the canonical event; False if it could not be healed."""
    report.checked += 1
    pointer = session.get(EventPointer, (group_id, event_id))
    event = session.get(Event, event_id)
    linked = session.get(EventGroup, (event_id, group_id)) if event is not None else None

    if event is None or linked is None:
        if pointer is not None:
            projector.delete_pointer(session, group_id, event_id)
            report.deleted += 1
            logger.info("Removed orphan pointer for group %s and event %s", group_id, event_id)
        return True

    fields = project(event, load_children(session, event_id))
    version = event.version
    if pointer is not None:
        drift = drifted_fields(pointer, fields)
        if not drift:
            return True
        logger.warning("%s", ConsistencyDrift(group_id, event_id, drift))

    outcome = projector.write_projection(
        session, group_id, fields, version, datetime.now(timezone.utc)
    )
    if outcome == WriteOutcome.created:
        report.created += 1
    elif outcome == WriteOutcome.applied:
        report.repaired += 1
    elif outcome == WriteOutcome.superseded:
        # A newer write landed between our read and our write; it wins.
        logger.warning(
            "Reconciliation of group %s and event %s superseded at version %d", group_id, event_id, version
        )
        report.failed += 1
        return False
    return True


def reconcile_pending(
    session_factory: Callable[[], Session],
    projector: PointerProjector,
    batch_size: Optional[int] = None,
) -> ReconcileReport:
    """Drain one bounded batch of the repair queue."""
    batch_size = batch_size or settings.RECONCILE_BATCH_SIZE
    report = ReconcileReport()
    session = session_factory()
    try:
        repairs = [
            (r.repair_id, r.group_id, r.event_id)
            for r in session.query(PointerRepair).order_by(PointerRepair.repair_id).limit(batch_size).all()
        ]
        for repair_id, group_id, event_id in repairs:
            try:
                healed = _reconcile_pointer(session, projector, group_id, event_id, report)
            except SQLAlchemyError as exc:
                session.rollback()
                report.failed += 1
                healed = False
                logger.error("Repair of group %s and event %s failed: %s", group_id, event_id, exc)
            if healed:
                session.query(PointerRepair).filter(PointerRepair.repair_id == repair_id).delete(
                    synchronize_session=False
                )
            else:
                session.query(PointerRepair).filter(PointerRepair.repair_id == repair_id).update(
                    {PointerRepair.attempts: PointerRepair.attempts + 1}, synchronize_session=False
                )
            session.commit()
    finally:
        session.close()

    logger.info(
        "Repair queue pass: checked=%d repaired=%d created=%d deleted=%d failed=%d",
        report.checked, report.repaired, report.created, report.deleted, report.failed,
    )
    return report


def reconcile_group(
    session_factory: Callable[[], Session],
    projector: PointerProjector,
    group_id: str,
    batch_size: Optional[int] = None,
) -> ReconcileReport:
    """Full consistency pass over one group's pointers, one keyset batch at a time."""
    batch_size = batch_size or settings.RECONCILE_BATCH_SIZE
    report = ReconcileReport()
    session = session_factory()
    try:
        # Pass 1: every canonical association has a faithful pointer.
        last_event_id = ""
        while True:
            event_ids = [
                row.event_id
                for row in session.query(EventGroup.event_id)
                .filter(EventGroup.group_id == group_id, EventGroup.event_id > last_event_id)
                .order_by(EventGroup.event_id)
                .limit(batch_size)
                .all()
            ]
            if not event_ids:
                break
            for event_id in event_ids:
                _heal(session, projector, group_id, event_id, report)
            last_event_id = event_ids[-1]

        # Pass 2: pointers whose association is gone.
        last_event_id = ""
        while True:
            orphan_ids = [
                row.event_id
                for row in session.query(EventPointer.event_id)
                .outerjoin(
                    EventGroup,
                    and_(EventGroup.event_id == EventPointer.event_id, EventGroup.group_id == EventPointer.group_id),
                )
                .filter(
                    EventPointer.group_id == group_id,
                    EventPointer.event_id > last_event_id,
                    EventGroup.event_id.is_(None),
                )
                .order_by(EventPointer.event_id)
                .limit(batch_size)
                .all()
            ]
            if not orphan_ids:
                break
            for event_id in orphan_ids:
                _heal(session, projector, group_id, event_id, report)
            last_event_id = orphan_ids[-1]
    finally:
        session.close()

    logger.info(
        "Reconciled group %s: checked=%d repaired=%d created=%d deleted=%d failed=%d",
        group_id, report.checked, report.repaired, report.created, report.deleted, report.failed,
    )
    return report


def _heal(session: Session, projector: PointerProjector, group_id: str, event_id: str, report: ReconcileReport) -> None:
    try:
        if _reconcile_pointer(session, projector, group_id, event_id, report):
            _clear_repair(session, group_id, event_id)
    except SQLAlchemyError as exc:
        session.rollback()
        report.failed += 1
        logger.error("Reconciliation of group %s and event %s failed: %s", group_id, event_id, exc)
