"""Event repository - slot capacity ledger embedded in the events table"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import SLOT_CAS_MAX_ATTEMPTS
from ...exceptions import SlotContentionError
from ...models import Application, Event

logger = logging.getLogger(__name__)


@dataclass
class SlotRelease:
    """Outcome of releasing one seat of a slot"""

    event_id: str
    slot_id: str
    released: bool
    previous: Optional[int] = None
    updated: Optional[int] = None
    reason: Optional[str] = None


class EventRepository:
    """Repository for events and their embedded slot lists"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def read_slots(db: Session, event_id: str) -> Optional[tuple[list[dict], int]]:
        """Fresh (slots, slots_version) of an event, or None if the event does not exist"""
        row = db.query(Event.slots, Event.slots_version).filter(Event.id == event_id).first()
        if row is None:
            return None
        return list(row.slots or []), row.slots_version

    @staticmethod
    def settle_without_release(db: Session, application_id: str, now: datetime) -> None:
        """Close the capacity step of an application whose seat cannot be given back"""
        db.query(Application).filter(
            Application.id == application_id,
            Application.capacity_released_at.is_(None),
        ).update({"capacity_released_at": now}, synchronize_session=False)
        db.commit()

    @staticmethod
    def release_slot(
        db: Session,
        event_id: str,
        slot_id: str,
        application_id: str,
        now: datetime,
        max_attempts: int = SLOT_CAS_MAX_ATTEMPTS,
    ) -> SlotRelease:
        """
        Give back the seat an application holds in a slot.

        The whole slot list is rewritten with a compare-and-swap on slots_version,
        in the same transaction that stamps the application's capacity_released_at.
        A stale version means another writer got there first: re-read and retry.
        An already-stamped application means its seat was released before: no-op.
        Missing event, missing slot and capacity 0 also stamp the application, so
        no later call can take a seat it never gave back.
        """
        released_at = (
            db.query(Application.capacity_released_at)
            .filter(Application.id == application_id)
            .scalar()
        )
        if released_at is not None:
            return SlotRelease(event_id, slot_id, released=False, reason="already released")

        for attempt in range(1, max_attempts + 1):
            snapshot = EventRepository.read_slots(db, event_id)
            if snapshot is None:
                logger.warning(f"⚠️ Event {event_id} not found, capacity update skipped")
                EventRepository.settle_without_release(db, application_id, now)
                return SlotRelease(event_id, slot_id, released=False, reason="event not found")

            slots, version = snapshot
            index = next((i for i, s in enumerate(slots) if s.get("id") == slot_id), None)
            if index is None:
                logger.warning(f"⚠️ Slot {slot_id} not found in event {event_id}")
                EventRepository.settle_without_release(db, application_id, now)
                return SlotRelease(event_id, slot_id, released=False, reason="slot not found")

            current = slots[index].get("currentCapacity") or 0
            if current <= 0:
                logger.info(f"Slot {slot_id} of event {event_id} already at capacity 0")
                EventRepository.settle_without_release(db, application_id, now)
                return SlotRelease(
                    event_id, slot_id, released=False, previous=0, updated=0, reason="capacity already 0"
                )

            new_slots = [dict(s) for s in slots]
            new_slots[index]["currentCapacity"] = current - 1

            swapped = (
                db.query(Event)
                .filter(Event.id == event_id, Event.slots_version == version)
                .update(
                    {"slots": new_slots, "slots_version": version + 1},
                    synchronize_session=False,
                )
            )
            if swapped != 1:
                db.rollback()
                logger.info(
                    f"🔁 Slot list of event {event_id} changed concurrently (attempt {attempt}/{max_attempts}), retrying"
                )
                continue

            stamped = (
                db.query(Application)
                .filter(
                    Application.id == application_id,
                    Application.capacity_released_at.is_(None),
                )
                .update({"capacity_released_at": now}, synchronize_session=False)
            )
            if stamped != 1:
                db.rollback()
                return SlotRelease(event_id, slot_id, released=False, reason="already released")

            db.commit()
            logger.info(f"✅ Event {event_id} slot {slot_id} capacity: {current} → {current - 1}")
            return SlotRelease(event_id, slot_id, released=True, previous=current, updated=current - 1)

        raise SlotContentionError(event_id, max_attempts)
