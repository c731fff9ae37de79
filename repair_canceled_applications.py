"""
Complete cancellations whose side effects were left behind
Usage: python repair_canceled_applications.py [--organization ORG_ID] [--dry-run]

Finds canceled applications that still have active reminders, pending step
deliveries or an unsettled seat, and re-runs the idempotent cancellation on
each of them.
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import and_, exists, or_

from lapply.database import SessionLocal
from lapply.domain.cancellation.service import CancellationService
from lapply.exceptions import CancellationIncomplete
from lapply.models import Application, ApplicationStatus, Reminder, StepDelivery, StepDeliveryStatus

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def find_incomplete_cancellations(db, organization_id=None) -> list[str]:
    active_reminder = exists().where(
        Reminder.application_id == Application.id,
        Reminder.canceled.is_(False),
    )
    pending_step = exists().where(
        StepDelivery.application_id == Application.id,
        StepDelivery.status == StepDeliveryStatus.PENDING,
    )
    unreleased_seat = and_(
        Application.event_id.isnot(None),
        Application.slot_id.isnot(None),
        Application.capacity_released_at.is_(None),
    )
    query = db.query(Application.id).filter(
        Application.status == ApplicationStatus.CANCELED,
        or_(active_reminder, pending_step, unreleased_seat, Application.canceled_at.is_(None)),
    )
    if organization_id:
        query = query.filter(Application.organization_id == organization_id)
    return [row.id for row in query.all()]


def repair(organization_id=None, dry_run=False) -> int:
    db = SessionLocal()
    try:
        application_ids = find_incomplete_cancellations(db, organization_id)
        logger.info(f"Found {len(application_ids)} canceled applications with leftover side effects")

        failures = 0
        service = CancellationService(db)
        for application_id in application_ids:
            if dry_run:
                logger.info(f"[dry-run] would repair {application_id}")
                continue
            try:
                result = service.cancel(application_id)
                logger.info(f"✅ {application_id}: {'; '.join(result.operations)}")
            except CancellationIncomplete as e:
                failures += 1
                logger.error(f"❌ {application_id}: {e}")
        return failures
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--organization", help="Only repair applications of this organization")
    parser.add_argument("--dry-run", action="store_true", help="List applications without changing them")
    args = parser.parse_args()

    try:
        failed = repair(args.organization, args.dry_run)
    except Exception as e:
        logger.error(f"❌ Repair failed: {e}")
        sys.exit(1)
    sys.exit(1 if failed else 0)
