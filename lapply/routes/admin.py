"""Admin endpoints - operational visibility and cancellation repair"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..domain.applications.repository import ApplicationRepository
from ..domain.cancellation.router import get_cancellation_service, perform_cancellation
from ..domain.cancellation.schemas import CancellationResponse
from ..domain.cancellation.service import CancellationService
from ..domain.notifications.repository import NotificationRepository
from ..models import Event, LineUser, Organization, User
from ..utils.timezone import isoformat_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/complete-cancel", response_model=CancellationResponse)
async def complete_cancel(
    application_id: Optional[str] = Query(None, alias="applicationId"),
    admin: User = Depends(require_admin),
    service: CancellationService = Depends(get_cancellation_service),
):
    """
    Finish a cancellation whose side effects were interrupted.
    Uses the same idempotent cancellation as every other caller.
    """
    if not application_id:
        raise HTTPException(status_code=400, detail="Missing applicationId parameter")
    logger.info(f"🔧 Admin {admin.email} completing cancellation of {application_id}")
    return perform_cancellation(service, application_id)


@router.get("/debug-applications")
async def debug_applications(
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    status: Optional[str] = Query(None),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Applications of an organization with their reminder and step-delivery state"""
    if not organization_id:
        raise HTTPException(status_code=400, detail="Missing organizationId parameter")

    applications = ApplicationRepository.get_applications(db, organization_id, status)
    return {
        "organizationId": organization_id,
        "count": len(applications),
        "applications": [
            {
                "id": a.id,
                "userId": a.user_id,
                "status": a.status,
                "eventId": a.event_id,
                "slotId": a.slot_id,
                "slotAt": isoformat_utc(a.slot_at),
                "canceledAt": isoformat_utc(a.canceled_at),
                "capacityReleasedAt": isoformat_utc(a.capacity_released_at),
                **NotificationRepository.get_counts_for_application(db, a.id),
            }
            for a in applications
        ],
    }


@router.get("/stats")
async def get_stats(
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Platform-wide counts"""
    return {
        "organizations": db.query(func.count(Organization.id)).scalar(),
        "events": db.query(func.count(Event.id)).scalar(),
        "lineUsers": db.query(func.count(LineUser.id)).scalar(),
        "applicationsByStatus": ApplicationRepository.get_status_counts(db),
    }
