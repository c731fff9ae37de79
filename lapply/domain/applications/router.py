"""Application router - dashboard endpoints for an organization's applications"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_organization_user
from ...database import get_db
from ...exceptions import ApplicationNotFound
from ...models import ApplicationStatus, User
from ..cancellation.router import get_cancellation_service, perform_cancellation
from ..cancellation.schemas import CancellationResponse
from ..cancellation.service import CancellationService
from .repository import ApplicationRepository
from .schemas import ApplicationResponse
from .service import ApplicationQueryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


def get_application_query_service(db: Session = Depends(get_db)) -> ApplicationQueryService:
    """Dependency injection for ApplicationQueryService"""
    return ApplicationQueryService(db)


@router.get("", response_model=list[ApplicationResponse])
async def get_applications(
    status: Optional[str] = Query(None, description="Filter by application status"),
    current_user: User = Depends(get_current_organization_user),
    service: ApplicationQueryService = Depends(get_application_query_service),
):
    """Get all applications of the current user's organization"""
    if status and status not in ApplicationStatus.ALL:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    applications = service.get_organization_applications(current_user.organization_id, status)
    return [
        ApplicationResponse(
            id=a.id,
            organizationId=a.organization_id,
            userId=a.user_id,
            eventId=a.event_id,
            slotId=a.slot_id,
            plan=a.plan,
            status=a.status,
            slotAt=a.slot_at,
            createdAt=a.created_at,
            canceledAt=a.canceled_at,
        )
        for a in applications
    ]


@router.post("/{application_id}/cancel", response_model=CancellationResponse)
async def cancel_organization_application(
    application_id: str,
    current_user: User = Depends(get_current_organization_user),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Cancel one of the organization's applications from the dashboard"""
    try:
        application = ApplicationRepository.get_application(service.db, application_id)
    except ApplicationNotFound as e:
        raise HTTPException(status_code=404, detail="Application not found") from e

    # Tenant isolation: other organizations' applications look nonexistent
    if application.organization_id != current_user.organization_id:
        logger.warning(
            f"⚠️ User {current_user.id} tried to cancel application {application_id} of another organization"
        )
        raise HTTPException(status_code=404, detail="Application not found")

    return perform_cancellation(service, application_id)
