"""Cancellation router - public cancel-by-link endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...database import get_db
from ...exceptions import ApplicationNotFound, CancellationIncomplete
from ..applications.schemas import CancelableApplication, CancelableApplicationsResponse
from ..applications.service import ApplicationQueryService
from .schemas import CancellationResponse, CancelRequest
from .service import OUTCOME_NOT_CANCELABLE, CancellationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cancellation"])


def get_cancellation_service(db: Session = Depends(get_db)) -> CancellationService:
    """Dependency injection for CancellationService"""
    return CancellationService(db)


def get_query_service(db: Session = Depends(get_db)) -> ApplicationQueryService:
    """Dependency injection for ApplicationQueryService"""
    return ApplicationQueryService(db)


def perform_cancellation(service: CancellationService, application_id: str):
    """Run the shared cancellation and translate its outcome into an HTTP response"""
    try:
        result = service.cancel(application_id)
    except ApplicationNotFound as e:
        logger.warning(f"⚠️ Cancel requested for unknown application {application_id}")
        raise HTTPException(status_code=404, detail="Application not found") from e
    except CancellationIncomplete as e:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "applicationId": application_id,
                "error": "Cancellation incomplete, please retry",
                "completedSteps": e.completed_steps,
            },
        )

    if result.outcome == OUTCOME_NOT_CANCELABLE:
        return JSONResponse(
            status_code=409,
            content={
                "success": False,
                "applicationId": application_id,
                "error": "Application is not in applied status",
                "currentStatus": result.status,
            },
        )

    return CancellationResponse.from_result(result)


@router.post("/cancel", response_model=CancellationResponse)
async def cancel_application(
    data: Optional[CancelRequest] = Body(None),
    application_id: Optional[str] = Query(None, alias="applicationId"),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Cancel an application (cancel-by-link page for users who cannot use the LINE command)"""
    target = (data.applicationId if data else None) or application_id
    if not target:
        raise HTTPException(status_code=400, detail="Missing applicationId parameter")
    return perform_cancellation(service, target)


@router.get("/cancelable-applications", response_model=CancelableApplicationsResponse)
async def get_cancelable_applications(
    user_id: Optional[str] = Query(None, alias="userId"),
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    service: ApplicationQueryService = Depends(get_query_service),
):
    """Future, applied bookings of a LINE user that can still be canceled"""
    if not user_id or not organization_id:
        raise HTTPException(status_code=400, detail="Missing userId or organizationId parameter")

    applications = service.find_cancelable_applications(user_id, organization_id)
    return CancelableApplicationsResponse(
        userId=user_id,
        organizationId=organization_id,
        applications=[
            CancelableApplication(id=a.id, slotAt=a.slot_at, plan=a.plan, createdAt=a.created_at)
            for a in applications
        ],
        count=len(applications),
    )
