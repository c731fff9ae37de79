"""Application repository - Database operations for applications"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...exceptions import ApplicationNotFound
from ...models import Application, ApplicationStatus


class ApplicationRepository:
    """Repository for application records and their status transitions"""

    @staticmethod
    def get_application(db: Session, application_id: str) -> Application:
        """Get an application by ID, raising ApplicationNotFound when absent"""
        application = db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise ApplicationNotFound(application_id)
        return application

    @staticmethod
    def get_status(db: Session, application_id: str) -> Optional[str]:
        """Read the stored status straight from the database (bypasses the identity map)"""
        return db.query(Application.status).filter(Application.id == application_id).scalar()

    @staticmethod
    def transition_to_canceled(db: Session, application_id: str, now: datetime) -> bool:
        """
        Move an application from applied to canceled.
        Returns False (conflict) when the stored status is not applied at write time.
        """
        updated = (
            db.query(Application)
            .filter(
                Application.id == application_id,
                Application.status == ApplicationStatus.APPLIED,
            )
            .update(
                {"status": ApplicationStatus.CANCELED, "canceled_at": now},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1

    @staticmethod
    def stamp_canceled_at(db: Session, application_id: str, now: datetime) -> bool:
        """Fill canceled_at on a canceled application that lacks it. Returns True if stamped."""
        updated = (
            db.query(Application)
            .filter(
                Application.id == application_id,
                Application.status == ApplicationStatus.CANCELED,
                Application.canceled_at.is_(None),
            )
            .update({"canceled_at": now}, synchronize_session=False)
        )
        db.commit()
        return updated == 1

    @staticmethod
    def find_cancelable(
        db: Session, user_id: str, organization_id: str, now: datetime
    ) -> list[Application]:
        """Applied applications of a user in an organization whose slot is still ahead"""
        return (
            db.query(Application)
            .filter(
                Application.user_id == user_id,
                Application.organization_id == organization_id,
                Application.status == ApplicationStatus.APPLIED,
                Application.slot_at > now,
            )
            .order_by(Application.slot_at.asc())
            .all()
        )

    @staticmethod
    def get_latest_applied(
        db: Session, user_id: str, organization_id: str
    ) -> Optional[Application]:
        """Most recently scheduled applied application of a user"""
        return (
            db.query(Application)
            .filter(
                Application.user_id == user_id,
                Application.organization_id == organization_id,
                Application.status == ApplicationStatus.APPLIED,
            )
            .order_by(Application.slot_at.desc())
            .first()
        )

    @staticmethod
    def get_applications(
        db: Session, organization_id: str, status: Optional[str] = None
    ) -> list[Application]:
        """Get all applications of an organization, newest first"""
        query = db.query(Application).filter(Application.organization_id == organization_id)
        if status:
            query = query.filter(Application.status == status)
        return query.order_by(Application.created_at.desc()).all()

    @staticmethod
    def get_status_counts(db: Session, organization_id: Optional[str] = None) -> dict[str, int]:
        """Number of applications per status, optionally for one organization"""
        query = db.query(Application.status, func.count(Application.id))
        if organization_id:
            query = query.filter(Application.organization_id == organization_id)
        return {status: count for status, count in query.group_by(Application.status).all()}
