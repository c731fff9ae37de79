"""Application query service - lookups of a user's bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Application
from ...utils.timezone import utcnow
from .repository import ApplicationRepository


class ApplicationQueryService:
    """Read-side queries over applications; every call hits the database afresh"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ApplicationRepository()

    def find_cancelable_applications(
        self, user_id: str, organization_id: str, now: Optional[datetime] = None
    ) -> list[Application]:
        """Applied bookings of the user in the organization with a slot after now, soonest first"""
        return self.repo.find_cancelable(self.db, user_id, organization_id, now or utcnow())

    def latest_applied_application(self, user_id: str, organization_id: str) -> Optional[Application]:
        return self.repo.get_latest_applied(self.db, user_id, organization_id)

    def get_organization_applications(
        self, organization_id: str, status: Optional[str] = None
    ) -> list[Application]:
        return self.repo.get_applications(self.db, organization_id, status)
