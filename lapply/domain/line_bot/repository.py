"""LINE bot repository - organizations, LINE users and auto-replies"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AutoReply, ConsultationRequest, LineUser, Organization


class LineBotRepository:
    """Repository for the records the LINE webhook reads and writes"""

    @staticmethod
    def get_organization(db: Session, organization_id: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def get_line_user(db: Session, user_id: str) -> Optional[LineUser]:
        return db.query(LineUser).filter(LineUser.id == user_id).first()

    @staticmethod
    def upsert_line_user(
        db: Session, user_id: str, display_name: Optional[str], consent: bool, organization_id: str
    ) -> LineUser:
        line_user = db.query(LineUser).filter(LineUser.id == user_id).first()
        if line_user:
            line_user.display_name = display_name or line_user.display_name
            line_user.consent = consent
            line_user.organization_id = organization_id
        else:
            line_user = LineUser(
                id=user_id,
                display_name=display_name,
                consent=consent,
                organization_id=organization_id,
            )
            db.add(line_user)
        db.commit()
        db.refresh(line_user)
        return line_user

    @staticmethod
    def update_consent(db: Session, user_id: str, organization_id: str, consent: bool) -> LineUser:
        """Set consent, creating the LINE user record if the follow event was missed"""
        line_user = db.query(LineUser).filter(LineUser.id == user_id).first()
        if not line_user:
            line_user = LineUser(id=user_id, organization_id=organization_id)
            db.add(line_user)
        line_user.consent = consent
        db.commit()
        return line_user

    @staticmethod
    def get_auto_reply(db: Session, organization_id: str, trigger: str) -> Optional[AutoReply]:
        return (
            db.query(AutoReply)
            .filter(
                AutoReply.organization_id == organization_id,
                AutoReply.trigger == trigger,
                AutoReply.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def create_consultation_request(
        db: Session, user_id: str, organization_id: str
    ) -> ConsultationRequest:
        request = ConsultationRequest(user_id=user_id, organization_id=organization_id)
        db.add(request)
        db.commit()
        db.refresh(request)
        return request
