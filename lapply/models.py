import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate an opaque document-style identifier"""
    return str(uuid.uuid4())


class ApplicationStatus:
    APPLIED = "applied"
    CANCELED = "canceled"
    # Dashboard flow vocabulary, stored alongside the LINE flow values
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    ALL = (APPLIED, CANCELED, PENDING, CONFIRMED, CANCELLED)


class StepDeliveryStatus:
    PENDING = "pending"
    SENT = "sent"
    SKIPPED = "skipped"


class ReminderType:
    T_24H = "T-24h"
    DAY_OF = "day-of"
    CUSTOM = "custom"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=True)
    # LINE Integration
    line_channel_access_token = Column(Text, nullable=True)
    line_channel_secret = Column(String(255), nullable=True)
    liff_id = Column(String(255), nullable=True)
    welcome_message = Column(Text, nullable=True)
    # Feature flags
    disabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    events = relationship("Event", back_populates="organization")
    users = relationship("User", back_populates="organization")


class User(Base):
    """Dashboard account (organization owner or staff)"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="users")


class LineUser(Base):
    __tablename__ = "line_users"

    id = Column(String(64), primary_key=True)  # LINE userId
    organization_id = Column(String(36), index=True, nullable=True)
    display_name = Column(String(255), nullable=True)
    consent = Column(Boolean, default=True, nullable=False)  # False after "配信停止"
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), index=True, nullable=False)
    title = Column(String(255), nullable=True)
    # Embedded slot list: [{"id", "startAt", "maxCapacity", "currentCapacity"}]
    slots = Column(JSON, default=list, nullable=False)
    # Bumped on every slot list rewrite; compare-and-swap token for capacity updates
    slots_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="events")


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)  # LINE userId
    # Legacy records may lack event_id / slot_id
    event_id = Column(String(36), nullable=True)
    slot_id = Column(String(64), nullable=True)
    plan = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default=ApplicationStatus.APPLIED, nullable=False)
    slot_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    canceled_at = Column(DateTime, nullable=True)
    # Set when the capacity step is settled (seat released, or nothing to release) so it runs at most once
    capacity_released_at = Column(DateTime, nullable=True)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String(36), primary_key=True, default=generate_id)
    application_id = Column(String(36), index=True, nullable=False)
    organization_id = Column(String(36), nullable=True)
    user_id = Column(String(64), nullable=False)
    type = Column(String(20), default=ReminderType.CUSTOM, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    sent_at = Column(DateTime, nullable=True)
    canceled = Column(Boolean, default=False, nullable=False)
    message = Column(Text, nullable=False, default="")


class StepDelivery(Base):
    __tablename__ = "step_deliveries"

    id = Column(String(36), primary_key=True, default=generate_id)
    application_id = Column(String(36), index=True, nullable=False)
    organization_id = Column(String(36), nullable=True)
    user_id = Column(String(64), index=True, nullable=False)
    step_number = Column(Integer, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    sent_at = Column(DateTime, nullable=True)
    status = Column(String(20), default=StepDeliveryStatus.PENDING, nullable=False)
    message = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now())


class AutoReply(Base):
    __tablename__ = "auto_replies"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    trigger = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ConsultationRequest(Base):
    """Individual consultation asked for through the LINE auto-reply"""

    __tablename__ = "consultation_requests"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)  # LINE userId
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
