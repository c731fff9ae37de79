"""Record factories and a fake LINE API shared by the tests"""

import json
from datetime import datetime, timedelta

import httpx

from lapply.models import (
    Application,
    ApplicationStatus,
    Event,
    LineUser,
    Reminder,
    StepDelivery,
    StepDeliveryStatus,
)
from lapply.services.line_service import LineMessagingClient

NOW = datetime(2025, 11, 10, 3, 0, 0)


class LineRecorder:
    """Collects requests sent to the LINE API and answers them"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.fail_push = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/message/push") and self.fail_push:
            return httpx.Response(500, json={"message": "internal error"})
        if "/profile/" in request.url.path:
            return httpx.Response(200, json={"displayName": "Taro"})
        return httpx.Response(200, json={})

    def factory(self, access_token: str) -> LineMessagingClient:
        return LineMessagingClient(
            access_token, transport=httpx.MockTransport(self.handler), backoff_seconds=0
        )

    def sent(self, path_suffix: str) -> list[dict]:
        return [
            json.loads(r.content) for r in self.requests if r.url.path.endswith(path_suffix)
        ]


def make_event(db, organization_id="org-1", event_id="event-1", slots=None):
    event = Event(
        id=event_id,
        organization_id=organization_id,
        title="Investment seminar",
        slots=slots
        if slots is not None
        else [
            {"id": "slot-1", "startAt": "2025-11-15T12:00:00Z", "maxCapacity": 10, "currentCapacity": 3},
            {"id": "slot-2", "startAt": "2025-11-22T12:00:00Z", "maxCapacity": 10, "currentCapacity": 5},
        ],
        slots_version=0,
    )
    db.add(event)
    db.commit()
    return event


def make_application(
    db,
    application_id,
    user_id="U1",
    organization_id="org-1",
    event_id="event-1",
    slot_id="slot-1",
    status=ApplicationStatus.APPLIED,
    slot_at=NOW + timedelta(days=5),
    **kwargs,
):
    application = Application(
        id=application_id,
        user_id=user_id,
        organization_id=organization_id,
        event_id=event_id,
        slot_id=slot_id,
        status=status,
        slot_at=slot_at,
        plan=kwargs.pop("plan", "Beginner course"),
        **kwargs,
    )
    db.add(application)
    db.commit()
    return application


def make_reminder(db, application_id, user_id="U1", organization_id="org-1", **kwargs):
    reminder = Reminder(
        application_id=application_id,
        user_id=user_id,
        organization_id=organization_id,
        scheduled_at=kwargs.pop("scheduled_at", NOW + timedelta(days=4)),
        message=kwargs.pop("message", "Reminder: your seminar is tomorrow"),
        **kwargs,
    )
    db.add(reminder)
    db.commit()
    return reminder


def make_step(db, application_id, step_number=1, user_id="U1", organization_id="org-1", **kwargs):
    step = StepDelivery(
        application_id=application_id,
        user_id=user_id,
        organization_id=organization_id,
        step_number=step_number,
        scheduled_at=kwargs.pop("scheduled_at", NOW + timedelta(days=1)),
        status=kwargs.pop("status", StepDeliveryStatus.PENDING),
        message=kwargs.pop("message", f"Step {step_number}"),
        **kwargs,
    )
    db.add(step)
    db.commit()
    return step


def make_line_user(db, user_id="U1", organization_id="org-1", consent=True):
    line_user = LineUser(id=user_id, organization_id=organization_id, consent=consent)
    db.add(line_user)
    db.commit()
    return line_user


def slot_capacity(db, event_id, slot_id):
    db.expire_all()
    event = db.query(Event).filter(Event.id == event_id).one()
    return next(s["currentCapacity"] for s in event.slots if s["id"] == slot_id)
