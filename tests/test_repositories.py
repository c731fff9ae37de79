from datetime import timedelta

from lapply.domain.applications.repository import ApplicationRepository
from lapply.domain.events.repository import EventRepository
from lapply.domain.notifications.repository import NotificationRepository
from lapply.models import ApplicationStatus, Reminder, StepDelivery, StepDeliveryStatus
from tests.support import NOW, make_application, make_event, make_reminder, make_step, slot_capacity


def test_transition_only_moves_applied_applications(db, organization):
    make_application(db, "applied")
    make_application(db, "confirmed", status=ApplicationStatus.CONFIRMED)

    assert ApplicationRepository.transition_to_canceled(db, "applied", NOW) is True
    assert ApplicationRepository.transition_to_canceled(db, "applied", NOW) is False
    assert ApplicationRepository.transition_to_canceled(db, "confirmed", NOW) is False
    assert ApplicationRepository.get_status(db, "applied") == ApplicationStatus.CANCELED
    assert ApplicationRepository.get_status(db, "confirmed") == ApplicationStatus.CONFIRMED


def test_stamp_canceled_at_does_not_overwrite(db, organization):
    earlier = NOW - timedelta(days=1)
    make_application(db, "a", status=ApplicationStatus.CANCELED, canceled_at=earlier)
    make_application(db, "b", status=ApplicationStatus.CANCELED)

    assert ApplicationRepository.stamp_canceled_at(db, "a", NOW) is False
    assert ApplicationRepository.stamp_canceled_at(db, "b", NOW) is True
    db.expire_all()
    assert ApplicationRepository.get_application(db, "a").canceled_at == earlier


def test_status_counts(db, organization):
    make_application(db, "a")
    make_application(db, "b")
    make_application(db, "c", status=ApplicationStatus.CANCELED)
    make_application(db, "d", organization_id="org-2")

    assert ApplicationRepository.get_status_counts(db, "org-1") == {"applied": 2, "canceled": 1}
    assert ApplicationRepository.get_status_counts(db) == {"applied": 3, "canceled": 1}


def test_reminder_cancel_touches_only_the_application(db, organization):
    make_reminder(db, "a")
    make_reminder(db, "a", canceled=True)
    make_reminder(db, "b")

    assert NotificationRepository.cancel_pending_reminders(db, "a") == 1
    assert NotificationRepository.cancel_pending_reminders(db, "a") == 0
    db.expire_all()
    remaining = db.query(Reminder).filter(Reminder.canceled.is_(False)).all()
    assert [r.application_id for r in remaining] == ["b"]


def test_step_skip_keeps_sent_steps(db, organization):
    make_step(db, "a", step_number=1, status=StepDeliveryStatus.SENT)
    make_step(db, "a", step_number=2)
    make_step(db, "a", step_number=3)

    assert NotificationRepository.skip_pending_step_deliveries(db, "a") == 2
    db.expire_all()
    statuses = {s.step_number: s.status for s in db.query(StepDelivery).all()}
    assert statuses == {
        1: StepDeliveryStatus.SENT,
        2: StepDeliveryStatus.SKIPPED,
        3: StepDeliveryStatus.SKIPPED,
    }


def test_due_queries_skip_canceled_and_sent_records(db, organization):
    due = NOW - timedelta(minutes=1)
    make_reminder(db, "a", scheduled_at=due)
    make_reminder(db, "b", scheduled_at=due, canceled=True)
    make_reminder(db, "c", scheduled_at=due, sent_at=due)
    make_reminder(db, "d", scheduled_at=NOW + timedelta(hours=1))
    make_step(db, "a", scheduled_at=due)
    make_step(db, "b", scheduled_at=due, status=StepDeliveryStatus.SKIPPED)

    assert [r.application_id for r in NotificationRepository.get_due_reminders(db, NOW, 10)] == ["a"]
    steps = NotificationRepository.get_due_step_deliveries(db, NOW, 10)
    assert [s.application_id for s in steps] == ["a"]


def test_counts_for_application(db, organization):
    make_reminder(db, "a")
    make_reminder(db, "a", canceled=True)
    make_step(db, "a", step_number=1)
    make_step(db, "a", step_number=2, status=StepDeliveryStatus.SKIPPED)

    assert NotificationRepository.get_counts_for_application(db, "a") == {
        "reminders": {"active": 1, "canceled": 1},
        "step_deliveries": {"pending": 1, "skipped": 1},
    }


def test_release_slot_is_once_per_application(db, organization):
    make_event(db)
    make_application(db, "a")

    first = EventRepository.release_slot(db, "event-1", "slot-1", "a", NOW)
    second = EventRepository.release_slot(db, "event-1", "slot-1", "a", NOW)

    assert first.released and (first.previous, first.updated) == (3, 2)
    assert not second.released and second.reason == "already released"
    assert slot_capacity(db, "event-1", "slot-1") == 2
    assert EventRepository.read_slots(db, "event-1")[1] == 1


def test_release_slot_leaves_other_slots_untouched(db, organization):
    make_event(db)
    make_application(db, "a", slot_id="slot-2")

    EventRepository.release_slot(db, "event-1", "slot-2", "a", NOW)

    assert slot_capacity(db, "event-1", "slot-1") == 3
    assert slot_capacity(db, "event-1", "slot-2") == 4
