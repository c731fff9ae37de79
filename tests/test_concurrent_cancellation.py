import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lapply.database import Base
from lapply.domain.cancellation.service import (
    OUTCOME_ALREADY_CANCELED,
    OUTCOME_CANCELED,
    CancellationService,
)
from lapply.models import Reminder, StepDelivery, StepDeliveryStatus
from tests.support import NOW, make_application, make_event, make_reminder, make_step, slot_capacity

CALLERS = 8


@pytest.fixture
def file_sessions(tmp_path):
    """Sessions with their own connections to one SQLite file"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


def _cancel_together(session_factory, application_id, callers):
    barrier = threading.Barrier(callers)

    def cancel_once(_):
        db = session_factory()
        try:
            barrier.wait()
            return CancellationService(db).cancel(application_id, now=NOW)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=callers) as pool:
        return list(pool.map(cancel_once, range(callers)))


def test_concurrent_cancels_of_one_application_decrement_once(file_sessions):
    db = file_sessions()
    make_event(db)
    make_application(db, "app-1")
    make_reminder(db, "app-1")
    make_reminder(db, "app-1")
    make_step(db, "app-1")
    db.close()

    results = _cancel_together(file_sessions, "app-1", CALLERS)

    outcomes = sorted(r.outcome for r in results)
    assert outcomes.count(OUTCOME_CANCELED) == 1
    assert outcomes.count(OUTCOME_ALREADY_CANCELED) == CALLERS - 1
    assert sum(r.capacity_released for r in results) == 1
    assert sum(r.reminders_canceled for r in results) == 2
    assert sum(r.step_deliveries_skipped for r in results) == 1

    db = file_sessions()
    try:
        assert slot_capacity(db, "event-1", "slot-1") == 2
        assert all(r.canceled for r in db.query(Reminder).all())
        assert db.query(StepDelivery).one().status == StepDeliveryStatus.SKIPPED
    finally:
        db.close()


def test_concurrent_cancels_of_different_applications_in_one_slot(file_sessions):
    db = file_sessions()
    make_event(db)
    for n in range(3):
        make_application(db, f"app-{n}", user_id=f"U{n}")
    db.close()

    barrier = threading.Barrier(3)

    def cancel_one(n):
        session = file_sessions()
        try:
            barrier.wait()
            return CancellationService(session).cancel(f"app-{n}", now=NOW)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=3) as pool:
        results = list(pool.map(cancel_one, range(3)))

    assert [r.outcome for r in results] == [OUTCOME_CANCELED] * 3
    assert all(r.capacity_released for r in results)
    db = file_sessions()
    try:
        assert slot_capacity(db, "event-1", "slot-1") == 0
    finally:
        db.close()
