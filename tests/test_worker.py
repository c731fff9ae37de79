import pytest

from lapply.worker import WorkerSettings, deliver_steps_task, send_reminders_task


@pytest.mark.asyncio
async def test_jobs_run_with_nothing_due(db):
    assert await send_reminders_task({"job_id": "r"}) == {"sent": 0, "skipped": 0, "failed": 0}
    assert await deliver_steps_task({"job_id": "s"}) == {"sent": 0, "skipped": 0, "failed": 0}


def test_cron_schedule_runs_every_five_minutes():
    assert len(WorkerSettings.cron_jobs) == 2
    for job in WorkerSettings.cron_jobs:
        assert job.minute == {0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55}
        assert job.run_at_startup
