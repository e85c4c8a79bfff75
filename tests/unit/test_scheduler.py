# tests/unit/test_scheduler.py
from unittest.mock import MagicMock

from fitdesk.services import reminders, scheduler


def test_start_registers_single_non_overlapping_job(flask_app):
    flask_app.config.update({"REMINDER_HOUR": 7, "REMINDER_MINUTE": 30})
    sched = scheduler.start_reminder_scheduler(flask_app)
    try:
        assert sched.running
        job = sched.get_job(scheduler.JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert "hour='7'" in str(job.trigger)
        assert "minute='30'" in str(job.trigger)

        # starting again reuses the running scheduler
        assert scheduler.start_reminder_scheduler(flask_app) is sched
        assert len(sched.get_jobs()) == 1
    finally:
        scheduler.stop_reminder_scheduler(flask_app)

    assert not sched.running
    assert "reminder_scheduler" not in flask_app.extensions


def test_run_on_start_schedules_immediate_run(flask_app, monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr(scheduler, "BackgroundScheduler", MagicMock(return_value=fake))
    monkeypatch.setattr(scheduler.atexit, "register", MagicMock())
    flask_app.config["REMINDER_RUN_ON_START"] = True

    scheduler.start_reminder_scheduler(flask_app)

    kwargs = fake.add_job.call_args.kwargs
    assert "next_run_time" in kwargs
    assert kwargs["max_instances"] == 1
    fake.start.assert_called_once()


def test_stop_without_start_is_noop(flask_app):
    scheduler.stop_reminder_scheduler(flask_app)


def test_run_reminder_sweep_uses_app_store(flask_app, monkeypatch):
    seen = []
    monkeypatch.setattr(scheduler, "sweep_and_notify", lambda store: seen.append(store) or ["x"])
    assert scheduler.run_reminder_sweep(flask_app) == ["x"]
    assert seen == [flask_app.store]


def test_run_reminder_sweep_logs_and_swallows_errors(flask_app, monkeypatch, caplog):
    def boom(store):
        raise RuntimeError("db locked")

    monkeypatch.setattr(scheduler, "sweep_and_notify", boom)
    assert scheduler.run_reminder_sweep(flask_app) == []
    assert "Scheduled membership sweep failed" in caplog.text


def test_create_app_does_not_start_scheduler_when_testing(flask_app):
    assert "reminder_scheduler" not in flask_app.extensions


def test_scheduled_run_skips_while_another_sweep_runs(flask_app, caplog):
    with reminders._sweep_lock:
        assert scheduler.run_reminder_sweep(flask_app) == []
    assert "another sweep is running" in caplog.text
    assert "Scheduled membership sweep failed" not in caplog.text
