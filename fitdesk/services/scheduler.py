# services/scheduler.py
"""Background job that runs the membership reminder sweep on a cron schedule."""
import atexit
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from fitdesk.errors import SweepAlreadyRunning
from fitdesk.services.reminders import sweep_and_notify

JOB_ID = 'membership_reminder_sweep'


def run_reminder_sweep(app):
    with app.app_context():
        try:
            return sweep_and_notify(app.store)
        except SweepAlreadyRunning:
            app.logger.info("Skipping scheduled membership sweep: another sweep is running")
            return []
        except Exception:
            app.logger.exception("Scheduled membership sweep failed")
            return []


def start_reminder_scheduler(app):
    """Start (once per app) the daily sweep. The job never overlaps itself."""
    scheduler = app.extensions.get('reminder_scheduler')
    if scheduler is not None:
        return scheduler

    scheduler = BackgroundScheduler(daemon=True)
    trigger = CronTrigger(hour=app.config['REMINDER_HOUR'], minute=app.config['REMINDER_MINUTE'])
    job_kwargs = {}
    if app.config.get('REMINDER_RUN_ON_START'):
        job_kwargs['next_run_time'] = datetime.now()

    scheduler.add_job(
        run_reminder_sweep,
        trigger,
        args=[app],
        id=JOB_ID,
        name='Daily membership reminder sweep',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
        **job_kwargs
    )
    scheduler.start()
    app.extensions['reminder_scheduler'] = scheduler
    atexit.register(stop_reminder_scheduler, app)
    app.logger.info("Reminder sweep scheduled daily at %02d:%02d",
                    app.config['REMINDER_HOUR'], app.config['REMINDER_MINUTE'])
    return scheduler


def stop_reminder_scheduler(app):
    scheduler = app.extensions.pop('reminder_scheduler', None)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
