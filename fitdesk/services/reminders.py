# services/reminders.py
import logging
import threading
from datetime import date

from fitdesk.errors import SweepAlreadyRunning
from fitdesk.utils.email_utils import send_membership_reminder
from fitdesk.utils.membership import (
    STATUS_EXPIRED, STATUS_EXPIRING_SOON, compute_status, days_remaining, parse_date,
)

logger = logging.getLogger(__name__)

REMINDER_DAYS = (3, 0)

# Shared by the scheduled job and manual runs
_sweep_lock = threading.Lock()


def sweep_and_notify(store, today=None, notifier=send_membership_reminder):
    """
    Check every client's membership and send due reminders.

    Clients ending in exactly 3 days or today get a reminder. Status is
    derived, never written back. A failed send is logged and the sweep
    moves on. Returns the clients needing attention as
    [{clientId, clientName, status, daysRemaining}].

    Only one sweep runs at a time; a second caller gets SweepAlreadyRunning.
    """
    if not _sweep_lock.acquire(blocking=False):
        raise SweepAlreadyRunning()
    try:
        return _sweep(store, today, notifier)
    finally:
        _sweep_lock.release()


def _sweep(store, today, notifier):
    today = parse_date(today) or date.today()
    logger.info("Running membership check and notification for %s", today.isoformat())

    attention = []
    sent = failed = 0

    for client in store.list_clients():
        if client.role == 'admin' or not client.email:
            continue

        days = days_remaining(client.membership_end, today)
        if days is None:
            logger.warning("Skipping client %s due to invalid membership end date.", client.name)
            continue

        status = compute_status(client.membership_end, today)

        if days in REMINDER_DAYS:
            try:
                if notifier(client.email, client.name, days):
                    sent += 1
            except Exception as e:
                failed += 1
                logger.warning("Reminder to %s (client %s) failed: %s", client.email, client.id, e)

        if status in (STATUS_EXPIRING_SOON, STATUS_EXPIRED):
            attention.append({
                'clientId': client.id,
                'clientName': client.name,
                'status': status,
                'daysRemaining': days,
            })

    logger.info("Membership check done: %d reminder(s) sent, %d failed, %d client(s) need attention.",
                sent, failed, len(attention))
    for item in attention:
        logger.info("- %s's membership is %s.", item['clientName'], item['status'])
    return attention
