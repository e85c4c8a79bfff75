# fitdesk/utils/membership.py
"""
Membership date rules shared by the API, the renewal workflow and the reminder sweep.

- End date of a plan is the last day before the next cycle starts:
  2024-01-01 + "1 Month" -> 2024-01-31.
- Status is derived from the end date and today. A membership is valid
  through its end date, so the end date itself is never "expired".
"""
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from fitdesk.errors import InvalidPlanType

PLAN_MONTHS = {
    "1 Month": 1,
    "3 Months": 3,
    "6 Months": 6,
    "1 Year": 12,
}

STATUS_UNKNOWN = "unknown"
STATUS_ACTIVE = "active"
STATUS_EXPIRING_SOON = "expiring soon"
STATUS_EXPIRED = "expired"

STATUSES = (STATUS_UNKNOWN, STATUS_ACTIVE, STATUS_EXPIRING_SOON, STATUS_EXPIRED)

EXPIRING_THRESHOLD_DAYS = 3

_PLAN_LOOKUP = {name.lower(): name for name in PLAN_MONTHS}


def parse_plan_type(plan_type):
    """Return the canonical plan label ("1 Month", ...) or raise InvalidPlanType."""
    if not isinstance(plan_type, str):
        raise InvalidPlanType(plan_type)
    key = " ".join(plan_type.split()).lower()
    try:
        return _PLAN_LOOKUP[key]
    except KeyError:
        raise InvalidPlanType(plan_type) from None


def plan_months(plan_type):
    return PLAN_MONTHS[parse_plan_type(plan_type)]


def parse_date(value):
    """Parse a DB/API value to a date. Returns None for empty or unparseable input."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        # Accept both 'YYYY-MM-DD' and full ISO timestamps
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def to_iso(value):
    """Serialize a date-like value to 'YYYY-MM-DD' (None stays None)."""
    d = parse_date(value)
    return d.isoformat() if d else None


def compute_end_date(start_date, plan_type):
    """
    Last valid day of a membership that starts on `start_date`.

    Calendar-month arithmetic: the next cycle starts `months` later (clamped
    to the end of a shorter month) and the membership ends the day before.
    """
    months = plan_months(plan_type)
    start = parse_date(start_date)
    if start is None:
        raise ValueError(f"Invalid start date: {start_date!r}")
    next_cycle_start = start + relativedelta(months=months)
    return next_cycle_start - timedelta(days=1)


def days_remaining(end_date, today=None):
    """Whole calendar days from today until end_date (negative once past). None if unparseable."""
    end = parse_date(end_date)
    if end is None:
        return None
    today = parse_date(today) or date.today()
    return (end - today).days


def compute_status(end_date, today=None):
    days = days_remaining(end_date, today)
    if days is None:
        return STATUS_UNKNOWN
    if days < 0:
        return STATUS_EXPIRED
    if days <= EXPIRING_THRESHOLD_DAYS:
        return STATUS_EXPIRING_SOON
    return STATUS_ACTIVE


def preview(start_date, plan_type, today=None):
    """Projected window and status for a plan starting on start_date (used for UI previews)."""
    plan = parse_plan_type(plan_type)
    end = compute_end_date(start_date, plan)
    return {
        "membershipType": plan,
        "membershipStart": to_iso(start_date),
        "membershipEnd": end.isoformat(),
        "status": compute_status(end, today),
    }
