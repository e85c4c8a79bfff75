import math
import re
import secrets
import string


def validate_email(email):
    """Validate email format"""
    if not isinstance(email, str):
        return False
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def validate_phone(phone):
    """Validate phone number format"""
    # Remove all non-digit characters
    digits_only = re.sub(r'\D', '', phone or '')
    return len(digits_only) >= 10


def format_currency(amount, symbol='₹'):
    """Format amount as currency"""
    return f"{symbol}{amount:,.2f}"


def generate_password(length=8):
    """Random alphanumeric password for newly created client accounts."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def parse_price(value):
    """Return value as a finite float >= 0, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price < 0:
        return None
    return price


def parse_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def parse_rollno(value):
    """Roll numbers are optional integers; blank means unassigned."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("rollno must be an integer")
    return int(value)
