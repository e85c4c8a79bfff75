# services/clients.py
import logging
import sqlite3
import uuid
from datetime import date

from fitdesk.errors import DuplicateClient, InvalidPlanType, NotFound, ValidationError
from fitdesk.models.client import ClientUpdate
from fitdesk.utils.helpers import generate_password, parse_bool, parse_rollno, validate_email
from fitdesk.utils.membership import compute_end_date, compute_status, parse_date, parse_plan_type

logger = logging.getLogger(__name__)

CREATE_FIELDS = (
    'rollno', 'name', 'dob', 'gender', 'phone', 'email', 'membershipType',
    'startDate', 'membershipEnd', 'address', 'hasTrainer', 'trainerName',
)


def _text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def create_client(store, payload, password_hasher, today=None):
    """
    Register a new client.

    `membershipEnd` is optional and defaults to the end of the first plan
    period. Returns (client, temporary_password).
    """
    if not isinstance(payload, dict):
        raise ValidationError('body', 'Expected a JSON object.')
    unknown = sorted(k for k in payload if k not in CREATE_FIELDS)
    if unknown:
        raise ValidationError(unknown[0], f"Unknown client field: {unknown[0]}")

    name = _text(payload.get('name'))
    if not name:
        raise ValidationError('name', 'Name is required.')

    dob = parse_date(payload.get('dob'))
    if dob is None:
        raise ValidationError('dob', 'A valid date of birth is required.')

    if not payload.get('membershipType'):
        raise ValidationError('membershipType', 'Membership type is required.')
    try:
        plan = parse_plan_type(payload.get('membershipType'))
    except InvalidPlanType as e:
        raise ValidationError('membershipType', e.message) from e

    start = parse_date(payload.get('startDate'))
    if start is None:
        raise ValidationError('startDate', 'A valid start date is required.')

    if payload.get('membershipEnd'):
        end = parse_date(payload['membershipEnd'])
        if end is None:
            raise ValidationError('membershipEnd', 'End date must be a valid date (YYYY-MM-DD).')
        if end < start:
            raise ValidationError('membershipEnd', 'End date cannot be before the start date.')
    else:
        end = compute_end_date(start, plan)

    email = _text(payload.get('email'))
    if email and not validate_email(email):
        raise ValidationError('email', 'A valid email address is required.')

    try:
        rollno = parse_rollno(payload.get('rollno'))
    except (TypeError, ValueError):
        raise ValidationError('rollno', 'Roll No must be a whole number.') from None

    has_trainer = parse_bool(payload.get('hasTrainer', False))
    trainer_name = _text(payload.get('trainerName'))
    if has_trainer and not trainer_name:
        raise ValidationError('trainerName', 'Trainer name is required when a trainer is assigned.')

    existing = store.find_client_by_rollno_or_email(rollno, email)
    if existing:
        if rollno is not None and existing.rollno == rollno:
            raise DuplicateClient("A user with this Roll No already exists.")
        raise DuplicateClient("A user with this Email already exists.")

    temporary_password = generate_password(8)
    fields = {
        'uid': str(uuid.uuid4()),
        'rollno': rollno,
        'name': name,
        'dob': dob.isoformat(),
        'gender': _text(payload.get('gender')),
        'phone': _text(payload.get('phone')),
        'email': email,
        'password_hash': password_hasher(temporary_password),
        'membership_type': plan,
        'membership_start': start.isoformat(),
        'membership_end': end.isoformat(),
        'role': 'client',
        'status': compute_status(end, today),
        'address': _text(payload.get('address')),
        'has_trainer': has_trainer,
        'trainer_name': trainer_name if has_trainer else None,
    }
    try:
        client_id = store.insert_client(fields)
    except sqlite3.IntegrityError as e:
        # Lost a race against another insert with the same roll number or email
        raise DuplicateClient("A user with this Roll No or Email already exists.") from e

    logger.info("Client %s created (rollno=%s, %s until %s)", client_id, rollno, plan, end)
    return store.get_client_by_id(client_id), temporary_password


def update_client(store, client_id, payload, today=None):
    """Apply a partial update; unknown or immutable fields are rejected."""
    update = ClientUpdate.from_payload(payload)

    client = store.get_client_by_id(client_id)
    if client is None:
        raise NotFound()

    columns = update.to_columns(today or date.today())

    # Trainer and date rules hold for the row as it will be after the update
    has_trainer = columns.get('has_trainer', client.has_trainer)
    if not has_trainer:
        if 'has_trainer' in columns:
            columns['trainer_name'] = None
    elif not _text(columns.get('trainer_name', client.trainer_name)):
        raise ValidationError('trainerName', 'Trainer name is required when a trainer is assigned.')

    start = parse_date(columns.get('membership_start', client.membership_start))
    end = parse_date(columns.get('membership_end', client.membership_end))
    if start and end and end < start:
        field = 'endDate' if 'membership_end' in columns else 'startDate'
        raise ValidationError(field, 'End date cannot be before the start date.')

    try:
        changed = store.update_client(client_id, columns)
    except sqlite3.IntegrityError as e:
        raise DuplicateClient("A user with this Email already exists.") from e
    if not changed:
        raise NotFound()

    logger.info("Client %s updated: %s", client_id, ", ".join(sorted(columns)))
    return store.get_client_by_id(client_id)


def delete_client(store, client_id):
    """Delete a client together with its renewal history, atomically."""
    def apply(tx):
        if not tx.delete_client(client_id):
            raise NotFound()

    store.with_transaction(apply)
    logger.info("Client %s and renewal history deleted", client_id)
