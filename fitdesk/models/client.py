# models/client.py
from fitdesk.errors import ValidationError
from fitdesk.utils.helpers import parse_bool, validate_email
from fitdesk.utils.membership import compute_status, parse_date, parse_plan_type, to_iso


class Client:
    """
    Gym client aligned to the `clients` table:
      id, uid, rollno, name, dob, gender, phone, email, password_hash,
      membership_type, membership_start, membership_end, role, status,
      address, has_trainer, trainer_name, created_at, updated_at.

    `status` holds whatever was last persisted; `current_status()` is the
    value derived from membership_end and is what the API reports.
    """

    COLUMNS = (
        'id', 'uid', 'rollno', 'name', 'dob', 'gender', 'phone', 'email',
        'password_hash', 'membership_type', 'membership_start', 'membership_end',
        'role', 'status', 'address', 'has_trainer', 'trainer_name',
        'created_at', 'updated_at',
    )

    def __init__(self, id=None, uid=None, rollno=None, name=None, dob=None, gender=None,
                 phone=None, email=None, password_hash=None, membership_type=None,
                 membership_start=None, membership_end=None, role='client', status=None,
                 address=None, has_trainer=False, trainer_name=None,
                 created_at=None, updated_at=None):
        self.id = id
        self.uid = uid
        self.rollno = rollno
        self.name = name
        self.dob = parse_date(dob)
        self.gender = gender
        self.phone = phone
        self.email = email
        self.password_hash = password_hash
        self.membership_type = membership_type
        self.membership_start = parse_date(membership_start)
        self.membership_end = parse_date(membership_end)
        self.role = role or 'client'
        self.status = status
        self.address = address
        self.has_trainer = bool(has_trainer)
        self.trainer_name = trainer_name
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_row(cls, row):
        if row is None:
            return None
        keys = row.keys()
        return cls(**{k: row[k] for k in cls.COLUMNS if k in keys})

    def current_status(self, today=None):
        return compute_status(self.membership_end, today)

    def to_dict(self, today=None):
        """API representation. Never includes the password hash."""
        return {
            'id': self.id,
            'uid': self.uid,
            'rollno': self.rollno,
            'name': self.name,
            'dob': to_iso(self.dob),
            'gender': self.gender,
            'phone': self.phone,
            'email': self.email,
            'membershipType': self.membership_type,
            'membershipStart': to_iso(self.membership_start),
            'membershipEnd': to_iso(self.membership_end),
            'endDate': to_iso(self.membership_end),
            'role': self.role,
            'status': self.current_status(today),
            'address': self.address,
            'hasTrainer': self.has_trainer,
            'trainerName': self.trainer_name,
        }

    def __repr__(self):
        return f"<Client id={self.id} rollno={self.rollno} name={self.name!r}>"


class ClientUpdate:
    """
    Partial update of a client's mutable fields.

    Only the keys in FIELDS are accepted; anything else (including the
    immutable rollno/name/gender) is rejected with ValidationError.
    """

    # API key -> column
    FIELDS = {
        'membershipType': 'membership_type',
        'email': 'email',
        'phone': 'phone',
        'address': 'address',
        'dob': 'dob',
        'hasTrainer': 'has_trainer',
        'trainerName': 'trainer_name',
        'startDate': 'membership_start',
        'endDate': 'membership_end',
    }

    def __init__(self, **changes):
        unknown = sorted(set(changes) - set(self.FIELDS.values()))
        if unknown:
            raise ValidationError(unknown[0], f"Unknown client field: {unknown[0]}")
        self.changes = changes

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict) or not payload:
            raise ValidationError('body', 'No fields to update.')

        unknown = sorted(k for k in payload if k not in cls.FIELDS)
        if unknown:
            raise ValidationError(unknown[0], f"Field '{unknown[0]}' cannot be updated.")

        changes = {}
        for key, value in payload.items():
            column = cls.FIELDS[key]
            if key == 'membershipType':
                changes[column] = parse_plan_type(value)
            elif key in ('startDate', 'endDate'):
                parsed = parse_date(value)
                if parsed is None:
                    raise ValidationError(key, f"'{key}' must be a valid date (YYYY-MM-DD).")
                changes[column] = parsed.isoformat()
            elif key == 'dob':
                parsed = parse_date(value)
                if value not in (None, '') and parsed is None:
                    raise ValidationError(key, "'dob' must be a valid date (YYYY-MM-DD).")
                changes[column] = parsed.isoformat() if parsed else None
            elif key == 'email':
                if not validate_email(value):
                    raise ValidationError(key, 'A valid email address is required.')
                changes[column] = value.strip()
            elif key == 'hasTrainer':
                changes[column] = parse_bool(value)
            else:
                changes[column] = value.strip() if isinstance(value, str) else value
        return cls(**changes)

    def __contains__(self, column):
        return column in self.changes

    def to_columns(self, today=None):
        """Column values to write. Moving the end date re-derives the stored status."""
        columns = dict(self.changes)
        if 'membership_end' in columns:
            columns['status'] = compute_status(columns['membership_end'], today)
        return columns
