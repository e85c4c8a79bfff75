from flask import current_app

from .database import execute_query


class Admin:
    def __init__(self, id=None, email=None, password_hash=None, role='admin'):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.role = role

    @classmethod
    def _db_path(cls):
        return current_app.config['DATABASE_PATH']

    @classmethod
    def authenticate(cls, email, password):
        """Authenticate admin by email and password using bcrypt."""
        if not email or not password:
            return None
        result = execute_query(
            'SELECT id, email, password_hash, role FROM admins WHERE email = ?',
            (email.strip(),), cls._db_path(), fetch=True,
        )
        if not result:
            return None

        row = result[0]
        stored_hash = row['password_hash']
        try:
            if stored_hash and current_app.bcrypt.check_password_hash(stored_hash, password):
                return cls(id=row['id'], email=row['email'], password_hash=stored_hash, role=row['role'])
        except ValueError:
            # In case stored_hash has an unexpected format, treat as authentication failure
            current_app.logger.warning("Unreadable password hash for admin %s", email)
        return None

    @classmethod
    def get_by_id(cls, admin_id):
        result = execute_query(
            'SELECT id, email, password_hash, role FROM admins WHERE id = ?',
            (admin_id,), cls._db_path(), fetch=True,
        )
        if result:
            row = result[0]
            return cls(id=row['id'], email=row['email'], password_hash=row['password_hash'], role=row['role'])
        return None

    def to_dict(self):
        return {'id': self.id, 'email': self.email, 'role': self.role}
