# models/store.py
import sqlite3
from contextlib import contextmanager

from fitdesk.models.client import Client
from fitdesk.models.database import (
    DEFAULT_TIMEOUT, log_db_error, get_db_connection, transaction,
)
from fitdesk.models.renewal import RenewalRecord

_CLIENT_WRITABLE = tuple(c for c in Client.COLUMNS if c not in ('id', 'created_at', 'updated_at'))
_RENEWAL_WRITABLE = tuple(c for c in RenewalRecord.COLUMNS if c != 'id')


class StoreSession:
    """Client/renewal statements bound to one connection (plain or transactional)."""

    def __init__(self, conn):
        self.conn = conn

    def _execute(self, query, params=()):
        try:
            return self.conn.execute(query, params)
        except sqlite3.Error as e:
            log_db_error(e, query, params)
            raise

    # -------------------- Clients --------------------
    def get_client_by_id(self, client_id):
        row = self._execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        return Client.from_row(row)

    def list_clients(self):
        rows = self._execute("SELECT * FROM clients ORDER BY name COLLATE NOCASE, id").fetchall()
        return [Client.from_row(r) for r in rows]

    def find_client_by_rollno_or_email(self, rollno=None, email=None):
        row = self._execute(
            "SELECT * FROM clients WHERE (rollno IS NOT NULL AND rollno = ?) "
            "OR (email IS NOT NULL AND email = ?) LIMIT 1",
            (rollno, email),
        ).fetchone()
        return Client.from_row(row)

    def insert_client(self, fields):
        unknown = set(fields) - set(_CLIENT_WRITABLE)
        if unknown:
            raise KeyError(f"Unknown client columns: {sorted(unknown)}")
        columns = list(fields)
        placeholders = ", ".join("?" for _ in columns)
        cur = self._execute(
            f"INSERT INTO clients ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(fields[c] for c in columns),
        )
        return cur.lastrowid

    def update_client(self, client_id, fields):
        """Update the given columns. Returns the number of rows changed (0 if the client is gone)."""
        unknown = set(fields) - set(_CLIENT_WRITABLE)
        if unknown:
            raise KeyError(f"Unknown client columns: {sorted(unknown)}")
        if not fields:
            return 0
        columns = list(fields)
        assignments = ", ".join(f"{c} = ?" for c in columns)
        cur = self._execute(
            f"UPDATE clients SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            tuple(fields[c] for c in columns) + (client_id,),
        )
        return cur.rowcount

    def delete_client(self, client_id):
        """Remove the client and its renewal history. Returns rows removed from clients."""
        self._execute("DELETE FROM membership_renewals WHERE client_id = ?", (client_id,))
        cur = self._execute("DELETE FROM clients WHERE id = ?", (client_id,))
        return cur.rowcount

    # -------------------- Renewals --------------------
    def insert_renewal(self, fields):
        unknown = set(fields) - set(_RENEWAL_WRITABLE)
        if unknown:
            raise KeyError(f"Unknown renewal columns: {sorted(unknown)}")
        columns = list(fields)
        placeholders = ", ".join("?" for _ in columns)
        cur = self._execute(
            f"INSERT INTO membership_renewals ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(fields[c] for c in columns),
        )
        return cur.lastrowid

    def list_renewals_for_client(self, client_id, limit=5):
        rows = self._execute(
            "SELECT * FROM membership_renewals WHERE client_id = ? "
            "ORDER BY renewal_date DESC, id DESC LIMIT ?",
            (client_id, limit),
        ).fetchall()
        return [RenewalRecord.from_row(r) for r in rows]

    def list_renewals(self, start_date=None, end_date=None):
        sql = "SELECT * FROM membership_renewals"
        params = []
        if start_date and end_date:
            sql += " WHERE DATE(renewal_date) BETWEEN DATE(?) AND DATE(?)"
            params.extend([start_date, end_date])
        elif start_date:
            sql += " WHERE DATE(renewal_date) >= DATE(?)"
            params.append(start_date)
        elif end_date:
            sql += " WHERE DATE(renewal_date) <= DATE(?)"
            params.append(end_date)
        sql += " ORDER BY renewal_date DESC, id DESC"
        rows = self._execute(sql, tuple(params)).fetchall()
        return [RenewalRecord.from_row(r) for r in rows]


class MembershipStore:
    """
    Persistence for clients and renewal history.

    Reads run on short-lived autocommit connections. Writes, and anything
    passed to `transaction()` / `with_transaction()`, run inside
    BEGIN IMMEDIATE so they commit or roll back as a unit.
    """

    def __init__(self, db_path, timeout=DEFAULT_TIMEOUT):
        self.db_path = db_path
        self.timeout = timeout

    @contextmanager
    def session(self):
        conn = get_db_connection(self.db_path, self.timeout)
        try:
            yield StoreSession(conn)
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        with transaction(self.db_path, self.timeout) as conn:
            yield StoreSession(conn)

    def with_transaction(self, fn):
        """Run fn(session) atomically and return its result."""
        with self.transaction() as tx:
            return fn(tx)

    # Single-statement conveniences
    def get_client_by_id(self, client_id):
        with self.session() as s:
            return s.get_client_by_id(client_id)

    def list_clients(self):
        with self.session() as s:
            return s.list_clients()

    def find_client_by_rollno_or_email(self, rollno=None, email=None):
        with self.session() as s:
            return s.find_client_by_rollno_or_email(rollno, email)

    def insert_client(self, fields):
        return self.with_transaction(lambda tx: tx.insert_client(fields))

    def update_client(self, client_id, fields):
        return self.with_transaction(lambda tx: tx.update_client(client_id, fields))

    def delete_client(self, client_id):
        return self.with_transaction(lambda tx: tx.delete_client(client_id))

    def insert_renewal(self, fields):
        return self.with_transaction(lambda tx: tx.insert_renewal(fields))

    def list_renewals_for_client(self, client_id, limit=5):
        with self.session() as s:
            return s.list_renewals_for_client(client_id, limit)

    def list_renewals(self, start_date=None, end_date=None):
        with self.session() as s:
            return s.list_renewals(start_date, end_date)
