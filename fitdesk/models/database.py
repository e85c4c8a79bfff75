import logging
import sqlite3
from contextlib import contextmanager

from flask import current_app, has_app_context

DEFAULT_DB_PATH = 'gym_management.sqlite'
DEFAULT_TIMEOUT = 5.0

logger = logging.getLogger(__name__)


def get_db_connection(db_path=DEFAULT_DB_PATH, timeout=DEFAULT_TIMEOUT):
    """Get database connection with row factory and FK enabled.

    Connections run in autocommit mode; multi-statement work goes through
    `transaction()` which issues BEGIN IMMEDIATE / COMMIT / ROLLBACK itself.
    """
    conn = sqlite3.connect(db_path, timeout=timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def log_db_error(error, query, params):
    if has_app_context():
        current_app.logger.error("DB Error: %s | Query: %s | Params: %s", error, query, params)
    else:
        logger.error("DB Error: %s | Query: %s | Params: %s", error, query, params)


def execute_query(query, params=(), db_path=DEFAULT_DB_PATH, fetch=False, timeout=DEFAULT_TIMEOUT):
    """Execute a single statement. Returns rows when fetch=True, else lastrowid."""
    conn = get_db_connection(db_path, timeout)
    try:
        cursor = conn.execute(query, params)
        if fetch:
            return cursor.fetchall()
        return cursor.lastrowid
    except sqlite3.Error as e:
        log_db_error(e, query, params)
        raise
    finally:
        conn.close()


@contextmanager
def transaction(db_path=DEFAULT_DB_PATH, timeout=DEFAULT_TIMEOUT):
    """
    Yield a connection inside BEGIN IMMEDIATE ... COMMIT.

    IMMEDIATE takes the database write lock up front, so concurrent writers
    queue behind each other (up to `timeout`) instead of interleaving.
    Any exception rolls everything back and is re-raised.
    """
    conn = get_db_connection(db_path, timeout)
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def init_db(db_path=DEFAULT_DB_PATH, admin_email=None, admin_password_hash=None):
    """Initialize database with all required tables"""
    conn = get_db_connection(db_path)
    cursor = conn.cursor()

    cursor.execute("PRAGMA journal_mode = WAL")

    # Admin accounts (login only)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS admins (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'admin',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS clients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            uid TEXT UNIQUE NOT NULL,
            rollno INTEGER UNIQUE,
            name TEXT NOT NULL,
            dob DATE,
            gender TEXT,
            phone TEXT,
            email TEXT UNIQUE,
            password_hash TEXT NOT NULL,
            membership_type TEXT NOT NULL,
            membership_start DATE NOT NULL,
            membership_end DATE NOT NULL,
            role TEXT NOT NULL DEFAULT 'client',
            status TEXT CHECK (status IN ('unknown', 'active', 'expiring soon', 'expired')),
            address TEXT,
            has_trainer BOOLEAN NOT NULL DEFAULT 0,
            trainer_name TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # Renewal log: append-only, removed only with its client
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS membership_renewals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id INTEGER NOT NULL,
            client_name TEXT,
            membership_type TEXT NOT NULL,
            new_end_date DATE NOT NULL,
            renewal_date DATE NOT NULL,
            price_paid DECIMAL(10,2) NOT NULL DEFAULT 0,
            FOREIGN KEY (client_id) REFERENCES clients (id) ON DELETE CASCADE
        )
    ''')
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_renewals_client ON membership_renewals (client_id)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_renewals_date ON membership_renewals (renewal_date)"
    )

    # Email Logs table
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS email_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            recipient_email TEXT NOT NULL,
            subject TEXT NOT NULL,
            body TEXT,
            email_type TEXT,
            status TEXT DEFAULT 'pending' CHECK (status IN ('pending', 'sent', 'failed')),
            sent_at TIMESTAMP,
            error_message TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    if admin_email and admin_password_hash:
        insert_default_admin(cursor, admin_email, admin_password_hash)

    conn.close()


def insert_default_admin(cursor, email, password_hash):
    """Create the default admin account when no admin with that email exists."""
    cursor.execute('SELECT COUNT(*) FROM admins WHERE email = ?', (email,))
    if cursor.fetchone()[0] == 0:
        cursor.execute(
            'INSERT INTO admins (email, password_hash, role) VALUES (?, ?, ?)',
            (email, password_hash, 'admin'),
        )
        logger.info("Default admin created: %s", email)
