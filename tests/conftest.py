import sys
from pathlib import Path

import pytest

# -------------------------------------------------------------------
# Ensure repository root is on sys.path so `import fitdesk...` works
# without an editable install
# -------------------------------------------------------------------
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fitdesk.app import create_app  # noqa: E402

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "test-password"


# -------------------------------------------------------------------
# Flask app fixture: fresh SQLite file per test, no scheduler
# -------------------------------------------------------------------
@pytest.fixture()
def flask_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "DATABASE_PATH": str(tmp_path / "test_gym.sqlite"),
        "DEFAULT_ADMIN_EMAIL": ADMIN_EMAIL,
        "DEFAULT_ADMIN_PASSWORD": ADMIN_PASSWORD,
        "SCHEDULER_ENABLED": False,
        "MAIL_SUPPRESS_SEND": True,
        "MAIL_USERNAME": None,
        "MAIL_PASSWORD": None,
        "BCRYPT_LOG_ROUNDS": 4,
        "GYM_NAME": "Test Gym",
    })
    yield app


@pytest.fixture()
def client(flask_app):
    """Flask test client fixture."""
    return flask_app.test_client()


@pytest.fixture()
def admin_client(flask_app):
    """Test client with a logged-in admin session."""
    test_client = flask_app.test_client()
    resp = test_client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return test_client


@pytest.fixture()
def store(flask_app):
    return flask_app.store


@pytest.fixture()
def make_client(store):
    """Insert a client row directly and return its id."""
    counter = {"n": 0}

    def _make(name="Test Client", start="2025-01-01", end="2025-01-31",
              plan="1 Month", email=None, role="client", **extra):
        counter["n"] += 1
        fields = {
            "uid": f"uid-{counter['n']}",
            "rollno": extra.pop("rollno", 1000 + counter["n"]),
            "name": name,
            "password_hash": "x",
            "membership_type": plan,
            "membership_start": start,
            "membership_end": end,
            "role": role,
            "email": email,
        }
        fields.update(extra)
        return store.insert_client(fields)

    return _make


@pytest.fixture()
def admin_credentials():
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
