# tests/unit/test_services_renewal.py
import threading
from datetime import date

import pytest

from fitdesk.errors import NotFound, RenewalTransactionFailed, ValidationError
from fitdesk.models.store import StoreSession
from fitdesk.services.renewal import renew, validate_renewal


def test_renew_updates_client_and_logs_one_record(store, make_client):
    client_id = make_client(name="Meera")

    result = renew(store, client_id, "3 months", "2025-03-01", "2025-05-31", 1500,
                   today=date(2025, 3, 1))

    assert result["clientId"] == client_id
    assert result["membershipType"] == "3 Months"
    assert result["membershipStart"] == "2025-03-01"
    assert result["membershipEnd"] == "2025-05-31"
    assert result["status"] == "active"

    client = store.get_client_by_id(client_id)
    assert client.membership_type == "3 Months"
    assert client.membership_start == date(2025, 3, 1)
    assert client.membership_end == date(2025, 5, 31)
    assert client.status == "active"

    records = store.list_renewals_for_client(client_id)
    assert len(records) == 1
    assert records[0].id == result["renewalId"]
    assert records[0].price_paid == 1500.0
    assert records[0].client_name == "Meera"
    assert records[0].renewal_date == date(2025, 3, 1)
    assert records[0].new_end_date == date(2025, 5, 31)


def test_renewing_twice_creates_two_records_and_keeps_last(store, make_client):
    client_id = make_client()
    today = date(2025, 3, 1)

    renew(store, client_id, "1 Month", "2025-03-01", "2025-03-31", 500, today=today)
    renew(store, client_id, "1 Year", "2025-04-01", "2026-03-31", 6000, today=today)

    client = store.get_client_by_id(client_id)
    assert client.membership_type == "1 Year"
    assert client.membership_end == date(2026, 3, 31)
    assert len(store.list_renewals_for_client(client_id)) == 2


def test_renewal_status_reflects_new_end_date(store, make_client):
    client_id = make_client()
    result = renew(store, client_id, "1 Month", "2025-01-01", "2025-01-31", 0,
                   today=date(2025, 1, 29))
    assert result["status"] == "expiring soon"


def test_failed_history_insert_leaves_client_unchanged(store, make_client, monkeypatch):
    client_id = make_client(start="2025-01-01", end="2025-01-31", plan="1 Month")

    def broken_insert(self, fields):
        raise RuntimeError("disk full")

    monkeypatch.setattr(StoreSession, "insert_renewal", broken_insert)

    with pytest.raises(RenewalTransactionFailed):
        renew(store, client_id, "1 Year", "2025-02-01", "2026-01-31", 6000)

    client = store.get_client_by_id(client_id)
    assert client.membership_type == "1 Month"
    assert client.membership_start == date(2025, 1, 1)
    assert client.membership_end == date(2025, 1, 31)
    monkeypatch.undo()
    assert store.list_renewals_for_client(client_id) == []


def test_renew_missing_client(store):
    with pytest.raises(NotFound):
        renew(store, 999, "1 Month", "2025-03-01", "2025-03-31", 500)


def test_renew_client_deleted_before_transaction(store, make_client, monkeypatch):
    client_id = make_client()
    original_get = StoreSession.get_client_by_id

    # The client disappears between the lookup and the write lock
    def vanish(self, cid):
        if self.conn.in_transaction:
            return None
        return original_get(self, cid)

    monkeypatch.setattr(StoreSession, "get_client_by_id", vanish)
    with pytest.raises(NotFound):
        renew(store, client_id, "1 Month", "2025-03-01", "2025-03-31", 500)


@pytest.mark.parametrize("plan, start, end, price, field", [
    (None, "2025-03-01", "2025-03-31", 100, "membershipType"),
    ("  ", "2025-03-01", "2025-03-31", 100, "membershipType"),
    ("2 Weeks", "2025-03-01", "2025-03-31", 100, "membershipType"),
    ("1 Month", None, "2025-03-31", 100, "renewalStartDate"),
    ("1 Month", "March 1st", "2025-03-31", 100, "renewalStartDate"),
    ("1 Month", "2025-03-01", "", 100, "newEndDate"),
    ("1 Month", "2025-03-01", "2025-03-31", -5, "pricePaid"),
    ("1 Month", "2025-03-01", "2025-03-31", "free", "pricePaid"),
    ("1 Month", "2025-03-01", "2025-03-31", True, "pricePaid"),
    ("1 Month", "2025-03-01", "2025-03-31", None, "pricePaid"),
])
def test_validate_renewal_names_bad_field(plan, start, end, price, field):
    with pytest.raises(ValidationError) as exc:
        validate_renewal(plan, start, end, price)
    assert exc.value.field == field


def test_invalid_input_writes_nothing(store, make_client):
    client_id = make_client()
    with pytest.raises(ValidationError):
        renew(store, client_id, "1 Month", "2025-03-01", "2025-03-31", -1)
    assert store.list_renewals_for_client(client_id) == []
    assert store.get_client_by_id(client_id).membership_end == date(2025, 1, 31)


def _run_concurrently(*targets):
    """Start every callable at the same moment; collect results or exceptions."""
    barrier = threading.Barrier(len(targets))
    outcomes = [None] * len(targets)

    def worker(i, fn):
        barrier.wait()
        try:
            outcomes[i] = fn()
        except Exception as e:
            outcomes[i] = e

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(targets)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def test_concurrent_renewals_each_logged_once(store, make_client):
    client_id = make_client()
    ends = ["2025-04-30", "2025-05-31", "2025-06-30", "2025-07-31", "2025-08-31"]

    outcomes = _run_concurrently(*[
        (lambda end=end: renew(store, client_id, "1 Month", "2025-04-01", end, 100))
        for end in ends
    ])

    assert all(isinstance(o, dict) for o in outcomes), outcomes
    records = store.list_renewals_for_client(client_id, limit=100)
    assert len(records) == len(ends)
    assert sorted(r.new_end_date.isoformat() for r in records) == ends

    client = store.get_client_by_id(client_id)
    assert client.membership_end.isoformat() in ends
    # the client row matches the most recently committed renewal
    assert client.membership_end == records[0].new_end_date


def test_renewal_racing_delete_leaves_no_orphans(store, make_client):
    from fitdesk.services.clients import delete_client

    client_id = make_client()
    renew_outcome, delete_outcome = _run_concurrently(
        lambda: renew(store, client_id, "1 Month", "2025-04-01", "2025-04-30", 100),
        lambda: delete_client(store, client_id),
    )

    assert delete_outcome is None
    assert isinstance(renew_outcome, (dict, NotFound)), renew_outcome
    assert store.get_client_by_id(client_id) is None
    assert store.list_renewals_for_client(client_id) == []
    assert store.list_renewals() == []
