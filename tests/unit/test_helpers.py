# tests/unit/test_helpers.py
import pytest

from fitdesk.utils import helpers


def test_validate_email():
    assert helpers.validate_email("member@example.com")
    assert not helpers.validate_email("member@example")
    assert not helpers.validate_email("")
    assert not helpers.validate_email(None)


def test_validate_phone():
    assert helpers.validate_phone("+91 98765-43210")
    assert not helpers.validate_phone("12345")


def test_format_currency():
    assert helpers.format_currency(1500) == "₹1,500.00"
    assert helpers.format_currency(12.5, symbol="$") == "$12.50"


def test_generate_password_length_and_charset():
    pw = helpers.generate_password()
    assert len(pw) == 8
    assert pw.isalnum()
    assert len(helpers.generate_password(12)) == 12


@pytest.mark.parametrize("value, expected", [
    (1500, 1500.0),
    ("99.5", 99.5),
    (0, 0.0),
    ("0", 0.0),
])
def test_parse_price_accepts(value, expected):
    assert helpers.parse_price(value) == expected


@pytest.mark.parametrize("value", [None, True, False, -1, "abc", float("nan"), float("inf"), ""])
def test_parse_price_rejects(value):
    assert helpers.parse_price(value) is None


def test_parse_bool():
    assert helpers.parse_bool("true") is True
    assert helpers.parse_bool("On") is True
    assert helpers.parse_bool("no") is False
    assert helpers.parse_bool(1) is True
    assert helpers.parse_bool(None) is False


def test_parse_rollno():
    assert helpers.parse_rollno("42") == 42
    assert helpers.parse_rollno(7) == 7
    assert helpers.parse_rollno("") is None
    assert helpers.parse_rollno(None) is None
    with pytest.raises(ValueError):
        helpers.parse_rollno("abc")
    with pytest.raises(ValueError):
        helpers.parse_rollno(True)


def test_validate_email_rejects_non_strings():
    assert not helpers.validate_email(5)
    assert not helpers.validate_email(["a@example.com"])
