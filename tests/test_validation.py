import sys
from pathlib import Path
import pytest

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from models import PaymentMethod
from validation import FORM_FIELDS, prefill_form, validate_form

VALID_FORM = {
    "first_name": "Alex",
    "last_name": "Morgan",
    "email": "alex@quicktest.com",
    "phone": "5551234567",
    "address": "42 Harbor Street",
    "city": "Portland",
    "state": "OR",
    "zip": "97201",
    "country": "US",
    "payment_method": "credit",
}


def with_field(**changes):
    draft = dict(VALID_FORM)
    draft.update(changes)
    return draft


def test_valid_form_passes():
    result = validate_form(VALID_FORM)
    assert result.valid
    assert result.field_errors == {}
    assert result.form.payment_method is PaymentMethod.credit


def test_invalid_email_rejected():
    result = validate_form(with_field(email="not-an-email"))
    assert not result.valid
    assert result.field_errors == {"email": "Invalid email address"}


def test_short_zip_rejected_five_digits_accepted():
    short = validate_form(with_field(zip="123"))
    assert not short.valid
    assert short.field_errors["zip"] == "ZIP code must be at least 5 characters"
    assert validate_form(with_field(zip="12345")).valid


@pytest.mark.parametrize("field,value", [
    ("first_name", "A"),
    ("last_name", "B"),
    ("phone", "555-1234"),
    ("address", "1 St"),
    ("city", "X"),
    ("state", "O"),
    ("country", "U"),
])
def test_minimum_lengths(field, value):
    result = validate_form(with_field(**{field: value}))
    assert not result.valid
    assert list(result.field_errors) == [field]
    assert "at least" in result.field_errors[field]


def test_whitespace_does_not_count_towards_length():
    result = validate_form(with_field(city="  X  "))
    assert "city" in result.field_errors


@pytest.mark.parametrize("method", ["credit", "paypal", "apple"])
def test_payment_methods_accepted(method):
    assert validate_form(with_field(payment_method=method)).valid


def test_unknown_payment_method_rejected():
    result = validate_form(with_field(payment_method="bitcoin"))
    assert result.field_errors["payment_method"].startswith("Payment method must be one of")


def test_every_field_required():
    result = validate_form({})
    assert not result.valid
    assert set(result.field_errors) == set(FORM_FIELDS)
    assert result.field_errors["zip"] == "ZIP code is required"


def test_one_message_per_field():
    result = validate_form(with_field(email="", zip="1"))
    assert set(result.field_errors) == {"email", "zip"}
    assert all(isinstance(msg, str) for msg in result.field_errors.values())


def test_non_mapping_draft_is_rejected():
    result = validate_form(None)
    assert not result.valid
    assert result.field_errors


def test_prefill_from_profile():
    user = {"first_name": "Bob", "last_name": "Lee", "email": "bob@gmail.com", "phone": None, "zip": "73301"}
    draft = prefill_form(user)
    assert draft["first_name"] == "Bob"
    assert draft["phone"] == ""
    assert draft["city"] == ""
    assert draft["payment_method"] == "credit"
    assert set(draft) == set(FORM_FIELDS)
