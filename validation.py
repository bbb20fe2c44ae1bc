"""Checkout form validation.

The rules live on :class:`models.CustomerForm` as pydantic constraints. This
module runs them against a raw draft and turns pydantic's error list into one
readable message per field, which is what the checkout form shows next to
each input.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ValidationError

from models import CustomerForm, PaymentMethod

FIELD_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone number",
    "address": "Address",
    "city": "City",
    "state": "State",
    "zip": "ZIP code",
    "country": "Country",
    "payment_method": "Payment method",
}

FORM_FIELDS = tuple(FIELD_LABELS)


class ValidationResult(BaseModel):
    valid: bool
    field_errors: Dict[str, str] = {}
    form: Optional[CustomerForm] = None


def _message(error: dict) -> str:
    label = FIELD_LABELS.get(str(error["loc"][0]), str(error["loc"][0]))
    kind = error["type"]
    if kind == "missing":
        return f"{label} is required"
    if kind == "string_too_short":
        return f"{label} must be at least {error['ctx']['min_length']} characters"
    if kind == "enum":
        choices = ", ".join(m.value for m in PaymentMethod)
        return f"{label} must be one of: {choices}"
    if kind == "value_error" and error["loc"][0] == "email":
        return "Invalid email address"
    return f"{label}: {error['msg']}"


def validate_form(draft: dict) -> ValidationResult:
    """Validate a checkout draft. Only the first failing rule per field is reported."""
    try:
        form = CustomerForm.model_validate(draft)
    except ValidationError as e:
        field_errors: Dict[str, str] = {}
        for error in e.errors():
            if not error["loc"]:
                field_errors.setdefault("__root__", error["msg"])
                continue
            field_errors.setdefault(str(error["loc"][0]), _message(error))
        return ValidationResult(valid=False, field_errors=field_errors)
    return ValidationResult(valid=True, form=form)


def prefill_form(user: dict) -> dict:
    """Build a fresh checkout draft from the signed-in user's profile."""
    draft = {name: user.get(name) or "" for name in FORM_FIELDS if name != "payment_method"}
    draft["payment_method"] = PaymentMethod.credit.value
    return draft
