"""
Proposal payload validation.

``validate_proposal_payload`` checks a JSON body for create (all required
fields present) or update (``partial=True``: only supplied keys checked) and
returns a cleaned dict restricted to known columns. All field errors are
collected and raised together as one ValidationError.
"""

from __future__ import annotations

from email_validator import EmailNotValidError, validate_email

from proposalhub.core.exceptions import ValidationError
from proposalhub.models.proposal import PROPOSAL_STATUSES, SERVICE_FREQUENCIES, SERVICE_TYPES

REQUIRED_FIELDS = (
    "title",
    "service_type",
    "client_name",
    "client_email",
    "contact_phone",
    "service_location",
    "facility_size",
    "service_frequency",
)

OPTIONAL_FIELDS = ("client_company", "service_data", "pricing_data", "status")

_STRING_LIMITS = {
    "title": 255,
    "client_name": 200,
    "client_email": 200,
    "client_company": 200,
    "contact_phone": 50,
    "service_location": 500,
}


def _clean_string(field, value, errors):
    if not isinstance(value, str) or not value.strip():
        errors[field] = "must be a non-empty string"
        return None
    value = value.strip()
    if len(value) > _STRING_LIMITS[field]:
        errors[field] = f"must be at most {_STRING_LIMITS[field]} characters"
        return None
    return value


def validate_proposal_payload(data, partial: bool = False) -> dict:
    """Validate and normalise a proposal payload.

    Raises:
        ValidationError: with ``details`` mapping field name to message.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    errors: dict[str, str] = {}
    cleaned: dict = {}

    if not partial:
        for field in REQUIRED_FIELDS:
            if data.get(field) in (None, ""):
                errors[field] = "required"

    for field in REQUIRED_FIELDS + OPTIONAL_FIELDS:
        if field not in data or field in errors:
            continue
        value = data[field]

        if field == "client_company":
            if value in (None, ""):
                cleaned[field] = None
                continue
            value = _clean_string(field, value, errors)
        elif field in _STRING_LIMITS:
            value = _clean_string(field, value, errors)
            if value is not None and field == "client_email":
                try:
                    value = validate_email(value, check_deliverability=False).normalized
                except EmailNotValidError as exc:
                    errors[field] = f"invalid email: {exc}"
                    continue
        elif field == "service_type":
            if not isinstance(value, str) or value not in SERVICE_TYPES:
                errors[field] = f"must be one of: {', '.join(sorted(SERVICE_TYPES))}"
                continue
        elif field == "service_frequency":
            if not isinstance(value, str) or value not in SERVICE_FREQUENCIES:
                errors[field] = f"must be one of: {', '.join(sorted(SERVICE_FREQUENCIES))}"
                continue
        elif field == "facility_size":
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                errors[field] = "must be a positive integer"
                continue
        elif field in ("service_data", "pricing_data"):
            if value is None:
                value = {}
            elif not isinstance(value, dict):
                errors[field] = "must be an object"
                continue
        elif field == "status":
            if not isinstance(value, str) or value not in PROPOSAL_STATUSES:
                errors[field] = f"must be one of: {', '.join(sorted(PROPOSAL_STATUSES))}"
                continue

        if field not in errors:
            cleaned[field] = value

    if errors:
        raise ValidationError("Invalid proposal", details=errors)
    return cleaned


def validate_status(value) -> str:
    """Return ``value`` if it is a known proposal status, else raise ValidationError."""
    if not isinstance(value, str) or value not in PROPOSAL_STATUSES:
        raise ValidationError(
            "Invalid status",
            details={"status": f"must be one of: {', '.join(sorted(PROPOSAL_STATUSES))}"},
        )
    return value
