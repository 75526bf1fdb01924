"""Validation of lookup and registration input using Pydantic models."""

import re
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from urgent_care_intake.errors import InvalidInput

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Fallback messages when a field fails to parse at all
FIELD_ERROR_MESSAGES = {
    "email": "Please enter a valid email address",
    "date_of_birth": "Please enter a valid date of birth",
    "policy_holder_dob": "Please enter a valid date",
}


def normalize_dob(v):
    """Convert common date formats to YYYY-MM-DD."""
    if v is None or isinstance(v, date):
        return v
    v = str(v).strip()
    if not v:
        return None
    # Already in correct format
    if re.match(r"^\d{4}-\d{2}-\d{2}$", v):
        return v
    # MM/DD/YYYY or MM-DD-YYYY
    match = re.match(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$", v)
    if match:
        m, d, y = match.groups()
        return f"{y}-{m.zfill(2)}-{d.zfill(2)}"
    return v


def check_dob_range(v: date | None, info: ValidationInfo) -> date | None:
    """Reject dates of birth in the future or implausibly far in the past."""
    if v is None:
        return v
    context = info.context or {}
    today = context.get("today") or date.today()
    max_age_years = context.get("max_age_years", 120)
    if v > today:
        raise ValueError("Date of birth cannot be in the future")
    try:
        earliest = today.replace(year=today.year - max_age_years)
    except ValueError:
        # Feb 29 on a non-leap target year
        earliest = today.replace(year=today.year - max_age_years, day=28)
    if v < earliest:
        raise ValueError("Please enter a valid date of birth")
    return v


def check_email(v: str | None) -> str | None:
    if v is None:
        return v
    if not EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v


class LookupRequest(BaseModel):
    """Returning-patient lookup: email plus date of birth."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1)
    date_of_birth: date

    normalize_dob_format = field_validator("date_of_birth", mode="before")(normalize_dob)
    check_dob = field_validator("date_of_birth")(check_dob_range)
    check_email_format = field_validator("email")(check_email)


class RegistrationForm(BaseModel):
    """Page 1 of the intake wizard, in form order."""
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1)
    middle_name: str | None = None
    last_name: str = Field(min_length=1)
    date_of_birth: date
    gender: str = Field(min_length=1)
    ssn: str | None = None
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    home_phone: str | None = None
    cell_phone: str = Field(min_length=1)
    email: str = Field(min_length=1)
    marital_status: str | None = None
    emergency_contact_name: str = Field(min_length=1)
    emergency_contact_phone: str = Field(min_length=1)
    emergency_relationship: str = Field(min_length=1)
    insurance_provider: str | None = None
    policy_number: str | None = None
    group_number: str | None = None
    policy_holder_name: str | None = None
    policy_holder_dob: date | None = None
    pcp_name: str | None = None
    pcp_phone: str | None = None
    reason_for_visit: str = Field(min_length=1)
    allergies: str | None = None
    current_medications: str | None = None

    normalize_dob_format = field_validator("date_of_birth", "policy_holder_dob", mode="before")(normalize_dob)
    check_dob = field_validator("date_of_birth")(check_dob_range)
    check_email_format = field_validator("email")(check_email)

    @field_validator("cell_phone", "home_phone", "emergency_contact_phone", "pcp_phone", mode="before")
    @classmethod
    def normalize_phone(cls, v):
        """Extract digits only from phone number."""
        if not v:
            return v
        digits = re.sub(r"\D", "", str(v))
        # Normalize 11-digit numbers starting with 1
        if len(digits) == 11 and digits.startswith("1"):
            return digits[1:]
        return digits or v

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


def _to_invalid_input(error: ValidationError) -> InvalidInput:
    errors = {}
    for err in error.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        if field in errors:
            continue
        if err["type"] == "value_error":
            errors[field] = str(err["ctx"]["error"])
        elif err["type"] in ("missing", "string_too_short"):
            errors[field] = "This field is required"
        else:
            errors[field] = FIELD_ERROR_MESSAGES.get(field, "Please enter a valid value")
    return InvalidInput(errors)


def validate_lookup(
    email: str | None,
    date_of_birth: str | date | None,
    today: date | None = None,
    max_age_years: int = 120,
) -> LookupRequest:
    """Validate a lookup request, raising InvalidInput with per-field messages."""
    try:
        return LookupRequest.model_validate(
            {"email": email or "", "date_of_birth": date_of_birth},
            context={"today": today, "max_age_years": max_age_years},
        )
    except ValidationError as e:
        raise _to_invalid_input(e) from e


def validate_registration(data: dict, today: date | None = None, max_age_years: int = 120) -> dict:
    """Validate registration fields and return them normalized, dates as ISO strings."""
    try:
        form = RegistrationForm.model_validate(
            data, context={"today": today, "max_age_years": max_age_years}
        )
    except ValidationError as e:
        raise _to_invalid_input(e) from e
    return form.model_dump(mode="json")
