"""Kiosk messages and reply parsing for the intake wizard."""

import re

from urgent_care_intake.change_tracker import ChangeSet
from urgent_care_intake.display_helpers import format_date_display, mask_ssn, time_since_visit
from urgent_care_intake.errors import InvalidInput, Throttled
from urgent_care_intake.state_machine import PAGE_REQUIREMENTS, FormPage, IntakeState, page_fields

# Display names where the field name alone reads poorly
FIELD_NAMES = {
    "date_of_birth": "date of birth",
    "dob": "date of birth",
    "ssn": "SSN",
    "zip_code": "ZIP code",
    "pcp_name": "primary care physician",
    "pcp_phone": "primary care physician phone",
    "policy_holder_dob": "policy holder date of birth",
    "hipaa_acknowledged": "HIPAA acknowledgement",
}

PAGE_TITLES = {
    FormPage.REGISTRATION: "Patient Registration",
    FormPage.MEDICAL_HISTORY: "Medical History",
    FormPage.PATIENT_CONSENT: "Consent to Treat",
    FormPage.FINANCIAL_AGREEMENT: "Financial Agreement",
    FormPage.ADDITIONAL_CONSENTS: "Additional Consents",
}

AFFIRMATIVE = {"yes", "y", "yep", "yeah", "ok", "okay", "correct", "confirm", "continue", "next"}
NEGATIVE = {"no", "n", "nope", "wrong", "incorrect"}


def field_label(field: str) -> str:
    return FIELD_NAMES.get(field, field.replace("_", " "))


def is_affirmative(user_input: str) -> bool:
    words = re.findall(r"[a-z']+", user_input.lower())
    return bool(words) and words[0] in AFFIRMATIVE


def is_negative(user_input: str) -> bool:
    words = re.findall(r"[a-z']+", user_input.lower())
    return bool(words) and words[0] in NEGATIVE


def parse_field_updates(user_input: str) -> dict:
    """Parse 'field=value; other field=value' replies into a dict.

    Field names may use spaces or underscores and are matched case-insensitively.
    """
    updates = {}
    for part in re.split(r"[;\n]", user_input):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = re.sub(r"\s+", "_", key.strip().lower())
        if key:
            updates[key] = value.strip()
    return updates


def generate_greeting() -> str:
    return (
        "Welcome to Urgent Care check-in!\n\n"
        "If you've visited us before, enter your **email** and **date of birth** "
        "(for example `jane@example.com 1990-01-31`) and we'll pre-fill your forms.\n\n"
        "First visit? Type **new** to register."
    )


def generate_patient_found_message(patient, last_visit=None) -> str:
    """Welcome-back message for a matched returning patient."""
    msg = f"Welcome back, {patient.first_name}! We found your records.\n\n"
    if last_visit:
        when = time_since_visit(last_visit.created_at)
        msg += f"Your last visit was {when}"
        if last_visit.reason_for_visit:
            msg += f" for {last_visit.reason_for_visit}"
        msg += ".\n\n"
    msg += (
        "Your forms have been pre-filled with the information on file. "
        "Please review each page and update anything that has changed."
    )
    return msg


def generate_not_found_message() -> str:
    return (
        "We couldn't find your records. Please check your email and date of birth, "
        "or type **new** to register as a new patient."
    )


def generate_throttled_message(error: Throttled) -> str:
    return (
        f"Too many lookup attempts. Please try again in {error.retry_after_minutes} minutes, "
        "or type **new** to register as a new patient."
    )


def generate_invalid_input_message(error: InvalidInput) -> str:
    lines = [f"- {field_label(field)}: {msg}" for field, msg in error.errors.items()]
    return "Please correct the following:\n" + "\n".join(lines)


def generate_session_expired_message() -> str:
    return (
        "For your privacy, your session has ended. "
        "Please enter your email and date of birth again to continue."
    )


def _display_value(field: str, value) -> str:
    if value is None or value == "":
        return "-"
    if field == "ssn":
        return mask_ssn(str(value))
    if field in ("date_of_birth", "policy_holder_dob"):
        return format_date_display(str(value))
    return str(value)


def generate_page_prompt(state: IntakeState) -> str:
    """Show the current page's fields with their values and what is still needed."""
    page = state.current_page
    values = state.pages.get(page, {})
    required = set(PAGE_REQUIREMENTS.get(page, []))

    msg = f"**{PAGE_TITLES.get(page, page.value)}**\n\n"
    for field in page_fields(page):
        marker = "*" if field in required else " "
        msg += f"- {field_label(field)}{marker}: {_display_value(field, values.get(field))}\n"

    missing = state.get_missing_fields(page)
    if missing:
        fields = ", ".join(field_label(f) for f in missing)
        msg += f"\nI still need your {fields}.\n"
    msg += "\nReply `field = value; field = value` to fill in or change fields, or **yes** to save this page."
    return msg


def generate_change_summary(change_set: ChangeSet) -> str:
    if not change_set.has_changes:
        return "Nothing changed since your last visit."
    lines = [
        f"- {field_label(f)}: {_display_value(f, d['old'])} -> {_display_value(f, d['new'])}"
        for f, d in change_set.changes.items()
    ]
    return "Updated since your last visit:\n" + "\n".join(lines)


def generate_end_message() -> str:
    return (
        "Thank you! Your check-in is complete. "
        "Please have a seat and a member of our staff will be with you shortly."
    )
