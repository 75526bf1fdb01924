"""State machine for the five-page intake wizard."""

import uuid
from dataclasses import dataclass, field
from enum import Enum

from urgent_care_intake.client import ClientInfo
from urgent_care_intake.session import LookupSession


class FormPage(Enum):
    """Pages in the intake workflow."""
    LOOKUP = "lookup"
    REGISTRATION = "patient_registration"
    MEDICAL_HISTORY = "medical_history"
    PATIENT_CONSENT = "patient_consent"
    FINANCIAL_AGREEMENT = "financial_agreement"
    ADDITIONAL_CONSENTS = "additional_consents"
    COMPLETE = "complete"


PAGE_ORDER = [
    FormPage.LOOKUP,
    FormPage.REGISTRATION,
    FormPage.MEDICAL_HISTORY,
    FormPage.PATIENT_CONSENT,
    FormPage.FINANCIAL_AGREEMENT,
    FormPage.ADDITIONAL_CONSENTS,
    FormPage.COMPLETE,
]

# Required fields for each form page
PAGE_REQUIREMENTS = {
    FormPage.REGISTRATION: [
        "first_name", "last_name", "date_of_birth", "gender", "address", "city", "state",
        "zip_code", "cell_phone", "email", "reason_for_visit", "emergency_contact_name",
        "emergency_contact_phone", "emergency_relationship",
    ],
    FormPage.MEDICAL_HISTORY: ["smoke", "alcohol"],
    FormPage.PATIENT_CONSENT: [
        "read_and_understood", "questions_answered", "voluntary_consent",
        "patient_signature_name", "patient_signature", "signature_date",
    ],
    FormPage.FINANCIAL_AGREEMENT: [
        "payment_method", "finance_read_understood", "agree_to_terms", "authorize_insurance",
        "responsible_for_balance", "financial_signature_name", "financial_signature",
        "financial_signature_date", "relationship_to_patient",
    ],
    FormPage.ADDITIONAL_CONSENTS: [
        "hipaa_acknowledged", "contact_methods", "all_forms_complete", "consent_to_all",
        "final_signature_name", "final_signature", "final_signature_date",
    ],
}

# Optional fields shown on each page alongside the required ones
PAGE_OPTIONAL_FIELDS = {
    FormPage.REGISTRATION: [
        "middle_name", "ssn", "home_phone", "marital_status", "insurance_provider",
        "policy_number", "group_number", "policy_holder_name", "policy_holder_dob",
        "pcp_name", "pcp_phone", "allergies", "current_medications",
    ],
    FormPage.MEDICAL_HISTORY: [
        "conditions", "other_conditions", "previous_surgeries", "surgery_details",
        "has_allergies", "allergy_details", "family_history", "smoking_frequency",
        "alcohol_frequency",
    ],
    FormPage.PATIENT_CONSENT: ["guardian_name", "guardian_relationship"],
    FormPage.FINANCIAL_AGREEMENT: [],
    FormPage.ADDITIONAL_CONSENTS: [
        "authorize_discussion", "authorized_person_name", "authorized_person_phone",
        "authorized_person_relation", "voicemail_authorization", "portal_access", "portal_email",
    ],
}


def page_fields(page: FormPage) -> list[str]:
    return PAGE_REQUIREMENTS.get(page, []) + PAGE_OPTIONAL_FIELDS.get(page, [])


@dataclass
class IntakeState:
    """Tracks one patient's progress through the intake wizard."""
    current_page: FormPage = FormPage.LOOKUP

    # Patient identification
    patient_id: str | None = None
    visit_id: str | None = None
    is_returning: bool = False
    lookup_session: LookupSession | None = None

    client: ClientInfo = field(default_factory=lambda: ClientInfo(session_id=str(uuid.uuid4())))

    # Collected values per page, keyed by FormPage
    pages: dict = field(default_factory=dict)

    def fields_for(self, page: FormPage) -> dict:
        return self.pages.setdefault(page, {})

    def get_missing_fields(self, page: FormPage) -> list[str]:
        """Get required fields that are still empty for a page."""
        values = self.pages.get(page, {})
        return [f for f in PAGE_REQUIREMENTS.get(page, []) if not str(values.get(f) or "").strip()]

    def is_page_complete(self, page: FormPage) -> bool:
        return len(self.get_missing_fields(page)) == 0

    def merge_fields(self, page: FormPage, submitted: dict) -> list[str]:
        """Merge submitted values into a page. Returns list of changed fields.

        Keys that do not belong to the page are ignored.
        """
        allowed = set(page_fields(page))
        values = self.fields_for(page)
        changed = []
        for key, value in submitted.items():
            if key in allowed and value is not None and values.get(key) != value:
                values[key] = value
                changed.append(key)
        return changed

    def prefill(self, data: dict) -> None:
        """Load stored values for every page, e.g. for a returning patient."""
        for page in PAGE_REQUIREMENTS:
            stored = data.get(page.value) or {}
            allowed = set(page_fields(page))
            self.pages[page] = {k: v for k, v in stored.items() if k in allowed and v is not None}

    def reset(self) -> None:
        """Return to the lookup page, dropping identity and collected values."""
        self.current_page = FormPage.LOOKUP
        self.patient_id = None
        self.visit_id = None
        self.is_returning = False
        self.lookup_session = None
        self.pages = {}


def get_next_page(state: IntakeState) -> FormPage:
    """Determine the next page based on current page and field completion."""
    current = state.current_page

    if current == FormPage.LOOKUP:
        return FormPage.REGISTRATION if state.patient_id or not state.is_returning else FormPage.LOOKUP

    if current == FormPage.COMPLETE:
        return FormPage.COMPLETE

    if not state.is_page_complete(current):
        return current

    return PAGE_ORDER[PAGE_ORDER.index(current) + 1]
