"""Resolve a returning patient from email and date of birth."""

import logging
from datetime import date

from urgent_care_intake.client import ClientInfo
from urgent_care_intake.errors import PatientNotFound, PersistenceFailure
from urgent_care_intake.patient_intake.database import LookupAttempt, Patient
from urgent_care_intake.stores import AuditStore, PatientStore

logger = logging.getLogger(__name__)


class PatientMatcher:
    """Looks up patients and records every attempt in the lookup audit trail."""

    def __init__(self, patients: PatientStore, audit: AuditStore):
        self.patients = patients
        self.audit = audit

    def lookup(self, email: str, date_of_birth: date, client: ClientInfo | None = None) -> Patient:
        """Find the patient for (email, date of birth).

        Email matching is case-insensitive and the date must match exactly.
        The attempt is audited whether or not a patient is found, including
        when the read itself fails.
        """
        client = client or ClientInfo()
        patient = None
        try:
            patient = self.patients.find_by_email_and_dob(email, date_of_birth)
        finally:
            self.record_attempt(email, date_of_birth, patient, client)

        if patient is None:
            logger.info("No patient matched lookup from %s", client.ip_address)
            raise PatientNotFound(email)

        logger.info("Matched patient %s for lookup from %s", patient.id, client.ip_address)
        return patient

    def record_attempt(
        self, email: str, date_of_birth: date, patient: Patient | None, client: ClientInfo
    ) -> None:
        """Append one lookup attempt to the audit trail. Failures are logged, never raised."""
        attempt = LookupAttempt(
            lookup_email=email,
            lookup_dob=date_of_birth.isoformat() if isinstance(date_of_birth, date) else str(date_of_birth),
            patient_found=patient is not None,
            patient_id=patient.id if patient else None,
            patient_name=patient.full_name if patient else None,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            session_id=client.session_id,
        )
        try:
            self.audit.log_lookup_attempt(attempt)
        except PersistenceFailure:
            # Audit failures never fail the lookup
            logger.exception("Failed to write lookup audit record for %s", client.ip_address)
