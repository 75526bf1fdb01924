"""Returning-patient intake flow: lookup, pre-fill, per-page save and completion.

Control flow for a lookup:

    validate input -> rate limit (per client IP, denials audited)
    -> match patient (audited)
    -> open visit -> issue lookup session

Every later call takes the LookupSession explicitly; nothing is read from
ambient request state.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from urgent_care_intake.change_tracker import ChangeSet, track_changes
from urgent_care_intake.client import ClientInfo
from urgent_care_intake.config import IntakeSettings, get_settings
from urgent_care_intake.errors import InvalidInput, Throttled
from urgent_care_intake.form_validation import validate_lookup, validate_registration
from urgent_care_intake.patient_intake.database import (
    FormRepository,
    LookupAuditRepository,
    Patient,
    PatientRepository,
    RateLimitRepository,
    Visit,
    VisitRepository,
)
from urgent_care_intake.patient_matcher import PatientMatcher
from urgent_care_intake.rate_limiter import RateLimiter
from urgent_care_intake.session import LookupSession, SessionManager
from urgent_care_intake.state_machine import PAGE_REQUIREMENTS, FormPage
from urgent_care_intake.stores import AuditStore, FormStore, PatientStore, RateLimitStore, VisitStore
from urgent_care_intake.visit_recorder import VisitRecorder

logger = logging.getLogger(__name__)

CHANGED_BY = "intake"


@dataclass
class LookupOutcome:
    patient: Patient
    visit_id: str
    session: LookupSession
    last_visit: Visit | None = None


class ReturningPatientService:
    """Coordinates the rate limiter, matcher, visit recorder, sessions and change tracking."""

    def __init__(
        self,
        patients: PatientStore,
        visits: VisitStore,
        audit: AuditStore,
        rate_limits: RateLimitStore,
        forms: FormStore,
        settings: IntakeSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.patients = patients
        self.forms = forms
        self.rate_limiter = RateLimiter(
            rate_limits,
            max_attempts=self.settings.lookup_max_attempts,
            window_minutes=self.settings.lookup_window_minutes,
            clock=clock,
        )
        self.matcher = PatientMatcher(patients, audit)
        self.visits = VisitRecorder(visits)
        self.sessions = SessionManager(patients, visits, ttl_minutes=self.settings.session_ttl_minutes, clock=clock)

    # Lookup and registration

    def lookup(self, email: str, date_of_birth: str | date, client: ClientInfo) -> LookupOutcome:
        """Authenticate a returning patient and open a visit.

        Raises InvalidInput (no attempt consumed), Throttled, PatientNotFound
        or PersistenceFailure.
        """
        request = validate_lookup(
            email, date_of_birth,
            today=self.clock().date(),
            max_age_years=self.settings.dob_max_age_years,
        )

        limit = self.rate_limiter.check(client.ip_address)
        if not limit.allowed:
            # Denied attempts still belong in the audit trail
            self.matcher.record_attempt(request.email, request.date_of_birth, None, client)
            if limit.blocked_until is not None:
                retry_after = limit.blocked_until - self.clock()
            else:
                retry_after = timedelta(minutes=self.settings.lookup_window_minutes)
            raise Throttled(limit.blocked_until, retry_after)

        patient = self.matcher.lookup(request.email, request.date_of_birth, client)

        last_visit = self.visits.last_visit(patient.id)
        visit_id = self.visits.open(patient.id, "returning", client)
        session = self.sessions.issue(patient.id, visit_id)
        return LookupOutcome(patient=patient, visit_id=visit_id, session=session, last_visit=last_visit)

    def register_new_patient(self, fields: dict, client: ClientInfo) -> LookupOutcome:
        """Create a patient from the registration page and open a new-patient visit."""
        data = validate_registration(
            fields,
            today=self.clock().date(),
            max_age_years=self.settings.dob_max_age_years,
        )
        patient = self.patients.create(Patient(id=str(uuid.uuid4()), **data), changed_by=CHANGED_BY)
        visit_id = self.visits.open(patient.id, "new", client)
        self.visits.attach_changes(visit_id, ChangeSet(), data.get("reason_for_visit"))
        session = self.sessions.issue(patient.id, visit_id)
        logger.info("Registered new patient %s", patient.id)
        return LookupOutcome(patient=patient, visit_id=visit_id, session=session)

    # Session handling

    def is_session_valid(self, session: LookupSession | None) -> bool:
        return self.sessions.is_valid(session)

    def refresh_session(self, session: LookupSession) -> LookupSession:
        return self.sessions.extend(session)

    def leave_flow(self, session: LookupSession | None) -> None:
        self.sessions.revoke(session)

    # Forms

    def load_prefill(self, session: LookupSession) -> dict:
        """Stored values for every form page, keyed by page name."""
        session = self.sessions.require(session)
        patient = self.patients.get_by_id(session.patient_id)
        data = {FormPage.REGISTRATION.value: patient.to_record()}
        for page in PAGE_REQUIREMENTS:
            if page != FormPage.REGISTRATION:
                data[page.value] = self.forms.get_latest_form(session.patient_id, page.value)
        return data

    def save_page(self, session: LookupSession, page: FormPage, submitted: dict) -> ChangeSet:
        """Persist one wizard page and record what changed since the last visit.

        The returned ChangeSet covers this page only; the visit carries the
        merged summary of every page saved so far. Saving the final page
        completes the visit and ends the session.
        """
        session = self.sessions.require(session)
        reason_for_visit = None

        if page == FormPage.REGISTRATION:
            data = validate_registration(
                submitted,
                today=self.clock().date(),
                max_age_years=self.settings.dob_max_age_years,
            )
            old_record = self.patients.get_by_id(session.patient_id).to_record()
            self.patients.update(session.patient_id, data, changed_by=CHANGED_BY)
            reason_for_visit = data["reason_for_visit"]
            # Reason for visit belongs to this visit, not to the patient's history
            changes = track_changes(old_record, {k: v for k, v in data.items() if k != "reason_for_visit"})
        elif page in PAGE_REQUIREMENTS:
            missing = [f for f in PAGE_REQUIREMENTS[page] if not str(submitted.get(f) or "").strip()]
            if missing:
                raise InvalidInput({f: "This field is required" for f in missing})
            old_record = self.forms.get_latest_form(session.patient_id, page.value) or {}
            self.forms.save_form(session.patient_id, session.visit_id, page.value, submitted)
            changes = track_changes(old_record, submitted)
        else:
            raise ValueError(f"Page {page.value} has no form to save")

        visit = self.visits.get(session.visit_id)
        previous = ChangeSet.from_json(visit.updated_fields) if visit else ChangeSet()
        self.visits.attach_changes(session.visit_id, previous.merge(changes), reason_for_visit)

        if changes.has_changes:
            logger.info(
                "Visit %s: %d field(s) changed on %s", session.visit_id, changes.count, page.value
            )

        if page == FormPage.ADDITIONAL_CONSENTS:
            self.complete_intake(session)

        return changes

    def complete_intake(self, session: LookupSession) -> None:
        session = self.sessions.require(session)
        self.visits.complete(session.visit_id)
        self.sessions.revoke(session)


def build_service(settings: IntakeSettings | None = None, clock: Callable[[], datetime] = datetime.now) -> ReturningPatientService:
    """Wire the service to the SQLite repositories."""
    settings = settings or get_settings()
    db_path = settings.database_path
    return ReturningPatientService(
        patients=PatientRepository(db_path, clock=clock),
        visits=VisitRepository(db_path, clock=clock),
        audit=LookupAuditRepository(db_path, clock=clock),
        rate_limits=RateLimitRepository(db_path),
        forms=FormRepository(db_path, clock=clock),
        settings=settings,
        clock=clock,
    )
