"""Open, update and complete visit records."""

import logging

from urgent_care_intake.change_tracker import ChangeSet
from urgent_care_intake.client import ClientInfo
from urgent_care_intake.patient_intake.database import Visit
from urgent_care_intake.stores import VisitStore

logger = logging.getLogger(__name__)

VISIT_TYPES = ("new", "returning")


class VisitRecorder:
    def __init__(self, visits: VisitStore):
        self.visits = visits

    def open(self, patient_id: str, visit_type: str, client: ClientInfo | None = None) -> str:
        """Create an open visit and return its id. Store failures propagate."""
        if visit_type not in VISIT_TYPES:
            raise ValueError(f"Unknown visit type: {visit_type}")
        visit = self.visits.create_visit(patient_id, visit_type, client)
        logger.info("Opened %s visit %s for patient %s", visit_type, visit.id, patient_id)
        return visit.id

    def get(self, visit_id: str) -> Visit | None:
        return self.visits.get_by_id(visit_id)

    def last_visit(self, patient_id: str, exclude_visit_id: str | None = None) -> Visit | None:
        return self.visits.get_last_visit(patient_id, exclude_visit_id)

    def attach_changes(self, visit_id: str, change_set: ChangeSet, reason_for_visit: str | None = None) -> bool:
        """Replace the visit's change summary. Returns False for completed or unknown visits."""
        attached = self.visits.attach_changes(visit_id, change_set.to_json(), change_set.count, reason_for_visit)
        if not attached:
            logger.warning("Change summary not attached; visit %s is completed or missing", visit_id)
        return attached

    def complete(self, visit_id: str) -> bool:
        """Mark the visit completed. Completing an already completed visit is a no-op."""
        visit = self.visits.get_by_id(visit_id)
        if visit is None:
            logger.warning("Cannot complete unknown visit %s", visit_id)
            return False
        if visit.status == "completed":
            return True
        completed = self.visits.complete_visit(visit_id)
        if completed:
            logger.info("Completed visit %s", visit_id)
        return completed
