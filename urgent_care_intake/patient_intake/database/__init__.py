from .audit_repository import LookupAttempt, LookupAuditRepository
from .connection import get_connection, init_database, transaction
from .form_repository import FormRepository
from .patient_repository import Patient, PatientRepository
from .rate_limit_repository import RateLimitRecord, RateLimitRepository
from .visit_repository import Visit, VisitRepository

__all__ = [
    "get_connection", "init_database", "transaction",
    "Patient", "PatientRepository",
    "Visit", "VisitRepository",
    "LookupAttempt", "LookupAuditRepository",
    "RateLimitRecord", "RateLimitRepository",
    "FormRepository",
]
