"""
Patient Intake Database Schema
Supports patient records, visits, lookup auditing, rate limiting and form submissions.
"""

SCHEMA = """
-- =============================================================================
-- 1. PATIENTS - Canonical patient identity and registration data
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,

    -- Identity
    first_name TEXT NOT NULL,
    middle_name TEXT,
    last_name TEXT NOT NULL,
    date_of_birth TEXT NOT NULL,   -- YYYY-MM-DD
    gender TEXT,
    ssn TEXT,

    -- Contact
    address TEXT,
    city TEXT,
    state TEXT,
    zip_code TEXT,
    home_phone TEXT,
    cell_phone TEXT,
    email TEXT,
    marital_status TEXT,

    -- Emergency contact
    emergency_contact_name TEXT,
    emergency_contact_phone TEXT,
    emergency_relationship TEXT,

    -- Insurance
    insurance_provider TEXT,
    policy_number TEXT,
    group_number TEXT,
    policy_holder_name TEXT,
    policy_holder_dob TEXT,

    -- Primary care physician
    pcp_name TEXT,
    pcp_phone TEXT,

    -- Visit / medical free text
    reason_for_visit TEXT,
    allergies TEXT,
    current_medications TEXT,

    -- Metadata
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Returning-patient lookup key
CREATE INDEX IF NOT EXISTS idx_patients_email_dob ON patients(LOWER(email), date_of_birth);


-- =============================================================================
-- 2. PATIENT_CHANGE_LOG - Field-level audit trail for patient record changes
-- =============================================================================
CREATE TABLE IF NOT EXISTS patient_change_log (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    field_name TEXT NOT NULL,
    old_value TEXT,
    new_value TEXT,
    change_type TEXT NOT NULL,
    changed_at TEXT DEFAULT CURRENT_TIMESTAMP,
    changed_by TEXT,
    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE INDEX IF NOT EXISTS idx_change_log_patient ON patient_change_log(patient_id);


-- =============================================================================
-- 3. PATIENT_VISITS - One row per encounter
-- =============================================================================
CREATE TABLE IF NOT EXISTS patient_visits (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    visit_type TEXT NOT NULL,            -- new, returning
    reason_for_visit TEXT,

    -- Change tracking (JSON-encoded change set)
    updated_fields TEXT,
    fields_changed_count INTEGER DEFAULT 0,

    -- Status: open, updated, completed
    status TEXT NOT NULL DEFAULT 'open',
    all_forms_completed INTEGER NOT NULL DEFAULT 0,

    -- Client metadata
    ip_address TEXT,
    user_agent TEXT,
    session_id TEXT,

    created_at TEXT NOT NULL,
    updated_at TEXT,
    completed_at TEXT,

    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE INDEX IF NOT EXISTS idx_visits_patient ON patient_visits(patient_id, created_at);


-- =============================================================================
-- 4. AUDIT_PATIENT_LOOKUP - Every returning-patient lookup attempt
-- =============================================================================
CREATE TABLE IF NOT EXISTS audit_patient_lookup (
    id TEXT PRIMARY KEY,
    lookup_email TEXT,
    lookup_dob TEXT,
    patient_found INTEGER NOT NULL,
    patient_id TEXT,
    patient_name TEXT,
    ip_address TEXT,
    user_agent TEXT,
    session_id TEXT,
    looked_up_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_lookup_audit_ip ON audit_patient_lookup(ip_address, looked_up_at);


-- =============================================================================
-- 5. RATE_LIMIT_TRACKING - One counter row per subject (client IP)
-- =============================================================================
CREATE TABLE IF NOT EXISTS rate_limit_tracking (
    identifier TEXT PRIMARY KEY,
    attempt_count INTEGER NOT NULL,
    first_attempt_at TEXT NOT NULL,
    last_attempt_at TEXT NOT NULL,
    blocked_until TEXT
);


-- =============================================================================
-- 6. FORM_SUBMISSIONS - Saved wizard pages (medical history, consents, ...)
-- =============================================================================
CREATE TABLE IF NOT EXISTS form_submissions (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    visit_id TEXT NOT NULL,
    form_name TEXT NOT NULL,
    data TEXT NOT NULL,                  -- JSON object of submitted fields
    submitted_at TEXT NOT NULL,
    FOREIGN KEY (patient_id) REFERENCES patients(id),
    FOREIGN KEY (visit_id) REFERENCES patient_visits(id)
);

CREATE INDEX IF NOT EXISTS idx_forms_patient ON form_submissions(patient_id, form_name, submitted_at);
"""
