"""Seed the database with demo returning patients, past visits and saved forms."""

from urgent_care_intake.change_tracker import ChangeSet
from urgent_care_intake.client import ClientInfo
from urgent_care_intake.patient_intake.database import (
    FormRepository,
    Patient,
    PatientRepository,
    VisitRepository,
    init_database,
)


MOCK_PATIENTS = [
    Patient(
        id="p-001",
        first_name="Pat",
        last_name="Example",
        date_of_birth="1985-05-05",
        gender="Female",
        address="123 Main St",
        city="San Francisco",
        state="CA",
        zip_code="94102",
        cell_phone="4155550101",
        email="pat@example.com",
        marital_status="Single",
        emergency_contact_name="Sam Example",
        emergency_contact_phone="4155550199",
        emergency_relationship="Sibling",
        insurance_provider="Blue Cross Blue Shield",
        policy_number="BCBS123456",
        group_number="GRP001",
        policy_holder_name="Pat Example",
        policy_holder_dob="1985-05-05",
        reason_for_visit="Sore throat",
        allergies="Penicillin",
    ),
    Patient(
        id="p-002",
        first_name="Sarah",
        last_name="Johnson",
        date_of_birth="1992-07-22",
        gender="Female",
        address="456 Oak Ave",
        city="Oakland",
        state="CA",
        zip_code="94612",
        cell_phone="5105550102",
        email="sarah.j@email.com",
        emergency_contact_name="Mark Johnson",
        emergency_contact_phone="5105550188",
        emergency_relationship="Spouse",
        insurance_provider="Aetna",
        policy_number="AET789012",
        reason_for_visit="Flu symptoms",
    ),
    Patient(
        id="p-003",
        first_name="Michael",
        last_name="Chen",
        date_of_birth="1978-11-08",
        gender="Male",
        ssn="123-45-6789",
        address="789 Pine Rd",
        city="Berkeley",
        state="CA",
        zip_code="94704",
        cell_phone="5105550103",
        email="m.chen@email.com",
        emergency_contact_name="Lin Chen",
        emergency_contact_phone="5105550177",
        emergency_relationship="Parent",
        pcp_name="Dr. James Park",
        pcp_phone="5105550204",
        reason_for_visit="Knee injury",
        current_medications="Ibuprofen",
    ),
]

MOCK_VISITS = [
    ("p-001", "Sore throat"),
    ("p-002", "Headache and fatigue"),
    ("p-002", "Flu symptoms"),
    ("p-003", "Knee injury"),
]

MOCK_MEDICAL_HISTORY = {
    "p-001": {"smoke": "No", "alcohol": "Occasionally", "has_allergies": "Yes", "allergy_details": "Penicillin"},
    "p-003": {"smoke": "No", "alcohol": "No", "previous_surgeries": "Yes", "surgery_details": "ACL repair, 2015"},
}


def seed_database(db_path=None):
    """Initialize and seed the database with mock data."""
    print("Initializing database...")
    init_database(db_path)

    patients = PatientRepository(db_path)
    visits = VisitRepository(db_path)
    forms = FormRepository(db_path)
    client = ClientInfo(ip_address="127.0.0.1", user_agent="seed_script")

    # Seed patients
    print("Creating mock patients...")
    created = set()
    for patient in MOCK_PATIENTS:
        if patients.get_by_id(patient.id):
            print(f"  Skipping {patient.full_name} (already exists)")
        else:
            patients.create(patient, changed_by="seed_script")
            created.add(patient.id)
            print(f"  Created {patient.full_name}")

    # Seed completed visits, with saved forms, for new patients only
    print("Creating mock visits...")
    visit_count = 0
    visited = set()
    for patient_id, reason in MOCK_VISITS:
        if patient_id not in created:
            continue
        visit_type = "returning" if patient_id in visited else "new"
        visited.add(patient_id)
        visit = visits.create_visit(patient_id, visit_type, client)
        visits.attach_changes(visit.id, ChangeSet().to_json(), 0, reason)
        if patient_id in MOCK_MEDICAL_HISTORY:
            forms.save_form(patient_id, visit.id, "medical_history", MOCK_MEDICAL_HISTORY[patient_id])
        visits.complete_visit(visit.id)
        visit_count += 1
        print(f"  Created visit: {reason[:30]}...")

    print("\nDatabase seeded successfully!")
    print(f"  - {len(created)} patients")
    print(f"  - {visit_count} visits")


if __name__ == "__main__":
    seed_database()
