"""
Demo placeholder records.

When ``DEMO_RECORDS_ENABLED`` is on, list endpoints append these rows after
the real ones so a fresh installation still shows populated screens. They
are never written to the database and every id starts with ``demo-``;
write endpoints use :func:`is_demo_id` to recognise them.
"""
from __future__ import annotations

from typing import Iterable

from django.conf import settings

DEMO_PREFIX = 'demo-'

DEMO_DOCTORS = [
    {'id': 'demo-doc-1', 'name': 'Dr. Sarah Johnson', 'specialization': 'Cardiology',
     'email': 'sarah@hospital.com', 'phone': '555-1001', 'consultation_fee': '1000.00'},
    {'id': 'demo-doc-2', 'name': 'Dr. Michael Chen', 'specialization': 'Neurology',
     'email': 'michael@hospital.com', 'phone': '555-1002', 'consultation_fee': '1500.00'},
    {'id': 'demo-doc-3', 'name': 'Dr. Emily Davis', 'specialization': 'Pediatrics',
     'email': 'emily@hospital.com', 'phone': '555-1003', 'consultation_fee': '800.00'},
    {'id': 'demo-doc-4', 'name': 'Dr. Robert Wilson', 'specialization': 'Orthopedics',
     'email': 'robert@hospital.com', 'phone': '555-1004', 'consultation_fee': '0.00'},
]

_PATIENT_ROWS = [
    ('John Doe', 45, 'male', 'O+', 'Hypertension'),
    ('Jane Smith', 32, 'female', 'A+', 'Diabetes'),
    ('Michael Brown', 28, 'male', 'B+', 'Asthma'),
    ('Sarah Wilson', 56, 'female', 'AB+', 'Arthritis'),
    ('David Lee', 67, 'male', 'O-', 'Heart Disease'),
    ('Emily Johnson', 24, 'female', 'A-', 'Migraine'),
    ('Robert Taylor', 41, 'male', 'B-', 'Back Pain'),
    ('Lisa Anderson', 35, 'female', 'AB-', 'Thyroid'),
]

DEMO_PATIENTS = [
    {
        'id': f'demo-patient-{i}',
        'name': name,
        'age': age,
        'gender': gender,
        'phone': f'555-01{i:02d}',
        'blood_group': blood_group,
        'disease': disease,
        'status': 'outpatient',
    }
    for i, (name, age, gender, blood_group, disease) in enumerate(_PATIENT_ROWS, start=1)
]

DEMO_BEDS = [
    {'id': 'demo-bed-1', 'bed_number': 'A1', 'room_number': '101', 'floor_number': 1,
     'ward_type': 'general', 'status': 'available', 'daily_charge': '1500.00', 'patient': None},
    {'id': 'demo-bed-2', 'bed_number': 'B1', 'room_number': '102', 'floor_number': 1,
     'ward_type': 'semi_private', 'status': 'available', 'daily_charge': '2500.00', 'patient': None},
    {'id': 'demo-bed-3', 'bed_number': 'A1', 'room_number': '201', 'floor_number': 2,
     'ward_type': 'private', 'status': 'available', 'daily_charge': '4000.00', 'patient': None},
    {'id': 'demo-bed-4', 'bed_number': 'ICU-1', 'room_number': 'ICU-01', 'floor_number': 0,
     'ward_type': 'icu', 'status': 'available', 'daily_charge': '8000.00', 'patient': None},
    {'id': 'demo-bed-5', 'bed_number': 'C2', 'room_number': '103', 'floor_number': 1,
     'ward_type': 'general', 'status': 'available', 'daily_charge': '1500.00', 'patient': None},
]

DEMO_REPORTS = {
    'demo-patient-1': [
        {'id': 'demo-report-1', 'patient_id': 'demo-patient-1', 'report_type': 'medical',
         'title': 'Hypertension follow-up', 'diagnosis': 'Essential hypertension, controlled',
         'treatment': 'Continue current medication', 'prescription_items': []},
        {'id': 'demo-report-2', 'patient_id': 'demo-patient-1', 'report_type': 'prescription',
         'title': 'Antihypertensive prescription', 'diagnosis': 'Essential hypertension',
         'treatment': '', 'prescription_items': [
             {'name': 'Amlodipine', 'dosage': '5 mg', 'frequency': 'Once daily',
              'duration': '30 days', 'instructions': 'After breakfast'},
         ]},
    ],
    'demo-patient-2': [
        {'id': 'demo-report-3', 'patient_id': 'demo-patient-2', 'report_type': 'lab',
         'title': 'HbA1c panel', 'diagnosis': 'Type 2 diabetes mellitus',
         'treatment': 'Diet control, recheck in 3 months', 'prescription_items': []},
    ],
}


def demo_enabled() -> bool:
    return bool(getattr(settings, 'DEMO_RECORDS_ENABLED', False))


def is_demo_id(value) -> bool:
    return isinstance(value, str) and value.startswith(DEMO_PREFIX)


def merge_with_demo(real: Iterable[dict], demo: Iterable[dict]) -> list[dict]:
    """Real rows first, then demo rows; demo rows alone if there are no real ones.

    Returns the real rows untouched when demo records are disabled.
    """
    rows = list(real)
    if not demo_enabled():
        return rows
    return rows + [dict(d) for d in demo]


def find_demo_report(report_id: str) -> dict | None:
    for reports in DEMO_REPORTS.values():
        for report in reports:
            if report['id'] == report_id:
                return report
    return None


def find_demo_patient(patient_id: str) -> dict | None:
    return next((p for p in DEMO_PATIENTS if p['id'] == patient_id), None)
