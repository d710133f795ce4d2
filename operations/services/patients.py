import logging

from django.db.models import Q
from rest_framework.exceptions import NotFound

from operations.models import PatientProfile

from .audit import log_action
from .demo import DEMO_PATIENTS, is_demo_id, merge_with_demo

logger = logging.getLogger(__name__)


def serialize_patient(p: PatientProfile) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'age': p.age,
        'gender': p.gender,
        'phone': p.phone,
        'email': p.email,
        'blood_group': p.blood_group,
        'disease': p.disease,
        'address': p.address,
        'emergency_contact': p.emergency_contact,
        'emergency_phone': p.emergency_phone,
        'allergies': p.allergies,
        'status': p.status,
        'created_at': p.created_at.isoformat() if p.created_at else None,
    }


def clamp_page(page, page_size, *, default_size: int = 20) -> tuple[int, int]:
    page = max(1, int(page or 1))
    page_size = max(1, min(100, int(page_size or default_size)))
    return page, page_size


def list_patients(*, search: str = '', status: str | None = None, page: int = 1, page_size: int = 20):
    """Return ``(rows, total)``; demo patients follow the real page when enabled."""
    qs = PatientProfile.objects.all()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(phone__icontains=search) | Q(disease__icontains=search))
    if status:
        qs = qs.filter(status=status)
    page, page_size = clamp_page(page, page_size)
    total = qs.count()
    start = (page - 1) * page_size
    rows = [serialize_patient(p) for p in qs[start:start + page_size]]
    demo = DEMO_PATIENTS if page == 1 and not search and not status else []
    merged = merge_with_demo(rows, demo)
    return merged, total + (len(merged) - len(rows))


def get_patient(patient_id) -> PatientProfile:
    if is_demo_id(patient_id):
        raise NotFound('Demo patients have no record')
    try:
        return PatientProfile.objects.get(pk=int(patient_id))
    except (PatientProfile.DoesNotExist, TypeError, ValueError):
        raise NotFound('Patient not found')


def create_patient(current_user, **fields) -> PatientProfile:
    patient = PatientProfile.objects.create(**fields)
    log_action(user=current_user, action='patient_create', object_type='patient', object_id=patient.id,
               detail={'name': patient.name})
    return patient


def update_patient(current_user, patient: PatientProfile, **fields) -> PatientProfile:
    for key, value in fields.items():
        setattr(patient, key, value)
    patient.save(update_fields=list(fields) or None)
    log_action(user=current_user, action='patient_update', object_type='patient', object_id=patient.id,
               detail={'fields': sorted(fields)})
    return patient


def delete_patient(current_user, patient: PatientProfile) -> None:
    pid = patient.id
    patient.delete()
    log_action(user=current_user, action='patient_delete', object_type='patient', object_id=pid)
