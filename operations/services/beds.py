"""
Bed allocation.

Status transitions are owned here: a bed is allocated only from
``available``, discharged only from ``occupied`` (moving to ``cleaning``),
and staff move beds between the housekeeping states.
"""
import logging
import math
from decimal import Decimal

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from operations.exceptions import Conflict
from operations.models import Bed, PatientProfile

from .audit import log_action
from .demo import DEMO_BEDS, is_demo_id, merge_with_demo
from .events import broadcast

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = 'beds:stats'

# Manual status changes allowed from each state; occupancy goes through allocate/discharge.
_STATUS_TRANSITIONS = {
    Bed.STATUS_AVAILABLE: {Bed.STATUS_MAINTENANCE, Bed.STATUS_RESERVED, Bed.STATUS_CLEANING},
    Bed.STATUS_RESERVED: {Bed.STATUS_AVAILABLE, Bed.STATUS_MAINTENANCE},
    Bed.STATUS_CLEANING: {Bed.STATUS_AVAILABLE, Bed.STATUS_MAINTENANCE},
    Bed.STATUS_MAINTENANCE: {Bed.STATUS_AVAILABLE, Bed.STATUS_CLEANING},
    Bed.STATUS_OCCUPIED: set(),
}


def _can_transition(current: str, new: str) -> bool:
    return new in _STATUS_TRANSITIONS.get(current, set())


def serialize_bed(b: Bed) -> dict:
    patient = None
    if b.patient_id:
        patient = {'id': b.patient_id, 'name': b.patient.name}
    return {
        'id': b.id,
        'bed_number': b.bed_number,
        'room_number': b.room_number,
        'floor_number': b.floor_number,
        'ward_type': b.ward_type,
        'status': b.status,
        'daily_charge': str(b.daily_charge),
        'patient': patient,
        'assigned_date': b.assigned_date.isoformat() if b.assigned_date else None,
        'notes': b.notes,
    }


def bed_statistics() -> dict:
    stats = cache.get(STATS_CACHE_KEY)
    if stats is not None:
        return stats
    stats = Bed.objects.aggregate(
        total=Count('id'),
        available=Count('id', filter=Q(status=Bed.STATUS_AVAILABLE)),
        occupied=Count('id', filter=Q(status=Bed.STATUS_OCCUPIED)),
        maintenance=Count('id', filter=Q(status=Bed.STATUS_MAINTENANCE)),
        cleaning=Count('id', filter=Q(status=Bed.STATUS_CLEANING)),
        icu_total=Count('id', filter=Q(ward_type=Bed.WARD_ICU)),
        icu_occupied=Count('id', filter=Q(ward_type=Bed.WARD_ICU, status=Bed.STATUS_OCCUPIED)),
    )
    cache.set(STATS_CACHE_KEY, stats, settings.STATS_CACHE_TTL)
    return stats


def _invalidate_stats() -> None:
    cache.delete(STATS_CACHE_KEY)


def list_beds(*, status: str | None = None, ward_type: str | None = None, floor_number: int | None = None):
    qs = Bed.objects.select_related('patient')
    if status:
        qs = qs.filter(status=status)
    if ward_type:
        qs = qs.filter(ward_type=ward_type)
    if floor_number is not None:
        qs = qs.filter(floor_number=floor_number)
    rows = [serialize_bed(b) for b in qs]
    demo = [
        d for d in DEMO_BEDS
        if (not status or d['status'] == status)
        and (not ward_type or d['ward_type'] == ward_type)
        and (floor_number is None or d['floor_number'] == floor_number)
    ]
    return merge_with_demo(rows, demo)


def availability_by_ward() -> list[dict]:
    rows = (
        Bed.objects.values('ward_type')
        .annotate(
            total=Count('id'),
            available=Count('id', filter=Q(status=Bed.STATUS_AVAILABLE)),
            occupied=Count('id', filter=Q(status=Bed.STATUS_OCCUPIED)),
        )
        .order_by('ward_type')
    )
    return list(rows)


def allocate_bed(current_user, *, bed_id, patient_id, notes: str = '') -> dict:
    """Occupy an available bed with a patient and return the serialized bed."""
    if is_demo_id(bed_id) or is_demo_id(patient_id):
        # Placeholder rows are acknowledged but never persisted.
        demo = next((dict(d) for d in DEMO_BEDS if d['id'] == bed_id), None) or {'id': bed_id}
        demo.update({'status': Bed.STATUS_OCCUPIED, 'patient': {'id': patient_id}, 'demo': True})
        broadcast('bed.updated', bed_id=bed_id, status=Bed.STATUS_OCCUPIED, patient_id=patient_id, demo=True)
        return demo

    with transaction.atomic():
        try:
            bed = Bed.objects.select_for_update().get(pk=int(bed_id))
        except (Bed.DoesNotExist, ValueError, TypeError):
            raise NotFound('Bed not found')
        if bed.status != Bed.STATUS_AVAILABLE:
            raise ValidationError('Bed not available')
        try:
            patient = PatientProfile.objects.get(pk=int(patient_id))
        except (PatientProfile.DoesNotExist, ValueError, TypeError):
            raise NotFound('Patient not found')
        if Bed.objects.filter(patient=patient, status=Bed.STATUS_OCCUPIED).exists():
            raise ValidationError('Patient already has an allocated bed')

        bed.status = Bed.STATUS_OCCUPIED
        bed.patient = patient
        bed.assigned_date = timezone.now()
        bed.discharge_date = None
        if notes:
            bed.notes = notes
        bed.save(update_fields=['status', 'patient', 'assigned_date', 'discharge_date', 'notes', 'updated_at'])
        patient.status = 'admitted'
        patient.save(update_fields=['status'])

        log_action(user=current_user, action='bed_allocate', object_type='bed', object_id=bed.id,
                   detail={'patient_id': patient.id})
        _invalidate_stats()
        broadcast('bed.updated', bed_id=bed.id, status=bed.status, patient_id=patient.id)
    return serialize_bed(bed)


def stay_charge(assigned_at, discharged_at, daily_charge: Decimal) -> tuple[int, Decimal]:
    """Days billed (partial days round up, minimum one) and the total charge."""
    elapsed = (discharged_at - assigned_at).total_seconds() / 86400
    days = max(1, math.ceil(elapsed))
    return days, (daily_charge * days).quantize(Decimal('0.01'))


def discharge_bed(current_user, *, bed_id) -> dict:
    with transaction.atomic():
        try:
            bed = Bed.objects.select_for_update().select_related('patient').get(pk=int(bed_id))
        except (Bed.DoesNotExist, ValueError, TypeError):
            raise NotFound('Bed not found')
        if bed.status != Bed.STATUS_OCCUPIED:
            raise ValidationError('Bed is not occupied')

        now = timezone.now()
        days, total = stay_charge(bed.assigned_date or now, now, bed.daily_charge)
        patient = bed.patient
        bed.status = Bed.STATUS_CLEANING
        bed.discharge_date = now
        bed.patient = None
        bed.save(update_fields=['status', 'discharge_date', 'patient', 'updated_at'])
        if patient is not None:
            patient.status = 'discharged'
            patient.save(update_fields=['status'])

        log_action(user=current_user, action='bed_discharge', object_type='bed', object_id=bed.id,
                   detail={'patient_id': getattr(patient, 'id', None), 'days': days, 'total': str(total)})
        _invalidate_stats()
        broadcast('bed.updated', bed_id=bed.id, status=bed.status, patient_id=None)
    return {'bed': serialize_bed(bed), 'days': days, 'total_charge': str(total)}


def change_bed_status(current_user, *, bed_id, status: str, notes: str = '') -> dict:
    try:
        bed = Bed.objects.get(pk=int(bed_id))
    except (Bed.DoesNotExist, ValueError, TypeError):
        raise NotFound('Bed not found')
    if not _can_transition(bed.status, status):
        raise ValidationError(f'Cannot change bed from {bed.status} to {status}')
    previous = bed.status
    bed.status = status
    if notes:
        bed.notes = notes
    bed.save(update_fields=['status', 'notes', 'updated_at'])
    log_action(user=current_user, action='bed_status', object_type='bed', object_id=bed.id,
               detail={'from': previous, 'to': status})
    _invalidate_stats()
    broadcast('bed.updated', bed_id=bed.id, status=status)
    return serialize_bed(bed)


def create_bed(current_user, **fields) -> dict:
    try:
        with transaction.atomic():
            bed = Bed.objects.create(**fields)
    except IntegrityError:
        raise Conflict('A bed with this floor, room and bed number already exists')
    log_action(user=current_user, action='bed_create', object_type='bed', object_id=bed.id)
    _invalidate_stats()
    return serialize_bed(bed)
