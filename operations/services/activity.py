"""
Recent activity feed.

Each entry is a typed record whose ``kind`` tag says which fields it
carries. Entries are derived from stored rows on every request, so the
feed can never disagree with the tables it summarises.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import ClassVar

from django.db.models import Q

from operations.models import AIDiagnosis, Appointment, AuditEvent, MedicineOrder, Payment, Report
from operations.permissions import ADMIN_ROLES


@dataclass
class Activity:
    kind: ClassVar[str] = ''
    id: str
    at: datetime
    title: str

    def as_dict(self) -> dict:
        data = asdict(self)
        data['kind'] = self.kind
        data['at'] = self.at.isoformat()
        return data


@dataclass
class AppointmentActivity(Activity):
    kind: ClassVar[str] = 'appointment'
    appointment_id: int = 0
    appointment_type: str = ''
    status: str = ''
    payment_status: str = ''


@dataclass
class PaymentActivity(Activity):
    kind: ClassVar[str] = 'payment'
    payment_id: int = 0
    receipt_number: str = ''
    amount: str = '0'
    status: str = ''
    payment_kind: str = ''


@dataclass
class BedAllocationActivity(Activity):
    kind: ClassVar[str] = 'bed_allocation'
    bed_id: str = ''
    patient_id: str | None = None
    action: str = ''


@dataclass
class MedicineOrderActivity(Activity):
    kind: ClassVar[str] = 'medicine_order'
    order_id: int = 0
    medicine: str = ''
    quantity: int = 0
    status: str = ''
    priority: str = ''


@dataclass
class ReportActivity(Activity):
    kind: ClassVar[str] = 'report'
    report_id: int = 0
    report_type: str = ''


@dataclass
class DiagnosisActivity(Activity):
    kind: ClassVar[str] = 'ai_diagnosis'
    diagnosis_id: int = 0
    demo_mode: bool = False


ACTIVITY_KINDS = {
    cls.kind: cls for cls in (
        AppointmentActivity, PaymentActivity, BedAllocationActivity,
        MedicineOrderActivity, ReportActivity, DiagnosisActivity,
    )
}


def _appointments(user, is_admin, limit):
    qs = Appointment.objects.select_related('patient', 'peer_doctor')
    if not is_admin:
        qs = qs.filter(Q(doctor=user) | Q(peer_doctor=user))
    for a in qs.order_by('-created_at')[:limit]:
        if a.patient_id:
            other = a.patient.name
        elif a.peer_doctor_id:
            other = a.peer_doctor.get_full_name() or a.peer_doctor.username
        else:
            other = ''
        yield AppointmentActivity(
            id=f"appointment-{a.id}", at=a.created_at, title=f"Consultation with {other}".strip(),
            appointment_id=a.id, appointment_type=a.appointment_type, status=a.status,
            payment_status=a.payment_status,
        )


def _payments(user, is_admin, limit):
    qs = Payment.objects.all() if is_admin else Payment.objects.filter(user=user)
    for p in qs.order_by('-created_at')[:limit]:
        yield PaymentActivity(
            id=f"payment-{p.id}", at=p.created_at, title=p.description or p.get_kind_display(),
            payment_id=p.id, receipt_number=p.receipt_number, amount=str(p.total_amount),
            status=p.status, payment_kind=p.kind,
        )


def _bed_events(user, is_admin, limit):
    qs = AuditEvent.objects.filter(action__in=['bed_allocate', 'bed_discharge'])
    if not is_admin:
        qs = qs.filter(user=user)
    for e in qs.order_by('-created_at')[:limit]:
        verb = 'allocated' if e.action == 'bed_allocate' else 'discharged'
        patient_id = (e.detail or {}).get('patient_id')
        yield BedAllocationActivity(
            id=f"bed-{e.id}", at=e.created_at, title=f"Bed {e.object_id} {verb}",
            bed_id=e.object_id or '', patient_id=str(patient_id) if patient_id else None, action=verb,
        )


def _orders(user, is_admin, limit):
    qs = MedicineOrder.objects.select_related('medicine')
    if not is_admin:
        qs = qs.filter(doctor=user)
    for o in qs.order_by('-created_at')[:limit]:
        yield MedicineOrderActivity(
            id=f"order-{o.id}", at=o.created_at, title=f"Reorder {o.medicine.name} x{o.quantity}",
            order_id=o.id, medicine=o.medicine.name, quantity=o.quantity, status=o.status, priority=o.priority,
        )


def _reports(user, is_admin, limit):
    qs = Report.objects.all() if is_admin else Report.objects.filter(doctor=user)
    for r in qs.order_by('-created_at')[:limit]:
        yield ReportActivity(id=f"report-{r.id}", at=r.created_at, title=r.title,
                             report_id=r.id, report_type=r.report_type)


def _diagnoses(user, is_admin, limit):
    qs = AIDiagnosis.objects.all() if is_admin else AIDiagnosis.objects.filter(doctor=user)
    for d in qs.order_by('-created_at')[:limit]:
        yield DiagnosisActivity(id=f"ai-{d.id}", at=d.created_at, title=d.symptoms[:80],
                                diagnosis_id=d.id, demo_mode=d.demo_mode)


_SOURCES = {
    AppointmentActivity.kind: _appointments,
    PaymentActivity.kind: _payments,
    BedAllocationActivity.kind: _bed_events,
    MedicineOrderActivity.kind: _orders,
    ReportActivity.kind: _reports,
    DiagnosisActivity.kind: _diagnoses,
}


def recent_activity(user, *, kinds=None, limit: int = 20) -> list[Activity]:
    """Newest first across the requested kinds (all kinds by default)."""
    limit = max(1, min(100, int(limit or 20)))
    is_admin = getattr(user, 'role', '') in ADMIN_ROLES
    entries: list[Activity] = []
    for kind in (kinds or _SOURCES):
        source = _SOURCES.get(kind)
        if source is not None:
            entries.extend(source(user, is_admin, limit))
    entries.sort(key=lambda e: e.at, reverse=True)
    return entries[:limit]
