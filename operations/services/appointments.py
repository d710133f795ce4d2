"""
Appointments booked from the dashboard.

A booking is written once, when the consultation call is started. Any
collected payment is stored in the same transaction, so a failed booking
leaves no payment behind and a retried booking does not duplicate one.
"""
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Max, Q
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from operations.exceptions import Conflict
from operations.models import Appointment, PatientProfile, Payment, User
from operations.permissions import ADMIN_ROLES

from .audit import log_action
from .billing import bill_total
from .demo import is_demo_id
from .events import broadcast
from .patients import clamp_page
from .payments import record_payment

logger = logging.getLogger(__name__)

# Status changes a doctor or administrator may make by hand.
_STATUS_TRANSITIONS = {
    Appointment.STATUS_PENDING: {Appointment.STATUS_CONFIRMED, Appointment.STATUS_CANCELLED},
    Appointment.STATUS_CONFIRMED: {
        Appointment.STATUS_IN_PROGRESS, Appointment.STATUS_COMPLETED,
        Appointment.STATUS_CANCELLED, Appointment.STATUS_NO_SHOW,
    },
    Appointment.STATUS_IN_PROGRESS: {Appointment.STATUS_COMPLETED},
    Appointment.STATUS_COMPLETED: set(),
    Appointment.STATUS_CANCELLED: set(),
    Appointment.STATUS_NO_SHOW: set(),
}


def _can_transition(current: str, new: str) -> bool:
    return new in _STATUS_TRANSITIONS.get(current, set())


def video_room_url(now: float | None = None) -> str:
    ts = int((now if now is not None else time.time()) * 1000)
    return f"{settings.VIDEO_ROOM_BASE_URL.rstrip('/')}/hospital-consultation-{ts}"


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'appointment_type': a.appointment_type,
        'consultation_mode': a.consultation_mode,
        'doctor': {'id': a.doctor_id, 'name': a.doctor.get_full_name() or a.doctor.username},
        'peer_doctor': (
            {'id': a.peer_doctor_id, 'name': a.peer_doctor.get_full_name() or a.peer_doctor.username}
            if a.peer_doctor_id else None
        ),
        'patient': {'id': a.patient_id, 'name': a.patient.name} if a.patient_id else None,
        'appointment_date': a.appointment_date.isoformat(),
        'start_time': a.start_time.strftime('%H:%M'),
        'end_time': a.end_time.strftime('%H:%M'),
        'reason': a.reason,
        'status': a.status,
        'queue_number': a.queue_number,
        'payment_status': a.payment_status,
        'payment_amount': str(a.payment_amount),
        'video_room_url': a.video_room_url,
        'video_room_id': a.video_room_id,
        'created_at': a.created_at.isoformat(),
    }


def _end_time(date, start, minutes: int):
    """End of the slot; a slot must finish on the day it starts."""
    end = datetime.combine(date, start) + timedelta(minutes=minutes)
    if end.date() != date:
        raise ValidationError({'appointment_time': 'Consultation must end before midnight'})
    return end.time()


def _demo_booking(doctor, data: dict, end) -> dict:
    """Bookings against placeholder participants are answered but not stored."""
    return {
        'id': f"demo-appointment-{int(time.time() * 1000)}",
        'appointment_type': data['appointment_type'],
        'consultation_mode': data.get('consultation_mode', Appointment.MODE_VIDEO),
        'doctor': {'id': doctor.id, 'name': doctor.get_full_name() or doctor.username},
        'peer_doctor': {'id': data.get('peer_doctor_id')} if data.get('peer_doctor_id') else None,
        'patient': {'id': data.get('patient_id')} if data.get('patient_id') else None,
        'appointment_date': data['appointment_date'].isoformat(),
        'start_time': data['appointment_time'].strftime('%H:%M'),
        'end_time': end.strftime('%H:%M'),
        'reason': data['reason'],
        'status': Appointment.STATUS_CONFIRMED,
        'payment_status': data['payment_status'],
        'payment_amount': str(data.get('payment_amount') or Decimal('0')),
        'video_room_url': video_room_url(),
        'demo': True,
    }


def book_consultation(doctor, data: dict) -> dict:
    """Create the appointment behind a doctor-initiated consultation call."""
    minutes = data.get('duration_minutes') or settings.APPOINTMENT_SLOT_MINUTES
    start = data['appointment_time']
    end = _end_time(data['appointment_date'], start, minutes)
    kind = data['appointment_type']

    if is_demo_id(data.get('peer_doctor_id')) or is_demo_id(data.get('patient_id')):
        return _demo_booking(doctor, data, end)

    peer = patient = None
    if kind == Appointment.TYPE_DOCTOR_TO_DOCTOR:
        try:
            peer = User.objects.get(pk=int(data['peer_doctor_id']), role=User.ROLE_DOCTOR)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound('Doctor not found')
        if peer.id == doctor.id:
            raise ValidationError({'peer_doctor_id': 'You cannot book a consultation with yourself'})
    else:
        try:
            patient = PatientProfile.objects.get(pk=int(data['patient_id']))
        except (PatientProfile.DoesNotExist, ValueError, TypeError):
            raise NotFound('Patient not found')

    amount = data.get('payment_amount') or Decimal('0')
    items = data.get('bill_items') or []
    if items and bill_total(items) != amount:
        raise ValidationError({'payment_amount': 'Payment amount must equal the sum of the bill items'})

    with transaction.atomic():
        busy = Appointment.objects.select_for_update().filter(
            doctor=doctor,
            appointment_date=data['appointment_date'],
            start_time__lt=end,
            end_time__gt=start,
        ).exclude(status__in=[Appointment.STATUS_CANCELLED, Appointment.STATUS_NO_SHOW])
        if busy.exists():
            raise Conflict('This time slot is already booked')

        last = Appointment.objects.filter(
            doctor=doctor, appointment_date=data['appointment_date'],
        ).aggregate(n=Max('queue_number'))['n']

        appointment = Appointment.objects.create(
            doctor=doctor,
            peer_doctor=peer,
            patient=patient,
            appointment_type=kind,
            consultation_mode=data.get('consultation_mode', Appointment.MODE_VIDEO),
            appointment_date=data['appointment_date'],
            start_time=start,
            end_time=end,
            reason=data['reason'],
            status=Appointment.STATUS_CONFIRMED,
            queue_number=(last or 0) + 1,
            payment_status=data['payment_status'],
            payment_amount=amount,
            video_room_url=video_room_url(),
        )

        order_id = data.get('checkout_order_id')
        if order_id:
            updated = Payment.objects.filter(
                checkout_order_id=order_id, user=doctor, appointment__isnull=True,
            ).update(appointment=appointment)
            if not updated:
                raise ValidationError({'checkout_order_id': 'Unknown or already used checkout order'})
        elif items and data['payment_status'] != Appointment.PAYMENT_WAIVED:
            kind_of_payment = (
                Payment.KIND_PEER_CONSULTATION if peer else Payment.KIND_PATIENT_CONSULTATION
            )
            record_payment(
                doctor,
                kind=kind_of_payment,
                items=items,
                method=data.get('payment_method') or 'upi',
                status=(Payment.STATUS_COMPLETED if data['payment_status'] == Appointment.PAYMENT_PAID
                        else Payment.STATUS_PENDING),
                patient=patient,
                description=f"Consultation #{appointment.id}",
                appointment=appointment,
            )

        log_action(user=doctor, action='appointment_book', object_type='appointment', object_id=appointment.id,
                   detail={'type': kind, 'payment_status': appointment.payment_status, 'amount': str(amount)})
        broadcast('appointment.updated', appointment_id=appointment.id, status=appointment.status)
    return serialize_appointment(appointment)


def _visible_appointments(user):
    qs = Appointment.objects.select_related('doctor', 'peer_doctor', 'patient')
    role = getattr(user, 'role', '')
    if role in ADMIN_ROLES:
        return qs
    if role == User.ROLE_PATIENT:
        return qs.filter(patient__user=user)
    return qs.filter(Q(doctor=user) | Q(peer_doctor=user))


def list_appointments(user, *, status=None, date=None, appointment_type=None, page=1, page_size=20):
    qs = _visible_appointments(user)
    if status:
        qs = qs.filter(status=status)
    if date:
        qs = qs.filter(appointment_date=date)
    if appointment_type:
        qs = qs.filter(appointment_type=appointment_type)
    page, page_size = clamp_page(page, page_size)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_appointment(a) for a in qs[start:start + page_size]], total


def get_appointment(user, appointment_id) -> Appointment:
    try:
        return _visible_appointments(user).get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise NotFound('Appointment not found')


def cancel_appointment(user, appointment: Appointment, reason: str = '') -> Appointment:
    if appointment.status in (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED):
        raise ValidationError(f'Appointment is already {appointment.status}')
    appointment.status = Appointment.STATUS_CANCELLED
    appointment.cancellation_reason = reason
    appointment.save(update_fields=['status', 'cancellation_reason'])
    log_action(user=user, action='appointment_cancel', object_type='appointment', object_id=appointment.id)
    broadcast('appointment.updated', appointment_id=appointment.id, status=appointment.status)
    return appointment


def update_appointment_status(user, appointment: Appointment, status: str) -> Appointment:
    if getattr(user, 'role', '') == User.ROLE_PATIENT:
        raise PermissionDenied('Patients can only cancel appointments')
    if not _can_transition(appointment.status, status):
        raise ValidationError(f'Cannot move appointment from {appointment.status} to {status}')
    previous = appointment.status
    appointment.status = status
    appointment.save(update_fields=['status'])
    log_action(user=user, action='appointment_status', object_type='appointment', object_id=appointment.id,
               detail={'from': previous, 'to': status})
    broadcast('appointment.updated', appointment_id=appointment.id, status=status)
    return appointment


def list_doctors(*, exclude=None) -> list[dict]:
    qs = User.objects.filter(role=User.ROLE_DOCTOR, is_active=True).order_by('first_name', 'username')
    if exclude is not None:
        qs = qs.exclude(pk=exclude.pk)
    return [
        {
            'id': d.id,
            'name': d.get_full_name() or d.username,
            'specialization': d.specialization,
            'email': d.email,
            'phone': d.phone,
            'consultation_fee': str(d.consultation_fee),
        }
        for d in qs
    ]
