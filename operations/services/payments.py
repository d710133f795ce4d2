"""
Payments: checkout orders, verification, manual collections and reporting.

Checkout orders are opened here and completed by the hosted checkout
widget; the widget reports back through :func:`verify_payment`. Manual
collections (cash, UPI screenshot, hospital fees) are recorded directly.
"""
import hashlib
import hmac
import logging
import time
from datetime import datetime, time as dtime
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from operations.models import Appointment, BillItem as BillItemRow, PatientProfile, Payment
from operations.permissions import ADMIN_ROLES, STAFF_ROLES

from .audit import log_action
from .billing import bill_total, consultation_receipt, hospital_fee_receipt, tax_for, to_minor_units
from .patients import clamp_page

logger = logging.getLogger(__name__)


def serialize_payment(p: Payment) -> dict:
    return {
        'id': p.id,
        'receipt_number': p.receipt_number,
        'kind': p.kind,
        'payer_name': p.payer_name,
        'patient_id': p.patient_id,
        'appointment_id': p.appointment_id,
        'amount': str(p.amount),
        'tax': str(p.tax),
        'total_amount': str(p.total_amount),
        'currency': p.currency,
        'status': p.status,
        'method': p.method,
        'checkout_order_id': p.checkout_order_id,
        'description': p.description,
        'items': [{'description': i.description, 'amount': str(i.amount)} for i in p.items.all()],
        'paid_at': p.paid_at.isoformat() if p.paid_at else None,
        'created_at': p.created_at.isoformat(),
    }


def _payer_name(user) -> str:
    return user.get_full_name() or user.username


def resolve_patient(patient_id):
    if not patient_id:
        return None
    try:
        return PatientProfile.objects.get(pk=patient_id)
    except PatientProfile.DoesNotExist:
        raise NotFound('Patient not found')


@transaction.atomic
def create_checkout_order(user, *, amount: Decimal, payment_type: str, appointment_id=None,
                          patient_id=None, description: str = '') -> dict:
    """Open a payment and return what the checkout widget needs to collect it."""
    appointment = None
    if appointment_id:
        appointment = Appointment.objects.filter(pk=appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found')
    patient = resolve_patient(patient_id)

    # Peer consultation fees are charged exactly as billed.
    tax = Decimal('0') if payment_type == Payment.KIND_PEER_CONSULTATION else tax_for(amount, settings.PAYMENT_TAX_RATE)
    total = amount + tax
    order_id = f"order_{int(time.time() * 1000)}{user.id}"
    payment = Payment.objects.create(
        receipt_number=consultation_receipt(),
        kind=payment_type,
        payer_name=_payer_name(user),
        user=user,
        patient=patient,
        appointment=appointment,
        amount=amount,
        tax=tax,
        total_amount=total,
        currency=settings.CHECKOUT_CURRENCY,
        status=Payment.STATUS_CREATED,
        method='checkout',
        checkout_order_id=order_id,
        description=description,
    )
    log_action(user=user, action='payment_order', object_type='payment', object_id=payment.id,
               detail={'order_id': order_id, 'total': str(total)})
    return {
        'payment_id': payment.id,
        'order_id': order_id,
        'amount': to_minor_units(total),
        'currency': payment.currency,
        'key': settings.CHECKOUT_KEY_ID,
        'receipt': payment.receipt_number,
        'tax': str(tax),
        'total_amount': str(total),
    }


def signature_for(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


@transaction.atomic
def verify_payment(user, *, order_id: str, payment_id: str, signature: str = '') -> Payment:
    """Mark a checkout order completed once the gateway signature checks out."""
    payment = Payment.objects.select_for_update().filter(checkout_order_id=order_id).first()
    if payment is None:
        raise NotFound('Payment order not found')
    if payment.user_id != user.id and getattr(user, 'role', '') not in ADMIN_ROLES:
        raise PermissionDenied('Not your payment')
    secret = settings.CHECKOUT_KEY_SECRET
    if secret and not hmac.compare_digest(signature_for(order_id, payment_id, secret), signature or ''):
        raise ValidationError('Payment signature verification failed')
    if payment.status == Payment.STATUS_COMPLETED:
        return payment

    payment.status = Payment.STATUS_COMPLETED
    payment.checkout_payment_id = payment_id
    payment.paid_at = timezone.now()
    payment.save(update_fields=['status', 'checkout_payment_id', 'paid_at'])
    if payment.appointment_id:
        Appointment.objects.filter(pk=payment.appointment_id).update(
            payment_status=Appointment.PAYMENT_PAID, payment_amount=payment.total_amount,
        )
    log_action(user=user, action='payment_verify', object_type='payment', object_id=payment.id,
               detail={'result': 'ok', 'payment_id': payment_id})
    return payment


def next_hospital_fee_receipt(day) -> str:
    prefix = hospital_fee_receipt(day, 0)[:-3]
    sequence = Payment.objects.filter(receipt_number__startswith=prefix).count() + 1
    return hospital_fee_receipt(day, sequence)


@transaction.atomic
def record_payment(user, *, kind: str, items: list, method: str = 'cash', status: str = Payment.STATUS_COMPLETED,
                   payer_name: str = '', patient=None, description: str = '', appointment=None) -> Payment:
    """Store a manually collected payment with its bill items; total is their exact sum."""
    total = bill_total(items)
    if kind == Payment.KIND_HOSPITAL_FEE:
        receipt = next_hospital_fee_receipt(timezone.localdate())
    else:
        receipt = consultation_receipt()
    payment = Payment.objects.create(
        receipt_number=receipt,
        kind=kind,
        payer_name=payer_name or (patient.name if patient else _payer_name(user)),
        user=user,
        patient=patient,
        appointment=appointment,
        amount=total,
        tax=Decimal('0'),
        total_amount=total,
        status=status,
        method=method,
        description=description,
        paid_at=timezone.now() if status == Payment.STATUS_COMPLETED else None,
    )
    BillItemRow.objects.bulk_create([
        BillItemRow(payment=payment, description=i['description'], amount=Decimal(str(i['amount'])))
        for i in items
    ])
    log_action(user=user, action='payment_record', object_type='payment', object_id=payment.id,
               detail={'kind': kind, 'total': str(total), 'status': status})
    return payment


def _visible_payments(user):
    qs = Payment.objects.prefetch_related('items')
    if getattr(user, 'role', '') in ADMIN_ROLES:
        return qs
    return qs.filter(user=user)


def payment_history(user, *, page: int = 1, page_size: int = 20):
    qs = _visible_payments(user)
    page, page_size = clamp_page(page, page_size)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_payment(p) for p in qs[start:start + page_size]], total


def get_payment(user, payment_id) -> Payment:
    try:
        return _visible_payments(user).get(pk=payment_id)
    except Payment.DoesNotExist:
        raise NotFound('Payment not found')


def filter_by_date_range(qs, start_date=None, end_date=None, *, field: str = 'created_at'):
    """Inclusive on both ends, interpreted in the current timezone."""
    tz = timezone.get_current_timezone()
    if start_date:
        qs = qs.filter(**{f'{field}__gte': timezone.make_aware(datetime.combine(start_date, dtime.min), tz)})
    if end_date:
        qs = qs.filter(**{f'{field}__lte': timezone.make_aware(datetime.combine(end_date, dtime.max), tz)})
    return qs


def transactions(user, *, start_date=None, end_date=None, status=None, kind=None, page=1, page_size=50):
    if getattr(user, 'role', '') not in STAFF_ROLES:
        raise PermissionDenied('Staff only')
    qs = filter_by_date_range(Payment.objects.prefetch_related('items'), start_date, end_date)
    if status:
        qs = qs.filter(status=status)
    if kind:
        qs = qs.filter(kind=kind)
    sums = qs.aggregate(
        revenue=Sum('total_amount', filter=Q(status=Payment.STATUS_COMPLETED)),
        pending=Sum('total_amount', filter=Q(status__in=[Payment.STATUS_PENDING, Payment.STATUS_OVERDUE])),
    )
    page, page_size = clamp_page(page, page_size, default_size=50)
    total = qs.count()
    start = (page - 1) * page_size
    summary = {
        'count': total,
        'revenue': str(sums['revenue'] or Decimal('0')),
        'pending': str(sums['pending'] or Decimal('0')),
    }
    return [serialize_payment(p) for p in qs[start:start + page_size]], summary


def outstanding(user, *, search: str = '', filter: str = 'all', page=1, page_size=50):
    qs = _visible_payments(user)
    if search:
        qs = qs.filter(Q(payer_name__icontains=search) | Q(receipt_number__icontains=search))
    if filter == 'paid':
        qs = qs.filter(status=Payment.STATUS_COMPLETED)
    elif filter == 'pending':
        qs = qs.filter(status__in=[Payment.STATUS_PENDING, Payment.STATUS_OVERDUE])
    page, page_size = clamp_page(page, page_size, default_size=50)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_payment(p) for p in qs[start:start + page_size]], total


def stats_overview(user, *, start_date=None, end_date=None) -> dict:
    qs = filter_by_date_range(_visible_payments(user), start_date, end_date)
    totals = qs.aggregate(
        total_payments=Count('id'),
        successful=Count('id', filter=Q(status=Payment.STATUS_COMPLETED)),
        failed=Count('id', filter=Q(status=Payment.STATUS_FAILED)),
        pending=Count('id', filter=Q(status__in=[Payment.STATUS_CREATED, Payment.STATUS_PENDING])),
        revenue=Sum('total_amount', filter=Q(status=Payment.STATUS_COMPLETED)),
    )
    by_kind = (
        qs.filter(status=Payment.STATUS_COMPLETED).order_by().values('kind')
        .annotate(count=Count('id'), amount=Sum('total_amount'))
    )
    totals['revenue'] = str(totals['revenue'] or Decimal('0'))
    totals['by_kind'] = [{'kind': r['kind'], 'count': r['count'], 'amount': str(r['amount'])} for r in by_kind]
    return totals
