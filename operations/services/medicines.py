import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from operations.models import Medicine, MedicineOrder
from operations.permissions import PHARMACY_ROLES

from .audit import log_action
from .events import broadcast
from .patients import clamp_page

logger = logging.getLogger(__name__)

EXPIRY_WINDOW_DAYS = 30

# Pharmacy-driven status changes; doctors may only cancel their own pending orders.
_ORDER_TRANSITIONS = {
    MedicineOrder.STATUS_PENDING: {
        MedicineOrder.STATUS_APPROVED, MedicineOrder.STATUS_REJECTED, MedicineOrder.STATUS_CANCELLED,
    },
    MedicineOrder.STATUS_APPROVED: {MedicineOrder.STATUS_COMPLETED, MedicineOrder.STATUS_CANCELLED},
    MedicineOrder.STATUS_COMPLETED: set(),
    MedicineOrder.STATUS_REJECTED: set(),
    MedicineOrder.STATUS_CANCELLED: set(),
}


def _can_transition(current: str, new: str) -> bool:
    return new in _ORDER_TRANSITIONS.get(current, set())


def serialize_medicine(m: Medicine, *, today=None) -> dict:
    today = today or timezone.localdate()
    return {
        'id': m.id,
        'name': m.name,
        'generic_name': m.generic_name,
        'category': m.category,
        'manufacturer': m.manufacturer,
        'unit_price': str(m.unit_price),
        'stock_quantity': m.stock_quantity,
        'reorder_level': m.reorder_level,
        'expiry_date': m.expiry_date.isoformat() if m.expiry_date else None,
        'is_low_stock': m.stock_quantity <= m.reorder_level,
        'is_expiring_soon': bool(m.expiry_date and m.expiry_date <= today + timedelta(days=EXPIRY_WINDOW_DAYS)),
    }


def serialize_order(o: MedicineOrder) -> dict:
    return {
        'id': o.id,
        'medicine': {'id': o.medicine_id, 'name': o.medicine.name},
        'doctor': {'id': o.doctor_id, 'name': o.doctor.get_full_name() or o.doctor.username},
        'quantity': o.quantity,
        'priority': o.priority,
        'status': o.status,
        'notes': o.notes,
        'created_at': o.created_at.isoformat(),
        'updated_at': o.updated_at.isoformat(),
    }


def list_medicines(*, search: str = '', category: str = '', low_stock: bool = False,
                   expiring_soon: bool = False, page: int = 1, page_size: int = 50):
    qs = Medicine.objects.all()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(generic_name__icontains=search))
    if category:
        qs = qs.filter(category__iexact=category)
    if low_stock:
        qs = qs.filter(stock_quantity__lte=F('reorder_level'))
    today = timezone.localdate()
    if expiring_soon:
        qs = qs.filter(expiry_date__isnull=False, expiry_date__lte=today + timedelta(days=EXPIRY_WINDOW_DAYS))
    page, page_size = clamp_page(page, page_size, default_size=50)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_medicine(m, today=today) for m in qs[start:start + page_size]], total


def create_medicine(current_user, **fields) -> Medicine:
    medicine = Medicine.objects.create(**fields)
    log_action(user=current_user, action='medicine_create', object_type='medicine', object_id=medicine.id)
    return medicine


def _order_queryset_for(user):
    qs = MedicineOrder.objects.select_related('medicine', 'doctor')
    if getattr(user, 'role', '') in PHARMACY_ROLES:
        return qs
    return qs.filter(doctor=user)


def list_orders(user, *, status: str | None = None, priority: str | None = None,
                page: int = 1, page_size: int = 20):
    qs = _order_queryset_for(user)
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    page, page_size = clamp_page(page, page_size)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_order(o) for o in qs[start:start + page_size]], total


def get_order(user, order_id) -> MedicineOrder:
    try:
        return _order_queryset_for(user).get(pk=order_id)
    except MedicineOrder.DoesNotExist:
        raise NotFound('Order not found')


def create_order(doctor, *, medicine_id: int, quantity: int, priority: str = 'normal', notes: str = '') -> MedicineOrder:
    try:
        medicine = Medicine.objects.get(pk=medicine_id)
    except Medicine.DoesNotExist:
        raise NotFound('Medicine not found')
    if quantity <= 0:
        raise ValidationError({'quantity': 'Quantity must be greater than zero'})
    order = MedicineOrder.objects.create(
        medicine=medicine, doctor=doctor, quantity=quantity, priority=priority or 'normal', notes=notes,
    )
    log_action(user=doctor, action='order_create', object_type='medicine_order', object_id=order.id,
               detail={'medicine_id': medicine.id, 'quantity': quantity, 'priority': order.priority})
    broadcast('order.updated', order_id=order.id, status=order.status)
    return order


@transaction.atomic
def update_order_status(current_user, order: MedicineOrder, status: str, notes: str = '') -> MedicineOrder:
    if getattr(current_user, 'role', '') not in PHARMACY_ROLES:
        raise PermissionDenied('Only pharmacy staff can change order status')
    if not _can_transition(order.status, status):
        raise ValidationError(f'Cannot move order from {order.status} to {status}')
    previous = order.status
    order.status = status
    if notes:
        order.notes = notes
    order.save(update_fields=['status', 'notes', 'updated_at'])
    if status == MedicineOrder.STATUS_COMPLETED:
        Medicine.objects.filter(pk=order.medicine_id).update(stock_quantity=F('stock_quantity') + order.quantity)
    log_action(user=current_user, action='order_status', object_type='medicine_order', object_id=order.id,
               detail={'from': previous, 'to': status})
    broadcast('order.updated', order_id=order.id, status=status)
    return order


def cancel_order(current_user, order: MedicineOrder) -> MedicineOrder:
    """The ordering doctor withdraws a request; only pending orders can be withdrawn."""
    if order.doctor_id != current_user.id:
        raise PermissionDenied('You can only cancel your own orders')
    if order.status != MedicineOrder.STATUS_PENDING:
        raise ValidationError('Only pending orders can be cancelled')
    order.status = MedicineOrder.STATUS_CANCELLED
    order.save(update_fields=['status', 'updated_at'])
    log_action(user=current_user, action='order_cancel', object_type='medicine_order', object_id=order.id)
    broadcast('order.updated', order_id=order.id, status=order.status)
    return order


def delete_order(current_user, order: MedicineOrder) -> None:
    if order.status != MedicineOrder.STATUS_PENDING:
        raise ValidationError('Only pending orders can be deleted')
    if order.doctor_id != current_user.id and getattr(current_user, 'role', '') not in PHARMACY_ROLES:
        raise PermissionDenied('You can only delete your own orders')
    oid = order.id
    order.delete()
    log_action(user=current_user, action='order_delete', object_type='medicine_order', object_id=oid)
    broadcast('order.updated', order_id=oid, status='deleted')


def order_stats(user) -> dict:
    rows = _order_queryset_for(user).order_by().values('status').annotate(n=Count('id'))
    counts = {r['status']: r['n'] for r in rows}
    stats = {status: counts.get(status, 0) for status, _ in MedicineOrder.STATUS_CHOICES}
    stats['total'] = sum(stats.values())
    return stats
