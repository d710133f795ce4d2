from datetime import date
from decimal import Decimal

import pytest
from django.utils import timezone

from operations.models import Payment
from operations.services.billing import (
    BillItem,
    bill_total,
    hospital_fee_receipt,
    subscription_item,
    to_minor_units,
    whatsapp_link,
)
from operations.services.payments import signature_for

pytestmark = pytest.mark.django_db


def test_bill_total_is_exact_sum():
    items = [BillItem.of('Consultation Fee', '500'), BillItem.of('ECG', '0.10'), BillItem.of('Dressing', '0.20')]
    assert bill_total(items) == Decimal('500.30')
    assert bill_total([{'description': 'x', 'amount': '19.99'}, {'description': 'y', 'amount': 0.01}]) == Decimal('20.00')
    assert bill_total([]) == Decimal('0')


def test_minor_units_and_receipt_format():
    assert to_minor_units(Decimal('1180.00')) == 118000
    assert to_minor_units('0.015') == 2
    assert hospital_fee_receipt(date(2024, 7, 3), 7) == 'DOC-20240703-007'


def test_whatsapp_link_keeps_only_digits():
    link = whatsapp_link('+91 98765-43210', 'Total Amount: ₹500')
    assert link.startswith('https://wa.me/919876543210?text=')
    assert '%E2%82%B9500' in link


def test_checkout_order_adds_tax(make_user, client_for):
    doctor = make_user('dr.sharma', 'doctor')
    r = client_for(doctor).post('/api/payments/create-order', {'amount': '1000', 'payment_type': 'consultation'},
                                format='json')
    assert r.status_code == 201
    assert r.data['tax'] == '180.00'
    assert r.data['total_amount'] == '1180.00'
    assert r.data['amount'] == 118000
    assert r.data['receipt'].startswith('RCP-')
    assert Payment.objects.get().status == Payment.STATUS_CREATED


def test_verify_checks_signature_when_secret_is_set(make_user, client_for, settings):
    settings.CHECKOUT_KEY_SECRET = 's3cret'
    doctor = make_user('dr.sharma', 'doctor')
    client = client_for(doctor)
    order = client.post('/api/payments/create-order', {'amount': '500', 'payment_type': 'lab_test'},
                        format='json').data

    bad = client.post('/api/payments/verify', {'order_id': order['order_id'], 'payment_id': 'pay_9',
                                               'signature': 'forged'}, format='json')
    assert bad.status_code == 400
    assert Payment.objects.get().status == Payment.STATUS_CREATED

    good = client.post('/api/payments/verify', {
        'order_id': order['order_id'], 'payment_id': 'pay_9',
        'signature': signature_for(order['order_id'], 'pay_9', 's3cret'),
    }, format='json')
    assert good.status_code == 200
    assert good.data['payment']['status'] == 'completed'


def test_other_users_cannot_verify_my_order(make_user, client_for):
    doctor = make_user('dr.sharma', 'doctor')
    order = client_for(doctor).post('/api/payments/create-order', {'amount': '500', 'payment_type': 'bed'},
                                    format='json').data
    stranger = make_user('dr.khan', 'doctor')
    r = client_for(stranger).post('/api/payments/verify', {'order_id': order['order_id'], 'payment_id': 'p'},
                                  format='json')
    assert r.status_code == 403


def test_hospital_fee_receipts_are_numbered_per_day(make_user, client_for):
    doctor = make_user('dr.sharma', 'doctor')
    client = client_for(doctor)
    items = [subscription_item('999').as_dict(), {'description': 'ICU Equipment Rental', 'amount': '3000'}]
    first = client.post('/api/payments/record', {'kind': 'hospital_fee', 'method': 'upi', 'items': items},
                        format='json')
    second = client.post('/api/payments/record', {'kind': 'hospital_fee', 'items': items[:1]}, format='json')
    assert first.status_code == 201
    today = timezone.localdate().strftime('%Y%m%d')
    assert first.data['payment']['receipt_number'] == f'DOC-{today}-001'
    assert second.data['payment']['receipt_number'] == f'DOC-{today}-002'
    assert first.data['payment']['total_amount'] == '3999.00'
    assert first.data['payment']['tax'] == '0'


def test_record_requires_items(make_user, client_for):
    nurse = make_user('nurse1', 'nurse')
    r = client_for(nurse).post('/api/payments/record', {'kind': 'consultation', 'items': []}, format='json')
    assert r.status_code == 400


def test_transactions_summarise_revenue(make_user, client_for):
    admin = make_user('admin1', 'admin')
    client = client_for(admin)
    item = [{'description': 'Registration', 'amount': '200'}]
    client.post('/api/payments/record', {'kind': 'registration', 'items': item}, format='json')
    client.post('/api/payments/record', {'kind': 'registration', 'items': item, 'status': 'pending'}, format='json')

    today = timezone.localdate().isoformat()
    r = client.get('/api/payments/transactions', {'start_date': today, 'end_date': today})
    assert r.status_code == 200
    assert r.data['summary'] == {'count': 2, 'revenue': '200.00', 'pending': '200.00'}

    paid_only = client.get('/api/payments/transactions', {'status': 'completed'})
    assert paid_only.data['summary']['count'] == 1

    reversed_range = client.get('/api/payments/transactions', {'start_date': today, 'end_date': '2000-01-01'})
    assert reversed_range.status_code == 400


def test_outstanding_filters_pending(make_user, client_for):
    nurse = make_user('nurse1', 'nurse')
    client = client_for(nurse)
    item = [{'description': 'Dressing', 'amount': '150'}]
    client.post('/api/payments/record', {'kind': 'consultation', 'items': item, 'payer_name': 'Ravi Kumar',
                                         'status': 'pending'}, format='json')
    client.post('/api/payments/record', {'kind': 'consultation', 'items': item, 'payer_name': 'Amit Verma'},
                format='json')

    pending = client.get('/api/payments/outstanding', {'filter': 'pending'}).data
    assert [p['payer_name'] for p in pending['payments']] == ['Ravi Kumar']
    found = client.get('/api/payments/outstanding', {'search': 'amit'}).data
    assert found['total'] == 1


def test_payment_stats_are_admin_only(make_user, client_for):
    nurse = make_user('nurse1', 'nurse')
    assert client_for(nurse).get('/api/payments/stats').status_code == 403
    admin = make_user('admin1', 'admin')
    stats = client_for(admin).get('/api/payments/stats').data['stats']
    assert stats['total_payments'] == 0
    assert stats['revenue'] == '0'


def test_fee_options_list_subscription_and_equipment(make_user, client_for, settings):
    settings.HOSPITAL_SUBSCRIPTION_FEE = '999'
    doctor = make_user('dr.sharma', 'doctor')
    r = client_for(doctor).get('/api/payments/hospital-fee-options')
    assert r.data['subscription'] == {'id': '1', 'description': 'Monthly Platform Subscription',
                                      'amount': '999', 'type': 'subscription'}
    assert [o['id'] for o in r.data['equipment']] == ['eq-1', 'eq-2', 'eq-3', 'eq-4']
