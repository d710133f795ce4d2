from decimal import Decimal

import pytest

from operations.console import fees
from operations.console.client import ApiError
from operations.console.fees import HospitalFeeBill

OPTIONS = {
    'ok': True,
    'subscription': {'id': '1', 'description': 'Monthly Platform Subscription', 'amount': '999',
                     'type': 'subscription'},
    'equipment': [
        {'id': 'eq-1', 'description': 'Basic Equipment Set', 'amount': '500', 'type': 'equipment'},
        {'id': 'eq-3', 'description': 'ICU Equipment Rental', 'amount': '3000', 'type': 'equipment'},
    ],
    'upi_id': 'hospital@upi',
}


class FeeClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.posts = []

    def get(self, path, **kwargs):
        assert path == '/payments/hospital-fee-options'
        return OPTIONS

    def post(self, path, json=None, **kwargs):
        self.posts.append((path, json))
        if self.fail:
            raise ApiError('Database unavailable', status=503)
        return {'ok': True, 'payment': {'receipt_number': 'DOC-20260310-001', 'total': '4499.00'}}


@pytest.fixture
def bill():
    b = HospitalFeeBill(FeeClient())
    b.load()
    return b


def test_subscription_starts_on_the_bill_and_cannot_be_removed(bill):
    assert [i.id for i in bill.items] == ['1']
    assert bill.upi_id == 'hospital@upi'
    assert bill.remove('1') is False
    assert bill.toaster.errors() == [fees.SUBSCRIPTION_MANDATORY]
    assert bill.total == Decimal('999')


def test_equipment_lines_added_once(bill):
    basic, icu = bill.options
    assert bill.add(basic)
    assert not bill.add(basic)
    assert bill.add(icu)
    assert bill.toaster.errors() == [fees.ALREADY_ADDED]
    assert bill.total == Decimal('4499')
    assert bill.remove('eq-1')
    assert bill.total == Decimal('3999')


def test_pay_records_hospital_fee(bill):
    bill.add(bill.options[1])
    payment = bill.pay(payer_name='Dr. Sharma')
    path, body = bill.client.posts[0]
    assert path == '/payments/record'
    assert body['kind'] == 'hospital_fee'
    assert body['items'] == [{'description': 'Monthly Platform Subscription', 'amount': '999'},
                             {'description': 'ICU Equipment Rental', 'amount': '3000'}]
    assert payment['receipt_number'] == 'DOC-20260310-001'
    assert bill.receipt == 'DOC-20260310-001'
    assert bill.toaster.last.message == 'Payment recorded. Receipt DOC-20260310-001'


def test_failed_payment_keeps_the_bill():
    bill = HospitalFeeBill(FeeClient(fail=True))
    bill.load()
    assert bill.pay() is None
    assert bill.receipt is None
    assert [i.id for i in bill.items] == ['1']
    assert bill.toaster.errors() == ['Database unavailable']
