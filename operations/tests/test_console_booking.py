from datetime import date, time
from decimal import Decimal
from urllib.parse import unquote

import pytest

from operations.console import booking as flow_mod
from operations.console.booking import (
    BookingError,
    BookingFlow,
    CheckoutGateway,
    CheckoutResult,
    ConsultationDetails,
    PayeeInfo,
)
from operations.console.client import ApiError
from operations.console.toasts import ERROR, Toaster


class RecordingClient:
    """Stands in for DashboardClient; ``fail`` maps a path to the ApiError it raises."""

    def __init__(self, fail=None):
        self.posts = []
        self.fail = dict(fail or {})

    def post(self, path, json=None, **kwargs):
        self.posts.append((path, json))
        if path in self.fail:
            raise self.fail[path]
        if path == '/payments/create-order':
            return {'ok': True, 'order_id': 'order_1', 'amount': 150000, 'currency': 'INR'}
        if path == '/payments/verify':
            return {'ok': True, 'verified': True}
        if path == '/appointments/doctor-book':
            return {'ok': True, 'appointment': {'id': 42, **json}}
        raise AssertionError(f'unexpected POST {path}')

    def paths(self):
        return [p for p, _ in self.posts]


class FakeCheckout(CheckoutGateway):
    def __init__(self, result):
        self.result = result
        self.orders = []

    def collect(self, order):
        self.orders.append(order)
        return self.result


PAYEE = PayeeInfo(doctor_name='Dr. Rohan Sharma', upi_id='drsharma@upi', whatsapp_number='+91 98765-43210')


def details(**overrides):
    values = dict(participant_id='7', participant_name='Ravi Kumar', reason='Follow-up',
                  appointment_date=date(2026, 3, 10), appointment_time=time(10, 0))
    values.update(overrides)
    return ConsultationDetails(**values)


def booked(client):
    return [body for path, body in client.posts if path == '/appointments/doctor-book']


def test_patient_consult_with_payment_walks_every_step():
    client = RecordingClient()
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    assert flow.submit_details(details())
    assert [(i.description, i.amount) for i in flow.bill] == [('Consultation Fee', Decimal('500'))]

    assert flow.add_bill_item('Blood test', '350')
    assert flow.choose_payment_option(flow_mod.WITH_PAYMENT)
    assert flow.step == flow_mod.PAYMENT_SCREENSHOT
    assert client.posts == []

    assert flow.proceed()
    flow.setup_ready()
    assert flow.visited == ['details', 'payment', 'payment-screenshot', 'setup', 'video']

    [payload] = booked(client)
    assert payload['payment_status'] == 'pending'
    assert payload['payment_method'] == 'upi'
    assert payload['payment_amount'] == '850'
    assert payload['patient_id'] == '7'
    assert payload['appointment_date'] == '2026-03-10'
    assert payload['appointment_time'] == '10:00:00'
    assert payload['bill_items'] == [{'description': 'Consultation Fee', 'amount': '500'},
                                     {'description': 'Blood test', 'amount': '350'}]
    assert flow.appointment['id'] == 42
    assert flow.toaster.history[-2].message == flow_mod.COLLECT_PAYMENT


def test_patient_consult_without_payment_skips_screenshot():
    client = RecordingClient()
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    flow.submit_details(details())
    assert flow.choose_payment_option(flow_mod.WITHOUT_PAYMENT)
    assert flow.visited == ['details', 'payment', 'setup']
    [payload] = booked(client)
    assert payload['payment_status'] == 'waived'
    assert payload['payment_amount'] == '0'
    assert 'bill_items' not in payload


def test_free_peer_consult_goes_straight_to_setup():
    client = RecordingClient()
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_DOCTOR, checkout=FakeCheckout(CheckoutResult(True)))
    assert flow.submit_details(details(fee=Decimal('0')))
    assert flow.visited == ['details', 'setup']
    [payload] = booked(client)
    assert payload['peer_doctor_id'] == '7'
    assert payload['appointment_type'] == 'doctor_to_doctor'
    assert payload['payment_status'] == 'waived'


def test_paid_peer_consult_uses_checkout():
    client = RecordingClient()
    checkout = FakeCheckout(CheckoutResult(True, payment_id='pay_1', signature='sig'))
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_DOCTOR, checkout=checkout)
    flow.submit_details(details(fee=Decimal('1500')))
    assert flow.step == flow_mod.PAYMENT

    assert flow.pay_and_start()
    assert flow.visited == ['details', 'payment', 'setup']
    assert client.paths() == ['/payments/create-order', '/payments/verify', '/appointments/doctor-book']
    assert client.posts[0][1]['amount'] == '1500'
    assert client.posts[1][1] == {'order_id': 'order_1', 'payment_id': 'pay_1', 'signature': 'sig'}
    payload = booked(client)[0]
    assert payload['payment_status'] == 'paid'
    assert payload['checkout_order_id'] == 'order_1'
    assert checkout.orders[0]['amount'] == 150000


def test_dismissed_checkout_stays_on_payment():
    client = RecordingClient()
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_DOCTOR,
                       checkout=FakeCheckout(CheckoutResult(False, error='Payment cancelled')))
    flow.submit_details(details(fee='1500'))
    assert not flow.pay_and_start()
    assert flow.step == flow_mod.PAYMENT
    assert booked(client) == []
    assert flow.toaster.errors() == ['Payment cancelled']


def test_booking_retry_after_payment_does_not_charge_again():
    client = RecordingClient(fail={'/appointments/doctor-book': ApiError('boom', status=500)})
    checkout = FakeCheckout(CheckoutResult(True, payment_id='pay_1', signature='sig'))
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_DOCTOR, checkout=checkout)
    flow.submit_details(details(fee='1500'))

    assert not flow.pay_and_start()
    assert flow.step == flow_mod.PAYMENT
    assert flow.toaster.last.message == 'boom'

    client.fail.clear()
    assert flow.pay_and_start()
    assert len(checkout.orders) == 1
    assert client.paths().count('/payments/create-order') == 1


def test_missing_fields_are_rejected_without_a_request():
    client = RecordingClient()
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    assert not flow.submit_details(details(reason='  '))
    assert flow.step == flow_mod.DETAILS
    assert flow.toaster.last.level == ERROR
    assert flow.toaster.last.message == flow_mod.REQUIRED_FIELDS
    assert client.posts == []


def test_failed_booking_stays_on_current_step():
    client = RecordingClient(fail={'/appointments/doctor-book': ApiError('slot taken', status=409)})
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    flow.submit_details(details())
    assert not flow.choose_payment_option(flow_mod.WITHOUT_PAYMENT)
    assert flow.step == flow_mod.PAYMENT
    assert flow.appointment is None
    assert flow.toaster.errors() == ['slot taken']


def test_failed_booking_without_server_text_uses_generic_message():
    client = RecordingClient(fail={'/appointments/doctor-book': ApiError('', status=502)})
    flow = BookingFlow(client, flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    flow.submit_details(details())
    assert not flow.choose_payment_option(flow_mod.WITHOUT_PAYMENT)
    assert flow.toaster.errors() == [flow_mod.BOOKING_FAILED]


def test_bill_editing():
    flow = BookingFlow(RecordingClient(), flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE, toaster=Toaster())
    flow.submit_details(details())
    assert not flow.add_bill_item('', '100')
    assert not flow.add_bill_item('X-ray', '-5')
    assert not flow.add_bill_item('X-ray', 'abc')
    assert flow.add_bill_item('X-ray', '249.50')
    assert flow.total == Decimal('749.50')
    flow.remove_bill_item(0)
    assert flow.total == Decimal('249.50')
    flow.remove_bill_item(3)
    assert flow.total == Decimal('249.50')
    assert flow.toaster.errors() == [flow_mod.BILL_ITEM_REQUIRED] * 3


def test_whatsapp_request_lists_bill_and_payee():
    flow = BookingFlow(RecordingClient(), flow_mod.DOCTOR_TO_PATIENT, payee=PAYEE)
    flow.submit_details(details(whatsapp_number='+91 90000 11111'))
    url = flow.whatsapp_url()
    assert url.startswith('https://wa.me/919000011111?text=')
    text = unquote(url.split('?text=', 1)[1])
    assert text.startswith('Payment Details for Ravi Kumar')
    assert '- Consultation Fee: ₹500' in text
    assert 'UPI ID: drsharma@upi' in text


def test_unknown_kind_and_wrong_step():
    with pytest.raises(BookingError):
        BookingFlow(RecordingClient(), 'teleport')
    flow = BookingFlow(RecordingClient(), flow_mod.DOCTOR_TO_PATIENT)
    with pytest.raises(BookingError):
        flow.proceed()
    with pytest.raises(BookingError):
        flow.setup_ready()
