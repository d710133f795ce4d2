"""
Booking a consultation and getting to the call.

:class:`BookingFlow` walks the steps the dashboard shows::

    doctor to patient:         details -> payment -> payment-screenshot -> setup -> video
    doctor to doctor (fee):    details -> payment -> setup -> video
    doctor to doctor (free):   details -> setup -> video

The appointment is written when the call is started. If that request
fails, a toast is shown and the flow stays where it was.
"""
from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from operations.services.billing import BillItem, bill_total, to_minor_units, whatsapp_link

from .client import ApiError, DashboardClient
from .toasts import Toaster

logger = logging.getLogger(__name__)

DOCTOR_TO_DOCTOR = 'doctor_to_doctor'
DOCTOR_TO_PATIENT = 'doctor_to_patient'

DETAILS = 'details'
PAYMENT = 'payment'
PAYMENT_SCREENSHOT = 'payment-screenshot'
SETUP = 'setup'
VIDEO = 'video'

WITH_PAYMENT = 'with-payment'
WITHOUT_PAYMENT = 'without-payment'

CONSULTATION_FEE = 'Consultation Fee'

REQUIRED_FIELDS = 'Please fill in all required fields'
EMPTY_BILL = 'Please add at least one bill item'
BILL_ITEM_REQUIRED = 'Please enter description and amount'
BOOKING_FAILED = 'Failed to save appointment. Please try again.'
PAYMENT_FAILED = 'Payment failed. Please try again.'
PAYMENT_DONE = 'Payment successful! Please set up your camera and microphone.'
COLLECT_PAYMENT = 'Please collect payment before starting the call.'
STARTING_CALL = 'Starting video call...'


class BookingError(Exception):
    pass


@dataclass
class CheckoutResult:
    success: bool
    payment_id: str = ''
    signature: str = ''
    error: str = ''


class CheckoutGateway(abc.ABC):
    """Hosted checkout widget.

    ``order`` is what ``/payments/create-order`` returned; its ``amount`` is
    already in minor units. A dismissed widget counts as a failure.
    """

    @abc.abstractmethod
    def collect(self, order: dict) -> CheckoutResult:
        ...


@dataclass
class ConsultationDetails:
    """What the details step collects. Dates and times may be ISO strings."""
    participant_id: str = ''
    participant_name: str = ''
    reason: str = ''
    appointment_date: date | str | None = None
    appointment_time: time | str | None = None
    fee: Decimal = Decimal('0')
    whatsapp_number: str = ''


@dataclass
class PayeeInfo:
    """Where doctor-to-patient payments are sent."""
    doctor_name: str
    upi_id: str
    whatsapp_number: str


def _iso(value) -> str:
    if hasattr(value, 'isoformat'):
        value = value.isoformat()
    return str(value or '')


def _amount(value) -> Optional[Decimal]:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return amount if amount.is_finite() else None


@dataclass
class BookingFlow:
    client: DashboardClient
    kind: str
    payee: Optional[PayeeInfo] = None
    checkout: Optional[CheckoutGateway] = None
    toaster: Toaster = field(default_factory=Toaster)
    patient_fee: Decimal = Decimal('500')
    step: str = DETAILS
    visited: List[str] = field(default_factory=lambda: [DETAILS])
    details: ConsultationDetails = field(default_factory=ConsultationDetails)
    bill: List[BillItem] = field(default_factory=list)
    payment_option: Optional[str] = None
    appointment: Optional[dict] = None
    closed: bool = False
    _paid: Optional[dict] = None

    def __post_init__(self):
        if self.kind not in (DOCTOR_TO_DOCTOR, DOCTOR_TO_PATIENT):
            raise BookingError(f'Unknown consultation type: {self.kind}')

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _go(self, step: str) -> None:
        self.step = step
        self.visited.append(step)

    @property
    def total(self) -> Decimal:
        return bill_total(self.bill)

    def submit_details(self, details: ConsultationDetails) -> bool:
        """Check the required fields and move on to payment or straight to setup."""
        if self.step != DETAILS:
            raise BookingError(f'Details cannot be submitted from {self.step}')
        required = (details.participant_id, details.reason.strip() if details.reason else '',
                    details.appointment_date, details.appointment_time)
        if not all(required):
            self.toaster.error(REQUIRED_FIELDS)
            return False
        self.details = details

        if self.kind == DOCTOR_TO_PATIENT:
            self.bill = [BillItem.of(CONSULTATION_FEE, self.patient_fee)]
            self._go(PAYMENT)
            return True

        fee = _amount(details.fee) or Decimal('0')
        if fee > 0:
            self.bill = [BillItem.of(CONSULTATION_FEE, fee)]
            self._go(PAYMENT)
            return True
        self.bill = []
        return self._start_call(payment_status='waived')

    def add_bill_item(self, description: str, amount) -> bool:
        value = _amount(amount)
        if not (description or '').strip() or value is None or value <= 0:
            self.toaster.error(BILL_ITEM_REQUIRED)
            return False
        self.bill.append(BillItem(description.strip(), value))
        return True

    def remove_bill_item(self, index: int) -> None:
        if 0 <= index < len(self.bill):
            del self.bill[index]

    def pay_and_start(self) -> bool:
        """Doctor to doctor: collect the fee through checkout, then book the call."""
        if self.kind != DOCTOR_TO_DOCTOR or self.step != PAYMENT:
            raise BookingError('Checkout is only used for doctor-to-doctor payments')
        if not self.bill:
            self.toaster.error(EMPTY_BILL)
            return False
        if self.checkout is None:
            raise BookingError('No checkout gateway configured')

        if self._paid is None:
            try:
                order = self.client.post('/payments/create-order', json={
                    'amount': str(self.total),
                    'payment_type': 'peer_consultation',
                    'description': f"Consultation with {self.details.participant_name}".strip(),
                })
            except ApiError as exc:
                self.toaster.api_error(exc, PAYMENT_FAILED)
                return False
            if order.get('amount') != to_minor_units(self.total):
                logger.warning("checkout amount %s does not match bill total %s", order.get('amount'), self.total)
            result = self.checkout.collect(order)
            if not result.success:
                self.toaster.error(result.error or PAYMENT_FAILED)
                return False
            try:
                self.client.post('/payments/verify', json={
                    'order_id': order['order_id'],
                    'payment_id': result.payment_id,
                    'signature': result.signature,
                })
            except ApiError as exc:
                self.toaster.api_error(exc, PAYMENT_FAILED)
                return False
            # Kept so a failed booking can be retried without charging again.
            self._paid = order
            self.toaster.success(PAYMENT_DONE)

        return self._start_call(payment_status='paid', method='checkout',
                                checkout_order_id=self._paid['order_id'])

    def choose_payment_option(self, option: str) -> bool:
        """Doctor to patient: ask for payment first, or waive it and call now."""
        if self.kind != DOCTOR_TO_PATIENT or self.step != PAYMENT:
            raise BookingError('Payment options apply to doctor-to-patient bookings')
        if option not in (WITH_PAYMENT, WITHOUT_PAYMENT):
            raise BookingError(f'Unknown payment option: {option}')
        if not self.bill:
            self.toaster.error(EMPTY_BILL)
            return False
        self.payment_option = option
        if option == WITH_PAYMENT:
            self._go(PAYMENT_SCREENSHOT)
            return True
        return self._start_call(payment_status='waived')

    def proceed(self) -> bool:
        """Payment requested over WhatsApp; start the call with payment pending."""
        if self.step != PAYMENT_SCREENSHOT:
            raise BookingError(f'Cannot proceed from {self.step}')
        return self._start_call(payment_status='pending', method='upi')

    def setup_ready(self) -> None:
        if self.step != SETUP:
            raise BookingError(f'Call setup is not open (step is {self.step})')
        self.toaster.info(STARTING_CALL)
        self._go(VIDEO)

    def close(self) -> None:
        self.closed = True

    # ------------------------------------------------------------------
    # Payment request text
    # ------------------------------------------------------------------
    def payment_message(self) -> str:
        payee = self.payee
        lines = [f"Payment Details for {self.details.participant_name}", '', 'Bill Summary:']
        lines += [f"- {item.description}: ₹{item.amount}" for item in self.bill]
        lines += ['', f"Total Amount: ₹{self.total}", '', 'Please make the payment to:']
        if payee is not None:
            lines += [f"UPI ID: {payee.upi_id}", f"Doctor: {payee.doctor_name}",
                      f"WhatsApp: {payee.whatsapp_number}"]
        lines += ['', 'After payment, please share the screenshot on this WhatsApp number '
                      'to start the video consultation.']
        return '\n'.join(lines)

    def whatsapp_url(self) -> str:
        number = self.details.whatsapp_number or (self.payee.whatsapp_number if self.payee else '')
        return whatsapp_link(number, self.payment_message())

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------
    def booking_payload(self, *, payment_status: str, method: str = '', checkout_order_id: str = '') -> dict:
        waived = payment_status == 'waived'
        payload = {
            'appointment_type': self.kind,
            'appointment_date': _iso(self.details.appointment_date),
            'appointment_time': _iso(self.details.appointment_time),
            'reason': self.details.reason.strip(),
            'consultation_mode': 'video',
            'payment_status': payment_status,
            'payment_amount': '0' if waived else str(self.total),
        }
        key = 'peer_doctor_id' if self.kind == DOCTOR_TO_DOCTOR else 'patient_id'
        payload[key] = str(self.details.participant_id)
        if not waived:
            payload['bill_items'] = [item.as_dict() for item in self.bill]
        if method:
            payload['payment_method'] = method
        if checkout_order_id:
            payload['checkout_order_id'] = checkout_order_id
        return payload

    def _start_call(self, *, payment_status: str, method: str = '', checkout_order_id: str = '') -> bool:
        payload = self.booking_payload(payment_status=payment_status, method=method,
                                       checkout_order_id=checkout_order_id)
        try:
            data = self.client.post('/appointments/doctor-book', json=payload)
        except ApiError as exc:
            logger.info("booking failed on %s: %s", self.step, exc.message)
            self.toaster.api_error(exc, BOOKING_FAILED)
            return False
        self.appointment = (data or {}).get('appointment')
        if self.payment_option == WITH_PAYMENT:
            self.toaster.info(COLLECT_PAYMENT)
        elif self._paid is None:
            self.toaster.success(STARTING_CALL)
        self._go(SETUP)
        return True
