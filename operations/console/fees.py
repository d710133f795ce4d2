"""Hospital fee bill: the monthly subscription plus optional equipment lines."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from operations.services.billing import SUBSCRIPTION_ITEM_ID, FeeOption, bill_total

from .client import ApiError, DashboardClient
from .toasts import Toaster

SUBSCRIPTION_MANDATORY = 'Monthly subscription is mandatory'
ALREADY_ADDED = 'This item is already added'
EMPTY_FEE_BILL = 'Please add at least one fee item'
FEE_PAYMENT_FAILED = 'Failed to record payment. Please try again.'


def _option(data: dict) -> FeeOption:
    return FeeOption(str(data['id']), data['description'], Decimal(str(data['amount'])), data.get('type', 'other'))


@dataclass
class HospitalFeeBill:
    client: DashboardClient
    toaster: Toaster = field(default_factory=Toaster)
    items: List[FeeOption] = field(default_factory=list)
    options: List[FeeOption] = field(default_factory=list)
    upi_id: str = ''
    receipt: Optional[str] = None

    def load(self) -> None:
        """Fetch the subscription and equipment lines; the subscription starts on the bill."""
        data = self.client.get('/payments/hospital-fee-options')
        subscription = _option(data['subscription'])
        self.options = [_option(o) for o in data.get('equipment', [])]
        self.items = [subscription]
        self.upi_id = data.get('upi_id', '')

    @property
    def total(self) -> Decimal:
        return bill_total(self.items)

    def add(self, option: FeeOption) -> bool:
        if any(item.id == option.id for item in self.items):
            self.toaster.error(ALREADY_ADDED)
            return False
        self.items.append(option)
        self.toaster.success(f"{option.description} added")
        return True

    def remove(self, item_id: str) -> bool:
        if item_id == SUBSCRIPTION_ITEM_ID:
            self.toaster.error(SUBSCRIPTION_MANDATORY)
            return False
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        return len(self.items) != before

    def pay(self, *, method: str = 'upi', payer_name: str = '') -> Optional[dict]:
        """Record the bill; returns the stored payment with its ``DOC-`` receipt."""
        if not self.items:
            self.toaster.error(EMPTY_FEE_BILL)
            return None
        try:
            data = self.client.post('/payments/record', json={
                'kind': 'hospital_fee',
                'method': method,
                'payer_name': payer_name,
                'description': 'Hospital fees',
                'items': [{'description': i.description, 'amount': str(i.amount)} for i in self.items],
            })
        except ApiError as exc:
            self.toaster.api_error(exc, FEE_PAYMENT_FAILED)
            return None
        payment = data['payment']
        self.receipt = payment.get('receipt_number')
        self.toaster.success(f"Payment recorded. Receipt {self.receipt}")
        return payment
