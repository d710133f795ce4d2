"""
Bill arithmetic and receipt numbering.

Pure functions shared by the API and the console workflows. Amounts are
``Decimal`` throughout; a bill total is the exact sum of its items with no
tax or rounding applied.
"""
from __future__ import annotations

import random
import re
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from urllib.parse import quote

CENT = Decimal('0.01')


@dataclass(frozen=True)
class BillItem:
    description: str
    amount: Decimal

    @classmethod
    def of(cls, description: str, amount) -> 'BillItem':
        return cls(description, Decimal(str(amount)))

    def as_dict(self) -> dict:
        return {'description': self.description, 'amount': str(self.amount)}


def bill_total(items: Iterable) -> Decimal:
    """Exact sum of item amounts; accepts ``BillItem`` objects or dicts."""
    total = Decimal('0')
    for item in items:
        amount = item['amount'] if isinstance(item, dict) else item.amount
        total += Decimal(str(amount))
    return total


def tax_for(amount: Decimal, rate) -> Decimal:
    return (Decimal(amount) * Decimal(str(rate))).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Gateway amounts are integers in the currency's minor unit (paise, cents)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def consultation_receipt(now: float | None = None) -> str:
    """``RCP-<epoch ms>-<rand>`` used for consultation payments."""
    ts = int((now if now is not None else time.time()) * 1000)
    return f"RCP-{ts}-{random.randint(0, 9999):04d}"


def hospital_fee_receipt(day: date, sequence: int) -> str:
    """``DOC-YYYYMMDD-NNN`` used for hospital fee payments."""
    return f"DOC-{day:%Y%m%d}-{sequence:03d}"


def whatsapp_link(phone_number: str, text: str) -> str:
    """Deep link opening a WhatsApp chat with ``text`` prefilled."""
    digits = re.sub(r'\D', '', phone_number or '')
    return f"https://wa.me/{digits}?text={quote(text)}"


@dataclass(frozen=True)
class FeeOption:
    """A line a doctor can put on the hospital fee bill."""
    id: str
    description: str
    amount: Decimal
    type: str

    def as_dict(self) -> dict:
        return {'id': self.id, 'description': self.description, 'amount': str(self.amount), 'type': self.type}


SUBSCRIPTION_ITEM_ID = '1'

EQUIPMENT_OPTIONS = (
    FeeOption('eq-1', 'Basic Equipment Set', Decimal('500'), 'equipment'),
    FeeOption('eq-2', 'Advanced Equipment Set', Decimal('1500'), 'equipment'),
    FeeOption('eq-3', 'ICU Equipment Rental', Decimal('3000'), 'equipment'),
    FeeOption('eq-4', 'Training & Certification', Decimal('2000'), 'other'),
)


def subscription_item(fee) -> FeeOption:
    """The monthly platform subscription; always on the hospital fee bill."""
    return FeeOption(SUBSCRIPTION_ITEM_ID, 'Monthly Platform Subscription', Decimal(str(fee)), 'subscription')
