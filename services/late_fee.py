# services/late_fee.py
"""
Late fee calculation.

fee = total_amount * percentage / 100, rounded to cents (half up). The fee is
applied at most once per invoice; the invoice's ``late_fee_applied`` flag is
what keeps sweeps from charging it again.
"""
from decimal import Decimal
from typing import Optional

import config
from exceptions import ValidationFailure
from models import Invoice
from utils.money import percentage_of


def calculate_late_fee(total_amount: Decimal, percentage: Optional[Decimal] = None) -> Decimal:
     """Late fee owed on ``total_amount`` at ``percentage`` (configured rate by default)."""
     if percentage is None:
          percentage = config.LATE_FEE_PERCENTAGE
     return percentage_of(total_amount, percentage)


def apply_late_fee(invoice: Invoice, percentage: Optional[Decimal] = None) -> Decimal:
     """
     Compute the fee for ``invoice`` and add it to its total.

     Raises ValidationFailure if the invoice is not OVERDUE or already carries
     a late fee. Returns the fee that was applied.
     """
     if invoice.late_fee_applied:
          raise ValidationFailure(f"Late fee has already been applied to invoice {invoice.invoice_number}")
     fee = calculate_late_fee(invoice.total_amount, percentage)
     invoice.apply_late_fee(fee)
     return fee
