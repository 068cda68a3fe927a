# models/invoice.py
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
     JSON, Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
)
from sqlalchemy.orm import relationship

from exceptions import ValidationFailure
from utils.money import ZERO, to_money
from .base import Base, SoftDeleteMixin


class InvoiceStatus(str, enum.Enum):
     """Enumeration for invoice lifecycle status."""
     DRAFT = "DRAFT"
     SENT = "SENT"
     PARTIALLY_PAID = "PARTIALLY_PAID"
     OVERDUE = "OVERDUE"
     PAID = "PAID"
     CANCELLED = "CANCELLED"


# Legal status changes. Anything not listed here is rejected.
INVOICE_TRANSITIONS = {
     InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
     InvoiceStatus.SENT: frozenset({
          InvoiceStatus.PARTIALLY_PAID,
          InvoiceStatus.PAID,
          InvoiceStatus.OVERDUE,
          InvoiceStatus.CANCELLED,
     }),
     InvoiceStatus.PARTIALLY_PAID: frozenset({
          InvoiceStatus.PARTIALLY_PAID,
          InvoiceStatus.PAID,
          InvoiceStatus.OVERDUE,
     }),
     InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID}),
     InvoiceStatus.PAID: frozenset(),
     InvoiceStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
     status for status, targets in INVOICE_TRANSITIONS.items() if not targets
)
PAYABLE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE)
OUTSTANDING_STATUSES = PAYABLE_STATUSES
OVERDUE_CANDIDATE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID)


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
     """Check the transition table for ``current -> target``."""
     return target in INVOICE_TRANSITIONS.get(current, frozenset())


class Invoice(SoftDeleteMixin, Base):
     """
     Invoice model - billing records for tenants based on their lease terms.

     Owns its derived amounts: ``total_amount`` is the sum of all charges plus
     any late fee and ``balance_amount`` is always ``total - paid``. Every
     status change goes through the transition table above.
     """
     __tablename__ = "invoices"

     id = Column(Integer, primary_key=True, autoincrement=True)
     invoice_number = Column(String(20), nullable=False, unique=True, index=True)

     # Foreign keys
     tenant_id = Column(
          Integer,
          ForeignKey("tenants.tenant_id"),
          nullable=False,
          index=True
     )
     property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
     unit_id = Column(Integer, ForeignKey("property_units.id"), nullable=True, index=True)
     lease_reference = Column(String(50), nullable=True)

     # Dates
     invoice_date = Column(Date, nullable=False, index=True)
     due_date = Column(Date, nullable=False, index=True)
     sent_at = Column(DateTime, nullable=True)
     paid_at = Column(DateTime, nullable=True)

     # Amount breakdown
     base_rent = Column(Numeric(12, 2), nullable=False)
     service_charges = Column(Numeric(12, 2), nullable=False, default=ZERO)
     parking_fees = Column(Numeric(12, 2), nullable=False, default=ZERO)
     additional_charges = Column(JSON, nullable=False, default=list)  # [{"description", "amount"}]
     late_fee = Column(Numeric(12, 2), nullable=True)
     total_amount = Column(Numeric(12, 2), nullable=False)
     paid_amount = Column(Numeric(12, 2), nullable=False, default=ZERO)
     balance_amount = Column(Numeric(12, 2), nullable=False)

     # Status and tracking
     status = Column(
          Enum(InvoiceStatus, name="invoice_status", create_constraint=True),
          default=InvoiceStatus.DRAFT,
          nullable=False,
          index=True
     )
     late_fee_applied = Column(Boolean, default=False, nullable=False)
     notes = Column(String(500), nullable=True)
     created_by = Column(Integer, nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     # Relationships
     tenant = relationship("Tenant", back_populates="invoices")
     building = relationship("Property", back_populates="invoices")
     unit = relationship("PropertyUnit", back_populates="invoices")
     payments = relationship(
          "Payment",
          back_populates="invoice",
          order_by="Payment.payment_date",
     )

     def __repr__(self):
          return (
               f"<Invoice(id={self.id}, number='{self.invoice_number}', "
               f"total={self.total_amount}, status='{self.status.value}')>"
          )

     # ------------------------------------------------------------------
     # Derived amounts
     # ------------------------------------------------------------------

     @property
     def additional_charges_total(self) -> Decimal:
          return to_money(sum(
               (to_money(charge.get("amount")) for charge in (self.additional_charges or [])),
               ZERO,
          ))

     def calculate_totals(self) -> None:
          """Recompute total and balance from the charge columns."""
          self.total_amount = to_money(
               to_money(self.base_rent)
               + to_money(self.service_charges)
               + to_money(self.parking_fees)
               + self.additional_charges_total
               + to_money(self.late_fee)
          )
          self.paid_amount = to_money(self.paid_amount)
          self.balance_amount = to_money(self.total_amount - self.paid_amount)

     # ------------------------------------------------------------------
     # Guards
     # ------------------------------------------------------------------

     @property
     def is_editable(self) -> bool:
          return self.status == InvoiceStatus.DRAFT

     @property
     def can_receive_payment(self) -> bool:
          return self.status in PAYABLE_STATUSES

     @property
     def can_be_cancelled(self) -> bool:
          if not can_transition(self.status, InvoiceStatus.CANCELLED):
               return False
          return self.status == InvoiceStatus.DRAFT or to_money(self.paid_amount) == ZERO

     def is_past_due(self, today: Optional[date] = None) -> bool:
          """Check if invoice is past due date and still unsettled."""
          today = today or date.today()
          if self.status not in OUTSTANDING_STATUSES:
               return False
          return self.due_date is not None and self.due_date < today

     def days_overdue(self, today: Optional[date] = None) -> int:
          today = today or date.today()
          return max((today - self.due_date).days, 0)

     # ------------------------------------------------------------------
     # Guarded mutators
     # ------------------------------------------------------------------

     def _transition(self, target: InvoiceStatus) -> None:
          if not can_transition(self.status, target):
               raise ValidationFailure(
                    f"Invoice {self.invoice_number} cannot move from {self.status.value} to {target.value}"
               )
          self.status = target

     def mark_as_sent(self, now: Optional[datetime] = None) -> None:
          """Mark a DRAFT invoice as sent to the tenant."""
          self._transition(InvoiceStatus.SENT)
          self.sent_at = now or datetime.utcnow()

     def cancel(self) -> None:
          """Cancel a DRAFT invoice, or a SENT invoice nothing has been paid on."""
          if not self.can_be_cancelled:
               raise ValidationFailure(
                    f"Cannot cancel invoice with payments or in current status: {self.status.value}"
               )
          self._transition(InvoiceStatus.CANCELLED)

     def record_payment(self, amount: Decimal, now: Optional[datetime] = None) -> None:
          """Apply ``amount`` to the invoice and move it to PARTIALLY_PAID or PAID."""
          amount = to_money(amount)
          if amount <= ZERO:
               raise ValidationFailure("Payment amount must be positive")
          if not self.can_receive_payment:
               raise ValidationFailure(
                    f"Invoice cannot receive payment in current status: {self.status.value}"
               )
          if amount > to_money(self.balance_amount):
               raise ValidationFailure(
                    f"Payment amount cannot exceed outstanding balance of {self.balance_amount}"
               )

          self.paid_amount = to_money(self.paid_amount) + amount
          self.calculate_totals()

          if self.balance_amount == ZERO:
               self._transition(InvoiceStatus.PAID)
               self.paid_at = now or datetime.utcnow()
          else:
               self._transition(InvoiceStatus.PARTIALLY_PAID)

     def mark_as_overdue(self, today: Optional[date] = None) -> None:
          """Mark a SENT or PARTIALLY_PAID invoice past its due date as OVERDUE."""
          if self.status not in OVERDUE_CANDIDATE_STATUSES:
               raise ValidationFailure(
                    f"Invoice cannot become overdue from status: {self.status.value}"
               )
          if not self.is_past_due(today):
               raise ValidationFailure(f"Invoice {self.invoice_number} is not past its due date")
          self._transition(InvoiceStatus.OVERDUE)

     def apply_late_fee(self, fee: Decimal) -> None:
          """
          Add a one-time late fee to an OVERDUE invoice.

          A fee that rounds to 0.00 still sets the flag, so the invoice is not picked up again.
          """
          fee = to_money(fee)
          if fee < ZERO:
               raise ValidationFailure("Late fee amount cannot be negative")
          if self.late_fee_applied:
               raise ValidationFailure("Late fee has already been applied")
          if self.status != InvoiceStatus.OVERDUE:
               raise ValidationFailure("Late fees can only be applied to OVERDUE invoices")
          self.late_fee = fee
          self.late_fee_applied = True
          self.calculate_totals()
