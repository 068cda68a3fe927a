# models/payment.py
"""
Payment model - immutable record of money received against an invoice.

Payments are only created through the invoice's payment application
(services.payment_service.PaymentService.record_payment), which validates
the amount against the outstanding balance. Records are append-only; there
is no update or delete path.
"""
import enum

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Enum, ForeignKey, event, func
from sqlalchemy.orm import relationship

from exceptions import ValidationFailure
from .base import Base


class PaymentMethod(str, enum.Enum):
     """How the tenant paid."""
     CASH = "CASH"
     BANK_TRANSFER = "BANK_TRANSFER"
     CARD = "CARD"
     CHEQUE = "CHEQUE"
     PDC = "PDC"


class Payment(Base):
     """Payment recorded by staff against a single invoice."""
     __tablename__ = "payments"

     id = Column(Integer, primary_key=True, autoincrement=True)
     payment_number = Column(String(20), nullable=False, unique=True, index=True)
     
     invoice_id = Column(
          Integer,
          ForeignKey("invoices.id", ondelete="RESTRICT"),  # Prevent delete if payments exist
          nullable=False,
          index=True
     )
     tenant_id = Column(Integer, ForeignKey("tenants.tenant_id"), nullable=False, index=True)
     
     amount = Column(Numeric(12, 2), nullable=False)
     payment_method = Column(
          Enum(PaymentMethod, name="payment_method", create_constraint=True),
          nullable=False
     )
     payment_date = Column(Date, nullable=False, index=True)
     transaction_reference = Column(String(100), nullable=True)
     notes = Column(String(500), nullable=True)
     recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
     
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     invoice = relationship("Invoice", back_populates="payments")
     tenant = relationship("Tenant")
     recorder = relationship("User")

     def __repr__(self):
          return f"<Payment(id={self.id}, number='{self.payment_number}', amount={self.amount})>"


@event.listens_for(Payment, "before_update")
def _reject_payment_update(mapper, connection, target):
     raise ValidationFailure(f"Payment {target.payment_number} is immutable")


@event.listens_for(Payment, "before_delete")
def _reject_payment_delete(mapper, connection, target):
     raise ValidationFailure(f"Payment {target.payment_number} cannot be deleted")
