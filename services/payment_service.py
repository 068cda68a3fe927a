# services/payment_service.py
"""
Payment Service - applies received money to invoices.

A payment and the invoice's new paid/balance/status are committed together
in one transaction while the invoice row is locked, so concurrent payments
against the same invoice are serialized and the balance check always sees
the previously committed amount.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from exceptions import NotFoundError, ValidationFailure
from models import Payment
from schemas.payment import PaymentCreate, PaymentFilter
from utils.money import to_money
from .invoice_service import InvoiceService
from .mappers import to_invoice_response, to_payment_response
from .notifications import BillingNotifier, get_notifier, schedule
from .sequence_service import SequenceService
from .tenant_directory import user_exists

logger = logging.getLogger(__name__)

PAYMENT_SORT_FIELDS = {
     "paymentNumber": Payment.payment_number,
     "amount": Payment.amount,
     "paymentMethod": Payment.payment_method,
}
DEFAULT_PAYMENT_SORT = Payment.payment_date


class PaymentService:
     """Service class for payment recording and lookups."""

     @staticmethod
     def record_payment(
          db: Session,
          invoice_id: int,
          payment_data: PaymentCreate,
          recorded_by: Optional[int],
          today: Optional[date] = None,
          notifier: Optional[BillingNotifier] = None,
          background_tasks: Optional[BackgroundTasks] = None,
     ) -> Payment:
          """
          Record a payment against an invoice.

          Args:
               db: SQLAlchemy database session
               invoice_id: Invoice being paid
               payment_data: Amount, method, date and reference
               recorded_by: ID of the staff user recording the payment
               today: Business date (defaults to today)
               notifier: Sends the receipt after commit
               background_tasks: When given, the receipt is sent after the response

          Returns:
               Created Payment object

          Raises:
               NotFoundError: Unknown invoice or user
               ValidationFailure: Future date, amount above balance, or the
                    invoice is DRAFT, PAID or CANCELLED
          """
          today = today or date.today()
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               if not user_exists(db, recorded_by):
                    raise NotFoundError("User", recorded_by)
               if payment_data.payment_date > today:
                    raise ValidationFailure("Payment date cannot be in the future")

               amount = to_money(payment_data.amount)
               invoice.record_payment(amount, datetime.utcnow())

               payment = Payment(
                    payment_number=SequenceService(db).next_payment_number(today),
                    invoice=invoice,
                    tenant_id=invoice.tenant_id,
                    amount=amount,
                    payment_method=payment_data.payment_method,
                    payment_date=payment_data.payment_date,
                    transaction_reference=payment_data.transaction_reference,
                    notes=payment_data.notes,
                    recorded_by=recorded_by,
               )
               db.add(payment)
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info(
               "Payment %s of %s recorded against invoice %s (balance %s, status %s)",
               payment.payment_number,
               amount,
               invoice.invoice_number,
               invoice.balance_amount,
               invoice.status.value,
          )
          notifier = notifier or get_notifier()
          schedule(
               background_tasks,
               notifier.payment_received,
               to_payment_response(payment),
               to_invoice_response(invoice, today),
          )
          return payment

     @staticmethod
     def get_payment(db: Session, payment_id: int) -> Payment:
          payment = db.query(Payment).filter(Payment.id == payment_id).first()
          if payment is None:
               raise NotFoundError("Payment", payment_id)
          return payment

     @staticmethod
     def list_invoice_payments(db: Session, invoice_id: int) -> List[Payment]:
          """Payment history of one invoice, oldest first."""
          InvoiceService.get_invoice(db, invoice_id)
          return (
               db.query(Payment)
               .filter(Payment.invoice_id == invoice_id)
               .order_by(Payment.payment_date.asc(), Payment.id.asc())
               .all()
          )

     @staticmethod
     def list_payments(db: Session, filters: PaymentFilter) -> Tuple[List[Payment], int]:
          """Filtered, sorted, paginated payment listing."""
          query = db.query(Payment)

          if filters.invoice_id is not None:
               query = query.filter(Payment.invoice_id == filters.invoice_id)
          if filters.tenant_id is not None:
               query = query.filter(Payment.tenant_id == filters.tenant_id)
          if filters.payment_method is not None:
               query = query.filter(Payment.payment_method == filters.payment_method)
          if filters.from_date is not None:
               query = query.filter(Payment.payment_date >= filters.from_date)
          if filters.to_date is not None:
               query = query.filter(Payment.payment_date <= filters.to_date)

          total = query.count()

          column = PAYMENT_SORT_FIELDS.get(filters.sort_by, DEFAULT_PAYMENT_SORT)
          order = desc if (filters.sort_direction or "").upper() == "DESC" else asc
          offset = (filters.page - 1) * filters.page_size
          payments = (
               query.order_by(order(column), order(Payment.id))
               .offset(offset)
               .limit(filters.page_size)
               .all()
          )
          return payments, total
