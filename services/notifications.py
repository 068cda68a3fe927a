# services/notifications.py
"""
Tenant notifications for billing events.

Everything here is best-effort: notifications are dispatched only after the
financial change has been committed, and a failure is logged instead of
being raised to the caller.
"""
import enum
import logging
from decimal import Decimal
from typing import Callable, Optional

from fastapi import BackgroundTasks

import azure_blob
from exceptions import DependencyFailure
from schemas.invoice import InvoiceResponse
from schemas.payment import PaymentResponse
from utils.email import send_email
from .documents import render_invoice_pdf, render_receipt_pdf

logger = logging.getLogger(__name__)


class NotificationType(str, enum.Enum):
     INVOICE_SENT = "INVOICE_SENT"
     PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
     INVOICE_OVERDUE = "INVOICE_OVERDUE"
     LATE_FEE_APPLIED = "LATE_FEE_APPLIED"
     PAYMENT_REMINDER = "PAYMENT_REMINDER"


SUBJECTS = {
     NotificationType.INVOICE_SENT: "Invoice {invoice_number} from CondoEase",
     NotificationType.PAYMENT_RECEIVED: "Payment received - {payment_number}",
     NotificationType.INVOICE_OVERDUE: "Invoice {invoice_number} is overdue",
     NotificationType.LATE_FEE_APPLIED: "Late fee applied to invoice {invoice_number}",
     NotificationType.PAYMENT_REMINDER: "Reminder: invoice {invoice_number} is due on {due_date}",
}

BODIES = {
     NotificationType.INVOICE_SENT: (
          "<p>Hi {tenant_name},</p>"
          "<p>Your invoice <b>{invoice_number}</b> for <b>{total_amount}</b> is attached. "
          "Payment is due on {due_date}.</p>"
     ),
     NotificationType.PAYMENT_RECEIVED: (
          "<p>Hi {tenant_name},</p>"
          "<p>We received your payment of <b>{amount}</b> ({payment_number}) "
          "for invoice {invoice_number}. Remaining balance: <b>{balance_amount}</b>.</p>"
          "<p>Your receipt is attached.</p>"
     ),
     NotificationType.INVOICE_OVERDUE: (
          "<p>Hi {tenant_name},</p>"
          "<p>Invoice <b>{invoice_number}</b> was due on {due_date} and is now "
          "{days_overdue} day(s) overdue. Outstanding balance: <b>{balance_amount}</b>.</p>"
     ),
     NotificationType.LATE_FEE_APPLIED: (
          "<p>Hi {tenant_name},</p>"
          "<p>A late fee of <b>{late_fee}</b> has been added to invoice {invoice_number}. "
          "New balance: <b>{balance_amount}</b>.</p>"
     ),
     NotificationType.PAYMENT_REMINDER: (
          "<p>Hi {tenant_name},</p>"
          "<p>This is a reminder that invoice <b>{invoice_number}</b> is due in "
          "{days_until_due} day(s), on {due_date}. Outstanding balance: <b>{balance_amount}</b>.</p>"
     ),
}


def _invoice_context(invoice: InvoiceResponse) -> dict:
     return {
          "tenant_name": invoice.tenant_name or "Tenant",
          "invoice_number": invoice.invoice_number,
          "due_date": invoice.due_date.isoformat(),
          "total_amount": f"{invoice.total_amount:,.2f}",
          "balance_amount": f"{invoice.balance_amount:,.2f}",
     }


class BillingNotifier:
     """
     Renders documents and emails tenants about billing events.

     Collaborators are injectable so tests can swap in fakes.
     """

     def __init__(
          self,
          sender: Callable = send_email,
          invoice_renderer: Callable = render_invoice_pdf,
          receipt_renderer: Callable = render_receipt_pdf,
          archive: Optional[Callable] = None,
     ):
          self.sender = sender
          self.invoice_renderer = invoice_renderer
          self.receipt_renderer = receipt_renderer
          self.archive = archive

     def send(self, recipient: Optional[str], notification_type: NotificationType,
              context: dict, attachment: Optional[tuple] = None, recipient_name: Optional[str] = None) -> None:
          """Email ``recipient``. Raises DependencyFailure on any delivery problem."""
          if not recipient:
               raise DependencyFailure(f"No email address on file for {notification_type.value}")
          subject = SUBJECTS[notification_type].format(**context)
          body = BODIES[notification_type].format(**context)
          self.sender(
               to_email=recipient,
               subject=subject,
               html_content=body,
               attachments=[attachment] if attachment else None,
               to_name=recipient_name,
          )
          logger.info("Sent %s notification to %s", notification_type.value, recipient)

     def _archive(self, content: bytes, blob_name: str) -> None:
          if self.archive is None:
               return
          try:
               url = self.archive(content, blob_name)
               logger.info("Archived %s at %s", blob_name, url)
          except DependencyFailure as e:
               logger.warning("Could not archive %s: %s", blob_name, e)

     def invoice_sent(self, invoice: InvoiceResponse) -> None:
          pdf = self.invoice_renderer(invoice)
          self._archive(pdf, f"invoices/{invoice.invoice_number}.pdf")
          self.send(
               invoice.tenant_email,
               NotificationType.INVOICE_SENT,
               _invoice_context(invoice),
               attachment=(f"{invoice.invoice_number}.pdf", pdf),
               recipient_name=invoice.tenant_name,
          )

     def payment_received(self, payment: PaymentResponse, invoice: InvoiceResponse) -> None:
          pdf = self.receipt_renderer(payment, invoice)
          self._archive(pdf, f"receipts/{payment.payment_number}.pdf")
          context = _invoice_context(invoice)
          context.update(payment_number=payment.payment_number, amount=f"{payment.amount:,.2f}")
          self.send(
               invoice.tenant_email,
               NotificationType.PAYMENT_RECEIVED,
               context,
               attachment=(f"{payment.payment_number}.pdf", pdf),
               recipient_name=invoice.tenant_name,
          )

     def invoice_overdue(self, invoice: InvoiceResponse, days_overdue: int) -> None:
          context = _invoice_context(invoice)
          context["days_overdue"] = days_overdue
          self.send(invoice.tenant_email, NotificationType.INVOICE_OVERDUE, context,
                    recipient_name=invoice.tenant_name)

     def late_fee_applied(self, invoice: InvoiceResponse, fee: Decimal) -> None:
          context = _invoice_context(invoice)
          context["late_fee"] = f"{fee:,.2f}"
          self.send(invoice.tenant_email, NotificationType.LATE_FEE_APPLIED, context,
                    recipient_name=invoice.tenant_name)

     def payment_reminder(self, invoice: InvoiceResponse, days_until_due: int) -> None:
          context = _invoice_context(invoice)
          context["days_until_due"] = days_until_due
          self.send(invoice.tenant_email, NotificationType.PAYMENT_REMINDER, context,
                    recipient_name=invoice.tenant_name)


def dispatch_safely(func: Callable, *args) -> bool:
     """Run a notification; log and report False instead of raising."""
     try:
          func(*args)
          return True
     except DependencyFailure as e:
          logger.warning("Notification %s failed: %s", getattr(func, "__name__", func), e)
     except Exception:
          logger.exception("Unexpected error in notification %s", getattr(func, "__name__", func))
     return False


def schedule(background_tasks: Optional[BackgroundTasks], func: Callable, *args) -> None:
     """Queue a notification to run after the response, or run it now."""
     if background_tasks is not None:
          background_tasks.add_task(dispatch_safely, func, *args)
     else:
          dispatch_safely(func, *args)


_default_notifier = None


def get_notifier() -> BillingNotifier:
     """Shared notifier; archives documents when Azure storage is configured."""
     global _default_notifier
     if _default_notifier is None:
          archive = azure_blob.upload_document if azure_blob.is_configured() else None
          _default_notifier = BillingNotifier(archive=archive)
     return _default_notifier
