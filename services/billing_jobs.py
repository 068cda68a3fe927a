# services/billing_jobs.py
"""
Scheduled billing sweeps.

Each sweep selects the ids it should touch, then handles every member in
its own transaction: lock the row, check the selection condition again,
mutate, commit, notify. A failing member is rolled back, logged and added
to the result's error list; the remaining members are still processed.
Only a failure of the initial selection propagates to the caller.

Sweeps are safe to re-run: a member already handled no longer matches.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

import config
from exceptions import ValidationFailure
from models import Invoice, InvoiceStatus
from models.invoice import OVERDUE_CANDIDATE_STATUSES
from schemas.billing_job import BatchItemError, BatchJobResponse
from utils.money import ZERO
from .invoice_service import InvoiceService
from .late_fee import apply_late_fee
from .mappers import to_invoice_response
from .notifications import BillingNotifier, dispatch_safely, get_notifier
from .tenant_directory import find_tenants_due_for_invoicing

logger = logging.getLogger(__name__)

REMINDER_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID)


@dataclass
class BatchResult:
     """Outcome of one sweep."""
     job: str
     run_date: date
     processed: int = 0
     errors: List[Tuple[str, str]] = field(default_factory=list)

     @property
     def failed(self) -> int:
          return len(self.errors)

     def record_error(self, reference: str, error: str) -> None:
          self.errors.append((reference, error))

     def to_response(self) -> BatchJobResponse:
          return BatchJobResponse(
               job=self.job,
               processed=self.processed,
               failed=self.failed,
               errors=[BatchItemError(reference=ref, error=err) for ref, err in self.errors],
               run_date=self.run_date.isoformat(),
          )


def _invoice_ids(db: Session, *conditions) -> List[int]:
     rows = (
          db.query(Invoice.id)
          .filter(Invoice.is_deleted.is_(False), *conditions)
          .order_by(Invoice.id)
          .all()
     )
     # Release the read transaction before per-item work starts.
     db.rollback()
     return [row[0] for row in rows]


def _fail(db: Session, result: BatchResult, reference: str, error: Exception) -> None:
     db.rollback()
     logger.error("%s: %s failed: %s", result.job, reference, error, exc_info=True)
     result.record_error(reference, str(error))


def _finish(result: BatchResult) -> BatchResult:
     logger.info(
          "%s finished for %s: %s processed, %s failed",
          result.job, result.run_date, result.processed, result.failed,
     )
     return result


def generate_recurring_invoices(
     db: Session,
     today: Optional[date] = None,
     notifier: Optional[BillingNotifier] = None,
) -> BatchResult:
     """
     Create this month's DRAFT invoice for every tenant billed today.

     Drafts are not emailed; ``notifier`` is accepted so every job shares one signature.
     """
     today = today or date.today()
     result = BatchResult(job="generate-invoices", run_date=today)

     tenant_ids = find_tenants_due_for_invoicing(db, today)
     db.rollback()
     logger.info("Generating invoices for %s tenant(s)", len(tenant_ids))

     for tenant_id in tenant_ids:
          try:
               InvoiceService.generate_invoice_for_tenant(db, tenant_id, today)
          except Exception as e:
               _fail(db, result, f"tenant:{tenant_id}", e)
               continue
          result.processed += 1

     return _finish(result)


def mark_overdue_invoices(
     db: Session,
     today: Optional[date] = None,
     notifier: Optional[BillingNotifier] = None,
) -> BatchResult:
     """Move SENT / PARTIALLY_PAID invoices past their due date to OVERDUE."""
     today = today or date.today()
     notifier = notifier or get_notifier()
     result = BatchResult(job="mark-overdue", run_date=today)

     invoice_ids = _invoice_ids(
          db,
          Invoice.status.in_(OVERDUE_CANDIDATE_STATUSES),
          Invoice.due_date < today,
     )
     logger.info("Checking %s invoice(s) for overdue status", len(invoice_ids))

     for invoice_id in invoice_ids:
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               if invoice.status not in OVERDUE_CANDIDATE_STATUSES or not invoice.is_past_due(today):
                    db.rollback()
                    continue
               invoice.mark_as_overdue(today)
               db.commit()
          except Exception as e:
               _fail(db, result, f"invoice:{invoice_id}", e)
               continue

          result.processed += 1
          logger.info("Invoice %s marked OVERDUE", invoice.invoice_number)
          days = invoice.days_overdue(today)
          if not dispatch_safely(notifier.invoice_overdue, to_invoice_response(invoice, today), days):
               result.record_error(invoice.invoice_number, "Overdue notification failed")

     return _finish(result)


def apply_late_fees(
     db: Session,
     today: Optional[date] = None,
     percentage: Optional[Decimal] = None,
     notifier: Optional[BillingNotifier] = None,
) -> BatchResult:
     """Charge the configured late fee once on every OVERDUE invoice."""
     today = today or date.today()
     notifier = notifier or get_notifier()
     percentage = config.LATE_FEE_PERCENTAGE if percentage is None else percentage
     result = BatchResult(job="apply-late-fees", run_date=today)

     if percentage <= ZERO:
          logger.info("Late fee percentage is %s, nothing to apply", percentage)
          return _finish(result)

     invoice_ids = _invoice_ids(
          db,
          Invoice.status == InvoiceStatus.OVERDUE,
          Invoice.late_fee_applied.is_(False),
     )
     logger.info("Applying %s%% late fee to %s invoice(s)", percentage, len(invoice_ids))

     for invoice_id in invoice_ids:
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               if invoice.status != InvoiceStatus.OVERDUE or invoice.late_fee_applied:
                    db.rollback()
                    continue
               fee = apply_late_fee(invoice, percentage)
               db.commit()
          except Exception as e:
               _fail(db, result, f"invoice:{invoice_id}", e)
               continue

          result.processed += 1
          logger.info("Late fee %s applied to invoice %s", fee, invoice.invoice_number)
          if fee == ZERO:
               continue
          if not dispatch_safely(notifier.late_fee_applied, to_invoice_response(invoice, today), fee):
               result.record_error(invoice.invoice_number, "Late fee notification failed")

     return _finish(result)


def send_payment_reminders(
     db: Session,
     today: Optional[date] = None,
     days_before: Optional[int] = None,
     notifier: Optional[BillingNotifier] = None,
) -> BatchResult:
     """Remind tenants of invoices falling due in exactly ``days_before`` days."""
     today = today or date.today()
     notifier = notifier or get_notifier()
     days_before = config.REMINDER_DAYS_BEFORE if days_before is None else days_before
     due_on = today + timedelta(days=days_before)
     result = BatchResult(job="send-reminders", run_date=today)

     invoice_ids = _invoice_ids(
          db,
          Invoice.status.in_(REMINDER_STATUSES),
          Invoice.due_date == due_on,
     )
     logger.info("Sending reminders for %s invoice(s) due on %s", len(invoice_ids), due_on)

     for invoice_id in invoice_ids:
          try:
               invoice = InvoiceService.get_invoice(db, invoice_id)
               if invoice.status not in REMINDER_STATUSES or invoice.due_date != due_on:
                    continue
               snapshot = to_invoice_response(invoice, today)
          except Exception as e:
               _fail(db, result, f"invoice:{invoice_id}", e)
               continue

          if dispatch_safely(notifier.payment_reminder, snapshot, days_before):
               result.processed += 1
          else:
               result.record_error(invoice.invoice_number, "Reminder notification failed")

     db.rollback()
     return _finish(result)


JOBS: Dict[str, Callable[..., BatchResult]] = {
     "generate-invoices": generate_recurring_invoices,
     "mark-overdue": mark_overdue_invoices,
     "apply-late-fees": apply_late_fees,
     "send-reminders": send_payment_reminders,
}


def run_job(db: Session, job: str, today: Optional[date] = None,
            notifier: Optional[BillingNotifier] = None) -> BatchResult:
     """Run the sweep registered under ``job``."""
     try:
          sweep = JOBS[job]
     except KeyError:
          raise ValidationFailure(f"Unknown billing job: {job}")
     return sweep(db, today=today, notifier=notifier)
