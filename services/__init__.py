# services/__init__.py
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .sequence_service import SequenceService
from .notifications import BillingNotifier, NotificationType, get_notifier
from .billing_jobs import (
     BatchResult,
     JOBS,
     run_job,
     generate_recurring_invoices,
     mark_overdue_invoices,
     apply_late_fees,
     send_payment_reminders,
)

__all__ = [
     "InvoiceService",
     "PaymentService",
     "SequenceService",
     "BillingNotifier",
     "NotificationType",
     "get_notifier",
     "BatchResult",
     "JOBS",
     "run_job",
     "generate_recurring_invoices",
     "mark_overdue_invoices",
     "apply_late_fees",
     "send_payment_reminders",
]
