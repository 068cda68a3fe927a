# routers/billing_jobs.py
"""
Manual triggers for the scheduled billing sweeps (admin / manager only).

The same sweeps run from cron through ``python jobs.py <job>``.
"""
import enum
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_session
from dependencies import require_staff
from schemas.billing_job import BatchJobResponse
from services.billing_jobs import run_job
from services.notifications import BillingNotifier, get_notifier

router = APIRouter(prefix="/api/billing-jobs", tags=["billing-jobs"])


class BillingJob(str, enum.Enum):
     GENERATE_INVOICES = "generate-invoices"
     MARK_OVERDUE = "mark-overdue"
     APPLY_LATE_FEES = "apply-late-fees"
     SEND_REMINDERS = "send-reminders"


@router.post(
     "/{job}",
     response_model=BatchJobResponse,
     summary="Run a billing sweep now"
)
def trigger_job(
     job: BillingJob,
     run_date: Optional[date] = Query(None, description="Business date to run for (defaults to today)"),
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff),
     notifier: BillingNotifier = Depends(get_notifier),
):
     """
     Run one sweep synchronously and report what it did.

     Individual failures do not stop the sweep; they are listed in **errors**.
     """
     result = run_job(db, job.value, today=run_date, notifier=notifier)
     return result.to_response()
