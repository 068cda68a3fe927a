# jobs.py
"""
Billing sweep runner for cron.

Usage:
     python jobs.py generate-invoices
     python jobs.py mark-overdue
     python jobs.py apply-late-fees --date 2025-03-15
     python jobs.py send-reminders
     python jobs.py all

Exit code is 0 when every item succeeded, 1 when some items failed and 2
when the sweep could not start at all.
"""
import argparse
import logging
import sys
from datetime import date

from database import get_session_context
from logging_config import configure_logging
from services.billing_jobs import JOBS, run_job

logger = logging.getLogger("jobs")

# Daily order: bill first, then age, then charge fees, then remind.
DAILY_ORDER = ["generate-invoices", "mark-overdue", "apply-late-fees", "send-reminders"]


def _parse_args(argv=None) -> argparse.Namespace:
     parser = argparse.ArgumentParser(description="Run CondoEase billing sweeps")
     parser.add_argument("job", choices=sorted(JOBS) + ["all"], help="Sweep to run")
     parser.add_argument(
          "--date",
          type=date.fromisoformat,
          default=None,
          help="Business date (YYYY-MM-DD), defaults to today",
     )
     return parser.parse_args(argv)


def main(argv=None) -> int:
     configure_logging()
     args = _parse_args(argv)
     jobs = DAILY_ORDER if args.job == "all" else [args.job]

     exit_code = 0
     for job in jobs:
          try:
               with get_session_context() as db:
                    result = run_job(db, job, today=args.date)
          except Exception:
               logger.exception("Billing job %s could not run", job)
               return 2
          for reference, error in result.errors:
               logger.warning("%s: %s - %s", job, reference, error)
          if result.failed:
               exit_code = 1
     return exit_code


if __name__ == "__main__":
     sys.exit(main())
