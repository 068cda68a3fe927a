# services/sequence_service.py
"""
Sequence Service - year-scoped human-readable numbers for invoices and payments.

Numbers look like INV-2025-0042 / PMT-2025-0007. Each (kind, year) pair has
one row in sequence_counters; the row is locked with SELECT ... FOR UPDATE
while it is incremented, so concurrent callers never receive the same value.
The increment belongs to the caller's transaction: if the creation that asked
for a number rolls back, the number is handed out again (no gaps).
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import SequenceCounter

logger = logging.getLogger(__name__)

INVOICE = "invoice"
PAYMENT = "payment"

NUMBER_PREFIXES = {
     INVOICE: "INV",
     PAYMENT: "PMT",
}


def counter_name(kind: str, year: int) -> str:
     return f"{kind}-{year}"


def format_number(kind: str, year: int, sequence: int) -> str:
     """Format ``sequence`` as e.g. ``INV-2025-0042``."""
     try:
          prefix = NUMBER_PREFIXES[kind]
     except KeyError:
          raise ValueError(f"Unknown sequence kind: {kind}")
     return f"{prefix}-{year}-{sequence:04d}"


class SequenceService:
     """Allocates numbers from locked counter rows. Never commits."""

     def __init__(self, db: Session):
          self.db = db

     def _locked_counter(self, name: str) -> Optional[SequenceCounter]:
          return self.db.execute(
               select(SequenceCounter)
               .where(SequenceCounter.name == name)
               .with_for_update()
               .execution_options(populate_existing=True)
          ).scalar_one_or_none()

     def next_value(self, kind: str, year: int) -> int:
          """
          Increment and return the counter for ``kind`` in ``year``.

          The first call for a year creates the counter inside a savepoint;
          if another transaction created it first, the savepoint is rolled
          back and the existing row is locked and incremented instead.
          """
          if kind not in NUMBER_PREFIXES:
               raise ValueError(f"Unknown sequence kind: {kind}")
          name = counter_name(kind, year)

          counter = self._locked_counter(name)
          if counter is None:
               savepoint = self.db.begin_nested()
               try:
                    self.db.add(SequenceCounter(name=name, current_value=1))
                    self.db.flush()
                    savepoint.commit()
                    logger.debug("Sequence %s started at 1", name)
                    return 1
               except IntegrityError:
                    savepoint.rollback()
                    logger.debug("Sequence %s created concurrently, retrying", name)
                    counter = self._locked_counter(name)
                    if counter is None:
                         raise

          counter.current_value += 1
          self.db.flush()
          logger.debug("Sequence %s allocated %s", name, counter.current_value)
          return counter.current_value

     def current_value(self, kind: str, year: int) -> int:
          """Last number handed out for ``kind`` in ``year`` (0 if none)."""
          counter = self.db.execute(
               select(SequenceCounter).where(SequenceCounter.name == counter_name(kind, year))
          ).scalar_one_or_none()
          return counter.current_value if counter else 0

     def next_number(self, kind: str, today: Optional[date] = None) -> str:
          """Allocate the next formatted number for the current year."""
          year = (today or date.today()).year
          return format_number(kind, year, self.next_value(kind, year))

     def next_invoice_number(self, today: Optional[date] = None) -> str:
          return self.next_number(INVOICE, today)

     def next_payment_number(self, today: Optional[date] = None) -> str:
          return self.next_number(PAYMENT, today)
