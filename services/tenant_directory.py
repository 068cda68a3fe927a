# services/tenant_directory.py
"""
Read-only lookups against tenant, user and property data owned by the
property-management side of the platform. Billing never writes these tables.
"""
import calendar
from datetime import date
from typing import List, Optional

from sqlalchemy import and_, exists, extract, or_
from sqlalchemy.orm import Session

from exceptions import NotFoundError
from models import Invoice, Tenant, TenantStatus, User


def get_tenant(db: Session, tenant_id: int) -> Tenant:
     """Fetch a tenant or raise NotFoundError."""
     tenant = db.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()
     if tenant is None:
          raise NotFoundError("Tenant", tenant_id)
     return tenant


def user_exists(db: Session, user_id: Optional[int]) -> bool:
     """Actor directory: does ``user_id`` refer to an existing user?"""
     if user_id is None:
          return False
     return db.query(User.id).filter(User.id == user_id).first() is not None


def billing_days_for(today: date) -> List[int]:
     """
     Billing anchors that fall due on ``today``.

     Anchors past the end of a short month (e.g. 31 in April) are billed on
     the month's last day.
     """
     last_day = calendar.monthrange(today.year, today.month)[1]
     if today.day == last_day:
          return list(range(today.day, 32))
     return [today.day]


def find_tenants_due_for_invoicing(db: Session, today: Optional[date] = None) -> List[int]:
     """
     IDs of active tenants whose billing anchor is today and who have not
     been invoiced yet this month.
     """
     today = today or date.today()
     already_invoiced = exists().where(
          and_(
               Invoice.tenant_id == Tenant.tenant_id,
               Invoice.is_deleted.is_(False),
               extract("year", Invoice.invoice_date) == today.year,
               extract("month", Invoice.invoice_date) == today.month,
          )
     )
     rows = (
          db.query(Tenant.tenant_id)
          .filter(
               Tenant.status == TenantStatus.ACTIVE.value,
               Tenant.is_deleted.is_(False),
               Tenant.payment_due_day.in_(billing_days_for(today)),
               or_(Tenant.lease_end_date.is_(None), Tenant.lease_end_date >= today),
               ~already_invoiced,
          )
          .order_by(Tenant.tenant_id)
          .all()
     )
     return [row[0] for row in rows]
