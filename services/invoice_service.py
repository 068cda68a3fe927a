# services/invoice_service.py
"""
Invoice Service - Business logic layer for invoice operations.

This service handles invoice creation, updates, lifecycle changes and the
read-side queries, separate from the API layer. Every mutation loads the
invoice with SELECT ... FOR UPDATE and commits its own unit of work; on any
error the session is rolled back so nothing is half-applied.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.orm import Session

import config
from exceptions import NotFoundError, ValidationFailure
from models import Invoice, InvoiceStatus, Tenant
from models.invoice import OUTSTANDING_STATUSES
from schemas.invoice import (
     AdditionalCharge,
     InvoiceCreate,
     InvoiceFilter,
     InvoiceSummaryResponse,
     InvoiceUpdate,
)
from utils.money import ZERO, to_money
from .mappers import to_invoice_response
from .notifications import BillingNotifier, get_notifier, schedule
from .sequence_service import SequenceService
from .tenant_directory import billing_days_for, get_tenant

logger = logging.getLogger(__name__)

INVOICE_SORT_FIELDS = {
     "invoiceNumber": (Invoice.invoice_number,),
     "tenantName": (Tenant.first_name, Tenant.last_name),
     "totalAmount": (Invoice.total_amount,),
     "dueDate": (Invoice.due_date,),
     "status": (Invoice.status,),
}
DEFAULT_INVOICE_SORT = (Invoice.created_at,)

DELETABLE_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED)


def _charges_to_json(charges: Optional[List[AdditionalCharge]]) -> list:
     return [
          {"description": charge.description, "amount": str(to_money(charge.amount))}
          for charge in (charges or [])
     ]


def _check_dates(invoice_date: date, due_date: date) -> None:
     if due_date < invoice_date:
          raise ValidationFailure("Due date must be on or after invoice date")


def _month_bounds(day: date) -> Tuple[date, date]:
     start = day.replace(day=1)
     next_month = (start + timedelta(days=32)).replace(day=1)
     return start, next_month - timedelta(days=1)


def _order_by(columns, direction: str):
     order = desc if (direction or "").upper() == "DESC" else asc
     return [order(column) for column in columns]


class InvoiceService:
     """Service class for invoice-related business logic."""

     # ------------------------------------------------------------------
     # Lookups
     # ------------------------------------------------------------------

     @staticmethod
     def get_invoice(db: Session, invoice_id: int) -> Invoice:
          """Fetch a non-deleted invoice or raise NotFoundError."""
          invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
          if invoice is None:
               raise NotFoundError("Invoice", invoice_id)
          return invoice

     @staticmethod
     def get_invoice_for_update(db: Session, invoice_id: int) -> Invoice:
          """Fetch an invoice and hold its row lock until the transaction ends."""
          invoice = db.execute(
               select(Invoice)
               .where(Invoice.id == invoice_id)
               .with_for_update()
               .execution_options(populate_existing=True)
          ).scalar_one_or_none()
          if invoice is None:
               raise NotFoundError("Invoice", invoice_id)
          return invoice

     # ------------------------------------------------------------------
     # Creation
     # ------------------------------------------------------------------

     @staticmethod
     def _build_invoice(
          db: Session,
          tenant: Tenant,
          invoice_date: date,
          due_date: date,
          base_rent: Optional[Decimal] = None,
          service_charges: Optional[Decimal] = None,
          parking_fees: Optional[Decimal] = None,
          additional_charges: Optional[List[AdditionalCharge]] = None,
          notes: Optional[str] = None,
          lease_reference: Optional[str] = None,
          created_by: Optional[int] = None,
          today: Optional[date] = None,
     ) -> Invoice:
          """
          Validate and stage a DRAFT invoice for ``tenant``.

          Charges that are not given fall back to the tenant's lease terms.
          The invoice number is allocated last, after all validation passed.
          """
          if not tenant.is_active:
               raise ValidationFailure(f"Tenant {tenant.tenant_id} is not active")
          _check_dates(invoice_date, due_date)

          if base_rent is None:
               base_rent = tenant.base_rent
          if service_charges is None:
               service_charges = tenant.service_charge
          if parking_fees is None:
               parking_fees = to_money(tenant.parking_fee_per_spot) * (tenant.parking_spots or 0)

          invoice = Invoice(
               tenant_id=tenant.tenant_id,
               property_id=tenant.property_id,
               unit_id=tenant.unit_id,
               lease_reference=lease_reference,
               invoice_date=invoice_date,
               due_date=due_date,
               base_rent=to_money(base_rent),
               service_charges=to_money(service_charges),
               parking_fees=to_money(parking_fees),
               additional_charges=_charges_to_json(additional_charges),
               paid_amount=ZERO,
               status=InvoiceStatus.DRAFT,
               late_fee_applied=False,
               notes=notes,
               created_by=created_by,
          )
          invoice.calculate_totals()
          invoice.invoice_number = SequenceService(db).next_invoice_number(today)

          db.add(invoice)
          db.flush()  # Flush to get the ID without committing
          return invoice

     @staticmethod
     def create_invoice(
          db: Session,
          invoice_data: InvoiceCreate,
          created_by: Optional[int] = None,
          today: Optional[date] = None,
     ) -> Invoice:
          """
          Create a DRAFT invoice for a tenant.

          Args:
               db: SQLAlchemy database session
               invoice_data: Validated request body
               created_by: ID of the user creating the invoice
               today: Business date (defaults to today)

          Returns:
               Created Invoice object

          Raises:
               NotFoundError: If the tenant doesn't exist
               ValidationFailure: If the tenant is inactive or the dates are out of order
          """
          try:
               tenant = get_tenant(db, invoice_data.tenant_id)
               invoice = InvoiceService._build_invoice(
                    db,
                    tenant,
                    invoice_date=invoice_data.invoice_date,
                    due_date=invoice_data.due_date,
                    base_rent=invoice_data.base_rent,
                    service_charges=invoice_data.service_charges,
                    parking_fees=invoice_data.parking_fees,
                    additional_charges=invoice_data.additional_charges,
                    notes=invoice_data.notes,
                    lease_reference=invoice_data.lease_reference,
                    created_by=created_by,
                    today=today,
               )
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Invoice %s created for tenant %s", invoice.invoice_number, invoice.tenant_id)
          return invoice

     @staticmethod
     def generate_invoice_for_tenant(db: Session, tenant_id: int, today: Optional[date] = None) -> Invoice:
          """
          Create this month's recurring invoice from the tenant's lease terms.

          The tenant row is locked and the due-for-invoicing conditions are
          checked again, so a concurrent or repeated run cannot bill twice.
          """
          today = today or date.today()
          try:
               tenant = db.execute(
                    select(Tenant)
                    .where(Tenant.tenant_id == tenant_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
               ).scalar_one_or_none()
               if tenant is None:
                    raise NotFoundError("Tenant", tenant_id)
               if tenant.payment_due_day not in billing_days_for(today):
                    raise ValidationFailure(f"Tenant {tenant_id} is not billed on {today.isoformat()}")
               if tenant.lease_end_date is not None and tenant.lease_end_date < today:
                    raise ValidationFailure(f"Lease of tenant {tenant_id} ended on {tenant.lease_end_date}")

               month_start, month_end = _month_bounds(today)
               already_billed = (
                    db.query(Invoice.id)
                    .filter(
                         Invoice.tenant_id == tenant_id,
                         Invoice.invoice_date.between(month_start, month_end),
                         Invoice.is_deleted.is_(False),
                    )
                    .first()
               )
               if already_billed is not None:
                    raise ValidationFailure(f"Tenant {tenant_id} already has an invoice for {today:%B %Y}")

               invoice = InvoiceService._build_invoice(
                    db,
                    tenant,
                    invoice_date=today,
                    due_date=today + timedelta(days=config.INVOICE_DUE_DAYS),
                    notes=f"Monthly rent for {today:%B %Y}",
                    today=today,
               )
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Recurring invoice %s generated for tenant %s", invoice.invoice_number, tenant_id)
          return invoice

     # ------------------------------------------------------------------
     # Lifecycle
     # ------------------------------------------------------------------

     @staticmethod
     def update_invoice(db: Session, invoice_id: int, invoice_data: InvoiceUpdate) -> Invoice:
          """Update a DRAFT invoice. Only provided fields change; totals are recomputed."""
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               if not invoice.is_editable:
                    raise ValidationFailure(
                         f"Only DRAFT invoices can be edited; invoice is {invoice.status.value}"
                    )

               changes = invoice_data.model_dump(exclude_unset=True)
               for field in ("invoice_date", "due_date"):
                    if field in changes and changes[field] is None:
                         raise ValidationFailure(f"{field} cannot be cleared")
               _check_dates(
                    changes.get("invoice_date") or invoice.invoice_date,
                    changes.get("due_date") or invoice.due_date,
               )

               for field in ("invoice_date", "due_date", "notes"):
                    if field in changes:
                         setattr(invoice, field, changes[field])
               for field in ("base_rent", "service_charges", "parking_fees"):
                    if changes.get(field) is not None:
                         setattr(invoice, field, to_money(changes[field]))
               if invoice_data.additional_charges is not None:
                    invoice.additional_charges = _charges_to_json(invoice_data.additional_charges)

               invoice.calculate_totals()
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Invoice %s updated", invoice.invoice_number)
          return invoice

     @staticmethod
     def send_invoice(
          db: Session,
          invoice_id: int,
          notifier: Optional[BillingNotifier] = None,
          background_tasks: Optional[BackgroundTasks] = None,
          now: Optional[datetime] = None,
     ) -> Invoice:
          """
          Move a DRAFT invoice to SENT, then email the PDF to the tenant.

          The email is best-effort and happens after the commit.
          """
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               invoice.mark_as_sent(now)
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Invoice %s sent", invoice.invoice_number)
          notifier = notifier or get_notifier()
          schedule(background_tasks, notifier.invoice_sent, to_invoice_response(invoice))
          return invoice

     @staticmethod
     def cancel_invoice(db: Session, invoice_id: int) -> Invoice:
          """Cancel a DRAFT invoice, or a SENT invoice with nothing paid."""
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               invoice.cancel()
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Invoice %s cancelled", invoice.invoice_number)
          return invoice

     @staticmethod
     def delete_invoice(db: Session, invoice_id: int, now: Optional[datetime] = None) -> None:
          """Soft-delete a DRAFT or CANCELLED invoice."""
          try:
               invoice = InvoiceService.get_invoice_for_update(db, invoice_id)
               if invoice.status not in DELETABLE_STATUSES:
                    raise ValidationFailure(
                         f"Only DRAFT or CANCELLED invoices can be deleted; invoice is {invoice.status.value}"
                    )
               invoice.is_deleted = True
               invoice.deleted_at = now or datetime.utcnow()
               db.commit()
          except Exception:
               db.rollback()
               raise

          logger.info("Invoice %s deleted", invoice.invoice_number)

     # ------------------------------------------------------------------
     # Queries
     # ------------------------------------------------------------------

     @staticmethod
     def list_invoices(db: Session, filters: InvoiceFilter) -> Tuple[List[Invoice], int]:
          """
          Filtered, sorted, paginated invoice listing.

          Returns:
               (invoices on the requested page, total matching count)
          """
          query = db.query(Invoice).outerjoin(Tenant, Invoice.tenant_id == Tenant.tenant_id)

          if filters.search:
               pattern = f"%{filters.search.strip()}%"
               query = query.filter(
                    or_(
                         Invoice.invoice_number.ilike(pattern),
                         (Tenant.first_name + " " + Tenant.last_name).ilike(pattern),
                    )
               )
          if filters.status is not None:
               query = query.filter(Invoice.status == filters.status)
          if filters.property_id is not None:
               query = query.filter(Invoice.property_id == filters.property_id)
          if filters.tenant_id is not None:
               query = query.filter(Invoice.tenant_id == filters.tenant_id)
          if filters.from_date is not None:
               query = query.filter(Invoice.invoice_date >= filters.from_date)
          if filters.to_date is not None:
               query = query.filter(Invoice.invoice_date <= filters.to_date)
          if filters.overdue_only:
               query = query.filter(Invoice.status == InvoiceStatus.OVERDUE)

          total = query.count()

          columns = INVOICE_SORT_FIELDS.get(filters.sort_by, DEFAULT_INVOICE_SORT)
          offset = (filters.page - 1) * filters.page_size
          invoices = (
               query.order_by(*_order_by(columns, filters.sort_direction), Invoice.id)
               .offset(offset)
               .limit(filters.page_size)
               .all()
          )
          return invoices, total

     @staticmethod
     def get_tenant_invoices(
          db: Session,
          tenant_id: int,
          status: Optional[InvoiceStatus] = None,
          page: int = 1,
          page_size: int = 50,
     ) -> Tuple[List[Invoice], int]:
          """All invoices for one tenant, newest due date first."""
          get_tenant(db, tenant_id)

          query = db.query(Invoice).filter(Invoice.tenant_id == tenant_id)
          if status is not None:
               query = query.filter(Invoice.status == status)

          total = query.count()
          offset = (page - 1) * page_size
          invoices = (
               query.order_by(Invoice.due_date.desc(), Invoice.id.desc())
               .offset(offset)
               .limit(page_size)
               .all()
          )
          return invoices, total

     @staticmethod
     def get_outstanding_invoices(db: Session, tenant_id: int) -> Tuple[Tenant, List[Invoice], Decimal]:
          """Unsettled invoices of a tenant, oldest due date first, with the total owed."""
          tenant = get_tenant(db, tenant_id)
          invoices = (
               db.query(Invoice)
               .filter(
                    Invoice.tenant_id == tenant_id,
                    Invoice.status.in_(OUTSTANDING_STATUSES),
               )
               .order_by(Invoice.due_date.asc(), Invoice.id.asc())
               .all()
          )
          total = to_money(sum((to_money(inv.balance_amount) for inv in invoices), ZERO))
          return tenant, invoices, total

     @staticmethod
     def get_invoice_summary(
          db: Session,
          start_date: Optional[date] = None,
          end_date: Optional[date] = None,
          property_id: Optional[int] = None,
          today: Optional[date] = None,
     ) -> InvoiceSummaryResponse:
          """
          Collection figures for invoices dated in a period (current month by default).

          Cancelled invoices are not counted as invoiced. The collection rate
          is collected / invoiced * 100, or 0 when nothing was invoiced.
          """
          default_start, default_end = _month_bounds(today or date.today())
          start_date = start_date or default_start
          end_date = end_date or default_end
          if end_date < start_date:
               raise ValidationFailure("End date must be on or after start date")

          conditions = [
               Invoice.invoice_date.between(start_date, end_date),
               Invoice.status != InvoiceStatus.CANCELLED,
               Invoice.is_deleted.is_(False),
          ]
          if property_id is not None:
               conditions.append(Invoice.property_id == property_id)

          invoiced, collected = db.query(
               func.coalesce(func.sum(Invoice.total_amount), 0),
               func.coalesce(func.sum(Invoice.paid_amount), 0),
          ).filter(and_(*conditions)).one()

          overdue_amount, overdue_count = db.query(
               func.coalesce(func.sum(Invoice.balance_amount), 0),
               func.count(Invoice.id),
          ).filter(and_(*conditions), Invoice.status == InvoiceStatus.OVERDUE).one()

          invoiced = to_money(invoiced)
          collected = to_money(collected)
          if invoiced > ZERO:
               collection_rate = to_money(collected / invoiced * 100)
          else:
               collection_rate = ZERO

          return InvoiceSummaryResponse(
               period_start=start_date,
               period_end=end_date,
               property_id=property_id,
               total_invoiced=invoiced,
               total_collected=collected,
               total_outstanding=to_money(invoiced - collected),
               overdue_amount=to_money(overdue_amount),
               overdue_count=overdue_count or 0,
               collection_rate=collection_rate,
          )
