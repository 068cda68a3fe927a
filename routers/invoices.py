# routers/invoices.py
"""
Invoice API routes for CondoEase backend.

Provides the invoice lifecycle (create, edit, send, cancel, delete),
payment recording against an invoice, listings and the collection summary.
Business rules live in services.InvoiceService / services.PaymentService;
their NotFoundError / ValidationFailure are turned into 404 / 400 responses
by the exception handlers registered in main.py.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from database import get_session
from dependencies import current_user_id, require_staff, verify_token
from models.invoice import InvoiceStatus
from schemas.invoice import (
     InvoiceCreate,
     InvoiceDetailResponse,
     InvoiceFilter,
     InvoiceListResponse,
     InvoiceResponse,
     InvoiceSummaryResponse,
     InvoiceUpdate,
     TenantOutstandingResponse,
)
from schemas.payment import PaymentCreate, PaymentResponse
from services.documents import render_invoice_pdf
from services.invoice_service import InvoiceService
from services.mappers import to_invoice_detail, to_invoice_response, to_payment_response
from services.notifications import BillingNotifier, get_notifier
from services.payment_service import PaymentService

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.post(
     "",
     response_model=InvoiceResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create a new invoice"
)
def create_invoice(
     invoice_data: InvoiceCreate,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """
     Create a DRAFT invoice for a tenant.

     - **tenant_id**: ID of the tenant being billed (must be active)
     - **invoice_date** / **due_date**: due date must not be before the invoice date
     - **base_rent**, **service_charges**, **parking_fees**: default to the tenant's lease terms
     - **additional_charges**: extra line items
     """
     invoice = InvoiceService.create_invoice(db, invoice_data, created_by=current_user_id(token))
     return to_invoice_response(invoice)


@router.get(
     "",
     response_model=InvoiceListResponse,
     summary="List all invoices with filters"
)
def list_invoices(
     search: Optional[str] = Query(None, description="Invoice number or tenant name"),
     status: Optional[InvoiceStatus] = Query(None, description="Filter by status"),
     property_id: Optional[int] = Query(None, description="Filter by property ID"),
     tenant_id: Optional[int] = Query(None, description="Filter by tenant ID"),
     from_date: Optional[date] = Query(None, description="Invoice date from (inclusive)"),
     to_date: Optional[date] = Query(None, description="Invoice date to (inclusive)"),
     overdue_only: bool = Query(False, description="Show only overdue invoices"),
     sort_by: Optional[str] = Query(
          None,
          description="invoiceNumber, tenantName, totalAmount, dueDate or status (default createdAt)"
     ),
     sort_direction: str = Query("DESC", description="ASC or DESC"),
     page: int = Query(1, ge=1, description="Page number"),
     page_size: int = Query(50, ge=1, le=100, description="Items per page"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Retrieve a paginated list of invoices with optional filters."""
     filters = InvoiceFilter(
          search=search,
          status=status,
          property_id=property_id,
          tenant_id=tenant_id,
          from_date=from_date,
          to_date=to_date,
          overdue_only=overdue_only,
          sort_by=sort_by,
          sort_direction=sort_direction,
          page=page,
          page_size=page_size,
     )
     invoices, total = InvoiceService.list_invoices(db, filters)
     return InvoiceListResponse(
          invoices=[to_invoice_response(inv) for inv in invoices],
          total=total,
          page=page,
          page_size=page_size
     )


@router.get(
     "/summary",
     response_model=InvoiceSummaryResponse,
     summary="Collection summary for a period"
)
def get_invoice_summary(
     start_date: Optional[date] = Query(None, description="Defaults to the first day of this month"),
     end_date: Optional[date] = Query(None, description="Defaults to the last day of this month"),
     property_id: Optional[int] = Query(None, description="Limit to one property"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Total invoiced, collected, outstanding and overdue, plus the collection rate."""
     return InvoiceService.get_invoice_summary(db, start_date, end_date, property_id)


@router.get(
     "/tenant/{tenant_id}",
     response_model=InvoiceListResponse,
     summary="Get invoices for a tenant"
)
def get_invoices_by_tenant(
     tenant_id: int,
     page: int = Query(1, ge=1, description="Page number"),
     page_size: int = Query(50, ge=1, le=100, description="Items per page"),
     status: Optional[InvoiceStatus] = Query(None, description="Filter by status"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Get all invoices for a specific tenant, newest due date first."""
     invoices, total = InvoiceService.get_tenant_invoices(db, tenant_id, status, page, page_size)
     return InvoiceListResponse(
          invoices=[to_invoice_response(inv) for inv in invoices],
          total=total,
          page=page,
          page_size=page_size
     )


@router.get(
     "/tenant/{tenant_id}/outstanding",
     response_model=TenantOutstandingResponse,
     summary="Get unpaid invoices for a tenant"
)
def get_outstanding_by_tenant(
     tenant_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """SENT, PARTIALLY_PAID and OVERDUE invoices, oldest due date first."""
     tenant, invoices, total = InvoiceService.get_outstanding_invoices(db, tenant_id)
     return TenantOutstandingResponse(
          tenant_id=tenant.tenant_id,
          tenant_name=tenant.full_name,
          total_outstanding=total,
          invoices=[to_invoice_response(inv) for inv in invoices],
     )


@router.get(
     "/{invoice_id}",
     response_model=InvoiceDetailResponse,
     summary="Get invoice by ID"
)
def get_invoice(
     invoice_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Retrieve a specific invoice with tenant, unit and payment history."""
     return to_invoice_detail(InvoiceService.get_invoice(db, invoice_id))


@router.put(
     "/{invoice_id}",
     response_model=InvoiceResponse,
     summary="Update invoice"
)
def update_invoice(
     invoice_id: int,
     invoice_data: InvoiceUpdate,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """
     Update a DRAFT invoice.

     Only provided fields will be updated; totals are recalculated.
     """
     invoice = InvoiceService.update_invoice(db, invoice_id, invoice_data)
     return to_invoice_response(invoice)


@router.delete(
     "/{invoice_id}",
     status_code=status.HTTP_204_NO_CONTENT,
     summary="Delete invoice"
)
def delete_invoice(
     invoice_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """Soft-delete a DRAFT or CANCELLED invoice (admin / manager only)."""
     InvoiceService.delete_invoice(db, invoice_id)
     return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
     "/{invoice_id}/send",
     response_model=InvoiceResponse,
     summary="Send invoice to tenant"
)
def send_invoice(
     invoice_id: int,
     background_tasks: BackgroundTasks,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
     notifier: BillingNotifier = Depends(get_notifier)
):
     """Mark a DRAFT invoice as SENT and email the PDF to the tenant."""
     invoice = InvoiceService.send_invoice(
          db, invoice_id, notifier=notifier, background_tasks=background_tasks
     )
     return to_invoice_response(invoice)


@router.post(
     "/{invoice_id}/cancel",
     response_model=InvoiceResponse,
     summary="Cancel invoice"
)
def cancel_invoice(
     invoice_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Cancel a DRAFT invoice, or a SENT invoice nothing has been paid on."""
     return to_invoice_response(InvoiceService.cancel_invoice(db, invoice_id))


@router.post(
     "/{invoice_id}/payments",
     response_model=PaymentResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Record a payment"
)
def record_payment(
     invoice_id: int,
     payment_data: PaymentCreate,
     background_tasks: BackgroundTasks,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
     notifier: BillingNotifier = Depends(get_notifier)
):
     """
     Record money received against an invoice.

     - **amount**: must be positive and not exceed the outstanding balance
     - **payment_date**: cannot be in the future

     The invoice becomes PAID when the balance reaches zero, otherwise
     PARTIALLY_PAID. A receipt is emailed to the tenant afterwards.
     """
     payment = PaymentService.record_payment(
          db,
          invoice_id,
          payment_data,
          recorded_by=current_user_id(token),
          notifier=notifier,
          background_tasks=background_tasks,
     )
     return to_payment_response(payment)


@router.get(
     "/{invoice_id}/payments",
     response_model=List[PaymentResponse],
     summary="Payment history of an invoice"
)
def list_invoice_payments(
     invoice_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     return [to_payment_response(p) for p in PaymentService.list_invoice_payments(db, invoice_id)]


@router.get(
     "/{invoice_id}/pdf",
     summary="Download invoice PDF",
     response_class=Response,
)
def download_invoice_pdf(
     invoice_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     invoice = InvoiceService.get_invoice(db, invoice_id)
     content = render_invoice_pdf(to_invoice_response(invoice))
     return Response(
          content=content,
          media_type="application/pdf",
          headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
     )
