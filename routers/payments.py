# routers/payments.py
"""
Payment API.

Payments are recorded through POST /api/invoices/{invoice_id}/payments;
this router lists them and serves receipts. Payments are never edited or
deleted.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from database import get_session
from dependencies import verify_token
from models.payment import PaymentMethod
from schemas.payment import PaymentFilter, PaymentListResponse, PaymentResponse
from services.documents import render_receipt_pdf
from services.mappers import to_invoice_response, to_payment_response
from services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get(
     "",
     response_model=PaymentListResponse,
     summary="List payments"
)
def list_payments(
     invoice_id: Optional[int] = Query(None, description="Filter by invoice ID"),
     tenant_id: Optional[int] = Query(None, description="Filter by tenant ID"),
     payment_method: Optional[PaymentMethod] = Query(None, description="Filter by payment method"),
     from_date: Optional[date] = Query(None, description="Payment date from (inclusive)"),
     to_date: Optional[date] = Query(None, description="Payment date to (inclusive)"),
     sort_by: Optional[str] = Query(
          None,
          description="paymentNumber, amount or paymentMethod (default paymentDate)"
     ),
     sort_direction: str = Query("DESC", description="ASC or DESC"),
     page: int = Query(1, ge=1, description="Page number"),
     page_size: int = Query(50, ge=1, le=100, description="Items per page"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     filters = PaymentFilter(
          invoice_id=invoice_id,
          tenant_id=tenant_id,
          payment_method=payment_method,
          from_date=from_date,
          to_date=to_date,
          sort_by=sort_by,
          sort_direction=sort_direction,
          page=page,
          page_size=page_size,
     )
     payments, total = PaymentService.list_payments(db, filters)
     return PaymentListResponse(
          payments=[to_payment_response(p) for p in payments],
          total=total,
          page=page,
          page_size=page_size,
     )


@router.get(
     "/{payment_id}",
     response_model=PaymentResponse,
     summary="Get payment by ID"
)
def get_payment(
     payment_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     return to_payment_response(PaymentService.get_payment(db, payment_id))


@router.get(
     "/{payment_id}/receipt",
     summary="Download payment receipt PDF",
     response_class=Response,
)
def download_receipt(
     payment_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     """Render the receipt for a payment. Returns 502 if rendering fails."""
     payment = PaymentService.get_payment(db, payment_id)
     content = render_receipt_pdf(to_payment_response(payment), to_invoice_response(payment.invoice))
     return Response(
          content=content,
          media_type="application/pdf",
          headers={"Content-Disposition": f'attachment; filename="{payment.payment_number}.pdf"'},
     )
