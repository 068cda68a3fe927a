# services/mappers.py
"""
Build API/notification snapshots from ORM objects.

Snapshots are plain Pydantic models, safe to hand to background tasks after
the session that loaded the invoice has closed.
"""
from datetime import date
from typing import Optional

from models import Invoice, Payment
from schemas.invoice import InvoiceDetailResponse, InvoiceResponse
from schemas.payment import PaymentResponse


def _invoice_fields(invoice: Invoice, today: Optional[date] = None) -> dict:
     tenant = invoice.tenant
     return dict(
          id=invoice.id,
          invoice_number=invoice.invoice_number,
          tenant_id=invoice.tenant_id,
          property_id=invoice.property_id,
          unit_id=invoice.unit_id,
          lease_reference=invoice.lease_reference,
          invoice_date=invoice.invoice_date,
          due_date=invoice.due_date,
          base_rent=invoice.base_rent,
          service_charges=invoice.service_charges,
          parking_fees=invoice.parking_fees,
          additional_charges=invoice.additional_charges or [],
          late_fee=invoice.late_fee,
          total_amount=invoice.total_amount,
          paid_amount=invoice.paid_amount,
          balance_amount=invoice.balance_amount,
          status=invoice.status,
          late_fee_applied=invoice.late_fee_applied,
          is_overdue=invoice.is_past_due(today),
          notes=invoice.notes,
          sent_at=invoice.sent_at,
          paid_at=invoice.paid_at,
          created_at=invoice.created_at,
          updated_at=invoice.updated_at,
          tenant_name=tenant.full_name if tenant else None,
          tenant_email=tenant.email if tenant else None,
          property_name=invoice.building.property_name if invoice.building else None,
          unit_number=invoice.unit.unit_number if invoice.unit else None,
     )


def to_invoice_response(invoice: Invoice, today: Optional[date] = None) -> InvoiceResponse:
     return InvoiceResponse(**_invoice_fields(invoice, today))


def to_invoice_detail(invoice: Invoice, today: Optional[date] = None) -> InvoiceDetailResponse:
     return InvoiceDetailResponse(
          **_invoice_fields(invoice, today),
          payments=[to_payment_response(payment) for payment in invoice.payments],
     )


def to_payment_response(payment: Payment) -> PaymentResponse:
     tenant = payment.tenant
     recorder = payment.recorder
     return PaymentResponse(
          id=payment.id,
          payment_number=payment.payment_number,
          invoice_id=payment.invoice_id,
          invoice_number=payment.invoice.invoice_number if payment.invoice else None,
          tenant_id=payment.tenant_id,
          tenant_name=tenant.full_name if tenant else None,
          amount=payment.amount,
          payment_method=payment.payment_method,
          payment_date=payment.payment_date,
          transaction_reference=payment.transaction_reference,
          notes=payment.notes,
          recorded_by=payment.recorded_by,
          recorded_by_name=f"{recorder.first_name} {recorder.last_name}" if recorder else None,
          created_at=payment.created_at,
     )
