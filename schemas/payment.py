# schemas/payment.py
"""
Pydantic schemas for recording and listing payments.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from models.payment import PaymentMethod


class PaymentCreate(BaseModel):
     """Request body for POST /api/invoices/{invoice_id}/payments."""

     amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Amount received")
     payment_method: PaymentMethod = Field(..., description="How the tenant paid")
     payment_date: date = Field(..., description="Date the money was received (not in the future)")
     transaction_reference: Optional[str] = Field(
          None,
          max_length=100,
          description="Bank/cheque/card reference, if any",
     )
     notes: Optional[str] = Field(None, max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "amount": 650.00,
                    "payment_method": "BANK_TRANSFER",
                    "payment_date": "2025-03-15",
                    "transaction_reference": "TRX-88231",
               }
          }
     )


class PaymentResponse(BaseModel):
     """Recorded payment."""

     id: int
     payment_number: str
     invoice_id: int
     invoice_number: Optional[str] = None
     tenant_id: int
     tenant_name: Optional[str] = None
     amount: Decimal
     payment_method: PaymentMethod
     payment_date: date
     transaction_reference: Optional[str] = None
     notes: Optional[str] = None
     recorded_by: int
     recorded_by_name: Optional[str] = None
     created_at: Optional[datetime] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 1,
                    "payment_number": "PMT-2025-0001",
                    "invoice_id": 1,
                    "invoice_number": "INV-2025-0001",
                    "tenant_id": 1,
                    "tenant_name": "John Doe",
                    "amount": 650.00,
                    "payment_method": "BANK_TRANSFER",
                    "payment_date": "2025-03-15",
                    "recorded_by": 3,
               }
          }
     )


class PaymentListResponse(BaseModel):
     """Paginated payment list."""
     payments: List[PaymentResponse]
     total: int
     page: int = 1
     page_size: int = 50


class PaymentFilter(BaseModel):
     """Filters accepted by the payment listing."""
     invoice_id: Optional[int] = None
     tenant_id: Optional[int] = None
     payment_method: Optional[PaymentMethod] = None
     from_date: Optional[date] = None
     to_date: Optional[date] = None
     sort_by: Optional[str] = None
     sort_direction: str = "DESC"
     page: int = Field(1, ge=1)
     page_size: int = Field(50, ge=1, le=100)
