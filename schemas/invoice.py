# schemas/invoice.py
"""
Pydantic schemas for Invoice API request/response validation.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from models.invoice import InvoiceStatus
from .payment import PaymentResponse


class AdditionalCharge(BaseModel):
     """Extra line item billed on top of rent, service charges and parking."""
     description: str = Field(..., min_length=1, max_length=200)
     amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class InvoiceCreate(BaseModel):
     """
     Schema for creating a new invoice.

     Charges left out are taken from the tenant's current lease terms.
     """
     tenant_id: int = Field(..., gt=0, description="Tenant ID (must exist and be active)")
     lease_reference: Optional[str] = Field(None, max_length=50, description="Lease this invoice bills for")
     invoice_date: date = Field(..., description="Invoice date")
     due_date: date = Field(..., description="Payment due date (on or after invoice date)")
     base_rent: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     service_charges: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     parking_fees: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     additional_charges: List[AdditionalCharge] = Field(default_factory=list)
     notes: Optional[str] = Field(None, max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "tenant_id": 1,
                    "invoice_date": "2025-03-01",
                    "due_date": "2025-03-31",
                    "base_rent": 1000.00,
                    "service_charges": 200.00,
                    "parking_fees": 100.00,
                    "additional_charges": [{"description": "Key replacement", "amount": 25.00}],
                    "notes": "March rent"
               }
          }
     )


class InvoiceUpdate(BaseModel):
     """Schema for updating a DRAFT invoice. Only provided fields change."""
     invoice_date: Optional[date] = None
     due_date: Optional[date] = None
     base_rent: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     service_charges: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     parking_fees: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     additional_charges: Optional[List[AdditionalCharge]] = None
     notes: Optional[str] = Field(None, max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "due_date": "2025-04-05",
                    "service_charges": 180.00
               }
          }
     )


class InvoiceResponse(BaseModel):
     """Schema for invoice response."""
     id: int
     invoice_number: str
     tenant_id: int
     property_id: Optional[int] = None
     unit_id: Optional[int] = None
     lease_reference: Optional[str] = None
     invoice_date: date
     due_date: date
     base_rent: Decimal
     service_charges: Decimal
     parking_fees: Decimal
     additional_charges: List[AdditionalCharge] = Field(default_factory=list)
     late_fee: Optional[Decimal] = None
     total_amount: Decimal
     paid_amount: Decimal
     balance_amount: Decimal
     status: InvoiceStatus
     late_fee_applied: bool
     is_overdue: bool = False
     notes: Optional[str] = None
     sent_at: Optional[datetime] = None
     paid_at: Optional[datetime] = None
     created_at: Optional[datetime] = None
     updated_at: Optional[datetime] = None
     
     # Optional related data
     tenant_name: Optional[str] = None
     tenant_email: Optional[str] = None
     property_name: Optional[str] = None
     unit_number: Optional[str] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 1,
                    "invoice_number": "INV-2025-0001",
                    "tenant_id": 1,
                    "invoice_date": "2025-03-01",
                    "due_date": "2025-03-31",
                    "base_rent": 1000.00,
                    "service_charges": 200.00,
                    "parking_fees": 100.00,
                    "additional_charges": [],
                    "late_fee": None,
                    "total_amount": 1300.00,
                    "paid_amount": 0.00,
                    "balance_amount": 1300.00,
                    "status": "SENT",
                    "late_fee_applied": False,
                    "tenant_name": "John Doe",
                    "tenant_email": "john@example.com",
                    "property_name": "Sunset Condos",
                    "unit_number": "Unit 101"
               }
          }
     )


class InvoiceDetailResponse(InvoiceResponse):
     """Invoice with its payment history."""
     payments: List[PaymentResponse] = Field(default_factory=list)


class InvoiceListResponse(BaseModel):
     """Schema for paginated invoice list response."""
     invoices: List[InvoiceResponse]
     total: int
     page: int = 1
     page_size: int = 50

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "invoices": [],
                    "total": 0,
                    "page": 1,
                    "page_size": 50
               }
          }
     )


class InvoiceFilter(BaseModel):
     """Filters accepted by the invoice listing."""
     search: Optional[str] = None
     status: Optional[InvoiceStatus] = None
     property_id: Optional[int] = None
     tenant_id: Optional[int] = None
     from_date: Optional[date] = None
     to_date: Optional[date] = None
     overdue_only: bool = False
     sort_by: Optional[str] = None
     sort_direction: str = "DESC"
     page: int = Field(1, ge=1)
     page_size: int = Field(50, ge=1, le=100)


class InvoiceSummaryResponse(BaseModel):
     """Collection figures for a period."""
     period_start: date
     period_end: date
     property_id: Optional[int] = None
     total_invoiced: Decimal
     total_collected: Decimal
     total_outstanding: Decimal
     overdue_amount: Decimal
     overdue_count: int
     collection_rate: Decimal


class TenantOutstandingResponse(BaseModel):
     """Unsettled invoices for one tenant, oldest due date first."""
     tenant_id: int
     tenant_name: str
     total_outstanding: Decimal
     invoices: List[InvoiceResponse]
