# schemas/__init__.py
from .payment import (
     PaymentCreate,
     PaymentResponse,
     PaymentListResponse,
     PaymentFilter,
)
from .invoice import (
     AdditionalCharge,
     InvoiceCreate,
     InvoiceUpdate,
     InvoiceResponse,
     InvoiceDetailResponse,
     InvoiceListResponse,
     InvoiceFilter,
     InvoiceSummaryResponse,
     TenantOutstandingResponse,
)
from .billing_job import BatchItemError, BatchJobResponse

__all__ = [
     "PaymentCreate",
     "PaymentResponse",
     "PaymentListResponse",
     "PaymentFilter",
     "AdditionalCharge",
     "InvoiceCreate",
     "InvoiceUpdate",
     "InvoiceResponse",
     "InvoiceDetailResponse",
     "InvoiceListResponse",
     "InvoiceFilter",
     "InvoiceSummaryResponse",
     "TenantOutstandingResponse",
     "BatchItemError",
     "BatchJobResponse",
]
