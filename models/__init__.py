# models/__init__.py
from .base import Base, SoftDeleteMixin
from .user import User
from .tenant import Tenant, TenantStatus
from .property import Property
from .property_unit import PropertyUnit
from .invoice import Invoice, InvoiceStatus
from .payment import Payment, PaymentMethod
from .sequence_counter import SequenceCounter

__all__ = [
     "Base",
     "SoftDeleteMixin",
     "User",
     "Tenant",
     "TenantStatus",
     "Property",
     "PropertyUnit",
     "Invoice",
     "InvoiceStatus",
     "Payment",
     "PaymentMethod",
     "SequenceCounter",
]
