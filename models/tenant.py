# models/tenant.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base, SoftDeleteMixin


class TenantStatus(str, enum.Enum):
     """Lifecycle status of a tenant record."""
     PENDING = "PENDING"
     ACTIVE = "ACTIVE"
     INACTIVE = "INACTIVE"
     TERMINATED = "TERMINATED"


class Tenant(SoftDeleteMixin, Base):
     """
     Tenant model - occupant of a unit with the lease terms billing relies on.
     Maps to existing 'tenants' table in the database.
     """
     __tablename__ = "tenants"

     tenant_id = Column(Integer, primary_key=True, autoincrement=True)
     
     # Personal info
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False)
     email = Column(String(255), nullable=False)
     contact_number = Column(String(50), nullable=True)
     
     # Current assignment
     property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
     unit_id = Column(Integer, ForeignKey("property_units.id"), nullable=True, index=True)
     
     # Lease terms
     base_rent = Column(Numeric(12, 2), nullable=False, default=0)
     service_charge = Column(Numeric(12, 2), nullable=False, default=0)
     parking_spots = Column(Integer, nullable=False, default=0)
     parking_fee_per_spot = Column(Numeric(12, 2), nullable=False, default=0)
     payment_due_day = Column(Integer, nullable=False, default=1)  # billing anchor, 1-31
     lease_start_date = Column(Date, nullable=True)
     lease_end_date = Column(Date, nullable=True)
     
     # Status
     status = Column(String(50), default=TenantStatus.PENDING.value, nullable=False, index=True)
     
     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     # Relationships
     building = relationship("Property", back_populates="tenants")
     unit = relationship("PropertyUnit", back_populates="tenants")
     invoices = relationship("Invoice", back_populates="tenant")
     
     def __repr__(self):
          return f"<Tenant(tenant_id={self.tenant_id}, name='{self.first_name} {self.last_name}')>"
     
     @property
     def full_name(self) -> str:
          return f"{self.first_name} {self.last_name}"
     
     @property
     def is_active(self) -> bool:
          return self.status == TenantStatus.ACTIVE.value and not self.is_deleted
