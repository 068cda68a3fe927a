# routers/__init__.py
from . import billing_jobs, invoices, payments

__all__ = ["billing_jobs", "invoices", "payments"]
