import os

# Settings are read at import time; point the app at SQLite before anything imports config.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LATE_FEE_PERCENTAGE", "5.0")
os.environ.setdefault("REMINDER_DAYS_BEFORE", "7")
os.environ.setdefault("INVOICE_DUE_DAYS", "30")

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from exceptions import DependencyFailure
from models import Base, Property, PropertyUnit, Tenant, TenantStatus, User
from schemas.invoice import InvoiceCreate
from services.invoice_service import InvoiceService
from services.notifications import BillingNotifier

TODAY = date(2025, 3, 15)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite does not emit BEGIN itself, which breaks SAVEPOINT handling.
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


class RecordingSender:
    """Stands in for utils.email.send_email; remembers every message."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def __call__(self, to_email, subject, html_content, attachments=None, to_name=None):
        if self.fail:
            raise DependencyFailure("mail server unavailable")
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "attachments": attachments or [],
            "name": to_name,
        })


def _fake_invoice_pdf(invoice):
    return b"%PDF-invoice " + invoice.invoice_number.encode()


def _fake_receipt_pdf(payment, invoice):
    return b"%PDF-receipt " + payment.payment_number.encode()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(sender):
    return BillingNotifier(
        sender=sender,
        invoice_renderer=_fake_invoice_pdf,
        receipt_renderer=_fake_receipt_pdf,
    )


@pytest.fixture
def failing_notifier():
    return BillingNotifier(
        sender=RecordingSender(fail=True),
        invoice_renderer=_fake_invoice_pdf,
        receipt_renderer=_fake_receipt_pdf,
    )


@pytest.fixture
def staff_user(db):
    user = User(email="manager@condoease.me", first_name="Maria", last_name="Santos", role="manager")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def unit(db):
    prop = Property(property_name="Sunset Condos", city="Makati")
    unit = PropertyUnit(property=prop, unit_number="Unit 101", status="occupied")
    db.add_all([prop, unit])
    db.commit()
    return unit


def add_tenant(db, unit, **overrides):
    values = dict(
        first_name="John",
        last_name="Doe",
        email="john@example.com",
        property_id=unit.property_id,
        unit_id=unit.id,
        base_rent=Decimal("1000.00"),
        service_charge=Decimal("200.00"),
        parking_spots=2,
        parking_fee_per_spot=Decimal("50.00"),
        payment_due_day=1,
        lease_start_date=date(2024, 1, 1),
        lease_end_date=date(2026, 12, 31),
        status=TenantStatus.ACTIVE.value,
    )
    values.update(overrides)
    tenant = Tenant(**values)
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def tenant(db, unit):
    return add_tenant(db, unit)


def make_invoice(db, tenant, today=TODAY, **overrides):
    """DRAFT invoice for ``tenant``; charges default to the lease terms (1300.00)."""
    values = dict(
        tenant_id=tenant.tenant_id,
        invoice_date=today,
        due_date=date(today.year, today.month, 28),
    )
    values.update(overrides)
    return InvoiceService.create_invoice(db, InvoiceCreate(**values), today=today)


def make_sent_invoice(db, tenant, notifier, today=TODAY, **overrides):
    invoice = make_invoice(db, tenant, today=today, **overrides)
    return InvoiceService.send_invoice(db, invoice.id, notifier=notifier)
