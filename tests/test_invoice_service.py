from datetime import date
from decimal import Decimal

import pytest

from conftest import TODAY, add_tenant, make_invoice, make_sent_invoice
from exceptions import NotFoundError, ValidationFailure
from models import Invoice, InvoiceStatus, PaymentMethod, TenantStatus
from schemas.invoice import AdditionalCharge, InvoiceCreate, InvoiceFilter, InvoiceUpdate
from schemas.payment import PaymentCreate
from services.invoice_service import InvoiceService
from services.payment_service import PaymentService


def _pay(db, invoice, amount, user, notifier):
    return PaymentService.record_payment(
        db,
        invoice.id,
        PaymentCreate(amount=Decimal(amount), payment_method=PaymentMethod.CASH, payment_date=TODAY),
        recorded_by=user.id,
        today=TODAY,
        notifier=notifier,
    )


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------

def test_create_defaults_charges_from_lease_terms(db, tenant, unit):
    invoice = make_invoice(db, tenant)

    assert invoice.invoice_number == "INV-2025-0001"
    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.base_rent == Decimal("1000.00")
    assert invoice.service_charges == Decimal("200.00")
    assert invoice.parking_fees == Decimal("100.00")
    assert invoice.total_amount == Decimal("1300.00")
    assert invoice.paid_amount == Decimal("0.00")
    assert invoice.balance_amount == Decimal("1300.00")
    assert invoice.unit_id == unit.id
    assert invoice.property_id == unit.property_id


def test_create_with_explicit_charges(db, tenant):
    invoice = make_invoice(
        db,
        tenant,
        base_rent=Decimal("900.00"),
        service_charges=Decimal("0"),
        parking_fees=Decimal("0"),
        additional_charges=[AdditionalCharge(description="Key replacement", amount=Decimal("25.00"))],
        notes="Pro-rated",
    )
    assert invoice.total_amount == Decimal("925.00")
    assert invoice.additional_charges == [{"description": "Key replacement", "amount": "25.00"}]
    assert invoice.notes == "Pro-rated"


def test_numbers_increase_per_invoice(db, tenant):
    numbers = [make_invoice(db, tenant).invoice_number for _ in range(3)]
    assert numbers == ["INV-2025-0001", "INV-2025-0002", "INV-2025-0003"]


def test_create_for_unknown_tenant(db, tenant):
    with pytest.raises(NotFoundError):
        InvoiceService.create_invoice(
            db, InvoiceCreate(tenant_id=999, invoice_date=TODAY, due_date=TODAY), today=TODAY
        )


def test_create_for_inactive_tenant_rejected(db, unit):
    inactive = add_tenant(db, unit, email="gone@example.com", status=TenantStatus.TERMINATED.value)
    with pytest.raises(ValidationFailure):
        make_invoice(db, inactive)
    assert db.query(Invoice).count() == 0


def test_due_date_before_invoice_date_rejected(db, tenant):
    with pytest.raises(ValidationFailure):
        make_invoice(db, tenant, due_date=date(2025, 3, 1))
    # No number was consumed by the failed creation.
    assert make_invoice(db, tenant).invoice_number == "INV-2025-0001"


def test_update_draft_recomputes_totals(db, tenant):
    invoice = make_invoice(db, tenant)
    updated = InvoiceService.update_invoice(
        db, invoice.id, InvoiceUpdate(service_charges=Decimal("150.00"), notes="Adjusted")
    )
    assert updated.service_charges == Decimal("150.00")
    assert updated.total_amount == Decimal("1250.00")
    assert updated.balance_amount == Decimal("1250.00")
    assert updated.notes == "Adjusted"


def test_update_checks_dates_against_existing_values(db, tenant):
    invoice = make_invoice(db, tenant)
    with pytest.raises(ValidationFailure):
        InvoiceService.update_invoice(db, invoice.id, InvoiceUpdate(due_date=date(2025, 3, 10)))
    assert InvoiceService.get_invoice(db, invoice.id).due_date == date(2025, 3, 28)


@pytest.mark.parametrize("field", ["invoice_date", "due_date"])
def test_update_cannot_clear_dates(db, tenant, field):
    invoice = make_invoice(db, tenant)
    with pytest.raises(ValidationFailure):
        InvoiceService.update_invoice(db, invoice.id, InvoiceUpdate(**{field: None}))
    stored = InvoiceService.get_invoice(db, invoice.id)
    assert stored.invoice_date == TODAY
    assert stored.due_date == date(2025, 3, 28)


def test_invoice_and_tenant_link_to_their_building(db, tenant, unit):
    invoice = make_invoice(db, tenant)
    assert invoice.building.property_name == "Sunset Condos"
    assert tenant.building.property_name == "Sunset Condos"
    assert tenant.full_name == "John Doe"
    assert [t.tenant_id for t in unit.property.tenants] == [tenant.tenant_id]


def test_update_rejected_once_sent(db, tenant, notifier):
    invoice = make_sent_invoice(db, tenant, notifier)
    with pytest.raises(ValidationFailure):
        InvoiceService.update_invoice(db, invoice.id, InvoiceUpdate(base_rent=Decimal("1.00")))


# ---------------------------------------------------------------------------
# Send / cancel / delete
# ---------------------------------------------------------------------------

def test_send_marks_sent_and_emails_pdf(db, tenant, notifier, sender):
    invoice = make_sent_invoice(db, tenant, notifier)

    assert invoice.status == InvoiceStatus.SENT
    assert invoice.sent_at is not None
    assert len(sender.sent) == 1
    message = sender.sent[0]
    assert message["to"] == "john@example.com"
    assert "INV-2025-0001" in message["subject"]
    assert message["attachments"][0][0] == "INV-2025-0001.pdf"


def test_send_succeeds_when_email_fails(db, tenant, failing_notifier):
    invoice = make_sent_invoice(db, tenant, failing_notifier)
    assert InvoiceService.get_invoice(db, invoice.id).status == InvoiceStatus.SENT


def test_send_twice_rejected(db, tenant, notifier):
    invoice = make_sent_invoice(db, tenant, notifier)
    with pytest.raises(ValidationFailure):
        InvoiceService.send_invoice(db, invoice.id, notifier=notifier)


def test_cancel_sent_invoice_without_payments(db, tenant, notifier):
    invoice = make_sent_invoice(db, tenant, notifier)
    assert InvoiceService.cancel_invoice(db, invoice.id).status == InvoiceStatus.CANCELLED


def test_cancel_with_payment_rejected(db, tenant, staff_user, notifier):
    invoice = make_sent_invoice(db, tenant, notifier)
    _pay(db, invoice, "100.00", staff_user, notifier)

    with pytest.raises(ValidationFailure):
        InvoiceService.cancel_invoice(db, invoice.id)
    assert InvoiceService.get_invoice(db, invoice.id).status == InvoiceStatus.PARTIALLY_PAID


def test_soft_deleted_invoice_is_hidden(db, tenant):
    invoice = make_invoice(db, tenant)
    InvoiceService.delete_invoice(db, invoice.id)

    with pytest.raises(NotFoundError):
        InvoiceService.get_invoice(db, invoice.id)
    assert db.query(Invoice).count() == 0
    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter())
    assert (invoices, total) == ([], 0)

    audit = db.query(Invoice).execution_options(include_deleted=True).all()
    assert [inv.id for inv in audit] == [invoice.id]
    assert audit[0].is_deleted and audit[0].deleted_at is not None


def test_delete_sent_invoice_rejected(db, tenant, notifier):
    invoice = make_sent_invoice(db, tenant, notifier)
    with pytest.raises(ValidationFailure):
        InvoiceService.delete_invoice(db, invoice.id)
    assert InvoiceService.get_invoice(db, invoice.id).is_deleted is False


def test_unknown_invoice_not_found(db):
    with pytest.raises(NotFoundError):
        InvoiceService.cancel_invoice(db, 12345)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@pytest.fixture
def two_tenants_invoices(db, tenant, unit, notifier):
    other = add_tenant(db, unit, first_name="Ana", last_name="Reyes", email="ana@example.com")
    draft = make_invoice(db, tenant, base_rent=Decimal("500.00"))
    sent = make_sent_invoice(db, tenant, notifier)
    ana = make_sent_invoice(db, other, notifier, invoice_date=date(2025, 3, 1), due_date=date(2025, 3, 5))
    return draft, sent, ana, other


def test_list_filters(db, two_tenants_invoices):
    draft, sent, ana, other = two_tenants_invoices

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(status=InvoiceStatus.SENT))
    assert total == 2
    assert {inv.id for inv in invoices} == {sent.id, ana.id}

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(search="reyes"))
    assert [inv.id for inv in invoices] == [ana.id]

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(search="INV-2025-0001"))
    assert [inv.id for inv in invoices] == [draft.id]

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(tenant_id=other.tenant_id))
    assert [inv.id for inv in invoices] == [ana.id]

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(from_date=date(2025, 3, 10)))
    assert {inv.id for inv in invoices} == {draft.id, sent.id}


def test_list_sorting_and_pagination(db, two_tenants_invoices):
    draft, sent, ana, other = two_tenants_invoices

    invoices, _ = InvoiceService.list_invoices(
        db, InvoiceFilter(sort_by="totalAmount", sort_direction="ASC")
    )
    assert [inv.id for inv in invoices][0] == draft.id

    invoices, _ = InvoiceService.list_invoices(
        db, InvoiceFilter(sort_by="tenantName", sort_direction="ASC")
    )
    assert invoices[0].id == ana.id

    page, total = InvoiceService.list_invoices(
        db, InvoiceFilter(sort_by="invoiceNumber", sort_direction="ASC", page=2, page_size=2)
    )
    assert total == 3
    assert [inv.invoice_number for inv in page] == ["INV-2025-0003"]

    # Unknown sort keys fall back to creation order instead of failing.
    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(sort_by="DROP TABLE"))
    assert total == 3


def test_overdue_only_filter(db, two_tenants_invoices):
    draft, sent, ana, other = two_tenants_invoices
    ana_locked = InvoiceService.get_invoice_for_update(db, ana.id)
    ana_locked.mark_as_overdue(TODAY)
    db.commit()

    invoices, total = InvoiceService.list_invoices(db, InvoiceFilter(overdue_only=True))
    assert [inv.id for inv in invoices] == [ana.id]


def test_tenant_invoices_and_outstanding(db, tenant, staff_user, notifier):
    draft = make_invoice(db, tenant)
    late = make_sent_invoice(db, tenant, notifier, invoice_date=date(2025, 3, 1), due_date=date(2025, 3, 10))
    soon = make_sent_invoice(db, tenant, notifier)
    _pay(db, soon, "300.00", staff_user, notifier)
    paid = make_sent_invoice(db, tenant, notifier)
    _pay(db, paid, "1300.00", staff_user, notifier)

    invoices, total = InvoiceService.get_tenant_invoices(db, tenant.tenant_id)
    assert total == 4

    found, outstanding, owed = InvoiceService.get_outstanding_invoices(db, tenant.tenant_id)
    assert found.tenant_id == tenant.tenant_id
    assert [inv.id for inv in outstanding] == [late.id, soon.id]
    assert owed == Decimal("2300.00")
    assert draft.id not in {inv.id for inv in outstanding}


def test_tenant_queries_unknown_tenant(db):
    with pytest.raises(NotFoundError):
        InvoiceService.get_outstanding_invoices(db, 404)


def test_summary_for_period(db, tenant, staff_user, notifier):
    first = make_sent_invoice(db, tenant, notifier, invoice_date=date(2025, 3, 1), due_date=date(2025, 3, 5))
    second = make_sent_invoice(db, tenant, notifier)
    cancelled = make_sent_invoice(db, tenant, notifier)
    InvoiceService.cancel_invoice(db, cancelled.id)
    _pay(db, second, "1300.00", staff_user, notifier)
    _pay(db, first, "300.00", staff_user, notifier)
    locked = InvoiceService.get_invoice_for_update(db, first.id)
    locked.mark_as_overdue(TODAY)
    db.commit()

    summary = InvoiceService.get_invoice_summary(db, today=TODAY)

    assert summary.period_start == date(2025, 3, 1)
    assert summary.period_end == date(2025, 3, 31)
    assert summary.total_invoiced == Decimal("2600.00")
    assert summary.total_collected == Decimal("1600.00")
    assert summary.total_outstanding == Decimal("1000.00")
    assert summary.overdue_amount == Decimal("1000.00")
    assert summary.overdue_count == 1
    assert summary.collection_rate == Decimal("61.54")


def test_summary_with_nothing_invoiced(db, tenant):
    summary = InvoiceService.get_invoice_summary(db, today=TODAY, property_id=999)
    assert summary.total_invoiced == Decimal("0.00")
    assert summary.collection_rate == Decimal("0.00")
    assert summary.overdue_count == 0
