from datetime import date

import pytest

from models import SequenceCounter
from services.sequence_service import INVOICE, PAYMENT, SequenceService, format_number


@pytest.mark.parametrize(
    "kind,year,sequence,expected",
    [
        (INVOICE, 2025, 1, "INV-2025-0001"),
        (INVOICE, 2025, 42, "INV-2025-0042"),
        (PAYMENT, 2025, 7, "PMT-2025-0007"),
        (INVOICE, 2026, 12345, "INV-2026-12345"),
    ],
)
def test_format_number(kind, year, sequence, expected):
    assert format_number(kind, year, sequence) == expected


def test_unknown_kind_rejected(db):
    with pytest.raises(ValueError):
        format_number("receipt", 2025, 1)
    with pytest.raises(ValueError):
        SequenceService(db).next_value("receipt", 2025)


def test_numbers_are_gap_free_and_increasing(db):
    sequencer = SequenceService(db)
    values = [sequencer.next_value(INVOICE, 2025) for _ in range(25)]
    db.commit()

    assert values == list(range(1, 26))
    assert sequencer.current_value(INVOICE, 2025) == 25


def test_each_year_and_kind_has_its_own_sequence(db):
    sequencer = SequenceService(db)
    assert sequencer.next_invoice_number(date(2025, 12, 31)) == "INV-2025-0001"
    assert sequencer.next_invoice_number(date(2025, 12, 31)) == "INV-2025-0002"
    assert sequencer.next_invoice_number(date(2026, 1, 1)) == "INV-2026-0001"
    assert sequencer.next_payment_number(date(2025, 6, 1)) == "PMT-2025-0001"
    db.commit()

    names = {c.name: c.current_value for c in db.query(SequenceCounter).all()}
    assert names == {"invoice-2025": 2, "invoice-2026": 1, "payment-2025": 1}


def test_rolled_back_number_is_handed_out_again(db):
    sequencer = SequenceService(db)
    assert sequencer.next_value(INVOICE, 2025) == 1
    db.commit()

    assert sequencer.next_value(INVOICE, 2025) == 2
    db.rollback()

    assert sequencer.next_value(INVOICE, 2025) == 2
    db.commit()
    assert sequencer.current_value(INVOICE, 2025) == 2


def test_first_use_rolled_back_leaves_no_counter(db):
    sequencer = SequenceService(db)
    sequencer.next_value(PAYMENT, 2025)
    db.rollback()

    assert db.query(SequenceCounter).count() == 0
    assert sequencer.next_value(PAYMENT, 2025) == 1


def test_separate_sessions_never_share_a_number(session_factory):
    first, second = session_factory(), session_factory()
    try:
        a = SequenceService(first).next_value(INVOICE, 2025)
        first.commit()
        b = SequenceService(second).next_value(INVOICE, 2025)
        second.commit()
        c = SequenceService(first).next_value(INVOICE, 2025)
        first.commit()
    finally:
        first.close()
        second.close()

    assert [a, b, c] == [1, 2, 3]
