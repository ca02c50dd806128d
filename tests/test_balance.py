from decimal import Decimal

import pytest

from app.core.errors import InvalidArgument
from app.models.booking import PaymentStatus
from app.services.balance_service import calculate_balance, running_balances
from app.services.money import from_cents, to_cents


def test_unpriced_booking_is_pending():
    s = calculate_balance(None, [])
    assert s.total_paid_cents == 0
    assert s.balance_cents is None
    assert s.payment_status == PaymentStatus.PENDING


def test_priced_without_payments_is_unpaid():
    s = calculate_balance(10000_00, [])
    assert s.balance_cents == 10000_00
    assert s.payment_status == PaymentStatus.UNPAID


def test_partial_payment_stays_unpaid():
    s = calculate_balance(10000_00, [4000_00])
    assert s.total_paid_cents == 4000_00
    assert s.balance_cents == 6000_00
    assert s.payment_status == PaymentStatus.UNPAID


def test_full_and_over_payment_are_paid():
    assert calculate_balance(10000_00, [4000_00, 6000_00]).payment_status == PaymentStatus.PAID
    over = calculate_balance(10000_00, [12000_00])
    assert over.balance_cents == -2000_00
    assert over.payment_status == PaymentStatus.PAID


def test_refunds_covering_payments_mark_refunded():
    assert calculate_balance(5000_00, [5000_00], total_refunded_cents=5000_00).payment_status == PaymentStatus.REFUNDED
    assert calculate_balance(5000_00, [5000_00], total_refunded_cents=1000_00).payment_status == PaymentStatus.PAID


def test_running_balances_follow_payment_order():
    assert running_balances(10000_00, [4000_00, 1000_00, 5000_00]) == [6000_00, 5000_00, 0]
    assert running_balances(None, [100, 200]) == [None, None]
    assert running_balances(500, []) == []


def test_calculation_is_repeatable():
    amounts = [1234_56, 1, 99_99]
    assert calculate_balance(5000_00, amounts) == calculate_balance(5000_00, list(amounts))


@pytest.mark.parametrize("value, cents", [
    ("4000", 4000_00),
    (4000, 4000_00),
    ("0.01", 1),
    (Decimal("12.30"), 1230),
    (0.1, 10),
    (" 7.5 ", 750),
    ("-20", -2000),
])
def test_to_cents(value, cents):
    assert to_cents(value) == cents


@pytest.mark.parametrize("value", ["abc", "", None, True, "12.345", float("nan"), "Infinity"])
def test_to_cents_rejects_bad_input(value):
    with pytest.raises(InvalidArgument):
        to_cents(value)


def test_minor_units_do_not_drift():
    assert sum(to_cents(0.1) for _ in range(10)) == to_cents(1)
    assert from_cents(sum(to_cents("0.10") for _ in range(3))) == Decimal("0.30")


def test_from_cents():
    assert from_cents(None) is None
    assert str(from_cents(600000)) == "6000.00"
    assert str(from_cents(0)) == "0.00"
