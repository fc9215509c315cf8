"""Unit tests for the pre-dispatch checks run before an action reaches the reducer."""

from __future__ import annotations

from decimal import Decimal

import pytest

from fleet_ledger.actions import (
    AddExpense,
    RecordPayment,
    RecordVendorPayment,
    require_positive_amount,
    validate_action,
    validate_payment_against_balance,
)
from fleet_ledger.constants import Direction, ExpenseCategory, PaymentCategory
from fleet_ledger.errors import ValidationError
from fleet_ledger.models import Expense

from conftest import TODAY, make_invoice


def payment(amount: str, **overrides) -> RecordPayment:
    fields = dict(
        invoice_id="inv_1",
        date=TODAY,
        reference="UTR-1",
        amount=Decimal(amount),
        direction=Direction.CREDIT,
        category=PaymentCategory.FULL_PAYMENT.value,
    )
    fields.update(overrides)
    return RecordPayment(**fields)


# ---------------------------------------------------------------------------
# Amount checks
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("raw", ["0", "-1", "Infinity", "-Infinity", "NaN", "sNaN"])
def test_require_positive_amount_rejects_zero_negative_and_non_finite(raw):
    with pytest.raises(ValidationError, match="greater than zero"):
        require_positive_amount(Decimal(raw))


def test_require_positive_amount_accepts_smallest_paisa():
    require_positive_amount(Decimal("0.01"))


@pytest.mark.parametrize("raw", ["Infinity", "NaN"])
def test_validate_action_rejects_non_finite_payment(raw):
    with pytest.raises(ValidationError):
        validate_action(payment(raw))


@pytest.mark.parametrize("raw", ["Infinity", "NaN"])
def test_validate_action_rejects_non_finite_vendor_and_expense_amounts(raw):
    with pytest.raises(ValidationError):
        validate_action(
            RecordVendorPayment(vendor_ids=("vnd_1",), date=TODAY, amount=Decimal(raw), category="Payment", reference="")
        )
    with pytest.raises(ValidationError):
        validate_action(
            AddExpense(
                Expense(
                    expense_id="exp_1",
                    vehicle_id="veh_1",
                    category=ExpenseCategory.FUEL,
                    amount=Decimal(raw),
                    date=TODAY,
                    vendor="HP Pump",
                )
            )
        )


# ---------------------------------------------------------------------------
# Overpayment guard
# ---------------------------------------------------------------------------


def test_validate_payment_against_balance_rejects_overpayment():
    invoice = make_invoice(amount="10000", paid="0")

    with pytest.raises(ValidationError, match=r"Exceeds balance \(₹10,000\)"):
        validate_payment_against_balance(invoice, payment("99999999"))


def test_validate_payment_against_balance_allows_rounding_tolerance():
    invoice = make_invoice(amount="10000", paid="4000")

    validate_payment_against_balance(invoice, payment("6002"))
    with pytest.raises(ValidationError, match=r"₹6,000"):
        validate_payment_against_balance(invoice, payment("6002.01"))


def test_validate_payment_against_balance_grosses_up_auto_tds_receipts():
    invoice = make_invoice(amount="10000", paid="0")

    validate_payment_against_balance(invoice, payment("9800", auto_tds=True))
    with pytest.raises(ValidationError):
        validate_payment_against_balance(invoice, payment("9900", auto_tds=True))


def test_validate_payment_against_balance_exempts_advances_and_debits():
    invoice = make_invoice(amount="10000", paid="10000")

    validate_payment_against_balance(invoice, payment("5000", category=PaymentCategory.ADVANCE_PAYMENT.value))
    validate_payment_against_balance(
        invoice,
        payment("5000", direction=Direction.DEBIT, category=PaymentCategory.ADJUSTMENT.value),
    )
