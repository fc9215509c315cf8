"""Integration tests exercising the loader, store, reducer, and derived views together."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fleet_ledger import core_logic, data_manager, derivations
from fleet_ledger.actions import (
    AddExpense,
    AddInvoice,
    ApproveExpense,
    CompleteTrip,
    MarkBookingsInvoiced,
    RecordPayment,
    RecordVendorPayment,
    SwitchUser,
    validate_action,
)
from fleet_ledger.constants import (
    BookingStatus,
    Direction,
    DisplayStatus,
    ExpenseCategory,
    ExpenseStatus,
    InvoiceStatus,
    UserRole,
)
from fleet_ledger.errors import ValidationError
from fleet_ledger.models import Expense, Invoice

from conftest import FIXED_NOW, TODAY


@pytest.fixture
def store(seeded_bundle):
    """Session loaded from the seeded workbook with a frozen clock."""

    return data_manager.bootstrap_store(seeded_bundle.config_path, clock=lambda: FIXED_NOW)


def submit(store, action):
    validate_action(action)
    return store.dispatch(action)


def test_invoice_to_settlement_flow(store):
    """Invoice a trip, collect it net of TDS, and read it back through every view."""

    invoice = Invoice(
        invoice_id="inv_3",
        customer_id="cust_1",
        customer_name="Acme Freight",
        invoice_number="INV-003",
        status=InvoiceStatus.SENT,
        date=TODAY,
        due_date=TODAY + timedelta(days=30),
        amount=Decimal("8000"),
        paid_amount=Decimal("0"),
    )
    submit(store, AddInvoice(invoice))
    store.dispatch(MarkBookingsInvoiced(("BK-1",)))

    assessment = derivations.assess_credit(
        core_logic.get_customer(store.state, "cust_1"),
        store.state.invoices,
        today=TODAY,
    )
    assert assessment.exposure == Decimal("38000")
    assert assessment.breached is False

    submit(
        store,
        RecordPayment(
            invoice_id="inv_3",
            date=TODAY,
            reference="UTR-3",
            amount=Decimal("3920"),
            direction=Direction.CREDIT,
            category="Partial payment",
            auto_tds=True,
        ),
    )

    state = store.state
    settled = core_logic.get_invoice(state, "inv_3")
    assert settled.paid_amount == Decimal("3920")
    assert settled.adjustments == Decimal("80")
    assert settled.status is InvoiceStatus.SENT
    view = derivations.derive_invoice_view(settled, today=TODAY)
    assert view.balance == Decimal("4000")
    assert view.display_status is DisplayStatus.PARTIALLY_PAID
    assert core_logic.get_booking(state, "BK-1").status is BookingStatus.INVOICED

    rows = derivations.build_customer_ledger(state.invoices, state.transactions, "cust_1")
    newest = rows[0]
    assert newest.category == "TDS Deduction (2%) - INV-003"
    assert newest.linked_to_previous is True
    assert newest.show_short_payment is True
    assert newest.short_payment == Decimal("4000")
    # Seed: 10000 + 20000 invoiced, 1000 + 500 received; today: 8000 invoiced, 4000 received.
    assert newest.balance == Decimal("32500")

    actions = [entry.action for entry in state.audit_logs]
    assert actions == ["Record", "Create", "System Init"]


def test_trip_payables_flow(store):
    """Post freight, pay the vendor net of TDS, and reconcile the vendor ledger."""

    submit(store, CompleteTrip("BK-1"))
    submit(store, CompleteTrip("BK-1"))
    submit(
        store,
        RecordVendorPayment(
            vendor_ids=("vnd_1",),
            date=TODAY,
            amount=Decimal("4900"),
            category="Payment",
            reference="UTR-V1",
            auto_tds=True,
            booking_id="BK-1",
        ),
    )

    state = store.state
    freight = [expense for expense in state.expenses if expense.category is ExpenseCategory.FREIGHT]
    assert len(freight) == 1
    vendor = core_logic.get_vendor(state, "vnd_1")
    assert vendor.balance == Decimal("5000")

    rows = derivations.build_vendor_ledger(state.expenses, state.transactions, "vnd_1")
    assert sum((row.freight_amount for row in rows), Decimal("0")) == Decimal("5000")
    assert sum((row.paid_amount for row in rows), Decimal("0")) == Decimal("5000")
    assert rows[0].balance == Decimal("0")
    assert [notification.type.value for notification in state.notifications] == ["success", "warning", "success"]


def test_expense_approval_and_role_switch_flow(store):
    """High-value expenses wait for approval; audit entries carry the acting user."""

    store.dispatch(SwitchUser(UserRole.FINANCE_MANAGER))
    expense = Expense(
        expense_id="exp_tyres",
        vehicle_id="veh_1",
        category=ExpenseCategory.MAINTENANCE,
        amount=Decimal("64000"),
        date=TODAY,
        vendor="MRF Tyres",
    )
    submit(store, AddExpense(expense))
    assert core_logic.get_expense(store.state, "exp_tyres").status is ExpenseStatus.PENDING_APPROVAL

    store.dispatch(SwitchUser(UserRole.ADMIN))
    submit(store, ApproveExpense("exp_tyres"))

    state = store.state
    assert core_logic.get_expense(state, "exp_tyres").status is ExpenseStatus.APPROVED
    approve, create = state.audit_logs[:2]
    assert (approve.action, approve.user_name) == ("Approve", "John Smith")
    assert (create.action, create.user_name, create.user_role) == ("Create", "Sarah Connor", UserRole.FINANCE_MANAGER)


def test_store_history_replays_to_same_state(store):
    """Replaying the recorded actions over the loaded snapshot reproduces the session."""

    recorded = []
    loaded = store.state
    store.subscribe(lambda state, action: recorded.append(action))

    submit(store, CompleteTrip("BK-1"))
    submit(
        store,
        RecordPayment(
            invoice_id="inv_1",
            date=date(2024, 3, 14),
            reference="UTR-R",
            amount=Decimal("9800"),
            direction=Direction.CREDIT,
            category="Full payment",
            auto_tds=True,
        ),
    )

    replayed = core_logic.replay(recorded, loaded, store.policy)

    assert replayed == store.state
    assert core_logic.get_invoice(replayed, "inv_1").status is InvoiceStatus.PAID


def test_validation_blocks_malformed_actions_before_dispatch(store):
    bad_invoice = Invoice(
        invoice_id="inv_bad",
        customer_id="cust_1",
        customer_name="Acme Freight",
        invoice_number="INV-BAD",
        status=InvoiceStatus.DRAFT,
        date=TODAY,
        due_date=TODAY - timedelta(days=1),
        amount=Decimal("100"),
    )

    with pytest.raises(ValidationError):
        submit(store, AddInvoice(bad_invoice))
    with pytest.raises(ValidationError):
        submit(
            store,
            RecordPayment(
                invoice_id="inv_1",
                date=TODAY,
                reference="",
                amount=Decimal("100"),
                direction=Direction.DEBIT,
                category="Debit note",
            ),
        )
    with pytest.raises(ValidationError):
        submit(
            store,
            RecordVendorPayment(vendor_ids=(), date=TODAY, amount=Decimal("1"), category="Payment", reference=""),
        )

    assert len(store.state.invoices) == 2
    assert len(store.state.audit_logs) == 1
