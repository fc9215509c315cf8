"""Tests for the state container and its dispatch loop."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import Mock

from fleet_ledger import core_logic
from fleet_ledger.actions import CompleteTrip, DeleteInvoice, MarkBookingsInvoiced, RecordPayment, SetLoading
from fleet_ledger.constants import Direction
from fleet_ledger.models import LedgerState
from fleet_ledger.store import LedgerStore

from conftest import FIXED_NOW, TODAY


def test_store_starts_with_empty_loading_ledger():
    store = LedgerStore()

    assert store.state == LedgerState()
    assert store.state.is_loading is True
    assert store.policy is core_logic.DEFAULT_POLICY


def test_dispatch_stamps_unissued_actions_with_store_clock(ledger_state, fixed_clock):
    store = LedgerStore(ledger_state, clock=fixed_clock)

    state = store.dispatch(CompleteTrip("BK-1"))

    assert state is store.state
    assert state.audit_logs[0].timestamp == FIXED_NOW
    assert state.expenses[0].date == FIXED_NOW.date()


def test_dispatch_keeps_caller_timestamp(ledger_state, fixed_clock):
    issued = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    store = LedgerStore(ledger_state, clock=fixed_clock)

    store.dispatch(CompleteTrip("BK-1", issued_at=issued))

    assert store.state.audit_logs[0].timestamp == issued


def test_dispatch_notifies_subscribers_on_change(ledger_state, fixed_clock):
    store = LedgerStore(ledger_state, clock=fixed_clock)
    subscriber = Mock(name="subscriber")
    store.subscribe(subscriber)

    store.dispatch(SetLoading(True))

    subscriber.assert_called_once()
    state, action = subscriber.call_args.args
    assert state is store.state
    assert action.issued_at == FIXED_NOW


def test_dispatch_skips_subscribers_when_nothing_changed(ledger_state, fixed_clock):
    store = LedgerStore(ledger_state, clock=fixed_clock)
    subscriber = Mock(name="subscriber")
    store.subscribe(subscriber)

    result = store.dispatch(DeleteInvoice("inv_missing"))

    assert result is ledger_state
    subscriber.assert_not_called()


def test_unsubscribe_stops_notifications(ledger_state, fixed_clock):
    store = LedgerStore(ledger_state, clock=fixed_clock)
    subscriber = Mock(name="subscriber")
    unsubscribe = store.subscribe(subscriber)

    unsubscribe()
    unsubscribe()
    store.dispatch(SetLoading(True))

    subscriber.assert_not_called()


def test_dispatch_applies_actions_in_order(ledger_state, fixed_clock):
    """Each dispatch builds on the snapshot left by the previous one."""

    store = LedgerStore(ledger_state, clock=fixed_clock)
    seen = []
    store.subscribe(lambda state, action: seen.append(state.sequence))

    for amount in ("1000", "2000"):
        store.dispatch(
            RecordPayment(
                invoice_id="inv_1",
                date=TODAY,
                reference="",
                amount=Decimal(amount),
                direction=Direction.CREDIT,
                category="Partial payment",
            )
        )

    assert store.state.invoices[0].paid_amount == Decimal("3000")
    assert [tx.transaction_id for tx in store.state.transactions] == ["tx_000004", "tx_000001"]
    assert seen == [3, 6]


def test_store_forwards_policy_to_reducer(ledger_state, fixed_clock):
    policy = core_logic.LedgerPolicy(audit_booking_invoicing=True)
    store = LedgerStore(ledger_state, policy=policy, clock=fixed_clock)

    store.dispatch(MarkBookingsInvoiced(("BK-1",)))

    assert store.policy is policy
    assert store.state.audit_logs[0].details == "Marked 1 booking(s) as invoiced"
