"""Ledger reducer for the logistics finance engine.

This module holds the single state-transition function of the ledger. Every
intent from :mod:`fleet_ledger.actions` flows through :func:`reduce`, which
returns a new :class:`~fleet_ledger.models.LedgerState` and never mutates the
one it receives. Financial transitions are attributed to the acting user
through audit entries; rejected intents leave the ledger untouched and at most
surface a notification.

The reducer does not raise for business conditions. Stale references,
duplicate postings, and denied deletions are all expressed as "unchanged
state plus notification". Lookups that *should* fail loudly on behalf of a
caller live in the ``get_*`` helpers at the bottom of the module.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from functools import reduce as _fold
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from . import log
from .actions import (
    Action,
    AddExpense,
    AddInvoice,
    AddNotification,
    ApproveExpense,
    CompleteTrip,
    DeleteInvoice,
    MarkBookingsInvoiced,
    MatchBankTransaction,
    RecordPayment,
    RecordVendorPayment,
    RemoveNotification,
    SendReminders,
    SetData,
    SetLoading,
    SetSearchQuery,
    SwitchUser,
    UpdateInvoiceStatus,
    UpdateProfile,
    action_tag,
)
from .audit import IdSequence, build_audit_entry, build_notification, format_inr, reminder_note
from .constants import (
    HIGH_VALUE_EXPENSE_THRESHOLD,
    SETTLEMENT_CATEGORIES,
    BookingStatus,
    Direction,
    EntityType,
    EntryType,
    ExpenseCategory,
    ExpenseStatus,
    MatchStatus,
    NotificationType,
    PaymentCategory,
    UserRole,
)
from .derivations import ZERO, compute_tds, derive_persisted_status, is_booking_posted, is_non_cash
from .errors import MissingReferenceError
from .models import (
    AuditLog,
    Booking,
    Customer,
    Expense,
    Invoice,
    LedgerState,
    SystemUser,
    Transaction,
    Vendor,
)


RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class LedgerPolicy:
    """Configurable reducer behaviour sourced from the ``[Policy]`` section.

    Attributes:
        audit_booking_invoicing (bool): When ``True`` marking bookings as
            invoiced also writes an audit entry. Off by default, matching the
            historical behaviour where the flip is a silent side effect of
            invoice creation.
    """

    audit_booking_invoicing: bool = False


DEFAULT_POLICY = LedgerPolicy()


# Built-in directory used when no seeded user holds the requested role.
ROLE_DIRECTORY: Dict[UserRole, SystemUser] = {
    UserRole.ADMIN: SystemUser("u1", "John Smith", "john@opt.com", UserRole.ADMIN),
    UserRole.FINANCE_MANAGER: SystemUser("u2", "Sarah Connor", "sarah@opt.com", UserRole.FINANCE_MANAGER),
    UserRole.ACCOUNTANT: SystemUser("u4", "Gary Green", "gary@opt.com", UserRole.ACCOUNTANT),
}
FALLBACK_USER = SystemUser("u5", "Mike Ops", "mike@opt.com", UserRole.OPERATIONS_MANAGER)


@dataclass
class _Reduction:
    """Per-call context shared by the action handlers."""

    policy: LedgerPolicy
    timestamp: datetime
    ids: IdSequence

    @property
    def today(self) -> date:
        return self.timestamp.date()


def _resolve_timestamp(candidate: Optional[datetime]) -> datetime:
    """Return the action's issue time, or the current UTC time when unstamped.

    Args:
        candidate (datetime | None): ``issued_at`` carried by the action.
            :class:`~fleet_ledger.store.LedgerStore` always fills it, so the
            fallback only applies to direct calls of :func:`reduce`.

    Returns:
        datetime: Timestamp used for audit entries and date defaults.
    """

    return candidate if candidate is not None else datetime.now(UTC)


def _enum_value(value: Any) -> str:
    return getattr(value, "value", value)


def _find(records: Iterable[RecordT], attribute: str, key: str) -> Optional[RecordT]:
    for record in records:
        if getattr(record, attribute) == key:
            return record
    return None


def _swap(records: Tuple[RecordT, ...], attribute: str, updated: RecordT) -> Tuple[RecordT, ...]:
    """Replace the record sharing ``updated``'s key, keeping the original order."""

    key = getattr(updated, attribute)
    return tuple(updated if getattr(record, attribute) == key else record for record in records)


def _notify(state: LedgerState, ctx: _Reduction, message: str, type_: NotificationType) -> LedgerState:
    notification = build_notification(ctx.ids, message, type_)
    return replace(state, notifications=state.notifications + (notification,))


def _audit(state: LedgerState, ctx: _Reduction, **fields: Any) -> AuditLog:
    return build_audit_entry(state.current_user, ctx.ids, timestamp=ctx.timestamp, **fields)


# ---------------------------------------------------------------------------
# Session and bookkeeping transitions
# ---------------------------------------------------------------------------


_SET_DATA_FIELDS: Tuple[str, ...] = (
    "current_user",
    "customers",
    "invoices",
    "bookings",
    "vehicles",
    "expenses",
    "transactions",
    "shipments",
    "vendors",
    "bank_accounts",
    "bank_feed",
    "users",
    "user_profile",
    "audit_logs",
)

_SCALAR_SET_DATA_FIELDS = frozenset({"current_user", "user_profile"})


def _set_loading(state: LedgerState, action: SetLoading, ctx: _Reduction) -> LedgerState:
    log.debug("Loading flag set to %s", action.is_loading)
    return replace(state, is_loading=action.is_loading)


def _set_data(state: LedgerState, action: SetData, ctx: _Reduction) -> LedgerState:
    changes: Dict[str, Any] = {}
    for name in _SET_DATA_FIELDS:
        value = getattr(action, name)
        if value is None:
            continue
        changes[name] = value if name in _SCALAR_SET_DATA_FIELDS else tuple(value)
    log.info("Bulk data load replaced %d collection(s)", len(changes))
    return replace(state, **changes)


def _set_search_query(state: LedgerState, action: SetSearchQuery, ctx: _Reduction) -> LedgerState:
    log.debug("Search query set to '%s'", action.query)
    return replace(state, search_query=action.query)


def _switch_user(state: LedgerState, action: SwitchUser, ctx: _Reduction) -> LedgerState:
    user = next(
        (
            candidate
            for candidate in state.users
            if candidate.role == action.role and candidate.status == "Active"
        ),
        None,
    )
    if user is None:
        user = ROLE_DIRECTORY.get(action.role, FALLBACK_USER)
    log.info("Switched acting user to '%s' (%s)", user.user_id, _enum_value(user.role))
    switched = replace(state, current_user=user)
    return _notify(switched, ctx, f"Switched role to {_enum_value(action.role)}", NotificationType.INFO)


def _update_profile(state: LedgerState, action: UpdateProfile, ctx: _Reduction) -> LedgerState:
    changes = {
        name: getattr(action, name)
        for name in ("company_name", "tax_id", "address", "logo_url")
        if getattr(action, name) is not None
    }
    if not changes:
        return state
    log.info("Updated company profile fields: %s", ", ".join(sorted(changes)))
    return replace(state, user_profile=replace(state.user_profile, **changes))


def _add_notification(state: LedgerState, action: AddNotification, ctx: _Reduction) -> LedgerState:
    return _notify(state, ctx, action.message, action.type)


def _remove_notification(state: LedgerState, action: RemoveNotification, ctx: _Reduction) -> LedgerState:
    remaining = tuple(
        notification
        for notification in state.notifications
        if notification.notification_id != action.notification_id
    )
    if len(remaining) == len(state.notifications):
        return state
    return replace(state, notifications=remaining)


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


def _add_invoice(state: LedgerState, action: AddInvoice, ctx: _Reduction) -> LedgerState:
    invoice = action.invoice
    entry = _audit(
        state,
        ctx,
        action="Create",
        entity_type=EntityType.INVOICE,
        entity_id=invoice.invoice_number,
        details=f"Created invoice for {format_inr(invoice.amount)}",
    )
    log.info("Created invoice '%s' for %s", invoice.invoice_number, invoice.amount)
    return replace(
        state,
        invoices=(invoice,) + state.invoices,
        audit_logs=(entry,) + state.audit_logs,
    )


def _delete_invoice(state: LedgerState, action: DeleteInvoice, ctx: _Reduction) -> LedgerState:
    if state.current_user.role == UserRole.ACCOUNTANT:
        log.warning(
            "User '%s' denied deletion of invoice '%s'",
            state.current_user.user_id,
            action.invoice_id,
        )
        return _notify(
            state,
            ctx,
            "Access Denied: Accountants cannot delete records.",
            NotificationType.ERROR,
        )

    invoice = _find(state.invoices, "invoice_id", action.invoice_id)
    if invoice is None:
        log.warning("Delete requested for unknown invoice '%s'", action.invoice_id)
        return state

    entry = _audit(
        state,
        ctx,
        action="Delete",
        entity_type=EntityType.INVOICE,
        entity_id=invoice.invoice_number,
        details="Deleted Invoice Record",
    )
    remaining = tuple(record for record in state.invoices if record.invoice_id != invoice.invoice_id)
    log.info("Deleted invoice '%s'", invoice.invoice_number)
    deleted = replace(state, invoices=remaining, audit_logs=(entry,) + state.audit_logs)
    return _notify(deleted, ctx, "Invoice deleted.", NotificationType.SUCCESS)


def _update_invoice_status(state: LedgerState, action: UpdateInvoiceStatus, ctx: _Reduction) -> LedgerState:
    invoice = _find(state.invoices, "invoice_id", action.invoice_id)
    if invoice is None:
        log.warning("Status change requested for unknown invoice '%s'", action.invoice_id)
        return state

    entry = _audit(
        state,
        ctx,
        action="Update",
        entity_type=EntityType.INVOICE,
        entity_id=invoice.invoice_number,
        details="Status Change",
        old_value=_enum_value(invoice.status),
        new_value=_enum_value(action.status),
    )
    log.info(
        "Invoice '%s' status %s -> %s",
        invoice.invoice_number,
        _enum_value(invoice.status),
        _enum_value(action.status),
    )
    return replace(
        state,
        invoices=_swap(state.invoices, "invoice_id", replace(invoice, status=action.status)),
        audit_logs=(entry,) + state.audit_logs,
    )


def _record_payment(state: LedgerState, action: RecordPayment, ctx: _Reduction) -> LedgerState:
    """Settle or reverse part of an invoice and re-derive its stored status.

    Non-cash categories move ``adjustments``; everything else moves
    ``paid_amount``. Under auto TDS a cash credit is the net bank receipt and
    the implied withholding is booked as a second, TDS-tagged credit.
    """

    invoice = _find(state.invoices, "invoice_id", action.invoice_id)
    if invoice is None:
        log.warning("Payment recorded against unknown invoice '%s'", action.invoice_id)
        return state

    category = _enum_value(action.category)
    non_cash = is_non_cash(category)
    is_credit = action.direction == Direction.CREDIT
    signed_amount = action.amount if is_credit else -action.amount

    paid = invoice.paid_amount if invoice.paid_amount is not None else ZERO
    adjustments = invoice.adjustments
    if non_cash:
        adjustments += signed_amount
    else:
        paid += signed_amount

    if action.auto_tds and category in SETTLEMENT_CATEGORIES:
        description = f"Bank Receipt - {invoice.invoice_number}"
    else:
        description = f"{category} - {invoice.invoice_number}"
        if action.debit_note_no:
            description += f" (DN: {action.debit_note_no})"

    new_transactions: List[Transaction] = [
        Transaction(
            transaction_id=ctx.ids.next("tx"),
            date=action.date,
            amount=action.amount,
            direction=action.direction,
            description=description,
            matched=True,
            customer_id=invoice.customer_id,
            reference_id=invoice.invoice_id,
            reference_no=action.reference or None,
        )
    ]

    tds_amount = ZERO
    if action.auto_tds and is_credit and not non_cash:
        tds_amount = compute_tds(action.amount)
        adjustments += tds_amount
        # Shares the primary entry's date; the tx_tds prefix keeps it apart.
        new_transactions.append(
            Transaction(
                transaction_id=ctx.ids.next("tx_tds"),
                date=action.date,
                amount=tds_amount,
                direction=Direction.CREDIT,
                description=f"TDS Deduction (2%) - {invoice.invoice_number}",
                matched=True,
                customer_id=invoice.customer_id,
                reference_id=invoice.invoice_id,
            )
        )

    balance = invoice.amount - (paid + adjustments)
    new_status = derive_persisted_status(invoice, balance, today=ctx.today)
    updated = replace(invoice, paid_amount=paid, adjustments=adjustments, status=new_status)

    details = f"Recorded {_enum_value(action.direction)} of {format_inr(action.amount)} via {category}"
    if action.auto_tds:
        details += " (+TDS)"
    entry = _audit(
        state,
        ctx,
        action="Record",
        entity_type=EntityType.PAYMENT,
        entity_id=invoice.invoice_number,
        details=details,
        old_value=_enum_value(invoice.status),
        new_value=new_status.value,
    )
    log.info(
        "Recorded %s of %s on invoice '%s' (%s, tds=%s, balance=%s, status=%s)",
        _enum_value(action.direction),
        action.amount,
        invoice.invoice_number,
        category,
        tds_amount,
        balance,
        new_status.value,
    )

    settled = replace(
        state,
        invoices=_swap(state.invoices, "invoice_id", updated),
        transactions=tuple(new_transactions) + state.transactions,
        audit_logs=(entry,) + state.audit_logs,
    )
    return _notify(settled, ctx, "Payment recorded successfully.", NotificationType.SUCCESS)


def _send_reminders(state: LedgerState, action: SendReminders, ctx: _Reduction) -> LedgerState:
    targets = set(action.invoice_ids)
    if not targets:
        return state

    note = reminder_note(ctx.timestamp)
    invoices = tuple(
        replace(
            invoice,
            last_reminder_sent=ctx.timestamp,
            notes=f"{invoice.notes}\n{note}" if invoice.notes else note,
        )
        if invoice.invoice_id in targets
        else invoice
        for invoice in state.invoices
    )
    count = len(targets)
    entry = _audit(
        state,
        ctx,
        action="Communicate",
        entity_type=EntityType.INVOICE,
        entity_id=f"{count} items",
        details="Sent bulk reminders",
        new_value=ctx.timestamp.isoformat(),
    )
    log.info("Sent payment reminders for %d invoice(s)", count)
    reminded = replace(state, invoices=invoices, audit_logs=(entry,) + state.audit_logs)
    return _notify(reminded, ctx, f"Reminders sent to {count} customers.", NotificationType.SUCCESS)


# ---------------------------------------------------------------------------
# Payables and trips
# ---------------------------------------------------------------------------


def _add_expense(state: LedgerState, action: AddExpense, ctx: _Reduction) -> LedgerState:
    high_value = action.expense.amount > HIGH_VALUE_EXPENSE_THRESHOLD
    status = ExpenseStatus.PENDING_APPROVAL if high_value else ExpenseStatus.APPROVED
    expense = replace(action.expense, status=status)

    entry = _audit(
        state,
        ctx,
        action="Create",
        entity_type=EntityType.EXPENSE,
        entity_id=expense.expense_id,
        details=f"Recorded expense {format_inr(expense.amount)} ({_enum_value(expense.category)})",
        new_value="Pending" if high_value else "Approved",
    )
    log.info("Recorded expense '%s' of %s as %s", expense.expense_id, expense.amount, status.value)
    recorded = replace(
        state,
        expenses=(expense,) + state.expenses,
        audit_logs=(entry,) + state.audit_logs,
    )
    if high_value:
        return _notify(recorded, ctx, "Expense > ₹50k requires approval.", NotificationType.WARNING)
    return _notify(recorded, ctx, "Expense recorded successfully.", NotificationType.SUCCESS)


def _approve_expense(state: LedgerState, action: ApproveExpense, ctx: _Reduction) -> LedgerState:
    expense = _find(state.expenses, "expense_id", action.expense_id)
    if expense is None:
        log.warning("Approval requested for unknown expense '%s'", action.expense_id)
        return state
    if expense.status != ExpenseStatus.PENDING_APPROVAL:
        log.warning("Expense '%s' is not awaiting approval", action.expense_id)
        return state

    entry = _audit(
        state,
        ctx,
        action="Approve",
        entity_type=EntityType.EXPENSE,
        entity_id=expense.expense_id,
        details="Approved high-value expense",
        old_value=ExpenseStatus.PENDING_APPROVAL.value,
        new_value=ExpenseStatus.APPROVED.value,
    )
    log.info("Approved expense '%s'", expense.expense_id)
    approved = replace(
        state,
        expenses=_swap(state.expenses, "expense_id", replace(expense, status=ExpenseStatus.APPROVED)),
        audit_logs=(entry,) + state.audit_logs,
    )
    return _notify(approved, ctx, "Expense Approved.", NotificationType.SUCCESS)


def _match_bank_transaction(state: LedgerState, action: MatchBankTransaction, ctx: _Reduction) -> LedgerState:
    line = _find(state.bank_feed, "bank_transaction_id", action.bank_transaction_id)
    if line is None:
        log.warning("Match requested for unknown bank line '%s'", action.bank_transaction_id)
        return state
    log.info("Matched bank line '%s'", line.bank_transaction_id)
    return replace(
        state,
        bank_feed=_swap(state.bank_feed, "bank_transaction_id", replace(line, status=MatchStatus.MATCHED)),
    )


def _record_vendor_payment(state: LedgerState, action: RecordVendorPayment, ctx: _Reduction) -> LedgerState:
    """Pay every listed vendor the same amount; one audit entry covers the batch.

    Vendor balances are floored at zero. Identifiers that do not resolve to a
    vendor are skipped; if none resolve the ledger is left untouched.
    """

    known = {vendor.vendor_id: vendor for vendor in state.vendors}
    updated: Dict[str, Vendor] = {}
    new_transactions: List[Transaction] = []
    category = _enum_value(action.category)
    trip_suffix = f" (Trip: {action.booking_id})" if action.booking_id else ""

    for vendor_id in action.vendor_ids:
        vendor = updated.get(vendor_id) or known.get(vendor_id)
        if vendor is None:
            log.warning("Skipping payment to unknown vendor '%s'", vendor_id)
            continue

        if action.auto_tds:
            tds_amount = compute_tds(action.amount)
            description = f"Bank Payment - {action.reference}{trip_suffix}"
        else:
            tds_amount = ZERO
            description = f"{category} - {action.reference}{trip_suffix}"

        new_transactions.append(
            Transaction(
                transaction_id=ctx.ids.next("vtx"),
                date=action.date,
                amount=action.amount,
                direction=Direction.CREDIT,
                description=description,
                matched=True,
                vendor_id=vendor_id,
                vendor_name=vendor.name,
                reference_id=action.booking_id,
                reference_no=action.reference,
                category=category,
            )
        )
        if tds_amount > 0:
            new_transactions.append(
                Transaction(
                    transaction_id=ctx.ids.next("vtx_tds"),
                    date=action.date,
                    amount=tds_amount,
                    direction=Direction.CREDIT,
                    description=f"TDS (2%) on Payment {action.reference}",
                    matched=True,
                    vendor_id=vendor_id,
                    vendor_name=vendor.name,
                    reference_id=action.booking_id,
                    category=PaymentCategory.TDS.value,
                )
            )

        updated[vendor_id] = replace(
            vendor,
            balance=max(ZERO, vendor.balance - (action.amount + tds_amount)),
            last_activity=ctx.timestamp,
        )

    if not updated:
        log.warning("Vendor payment batch referenced no known vendors")
        return state

    details = f"Recorded {category} of {format_inr(action.amount)}"
    if action.auto_tds:
        details += " (+TDS)"
    entry = _audit(
        state,
        ctx,
        action="Record",
        entity_type=EntityType.PAYMENT,
        entity_id=f"{len(action.vendor_ids)} Vendor(s)",
        details=details,
    )
    log.info(
        "Recorded %s of %s to %d vendor(s) (auto_tds=%s)",
        category,
        action.amount,
        len(updated),
        action.auto_tds,
    )
    paid = replace(
        state,
        vendors=tuple(updated.get(vendor.vendor_id, vendor) for vendor in state.vendors),
        transactions=tuple(new_transactions) + state.transactions,
        audit_logs=(entry,) + state.audit_logs,
    )
    return _notify(paid, ctx, "Vendor payment recorded.", NotificationType.SUCCESS)


def _complete_trip(state: LedgerState, action: CompleteTrip, ctx: _Reduction) -> LedgerState:
    """Post a completed trip's vendor cost as a Freight expense, exactly once."""

    booking = _find(state.bookings, "booking_id", action.booking_id)
    if booking is None:
        log.warning("Completion requested for unknown booking '%s'", action.booking_id)
        return state
    if not booking.vendor_id:
        log.warning("Booking '%s' has no vendor assigned", booking.booking_id)
        return _notify(
            state,
            ctx,
            f"Trip {booking.booking_id} has no vendor assigned.",
            NotificationType.ERROR,
        )
    if is_booking_posted(state.expenses, booking.booking_id):
        log.warning("Booking '%s' already posted to the vendor ledger", booking.booking_id)
        return _notify(
            state,
            ctx,
            f"Trip {booking.booking_id} already posted to ledger.",
            NotificationType.WARNING,
        )

    expense = Expense(
        expense_id=ctx.ids.next("exp_auto"),
        vehicle_id=booking.vehicle_id,
        category=ExpenseCategory.FREIGHT,
        amount=booking.expense,
        date=ctx.today,
        vendor=booking.vendor_name or "Unknown",
        status=ExpenseStatus.APPROVED,
        vendor_id=booking.vendor_id,
        booking_id=booking.booking_id,
        entry_type=EntryType.AUTO,
    )
    vendors = tuple(
        replace(vendor, balance=vendor.balance + booking.expense, last_activity=ctx.timestamp)
        if vendor.vendor_id == booking.vendor_id
        else vendor
        for vendor in state.vendors
    )
    entry = _audit(
        state,
        ctx,
        action="Post",
        entity_type=EntityType.EXPENSE,
        entity_id=booking.booking_id,
        details=f"Auto-posted freight charge of {format_inr(booking.expense)}",
        old_value="Pending",
        new_value="Posted",
    )
    log.info(
        "Posted freight expense '%s' of %s for booking '%s' to vendor '%s'",
        expense.expense_id,
        booking.expense,
        booking.booking_id,
        booking.vendor_id,
    )
    posted = replace(
        state,
        vendors=vendors,
        expenses=state.expenses + (expense,),
        audit_logs=(entry,) + state.audit_logs,
    )
    return _notify(
        posted,
        ctx,
        f"Trip {booking.booking_id} posted to Vendor Ledger.",
        NotificationType.SUCCESS,
    )


def _mark_bookings_invoiced(state: LedgerState, action: MarkBookingsInvoiced, ctx: _Reduction) -> LedgerState:
    targets = set(action.booking_ids)
    flipped = [booking.booking_id for booking in state.bookings if booking.booking_id in targets]
    if not flipped:
        return state

    bookings = tuple(
        replace(booking, status=BookingStatus.INVOICED) if booking.booking_id in targets else booking
        for booking in state.bookings
    )
    log.debug("Marked %d booking(s) as invoiced", len(flipped))
    if not ctx.policy.audit_booking_invoicing:
        return replace(state, bookings=bookings)

    entry = _audit(
        state,
        ctx,
        action="Update",
        entity_type=EntityType.BOOKING,
        entity_id=", ".join(flipped),
        details=f"Marked {len(flipped)} booking(s) as invoiced",
        old_value=BookingStatus.PENDING.value,
        new_value=BookingStatus.INVOICED.value,
    )
    return replace(state, bookings=bookings, audit_logs=(entry,) + state.audit_logs)


_HANDLERS: Dict[type, Callable[[LedgerState, Any, _Reduction], LedgerState]] = {
    SetLoading: _set_loading,
    SetData: _set_data,
    SetSearchQuery: _set_search_query,
    SwitchUser: _switch_user,
    AddInvoice: _add_invoice,
    DeleteInvoice: _delete_invoice,
    AddExpense: _add_expense,
    ApproveExpense: _approve_expense,
    MatchBankTransaction: _match_bank_transaction,
    UpdateProfile: _update_profile,
    UpdateInvoiceStatus: _update_invoice_status,
    RecordPayment: _record_payment,
    RecordVendorPayment: _record_vendor_payment,
    CompleteTrip: _complete_trip,
    SendReminders: _send_reminders,
    MarkBookingsInvoiced: _mark_bookings_invoiced,
    AddNotification: _add_notification,
    RemoveNotification: _remove_notification,
}


def reduce(state: LedgerState, action: Action, policy: Optional[LedgerPolicy] = None) -> LedgerState:
    """Apply one action to ``state`` and return the resulting snapshot.

    The function is total: objects outside the action vocabulary return
    ``state`` unchanged. It reads time only from ``action.issued_at`` and
    draws identifiers from ``state.sequence``, so equal inputs always produce
    equal outputs.

    Args:
        state (LedgerState): Current snapshot; never modified.
        action (Action): Intent to apply.
        policy (LedgerPolicy | None): Optional behaviour switches. Defaults to
            :data:`DEFAULT_POLICY`.

    Returns:
        LedgerState: New snapshot, or ``state`` itself when nothing changed.
    """

    handler = _HANDLERS.get(type(action))
    if handler is None:
        log.warning("Ignoring unsupported action '%s'", action_tag(action))
        return state

    ctx = _Reduction(
        policy=policy or DEFAULT_POLICY,
        timestamp=_resolve_timestamp(getattr(action, "issued_at", None)),
        ids=IdSequence(state.sequence),
    )
    result = handler(state, action, ctx)
    if ctx.ids.value != state.sequence:
        result = replace(result, sequence=ctx.ids.value)
    return result


def replay(
    actions: Iterable[Action],
    state: Optional[LedgerState] = None,
    policy: Optional[LedgerPolicy] = None,
) -> LedgerState:
    """Fold ``actions`` through :func:`reduce`, starting from an empty ledger by default."""

    initial = state if state is not None else LedgerState()
    return _fold(lambda current, action: reduce(current, action, policy), actions, initial)


# ---------------------------------------------------------------------------
# Lookups for collaborators
# ---------------------------------------------------------------------------


def _lookup(records: Sequence[RecordT], attribute: str, key: str, label: str) -> RecordT:
    record = _find(records, attribute, key)
    if record is None:
        log.warning("%s lookup failed for id '%s'", label.capitalize(), key)
        raise MissingReferenceError(f"Unknown {label} id: {key}")
    return record


def get_invoice(state: LedgerState, invoice_id: str) -> Invoice:
    """Resolve an invoice by identifier.

    Args:
        state (LedgerState): Snapshot to search.
        invoice_id (str): Identifier of the invoice.

    Returns:
        Invoice: Matching record.

    Raises:
        MissingReferenceError: If the snapshot has no such invoice.
    """

    return _lookup(state.invoices, "invoice_id", invoice_id, "invoice")


def get_customer(state: LedgerState, customer_id: str) -> Customer:
    return _lookup(state.customers, "customer_id", customer_id, "customer")


def get_vendor(state: LedgerState, vendor_id: str) -> Vendor:
    return _lookup(state.vendors, "vendor_id", vendor_id, "vendor")


def get_booking(state: LedgerState, booking_id: str) -> Booking:
    return _lookup(state.bookings, "booking_id", booking_id, "booking")


def get_expense(state: LedgerState, expense_id: str) -> Expense:
    return _lookup(state.expenses, "expense_id", expense_id, "expense")


__all__ = [
    "LedgerPolicy",
    "DEFAULT_POLICY",
    "ROLE_DIRECTORY",
    "FALLBACK_USER",
    "reduce",
    "replay",
    "get_invoice",
    "get_customer",
    "get_vendor",
    "get_booking",
    "get_expense",
]
