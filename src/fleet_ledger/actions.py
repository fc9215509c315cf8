"""Closed vocabulary of intents accepted by the ledger reducer.

Each intent is a frozen dataclass with a fixed payload shape and a ``TAG``
class attribute naming it in logs. ``issued_at`` is the only clock the
reducer ever reads; :class:`fleet_ledger.store.LedgerStore` stamps it at
dispatch time when the caller leaves it empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional, Tuple, Union, get_args

from . import log
from .audit import format_inr
from .constants import (
    OVERPAYMENT_TOLERANCE,
    TDS_NET_FACTOR,
    Direction,
    InvoiceStatus,
    NotificationType,
    PaymentCategory,
    UserRole,
)
from .derivations import invoice_balance
from .errors import ValidationError
from .models import (
    AuditLog,
    BankAccount,
    BankTransaction,
    Booking,
    Customer,
    Expense,
    Invoice,
    Shipment,
    SystemUser,
    Transaction,
    UserProfile,
    Vehicle,
    Vendor,
)


@dataclass(frozen=True)
class SetLoading:
    TAG: ClassVar[str] = "SET_LOADING"

    is_loading: bool
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class SetData:
    """Bulk replacement used once by the data-loading collaborator.

    Collections left as ``None`` keep their current value.
    """

    TAG: ClassVar[str] = "SET_DATA"

    current_user: Optional[SystemUser] = None
    customers: Optional[Tuple[Customer, ...]] = None
    invoices: Optional[Tuple[Invoice, ...]] = None
    bookings: Optional[Tuple[Booking, ...]] = None
    vehicles: Optional[Tuple[Vehicle, ...]] = None
    expenses: Optional[Tuple[Expense, ...]] = None
    transactions: Optional[Tuple[Transaction, ...]] = None
    shipments: Optional[Tuple[Shipment, ...]] = None
    vendors: Optional[Tuple[Vendor, ...]] = None
    bank_accounts: Optional[Tuple[BankAccount, ...]] = None
    bank_feed: Optional[Tuple[BankTransaction, ...]] = None
    users: Optional[Tuple[SystemUser, ...]] = None
    user_profile: Optional[UserProfile] = None
    audit_logs: Optional[Tuple[AuditLog, ...]] = None
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class SetSearchQuery:
    TAG: ClassVar[str] = "SET_SEARCH_QUERY"

    query: str
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class SwitchUser:
    TAG: ClassVar[str] = "SWITCH_USER"

    role: UserRole
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class AddInvoice:
    TAG: ClassVar[str] = "ADD_INVOICE"

    invoice: Invoice
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeleteInvoice:
    TAG: ClassVar[str] = "DELETE_INVOICE"

    invoice_id: str
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class AddExpense:
    """Manual expense entry. The reducer assigns the approval status."""

    TAG: ClassVar[str] = "ADD_EXPENSE"

    expense: Expense
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class ApproveExpense:
    TAG: ClassVar[str] = "APPROVE_EXPENSE"

    expense_id: str
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class MatchBankTransaction:
    TAG: ClassVar[str] = "MATCH_BANK_TRANSACTION"

    bank_transaction_id: str
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class UpdateProfile:
    """Partial update of the company profile; ``None`` keeps the current value."""

    TAG: ClassVar[str] = "UPDATE_PROFILE"

    company_name: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class UpdateInvoiceStatus:
    TAG: ClassVar[str] = "UPDATE_INVOICE_STATUS"

    invoice_id: str
    status: InvoiceStatus
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecordPayment:
    """Settle (or reverse) part of a customer invoice.

    ``amount`` is always positive; ``direction`` decides whether it adds to
    or removes from the invoice's collected total. Under ``auto_tds`` a cash
    credit is read as the net 98% that reached the bank.
    """

    TAG: ClassVar[str] = "RECORD_PAYMENT"

    invoice_id: str
    date: date
    reference: str
    amount: Decimal
    direction: Direction
    category: str
    debit_note_no: Optional[str] = None
    auto_tds: bool = False
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecordVendorPayment:
    """Pay the same amount to one or more vendors in a single batch."""

    TAG: ClassVar[str] = "RECORD_VENDOR_PAYMENT"

    vendor_ids: Tuple[str, ...]
    date: date
    amount: Decimal
    category: str
    reference: str
    auto_tds: bool = False
    booking_id: Optional[str] = None
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class CompleteTrip:
    TAG: ClassVar[str] = "COMPLETE_TRIP"

    booking_id: str
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class SendReminders:
    TAG: ClassVar[str] = "SEND_REMINDERS"

    invoice_ids: Tuple[str, ...]
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class MarkBookingsInvoiced:
    TAG: ClassVar[str] = "MARK_BOOKINGS_INVOICED"

    booking_ids: Tuple[str, ...]
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class AddNotification:
    TAG: ClassVar[str] = "ADD_NOTIFICATION"

    message: str
    type: NotificationType = NotificationType.INFO
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class RemoveNotification:
    TAG: ClassVar[str] = "REMOVE_NOTIFICATION"

    notification_id: str
    issued_at: Optional[datetime] = None


Action = Union[
    SetLoading,
    SetData,
    SetSearchQuery,
    SwitchUser,
    AddInvoice,
    DeleteInvoice,
    AddExpense,
    ApproveExpense,
    MatchBankTransaction,
    UpdateProfile,
    UpdateInvoiceStatus,
    RecordPayment,
    RecordVendorPayment,
    CompleteTrip,
    SendReminders,
    MarkBookingsInvoiced,
    AddNotification,
    RemoveNotification,
]


ACTION_TYPES: Tuple[type, ...] = get_args(Action)

VENDOR_PAYMENT_CATEGORIES: Tuple[str, ...] = (
    "Payment",
    "Advance",
    "Shortage Deduction",
    "Damage Penalty",
    "Adjustment",
)


def action_tag(action: object) -> str:
    """Return the tag for logging, tolerating foreign objects."""

    return getattr(action, "TAG", type(action).__name__)


def require_positive_amount(amount: Decimal) -> None:
    """Validate that a monetary amount is strictly positive.

    Args:
        amount (Decimal): Amount carried by an action payload.

    Raises:
        ValidationError: If ``amount`` is not a finite number above zero.
    """

    if not amount.is_finite() or amount <= Decimal("0"):
        log.error("Amount validation failed: %s", amount)
        raise ValidationError("Amount must be greater than zero")


def validate_action(action: Action) -> None:
    """Pre-dispatch checks performed by the collaborator that builds an action.

    The reducer applies best-effort semantics and never consults this
    function; callers that want to block malformed input (a zero amount, an
    unknown settlement category, an empty vendor batch) run it first.

    Args:
        action (Action): Intent about to be dispatched.

    Raises:
        ValidationError: If the payload violates a submission rule.
    """

    if not isinstance(action, ACTION_TYPES):
        raise ValidationError(f"Unsupported action type: {type(action).__name__}")

    if isinstance(action, RecordPayment):
        require_positive_amount(action.amount)
        try:
            PaymentCategory(action.category)
        except ValueError as exc:
            raise ValidationError(f"Unknown payment category: {action.category}") from exc
        if action.category == PaymentCategory.DEBIT_NOTE.value and not action.debit_note_no:
            raise ValidationError("Debit notes require a debit note number")
    elif isinstance(action, RecordVendorPayment):
        require_positive_amount(action.amount)
        if not action.vendor_ids:
            raise ValidationError("Select at least one vendor to record payment")
    elif isinstance(action, AddExpense):
        require_positive_amount(action.expense.amount)
    elif isinstance(action, AddInvoice):
        require_positive_amount(action.invoice.amount)
        if action.invoice.due_date < action.invoice.date:
            raise ValidationError("Invoice due date precedes its issue date")


def validate_payment_against_balance(invoice: Invoice, action: RecordPayment) -> None:
    """Refuse a credit that would settle more than the invoice still owes.

    Under auto TDS the amount is the net bank receipt, so the gross credit
    ``amount / 0.98`` is compared. Advance payments and debit movements are
    not capped.

    Raises:
        ValidationError: If the effective credit exceeds the open balance by
            more than ``OVERPAYMENT_TOLERANCE``.
    """

    if action.direction != Direction.CREDIT or action.category == PaymentCategory.ADVANCE_PAYMENT.value:
        return
    balance = invoice_balance(invoice)
    effective = action.amount / TDS_NET_FACTOR if action.auto_tds else action.amount
    if effective > balance + OVERPAYMENT_TOLERANCE:
        log.error(
            "Payment of %s on invoice '%s' exceeds open balance %s",
            action.amount,
            invoice.invoice_number,
            balance,
        )
        raise ValidationError(f"Exceeds balance ({format_inr(balance)})")


__all__ = [
    "SetLoading",
    "SetData",
    "SetSearchQuery",
    "SwitchUser",
    "AddInvoice",
    "DeleteInvoice",
    "AddExpense",
    "ApproveExpense",
    "MatchBankTransaction",
    "UpdateProfile",
    "UpdateInvoiceStatus",
    "RecordPayment",
    "RecordVendorPayment",
    "CompleteTrip",
    "SendReminders",
    "MarkBookingsInvoiced",
    "AddNotification",
    "RemoveNotification",
    "Action",
    "ACTION_TYPES",
    "VENDOR_PAYMENT_CATEGORIES",
    "action_tag",
    "require_positive_amount",
    "validate_action",
    "validate_payment_against_balance",
]
