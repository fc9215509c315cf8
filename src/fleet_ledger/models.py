"""Domain records for the logistics ledger.

Every record is a frozen dataclass and every collection inside
:class:`LedgerState` is a tuple, so a state snapshot can be shared freely with
views and exporters without any risk of in-place mutation. New snapshots are
produced exclusively by :func:`fleet_ledger.core_logic.reduce` via
:func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from .constants import (
    BookingStatus,
    Direction,
    EntityType,
    EntryType,
    ExpenseCategory,
    ExpenseStatus,
    InvoiceStatus,
    MatchStatus,
    NotificationType,
    UserRole,
    VehicleStatus,
)


@dataclass(frozen=True)
class Customer:
    """Billing counterparty. Read-only from the reducer's point of view."""

    customer_id: str
    name: str
    email: str
    tax_id: str
    credit_limit: Decimal
    status: str = "active"
    joined_date: Optional[date] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    payment_terms: int = 30
    tds_rate: Decimal = Decimal("2.0")
    relationship_manager: Optional[str] = None

    def __post_init__(self) -> None:
        if self.credit_limit < 0:
            raise ValueError(f"Customer '{self.customer_id}' has a negative credit limit")


@dataclass(frozen=True)
class LineItem:
    line_id: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    tax_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class Invoice:
    """Customer invoice.

    ``paid_amount`` accumulates cash movements and ``adjustments`` accumulates
    non-cash credits (TDS, discounts, credit notes). The open balance is never
    stored; it is always ``amount - (paid_amount + adjustments)``.
    """

    invoice_id: str
    customer_id: str
    customer_name: str
    invoice_number: str
    status: InvoiceStatus
    date: date
    due_date: date
    amount: Decimal
    paid_amount: Optional[Decimal] = None
    adjustments: Decimal = Decimal("0")
    tax_amount: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    line_items: Tuple[LineItem, ...] = ()
    last_reminder_sent: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    """A trip: ``amount`` is billable revenue, ``expense`` is the vendor cost."""

    booking_id: str
    customer_id: str
    customer_name: str
    origin: str
    destination: str
    distance: Decimal
    vehicle_id: str
    driver_name: str
    booked_date: date
    completed_date: date
    amount: Decimal
    expense: Decimal
    status: BookingStatus = BookingStatus.PENDING
    pod_verified: bool = False
    driver_phone: Optional[str] = None
    pod_url: Optional[str] = None
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None


@dataclass(frozen=True)
class Vehicle:
    vehicle_id: str
    reg_number: str
    model: str
    status: VehicleStatus
    mileage: Decimal
    last_maintenance: Optional[date] = None


@dataclass(frozen=True)
class Expense:
    expense_id: str
    vehicle_id: str
    category: ExpenseCategory
    amount: Decimal
    date: date
    vendor: str
    status: ExpenseStatus = ExpenseStatus.APPROVED
    vendor_id: Optional[str] = None
    booking_id: Optional[str] = None
    entry_type: EntryType = EntryType.MANUAL
    cost_per_km: Optional[Decimal] = None
    odometer: Optional[Decimal] = None
    receipt_url: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger movement. Corrections are new, offsetting rows."""

    transaction_id: str
    date: date
    amount: Decimal
    direction: Direction
    description: str
    matched: bool = False
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    reference_id: Optional[str] = None
    payment_mode: Optional[str] = None
    reference_no: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class Shipment:
    shipment_id: str
    route: str
    current_rate: Decimal
    breakeven_rate: Decimal
    status: str = "active"


@dataclass(frozen=True)
class Vendor:
    """Payable counterparty. ``balance`` is what the company owes."""

    vendor_id: str
    name: str
    category: str
    balance: Decimal
    payment_terms: int = 30
    rating: int = 3
    code: Optional[str] = None
    tax_id: Optional[str] = None
    last_activity: Optional[datetime] = None


@dataclass(frozen=True)
class BankAccount:
    account_id: str
    bank_name: str
    account_number: str
    balance: Decimal
    last_synced: Optional[datetime] = None


@dataclass(frozen=True)
class BankTransaction:
    bank_transaction_id: str
    bank_account_id: str
    date: date
    description: str
    amount: Decimal
    direction: Direction
    status: MatchStatus = MatchStatus.UNMATCHED


@dataclass(frozen=True)
class UserProfile:
    company_name: str = ""
    tax_id: str = ""
    address: str = ""
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class SystemUser:
    user_id: str
    name: str
    email: str
    role: UserRole
    status: str = "Active"


@dataclass(frozen=True)
class Notification:
    """Ephemeral UI message; not part of the durable history."""

    notification_id: str
    message: str
    type: NotificationType


@dataclass(frozen=True)
class AuditLog:
    """Append-only, attributed record of a mutating transition."""

    log_id: str
    timestamp: datetime
    user_id: str
    user_name: str
    user_role: UserRole
    action: str
    entity_type: EntityType
    entity_id: str
    details: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None


GUEST_USER = SystemUser(user_id="guest", name="Guest", email="", role=UserRole.VIEWER)


@dataclass(frozen=True)
class LedgerState:
    """Aggregate root holding one current value for every collection.

    ``invoices``, ``transactions`` and ``audit_logs`` are kept newest-first.
    ``sequence`` feeds identifier generation so the reducer stays
    deterministic.
    """

    current_user: SystemUser = GUEST_USER
    customers: Tuple[Customer, ...] = ()
    invoices: Tuple[Invoice, ...] = ()
    bookings: Tuple[Booking, ...] = ()
    vehicles: Tuple[Vehicle, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    shipments: Tuple[Shipment, ...] = ()
    vendors: Tuple[Vendor, ...] = ()
    bank_accounts: Tuple[BankAccount, ...] = ()
    bank_feed: Tuple[BankTransaction, ...] = ()
    users: Tuple[SystemUser, ...] = ()
    user_profile: UserProfile = UserProfile()
    notifications: Tuple[Notification, ...] = ()
    audit_logs: Tuple[AuditLog, ...] = ()
    is_loading: bool = True
    search_query: str = ""
    sequence: int = 0


__all__ = [
    "Customer",
    "LineItem",
    "Invoice",
    "Booking",
    "Vehicle",
    "Expense",
    "Transaction",
    "Shipment",
    "Vendor",
    "BankAccount",
    "BankTransaction",
    "UserProfile",
    "SystemUser",
    "Notification",
    "AuditLog",
    "GUEST_USER",
    "LedgerState",
]
