"""Enumerations and simulation constants shared across the ledger modules.

Centralises domain identifiers so that the domain model, the reducer, the
derived views, and the workbook loader all agree on a single spelling for
statuses, roles, and categories. Monetary constants are ``Decimal`` values so
the arithmetic in the reducer never mixes floats into currency amounts.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


# Central schema version expected by the loader when validating seed workbooks.
EXPECTED_SCHEMA_VERSION = "1.0.0"

# Manual expenses above this amount wait for explicit approval.
HIGH_VALUE_EXPENSE_THRESHOLD = Decimal("50000")

# Balances at or below this amount count as settled.
PAID_TOLERANCE = Decimal("5")

# Short payments at or below this amount are treated as rounding noise.
SHORT_PAYMENT_TOLERANCE = Decimal("1")

TDS_RATE = Decimal("0.02")
TDS_NET_FACTOR = Decimal("0.98")

DSO_LOOKBACK_DAYS = 90
DSO_GRACE_DAYS = 5

RECONCILIATION_TOLERANCE = Decimal("0.01")

# Credits may overshoot the open balance by this much before they are refused.
OVERPAYMENT_TOLERANCE = Decimal("2")

GST_RATE = Decimal("0.18")
INVOICE_DUE_DAYS = 15


class InvoiceStatus(str, Enum):
    """Persisted invoice status, updated transactionally by the reducer."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"


class DisplayStatus(str, Enum):
    """Status shown to users, always derived from the monetary fields."""

    PAID = "Paid"
    OVERDUE = "Overdue"
    PARTIALLY_PAID = "Partially paid"
    UNPAID = "Unpaid"


class Direction(str, Enum):
    """Direction of a ledger movement."""

    CREDIT = "credit"
    DEBIT = "debit"


class UserRole(str, Enum):
    """Roles known to the ledger. Only ``ACCOUNTANT`` is gated by the reducer."""

    ADMIN = "Admin"
    FINANCE_MANAGER = "Finance Manager"
    ACCOUNTANT = "Accountant"
    OPERATIONS_MANAGER = "Operations Manager"
    VIEWER = "Viewer"


class ExpenseStatus(str, Enum):
    APPROVED = "approved"
    PENDING_APPROVAL = "pending_approval"


class ExpenseCategory(str, Enum):
    FUEL = "Fuel"
    MAINTENANCE = "Maintenance"
    INSURANCE = "Insurance"
    TOLL = "Toll"
    FREIGHT = "Freight"
    DRIVER = "Driver"
    EMI = "EMI"


DIRECT_COST_CATEGORIES = frozenset(
    {ExpenseCategory.FUEL, ExpenseCategory.TOLL, ExpenseCategory.DRIVER}
)
INDIRECT_COST_CATEGORIES = frozenset(
    {ExpenseCategory.MAINTENANCE, ExpenseCategory.INSURANCE, ExpenseCategory.EMI}
)


class EntryType(str, Enum):
    MANUAL = "Manual"
    AUTO = "Auto"
    ADJUSTMENT = "Adjustment"


class PaymentCategory(str, Enum):
    """Categories accepted when settling a customer invoice."""

    FULL_PAYMENT = "Full payment"
    PARTIAL_PAYMENT = "Partial payment"
    ADVANCE_PAYMENT = "Advance payment"
    CREDIT_NOTE = "Credit note"
    DEBIT_NOTE = "Debit note"
    DISCOUNT = "Discount"
    TDS = "TDS"
    ADJUSTMENT = "Adjustment"


NON_CASH_CATEGORIES = frozenset(
    {
        PaymentCategory.TDS.value,
        PaymentCategory.DISCOUNT.value,
        PaymentCategory.ADJUSTMENT.value,
        PaymentCategory.CREDIT_NOTE.value,
    }
)

# Payment categories whose description switches to bank-receipt framing under auto TDS.
SETTLEMENT_CATEGORIES = frozenset(
    {PaymentCategory.FULL_PAYMENT.value, PaymentCategory.PARTIAL_PAYMENT.value}
)

# Vendor transaction categories that mark a trip as disputed.
DISPUTE_CATEGORIES = frozenset({"Shortage Deduction", "Damage Penalty"})


class BookingStatus(str, Enum):
    PENDING = "pending"
    INVOICED = "invoiced"


class VehicleStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


class EntityType(str, Enum):
    """Entity families referenced by audit entries."""

    INVOICE = "Invoice"
    PAYMENT = "Payment"
    EXPENSE = "Expense"
    SYSTEM = "System"
    BOOKING = "Booking"


class SheetName(str, Enum):
    """Enumerate the seed workbook sheet names read by the loader."""

    CUSTOMERS = "Customers"
    INVOICES = "Invoices"
    LINE_ITEMS = "LineItems"
    BOOKINGS = "Bookings"
    VEHICLES = "Vehicles"
    EXPENSES = "Expenses"
    TRANSACTIONS = "Transactions"
    SHIPMENTS = "Shipments"
    VENDORS = "Vendors"
    BANK_ACCOUNTS = "BankAccounts"
    BANK_FEED = "BankFeed"
    USERS = "Users"


# Header row of every seed workbook sheet, in column order.
SHEET_COLUMNS = {
    SheetName.CUSTOMERS.value: (
        "CustomerID",
        "Name",
        "Email",
        "TaxID",
        "CreditLimit",
        "Status",
        "JoinedDate",
        "Address",
        "ContactPerson",
        "Phone",
        "PaymentTerms",
        "TdsRate",
        "RelationshipManager",
    ),
    SheetName.INVOICES.value: (
        "InvoiceID",
        "CustomerID",
        "CustomerName",
        "InvoiceNumber",
        "Status",
        "Date",
        "DueDate",
        "Amount",
        "PaidAmount",
        "Adjustments",
        "TaxAmount",
        "Discount",
        "LastReminderSent",
        "Notes",
    ),
    SheetName.LINE_ITEMS.value: (
        "LineID",
        "InvoiceID",
        "Description",
        "Quantity",
        "UnitPrice",
        "Total",
        "TaxRate",
    ),
    SheetName.BOOKINGS.value: (
        "BookingID",
        "CustomerID",
        "CustomerName",
        "Origin",
        "Destination",
        "Distance",
        "VehicleID",
        "DriverName",
        "DriverPhone",
        "BookedDate",
        "CompletedDate",
        "Amount",
        "Expense",
        "Status",
        "PodVerified",
        "PodUrl",
        "VendorID",
        "VendorName",
    ),
    SheetName.VEHICLES.value: (
        "VehicleID",
        "RegNumber",
        "Model",
        "Status",
        "Mileage",
        "LastMaintenance",
    ),
    SheetName.EXPENSES.value: (
        "ExpenseID",
        "VehicleID",
        "Category",
        "Amount",
        "Date",
        "Vendor",
        "Status",
        "VendorID",
        "BookingID",
        "EntryType",
        "CostPerKm",
        "Odometer",
        "ReceiptUrl",
    ),
    SheetName.TRANSACTIONS.value: (
        "TransactionID",
        "Date",
        "Amount",
        "Direction",
        "Description",
        "Matched",
        "CustomerID",
        "VendorID",
        "VendorName",
        "ReferenceID",
        "PaymentMode",
        "ReferenceNo",
        "Category",
    ),
    SheetName.SHIPMENTS.value: (
        "ShipmentID",
        "Route",
        "CurrentRate",
        "BreakevenRate",
        "Status",
    ),
    SheetName.VENDORS.value: (
        "VendorID",
        "Name",
        "Category",
        "Balance",
        "PaymentTerms",
        "Rating",
        "Code",
        "TaxID",
        "LastActivity",
    ),
    SheetName.BANK_ACCOUNTS.value: (
        "AccountID",
        "BankName",
        "AccountNumber",
        "Balance",
        "LastSynced",
    ),
    SheetName.BANK_FEED.value: (
        "BankTransactionID",
        "BankAccountID",
        "Date",
        "Description",
        "Amount",
        "Direction",
        "Status",
    ),
    SheetName.USERS.value: (
        "UserID",
        "Name",
        "Email",
        "Role",
        "Status",
    ),
}


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "HIGH_VALUE_EXPENSE_THRESHOLD",
    "PAID_TOLERANCE",
    "SHORT_PAYMENT_TOLERANCE",
    "TDS_RATE",
    "TDS_NET_FACTOR",
    "DSO_LOOKBACK_DAYS",
    "DSO_GRACE_DAYS",
    "RECONCILIATION_TOLERANCE",
    "OVERPAYMENT_TOLERANCE",
    "GST_RATE",
    "INVOICE_DUE_DAYS",
    "InvoiceStatus",
    "DisplayStatus",
    "Direction",
    "UserRole",
    "ExpenseStatus",
    "ExpenseCategory",
    "DIRECT_COST_CATEGORIES",
    "INDIRECT_COST_CATEGORIES",
    "EntryType",
    "PaymentCategory",
    "NON_CASH_CATEGORIES",
    "SETTLEMENT_CATEGORIES",
    "DISPUTE_CATEGORIES",
    "BookingStatus",
    "VehicleStatus",
    "MatchStatus",
    "NotificationType",
    "EntityType",
    "SheetName",
    "SHEET_COLUMNS",
]
