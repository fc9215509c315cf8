"""Data-loading collaborator for the fleet ledger.

This module reads the seed workbook that populates a fresh ledger session.
The reducer never touches it; the only thing it hands to the core is a single
:class:`~fleet_ledger.actions.SetData` action.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Workbook lifecycle: opening and persisting the Excel file.
3. Sheet reading: converting worksheet rows into domain records and bundling
   them into the bulk-load action.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from openpyxl.workbook import Workbook
import openpyxl

from . import log
from .actions import SetData, SetLoading
from .constants import (
    EXPECTED_SCHEMA_VERSION,
    BookingStatus,
    Direction,
    EntityType,
    EntryType,
    ExpenseCategory,
    ExpenseStatus,
    InvoiceStatus,
    MatchStatus,
    SheetName,
    UserRole,
    VehicleStatus,
)
from .core_logic import LedgerPolicy
from .models import (
    GUEST_USER,
    AuditLog,
    BankAccount,
    BankTransaction,
    Booking,
    Customer,
    Expense,
    Invoice,
    LineItem,
    Shipment,
    SystemUser,
    Transaction,
    UserProfile,
    Vehicle,
    Vendor,
)
from .store import LedgerStore


CONFIG_FILE_NAME = "config.ini"

Record = Mapping[str, Any]


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    company_name: str
    schema_version: str
    default_user_id: str
    company_tax_id: str = ""
    company_address: str = ""
    audit_booking_invoicing: bool = False


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file for the current session.

    An explicit path is returned untouched. Otherwise the search walks up from
    the current working directory and the first ``config.ini`` found wins.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If no parent directory holds ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` into a ``ConfigParser``.

    Required entries are validated later by :func:`parse_settings`.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion.
    """

    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into :class:`ConfigSettings`.

    ``[System]`` and ``[Defaults]`` are mandatory; ``[Policy]`` and the
    company tax id and address are optional. A relative ``DataFile`` is
    resolved against ``base_path`` (or the working directory).

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Anchor directory for relative ``DataFile``
            entries.

    Returns:
        ConfigSettings: Immutable settings with a resolved data file path.

    Raises:
        KeyError: If a required section or option is missing.
        ValueError: If ``AuditBookingInvoicing`` is not a boolean.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        company_name = parser.get("System", "CompanyName")
        schema_version = parser.get("System", "SchemaVersion")
        default_user_id = parser.get("Defaults", "DefaultUserId")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    data_file_path = Path(data_file_raw).expanduser()
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        company_name=company_name,
        schema_version=schema_version,
        default_user_id=default_user_id,
        company_tax_id=parser.get("System", "CompanyTaxId", fallback=""),
        company_address=parser.get("System", "CompanyAddress", fallback=""),
        audit_booking_invoicing=parser.getboolean("Policy", "AuditBookingInvoicing", fallback=False),
    )


def load_settings(config_path: Optional[Path] = None) -> ConfigSettings:
    """Find, read, and parse ``config.ini`` in one step."""

    located = Path(find_config_file(config_path)).expanduser().resolve()
    parser = read_config(located)
    return parse_settings(parser, base_path=located.parent)


def ensure_schema_version(settings: ConfigSettings) -> None:
    """Refuse to load a workbook declared for a different schema.

    Raises:
        RuntimeError: If ``settings.schema_version`` differs from
            ``EXPECTED_SCHEMA_VERSION``.
    """

    if settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, settings.schema_version)
        )
    log.debug("Schema version '%s' validated", settings.schema_version)


def build_policy(settings: ConfigSettings) -> LedgerPolicy:
    return LedgerPolicy(audit_booking_invoicing=settings.audit_booking_invoicing)


def open_workbook(data_file: Path) -> Workbook:
    """Open the seed workbook read-only in values mode.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist after expansion.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    return openpyxl.load_workbook(data_file, read_only=True, data_only=True)


def save_workbook(workbook: Workbook, destination: Path) -> Path:
    """Persist ``workbook`` at ``destination``, creating parent folders.

    Returns:
        Path: The resolved destination.
    """

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)
    return dest


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


def _blank(raw: object) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def to_text(raw: object) -> Optional[str]:
    if _blank(raw):
        return None
    return str(raw).strip()


def to_decimal(raw: object, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Convert a numeric cell to ``Decimal`` without passing through binary floats.

    Raises:
        ValueError: If the cell holds text that is not a number.
    """

    if _blank(raw):
        return default
    try:
        return Decimal(str(raw).strip().replace(",", ""))
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {raw!r}") from exc


def to_date(raw: object) -> Optional[date]:
    """Accept Excel dates, datetimes, or ISO ``YYYY-MM-DD`` strings."""

    if _blank(raw):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw).strip()[:10])


def to_datetime(raw: object) -> Optional[datetime]:
    if _blank(raw):
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    return datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))


def to_bool(raw: object) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"true", "yes", "y", "1"}
    return bool(raw)


def to_int(raw: object, default: int) -> int:
    value = to_decimal(raw)
    return int(value) if value is not None else default


def _require(record: Record, column: str) -> str:
    value = to_text(record.get(column))
    if value is None:
        raise KeyError(f"Missing required column value: {column}")
    return value


def _require_date(record: Record, column: str) -> date:
    value = to_date(record.get(column))
    if value is None:
        raise KeyError(f"Missing required column value: {column}")
    return value


# ---------------------------------------------------------------------------
# Sheet iteration
# ---------------------------------------------------------------------------


def iter_sheet_records(workbook: Workbook, sheet: SheetName) -> Iterator[Dict[str, Any]]:
    """Yield each populated row of ``sheet`` as a header-keyed mapping.

    Rows are matched to headers by name so column order in the seed file is
    free. Fully empty rows are skipped. A sheet missing from the workbook is
    reported and treated as empty.

    Args:
        workbook (Workbook): Seed workbook.
        sheet (SheetName): Sheet to read.

    Yields:
        dict[str, Any]: Raw cell values keyed by header title.
    """

    if sheet.value not in workbook.sheetnames:
        log.warning("Seed workbook has no '%s' sheet", sheet.value)
        return

    worksheet = workbook[sheet.value]
    header_row = next(worksheet.iter_rows(min_row=1, max_row=1, values_only=True), ())
    headers = [str(cell).strip() if cell is not None else "" for cell in header_row]
    for raw in worksheet.iter_rows(min_row=2, values_only=True):
        # skip fully empty rows
        if any(not _blank(cell) for cell in raw):
            yield {header: value for header, value in zip(headers, raw) if header}


def deserialize_customer(record: Record) -> Customer:
    return Customer(
        customer_id=_require(record, "CustomerID"),
        name=_require(record, "Name"),
        email=to_text(record.get("Email")) or "",
        tax_id=to_text(record.get("TaxID")) or "",
        credit_limit=to_decimal(record.get("CreditLimit"), Decimal("0")),
        status=to_text(record.get("Status")) or "active",
        joined_date=to_date(record.get("JoinedDate")),
        address=to_text(record.get("Address")),
        contact_person=to_text(record.get("ContactPerson")),
        phone=to_text(record.get("Phone")),
        payment_terms=to_int(record.get("PaymentTerms"), 30),
        tds_rate=to_decimal(record.get("TdsRate"), Decimal("2.0")),
        relationship_manager=to_text(record.get("RelationshipManager")),
    )


def deserialize_line_item(record: Record) -> LineItem:
    return LineItem(
        line_id=_require(record, "LineID"),
        description=to_text(record.get("Description")) or "",
        quantity=to_decimal(record.get("Quantity"), Decimal("1")),
        unit_price=to_decimal(record.get("UnitPrice"), Decimal("0")),
        total=to_decimal(record.get("Total"), Decimal("0")),
        tax_rate=to_decimal(record.get("TaxRate")),
    )


def deserialize_invoice(record: Record, line_items: Iterable[LineItem] = ()) -> Invoice:
    """Convert an ``Invoices`` row into an :class:`Invoice`.

    ``PaidAmount`` stays ``None`` when the cell is blank so that the view
    layer can tell an unrecorded figure from a recorded zero.

    Raises:
        KeyError: If an identifying column or a date is missing.
        ValueError: If a status, number, or date cannot be parsed.
    """

    return Invoice(
        invoice_id=_require(record, "InvoiceID"),
        customer_id=_require(record, "CustomerID"),
        customer_name=to_text(record.get("CustomerName")) or "",
        invoice_number=_require(record, "InvoiceNumber"),
        status=InvoiceStatus(to_text(record.get("Status")) or InvoiceStatus.SENT.value),
        date=_require_date(record, "Date"),
        due_date=_require_date(record, "DueDate"),
        amount=to_decimal(record.get("Amount"), Decimal("0")),
        paid_amount=to_decimal(record.get("PaidAmount")),
        adjustments=to_decimal(record.get("Adjustments"), Decimal("0")),
        tax_amount=to_decimal(record.get("TaxAmount")),
        discount=to_decimal(record.get("Discount")),
        line_items=tuple(line_items),
        last_reminder_sent=to_datetime(record.get("LastReminderSent")),
        notes=to_text(record.get("Notes")),
    )


def deserialize_booking(record: Record) -> Booking:
    return Booking(
        booking_id=_require(record, "BookingID"),
        customer_id=_require(record, "CustomerID"),
        customer_name=to_text(record.get("CustomerName")) or "",
        origin=to_text(record.get("Origin")) or "",
        destination=to_text(record.get("Destination")) or "",
        distance=to_decimal(record.get("Distance"), Decimal("0")),
        vehicle_id=to_text(record.get("VehicleID")) or "",
        driver_name=to_text(record.get("DriverName")) or "",
        booked_date=_require_date(record, "BookedDate"),
        completed_date=to_date(record.get("CompletedDate")) or _require_date(record, "BookedDate"),
        amount=to_decimal(record.get("Amount"), Decimal("0")),
        expense=to_decimal(record.get("Expense"), Decimal("0")),
        status=BookingStatus(to_text(record.get("Status")) or BookingStatus.PENDING.value),
        pod_verified=to_bool(record.get("PodVerified")),
        driver_phone=to_text(record.get("DriverPhone")),
        pod_url=to_text(record.get("PodUrl")),
        vendor_id=to_text(record.get("VendorID")),
        vendor_name=to_text(record.get("VendorName")),
    )


def deserialize_vehicle(record: Record) -> Vehicle:
    return Vehicle(
        vehicle_id=_require(record, "VehicleID"),
        reg_number=to_text(record.get("RegNumber")) or "",
        model=to_text(record.get("Model")) or "",
        status=VehicleStatus(to_text(record.get("Status")) or VehicleStatus.ACTIVE.value),
        mileage=to_decimal(record.get("Mileage"), Decimal("0")),
        last_maintenance=to_date(record.get("LastMaintenance")),
    )


def deserialize_expense(record: Record) -> Expense:
    return Expense(
        expense_id=_require(record, "ExpenseID"),
        vehicle_id=to_text(record.get("VehicleID")) or "",
        category=ExpenseCategory(_require(record, "Category")),
        amount=to_decimal(record.get("Amount"), Decimal("0")),
        date=_require_date(record, "Date"),
        vendor=to_text(record.get("Vendor")) or "",
        status=ExpenseStatus(to_text(record.get("Status")) or ExpenseStatus.APPROVED.value),
        vendor_id=to_text(record.get("VendorID")),
        booking_id=to_text(record.get("BookingID")),
        entry_type=EntryType(to_text(record.get("EntryType")) or EntryType.MANUAL.value),
        cost_per_km=to_decimal(record.get("CostPerKm")),
        odometer=to_decimal(record.get("Odometer")),
        receipt_url=to_text(record.get("ReceiptUrl")),
    )


def deserialize_transaction(record: Record) -> Transaction:
    return Transaction(
        transaction_id=_require(record, "TransactionID"),
        date=_require_date(record, "Date"),
        amount=to_decimal(record.get("Amount"), Decimal("0")),
        direction=Direction(_require(record, "Direction")),
        description=to_text(record.get("Description")) or "",
        matched=to_bool(record.get("Matched")),
        customer_id=to_text(record.get("CustomerID")),
        vendor_id=to_text(record.get("VendorID")),
        vendor_name=to_text(record.get("VendorName")),
        reference_id=to_text(record.get("ReferenceID")),
        payment_mode=to_text(record.get("PaymentMode")),
        reference_no=to_text(record.get("ReferenceNo")),
        category=to_text(record.get("Category")),
    )


def deserialize_shipment(record: Record) -> Shipment:
    return Shipment(
        shipment_id=_require(record, "ShipmentID"),
        route=to_text(record.get("Route")) or "",
        current_rate=to_decimal(record.get("CurrentRate"), Decimal("0")),
        breakeven_rate=to_decimal(record.get("BreakevenRate"), Decimal("0")),
        status=to_text(record.get("Status")) or "active",
    )


def deserialize_vendor(record: Record) -> Vendor:
    return Vendor(
        vendor_id=_require(record, "VendorID"),
        name=_require(record, "Name"),
        category=to_text(record.get("Category")) or "",
        balance=to_decimal(record.get("Balance"), Decimal("0")),
        payment_terms=to_int(record.get("PaymentTerms"), 30),
        rating=to_int(record.get("Rating"), 3),
        code=to_text(record.get("Code")),
        tax_id=to_text(record.get("TaxID")),
        last_activity=to_datetime(record.get("LastActivity")),
    )


def deserialize_bank_account(record: Record) -> BankAccount:
    return BankAccount(
        account_id=_require(record, "AccountID"),
        bank_name=to_text(record.get("BankName")) or "",
        account_number=to_text(record.get("AccountNumber")) or "",
        balance=to_decimal(record.get("Balance"), Decimal("0")),
        last_synced=to_datetime(record.get("LastSynced")),
    )


def deserialize_bank_transaction(record: Record) -> BankTransaction:
    return BankTransaction(
        bank_transaction_id=_require(record, "BankTransactionID"),
        bank_account_id=to_text(record.get("BankAccountID")) or "",
        date=_require_date(record, "Date"),
        description=to_text(record.get("Description")) or "",
        amount=to_decimal(record.get("Amount"), Decimal("0")),
        direction=Direction(_require(record, "Direction")),
        status=MatchStatus(to_text(record.get("Status")) or MatchStatus.UNMATCHED.value),
    )


def deserialize_user(record: Record) -> SystemUser:
    return SystemUser(
        user_id=_require(record, "UserID"),
        name=_require(record, "Name"),
        email=to_text(record.get("Email")) or "",
        role=UserRole(_require(record, "Role")),
        status=to_text(record.get("Status")) or "Active",
    )


def iter_line_items(workbook: Workbook) -> Iterator[tuple[str, LineItem]]:
    """Yield ``(invoice_id, line_item)`` pairs from the ``LineItems`` sheet."""

    for record in iter_sheet_records(workbook, SheetName.LINE_ITEMS):
        yield _require(record, "InvoiceID"), deserialize_line_item(record)


def iter_invoices(workbook: Workbook) -> Iterator[Invoice]:
    items: Dict[str, List[LineItem]] = {}
    for invoice_id, item in iter_line_items(workbook):
        items.setdefault(invoice_id, []).append(item)
    for record in iter_sheet_records(workbook, SheetName.INVOICES):
        invoice_id = _require(record, "InvoiceID")
        yield deserialize_invoice(record, items.get(invoice_id, ()))


def iter_customers(workbook: Workbook) -> Iterator[Customer]:
    for record in iter_sheet_records(workbook, SheetName.CUSTOMERS):
        yield deserialize_customer(record)


def iter_bookings(workbook: Workbook) -> Iterator[Booking]:
    for record in iter_sheet_records(workbook, SheetName.BOOKINGS):
        yield deserialize_booking(record)


def iter_vehicles(workbook: Workbook) -> Iterator[Vehicle]:
    for record in iter_sheet_records(workbook, SheetName.VEHICLES):
        yield deserialize_vehicle(record)


def iter_expenses(workbook: Workbook) -> Iterator[Expense]:
    for record in iter_sheet_records(workbook, SheetName.EXPENSES):
        yield deserialize_expense(record)


def iter_transactions(workbook: Workbook) -> Iterator[Transaction]:
    for record in iter_sheet_records(workbook, SheetName.TRANSACTIONS):
        yield deserialize_transaction(record)


def iter_shipments(workbook: Workbook) -> Iterator[Shipment]:
    for record in iter_sheet_records(workbook, SheetName.SHIPMENTS):
        yield deserialize_shipment(record)


def iter_vendors(workbook: Workbook) -> Iterator[Vendor]:
    for record in iter_sheet_records(workbook, SheetName.VENDORS):
        yield deserialize_vendor(record)


def iter_bank_accounts(workbook: Workbook) -> Iterator[BankAccount]:
    for record in iter_sheet_records(workbook, SheetName.BANK_ACCOUNTS):
        yield deserialize_bank_account(record)


def iter_bank_feed(workbook: Workbook) -> Iterator[BankTransaction]:
    for record in iter_sheet_records(workbook, SheetName.BANK_FEED):
        yield deserialize_bank_transaction(record)


def iter_users(workbook: Workbook) -> Iterator[SystemUser]:
    for record in iter_sheet_records(workbook, SheetName.USERS):
        yield deserialize_user(record)


# ---------------------------------------------------------------------------
# Bulk load
# ---------------------------------------------------------------------------


def resolve_current_user(users: Iterable[SystemUser], default_user_id: str) -> SystemUser:
    """Pick the configured default user, else the first seeded user, else a guest."""

    users = list(users)
    for user in users:
        if user.user_id == default_user_id:
            return user
    if users:
        log.warning("Default user '%s' not found; acting as '%s'", default_user_id, users[0].user_id)
        return users[0]
    log.warning("Seed workbook defines no users; acting as guest")
    return GUEST_USER


def load_state_fragment(
    workbook: Workbook,
    settings: ConfigSettings,
    *,
    loaded_at: Optional[datetime] = None,
) -> SetData:
    """Read every seed sheet and bundle the result into one ``SetData`` action.

    Invoices and transactions are ordered newest-first to match the ledger's
    list invariant. The history starts with a ``System Init`` entry
    attributed to the session user.

    Args:
        workbook (Workbook): Seed workbook opened via :func:`open_workbook`.
        settings (ConfigSettings): Settings carrying the default user and the
            company profile.
        loaded_at (datetime | None): Load time; defaults to UTC now.

    Returns:
        SetData: Bulk-load action ready for dispatch.

    Raises:
        KeyError: If a row lacks an identifying column.
        ValueError: If a cell holds an unparseable status, number, or date.
    """

    loaded_at = loaded_at if loaded_at is not None else datetime.now(UTC)
    users = tuple(iter_users(workbook))
    current_user = resolve_current_user(users, settings.default_user_id)
    invoices = sorted(iter_invoices(workbook), key=lambda invoice: invoice.date, reverse=True)
    transactions = sorted(iter_transactions(workbook), key=lambda transaction: transaction.date, reverse=True)

    init_entry = AuditLog(
        log_id="log_init",
        timestamp=loaded_at,
        user_id=current_user.user_id,
        user_name=current_user.name,
        user_role=current_user.role,
        action="System Init",
        entity_type=EntityType.SYSTEM,
        entity_id="sys",
        details="System initialized with seed data",
    )

    fragment = SetData(
        current_user=current_user,
        customers=tuple(iter_customers(workbook)),
        invoices=tuple(invoices),
        bookings=tuple(iter_bookings(workbook)),
        vehicles=tuple(iter_vehicles(workbook)),
        expenses=tuple(iter_expenses(workbook)),
        transactions=tuple(transactions),
        shipments=tuple(iter_shipments(workbook)),
        vendors=tuple(iter_vendors(workbook)),
        bank_accounts=tuple(iter_bank_accounts(workbook)),
        bank_feed=tuple(iter_bank_feed(workbook)),
        users=users,
        user_profile=UserProfile(
            company_name=settings.company_name,
            tax_id=settings.company_tax_id,
            address=settings.company_address,
        ),
        audit_logs=(init_entry,),
        issued_at=loaded_at,
    )
    log.info(
        "Loaded seed data: %d customers, %d invoices, %d bookings, %d vendors, %d transactions",
        len(fragment.customers),
        len(fragment.invoices),
        len(fragment.bookings),
        len(fragment.vendors),
        len(fragment.transactions),
    )
    return fragment


def bootstrap_store(config_path: Optional[Path] = None, **store_options: Any) -> LedgerStore:
    """Build a ready-to-use store from ``config.ini`` and its seed workbook.

    Args:
        config_path (Path | None): Optional override for the configuration
            file; the upward search is used when omitted.
        **store_options: Forwarded to :class:`LedgerStore` (e.g. ``clock``).

    Returns:
        LedgerStore: Store holding the loaded ledger with the loading flag
            cleared.

    Raises:
        FileNotFoundError: If the configuration file or workbook is missing.
        KeyError: When mandatory configuration options are missing.
        RuntimeError: If the declared schema version is unsupported.
    """

    settings = load_settings(config_path)
    ensure_schema_version(settings)
    workbook = open_workbook(settings.data_file)
    try:
        fragment = load_state_fragment(workbook, settings)
    finally:
        workbook.close()
    store = LedgerStore(policy=build_policy(settings), **store_options)
    store.dispatch(fragment)
    store.dispatch(SetLoading(is_loading=False))
    log.info("Ledger session ready from '%s'", settings.data_file)
    return store


__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigSettings",
    "find_config_file",
    "read_config",
    "parse_settings",
    "load_settings",
    "ensure_schema_version",
    "build_policy",
    "open_workbook",
    "save_workbook",
    "to_text",
    "to_decimal",
    "to_date",
    "to_datetime",
    "to_bool",
    "to_int",
    "iter_sheet_records",
    "deserialize_customer",
    "deserialize_line_item",
    "deserialize_invoice",
    "deserialize_booking",
    "deserialize_vehicle",
    "deserialize_expense",
    "deserialize_transaction",
    "deserialize_shipment",
    "deserialize_vendor",
    "deserialize_bank_account",
    "deserialize_bank_transaction",
    "deserialize_user",
    "iter_line_items",
    "iter_invoices",
    "iter_customers",
    "iter_bookings",
    "iter_vehicles",
    "iter_expenses",
    "iter_transactions",
    "iter_shipments",
    "iter_vendors",
    "iter_bank_accounts",
    "iter_bank_feed",
    "iter_users",
    "resolve_current_user",
    "load_state_fragment",
    "bootstrap_store",
]
