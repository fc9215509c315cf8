"""Shared pytest fixtures and utilities for fleet ledger tests."""

from __future__ import annotations

import argparse
import sys
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, Sequence

import openpyxl
import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from fleet_ledger import cli, constants, data_manager  # noqa: E402
from fleet_ledger.constants import (  # noqa: E402
    SHEET_COLUMNS,
    BookingStatus,
    Direction,
    ExpenseCategory,
    InvoiceStatus,
    UserRole,
    VehicleStatus,
)
from fleet_ledger.models import (  # noqa: E402
    Booking,
    Customer,
    Expense,
    Invoice,
    LedgerState,
    SystemUser,
    Transaction,
    Vehicle,
    Vendor,
)
from fleet_ledger.setup_excel import create_master_workbook  # noqa: E402

DEFAULT_SCHEMA_VERSION = constants.EXPECTED_SCHEMA_VERSION
DEFAULT_USER_ID = "u1"
FIXED_NOW = datetime(2024, 3, 15, 10, 30, 0, tzinfo=UTC)
TODAY = FIXED_NOW.date()

_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "CompanyName = {company_name}\n"
    "SchemaVersion = {schema_version}\n\n"
    "[Defaults]\n"
    "DefaultUserId = {default_user_id}\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    workbook_path: Path
    default_user_id: str
    schema_version: str
    company_name: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def make_invoice(
    invoice_id: str = "inv_1",
    *,
    amount: str = "10000",
    paid: str | None = "0",
    adjustments: str = "0",
    status: InvoiceStatus = InvoiceStatus.SENT,
    issued: date = TODAY - timedelta(days=31),
    due: date = TODAY - timedelta(days=1),
    customer_id: str = "cust_1",
    customer_name: str = "Acme Freight",
    number: str | None = None,
) -> Invoice:
    return Invoice(
        invoice_id=invoice_id,
        customer_id=customer_id,
        customer_name=customer_name,
        invoice_number=number or f"INV-{invoice_id.split('_')[-1].zfill(3)}",
        status=status,
        date=issued,
        due_date=due,
        amount=Decimal(amount),
        paid_amount=Decimal(paid) if paid is not None else None,
        adjustments=Decimal(adjustments),
    )


def make_customer(
    customer_id: str = "cust_1",
    *,
    credit_limit: str = "50000",
    payment_terms: int = 30,
) -> Customer:
    return Customer(
        customer_id=customer_id,
        name="Acme Freight",
        email="ap@acme.test",
        tax_id="27AAACA0000A1Z5",
        credit_limit=Decimal(credit_limit),
        payment_terms=payment_terms,
    )


def make_vendor(vendor_id: str = "vnd_1", *, balance: str = "5000", name: str = "Swift Carriers") -> Vendor:
    return Vendor(vendor_id=vendor_id, name=name, category="Transporter", balance=Decimal(balance))


def make_booking(
    booking_id: str = "BK-1",
    *,
    expense: str = "5000",
    amount: str = "8000",
    vendor_id: str | None = "vnd_1",
    vehicle_id: str = "veh_1",
    distance: str = "400",
    booked: date = TODAY - timedelta(days=3),
    status: BookingStatus = BookingStatus.PENDING,
) -> Booking:
    return Booking(
        booking_id=booking_id,
        customer_id="cust_1",
        customer_name="Acme Freight",
        origin="Mumbai",
        destination="Pune",
        distance=Decimal(distance),
        vehicle_id=vehicle_id,
        driver_name="Ravi",
        booked_date=booked,
        completed_date=booked + timedelta(days=1),
        amount=Decimal(amount),
        expense=Decimal(expense),
        status=status,
        vendor_id=vendor_id,
        vendor_name="Swift Carriers" if vendor_id else None,
    )


def make_expense(
    expense_id: str = "exp_1",
    *,
    amount: str = "1200",
    category: ExpenseCategory = ExpenseCategory.FUEL,
    vehicle_id: str = "veh_1",
    on: date = TODAY - timedelta(days=2),
    vendor_id: str | None = None,
    booking_id: str | None = None,
) -> Expense:
    return Expense(
        expense_id=expense_id,
        vehicle_id=vehicle_id,
        category=category,
        amount=Decimal(amount),
        date=on,
        vendor="Indian Oil",
        vendor_id=vendor_id,
        booking_id=booking_id,
    )


def make_transaction(
    transaction_id: str,
    *,
    amount: str,
    on: date,
    direction: Direction = Direction.CREDIT,
    description: str = "Partial payment - INV-001",
    customer_id: str | None = "cust_1",
    vendor_id: str | None = None,
    reference_id: str | None = "inv_1",
    category: str | None = None,
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        date=on,
        amount=Decimal(amount),
        direction=direction,
        description=description,
        matched=True,
        customer_id=customer_id,
        vendor_id=vendor_id,
        reference_id=reference_id,
        category=category,
    )


def make_vehicle(vehicle_id: str = "veh_1", reg_number: str = "MH-12-AB-1234") -> Vehicle:
    return Vehicle(
        vehicle_id=vehicle_id,
        reg_number=reg_number,
        model="Tata Prima",
        status=VehicleStatus.ACTIVE,
        mileage=Decimal("120000"),
    )


ADMIN = SystemUser("u1", "John Smith", "john@opt.com", UserRole.ADMIN)
ACCOUNTANT = SystemUser("u4", "Gary Green", "gary@opt.com", UserRole.ACCOUNTANT)


@pytest.fixture
def ledger_state() -> LedgerState:
    """A loaded ledger with one overdue invoice, one vendor, and one trip."""

    return LedgerState(
        current_user=ADMIN,
        customers=(make_customer(),),
        invoices=(make_invoice(),),
        bookings=(make_booking(),),
        vehicles=(make_vehicle(),),
        vendors=(make_vendor(),),
        users=(ADMIN, ACCOUNTANT),
        is_loading=False,
    )


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Store clock frozen at ``FIXED_NOW``."""

    return lambda: FIXED_NOW


# ---------------------------------------------------------------------------
# Workbook and configuration factories
# ---------------------------------------------------------------------------


def populate_sheet(workbook_path: Path, sheet: str, rows: Iterable[Mapping[str, object]]) -> None:
    """Append header-keyed rows to ``sheet`` of an existing seed workbook."""

    workbook = openpyxl.load_workbook(workbook_path)
    worksheet = workbook[sheet]
    columns: Sequence[str] = SHEET_COLUMNS[sheet]
    for row in rows:
        worksheet.append([row.get(column) for column in columns])
    workbook.save(workbook_path)


@pytest.fixture
def workbook_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory that creates an initialized seed workbook in a temp folder."""

    def _create_workbook(
        *,
        subdir: str | None = None,
        default_user_id: str = DEFAULT_USER_ID,
        filename: str = "ledger_seed.xlsx",
    ) -> Path:
        base_dir = tmp_path if subdir is None else tmp_path / subdir
        base_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = base_dir / filename
        create_master_workbook(workbook_path, default_user_id=default_user_id, overwrite=True)
        return workbook_path

    return _create_workbook


@pytest.fixture
def config_factory(tmp_path: Path, workbook_factory: Callable[..., Path]) -> Callable[..., ConfigBundle]:
    """Provide a callable that creates config/workbook bundles on demand."""

    def _create_config(
        *,
        make_relative: bool = False,
        company_name: str = "Test Logistics",
        schema_version: str = DEFAULT_SCHEMA_VERSION,
        default_user_id: str = DEFAULT_USER_ID,
        extra: str = "",
    ) -> ConfigBundle:
        bundle_id = uuid.uuid4().hex
        bundle_dir = tmp_path / f"bundle_{bundle_id}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = workbook_factory(
            subdir=f"bundle_{bundle_id}",
            default_user_id=default_user_id,
        )
        data_file_entry = workbook_path.name if make_relative else str(workbook_path)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                data_file=data_file_entry,
                company_name=company_name,
                schema_version=schema_version,
                default_user_id=default_user_id,
            )
            + extra
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            workbook_path=workbook_path,
            default_user_id=default_user_id,
            schema_version=schema_version,
            company_name=company_name,
        )

    return _create_config


@pytest.fixture
def seeded_bundle(config_factory: Callable[..., ConfigBundle]) -> ConfigBundle:
    """A config bundle whose workbook holds a small, consistent data set."""

    bundle = config_factory()
    path = bundle.workbook_path
    populate_sheet(
        path,
        "Users",
        [{"UserID": "u4", "Name": "Gary Green", "Email": "gary@opt.com", "Role": "Accountant", "Status": "Active"}],
    )
    populate_sheet(
        path,
        "Customers",
        [{"CustomerID": "cust_1", "Name": "Acme Freight", "Email": "ap@acme.test", "CreditLimit": 50000}],
    )
    populate_sheet(
        path,
        "Invoices",
        [
            {
                "InvoiceID": "inv_1",
                "CustomerID": "cust_1",
                "CustomerName": "Acme Freight",
                "InvoiceNumber": "INV-001",
                "Status": "sent",
                "Date": "2024-01-10",
                "DueDate": "2024-02-09",
                "Amount": 10000,
                "PaidAmount": 0,
                "Adjustments": 0,
            },
            {
                "InvoiceID": "inv_2",
                "CustomerID": "cust_1",
                "CustomerName": "Acme Freight",
                "InvoiceNumber": "INV-002",
                "Status": "sent",
                "Date": datetime(2024, 2, 20),
                "DueDate": datetime(2024, 3, 21),
                "Amount": 20000,
                "PaidAmount": None,
                "Adjustments": None,
            },
        ],
    )
    populate_sheet(
        path,
        "LineItems",
        [
            {
                "LineID": "li_1",
                "InvoiceID": "inv_1",
                "Description": "Mumbai-Pune FTL",
                "Quantity": 1,
                "UnitPrice": 10000,
                "Total": 10000,
            }
        ],
    )
    populate_sheet(
        path,
        "Vendors",
        [{"VendorID": "vnd_1", "Name": "Swift Carriers", "Category": "Transporter", "Balance": 5000}],
    )
    populate_sheet(
        path,
        "Vehicles",
        [{"VehicleID": "veh_1", "RegNumber": "MH-12-AB-1234", "Model": "Tata Prima", "Status": "active", "Mileage": 120000}],
    )
    populate_sheet(
        path,
        "Bookings",
        [
            {
                "BookingID": "BK-1",
                "CustomerID": "cust_1",
                "CustomerName": "Acme Freight",
                "Origin": "Mumbai",
                "Destination": "Pune",
                "Distance": 150,
                "VehicleID": "veh_1",
                "DriverName": "Ravi",
                "BookedDate": "2024-03-01",
                "CompletedDate": "2024-03-02",
                "Amount": 8000,
                "Expense": 5000,
                "Status": "pending",
                "PodVerified": "yes",
                "VendorID": "vnd_1",
                "VendorName": "Swift Carriers",
            }
        ],
    )
    populate_sheet(
        path,
        "Expenses",
        [
            {
                "ExpenseID": "exp_big",
                "VehicleID": "veh_1",
                "Category": "Maintenance",
                "Amount": 75000,
                "Date": "2024-03-05",
                "Vendor": "Tata Service",
                "Status": "pending_approval",
            }
        ],
    )
    populate_sheet(
        path,
        "Transactions",
        [
            {
                "TransactionID": "tx_seed_1",
                "Date": "2024-01-20",
                "Amount": 1000,
                "Direction": "credit",
                "Description": "Advance payment - INV-001",
                "Matched": True,
                "CustomerID": "cust_1",
                "ReferenceID": "inv_1",
            },
            {
                "TransactionID": "tx_seed_2",
                "Date": "2024-02-25",
                "Amount": 500,
                "Direction": "credit",
                "Description": "Discount - INV-002",
                "Matched": True,
                "CustomerID": "cust_1",
                "ReferenceID": "inv_2",
            },
        ],
    )
    populate_sheet(
        path,
        "BankFeed",
        [
            {
                "BankTransactionID": "bt_1",
                "BankAccountID": "acc_1",
                "Date": "2024-03-10",
                "Description": "NEFT ACME",
                "Amount": 9800,
                "Direction": "credit",
                "Status": "unmatched",
            }
        ],
    )
    return bundle


# ---------------------------------------------------------------------------
# CLI layer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_parser() -> argparse.ArgumentParser:
    """Return a fresh CLI parser instance for tests."""

    return argparse.ArgumentParser(prog="ledger-cli", description="Ledger CLI")


@pytest.fixture
def subparsers_action(
    cli_parser: argparse.ArgumentParser,
) -> argparse._SubParsersAction[argparse.ArgumentParser]:
    """Return the subparser action used to register commands."""

    return cli_parser.add_subparsers(dest="command")


@pytest.fixture
def command_spec_iterable() -> list[cli.CommandSpec]:
    """Provide a list of command specs for indexing tests."""

    def _make_spec(name: str) -> cli.CommandSpec:
        return cli.CommandSpec(
            name,
            f"{name} help",
            lambda subparsers: subparsers.add_parser(name),
            lambda *_: 0,
        )

    return [_make_spec("alpha"), _make_spec("beta"), _make_spec("gamma")]


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    """Provide default configuration settings for loader tests."""

    return data_manager.ConfigSettings(
        data_file=tmp_path / "ledger_seed.xlsx",
        company_name="Test Logistics",
        schema_version=constants.EXPECTED_SCHEMA_VERSION,
        default_user_id=DEFAULT_USER_ID,
    )
