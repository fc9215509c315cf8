"""Command-line entry points for the fleet ledger.

All orchestration in this module is limited to argparse wiring, translating
command-line arguments into ledger actions, and printing derived views. The
ledger lives in process memory, so every invocation loads the seed workbook
into a fresh :class:`~fleet_ledger.store.LedgerStore`; write commands report
the notifications and audit entries they produced for that session.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence

from . import core_logic, data_manager, derivations, log
from .actions import (
    Action,
    AddInvoice,
    AddNotification,
    ApproveExpense,
    CompleteTrip,
    DeleteInvoice,
    MarkBookingsInvoiced,
    RecordPayment,
    RecordVendorPayment,
    SendReminders,
    SwitchUser,
    VENDOR_PAYMENT_CATEGORIES,
    validate_action,
    validate_payment_against_balance,
)
from .audit import format_inr
from .constants import (
    INVOICE_DUE_DAYS,
    BookingStatus,
    Direction,
    DisplayStatus,
    NotificationType,
    PaymentCategory,
    UserRole,
)
from .errors import LedgerError, ValidationError
from .models import LedgerState, LineItem
from .store import LedgerStore


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[LedgerStore, argparse.Namespace], int]


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledger-cli",
        description="Command-line tools for the logistics finance ledger.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (searched upwards from the working directory by default).",
    )
    parser.add_argument(
        "--role",
        choices=[member.value for member in UserRole],
        default=None,
        help="Act as a user holding this role instead of the configured default user.",
    )
    return parser


def configure_subcommands(parser: argparse.ArgumentParser) -> Mapping[str, CommandSpec]:
    """Wire all CLI sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values()])


def _simple_spec(
    name: str,
    help_text: str,
    arguments: Callable[[argparse.ArgumentParser], None],
    execute: Callable[[LedgerStore, argparse.Namespace], int],
) -> CommandSpec:
    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        arguments(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=execute)


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare commands that dispatch actions against the session ledger."""
    specs = {
        "pay-invoice": register_pay_invoice_command(subparsers),
        "pay-vendor": register_pay_vendor_command(subparsers),
        "create-invoice": register_create_invoice_command(subparsers),
        "complete-trip": _simple_spec(
            "complete-trip",
            "Post a completed trip's freight charge to the vendor ledger.",
            lambda parser: parser.add_argument("--booking-id", required=True),
            run_complete_trip,
        ),
        "approve-expense": _simple_spec(
            "approve-expense",
            "Approve a high-value expense awaiting approval.",
            lambda parser: parser.add_argument("--expense-id", required=True),
            run_approve_expense,
        ),
        "delete-invoice": _simple_spec(
            "delete-invoice",
            "Delete an invoice (not permitted for accountants).",
            lambda parser: parser.add_argument("--invoice-id", required=True),
            run_delete_invoice,
        ),
        "send-reminders": _simple_spec(
            "send-reminders",
            "Send payment reminders for one or more invoices.",
            lambda parser: parser.add_argument("--invoice-id", dest="invoice_ids", action="append", required=True),
            run_send_reminders,
        ),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only commands that print derived views."""

    def invoices_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--customer-id", default=None)
        parser.add_argument(
            "--status",
            choices=[member.value for member in DisplayStatus],
            action="append",
            default=None,
            help="Only show invoices with this display status (repeatable).",
        )

    def customer_ledger_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--customer-id", default=None)
        parser.add_argument("--search", default=None)

    def exposure_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--customer-id", required=True)
        parser.add_argument("--proposed-amount", default="0")

    specs = {
        "invoices": _simple_spec(
            "invoices",
            "List invoices with derived balances and display status.",
            invoices_arguments,
            run_invoices_report,
        ),
        "customer-ledger": _simple_spec(
            "customer-ledger",
            "Display the customer ledger with running balances.",
            customer_ledger_arguments,
            run_customer_ledger_report,
        ),
        "vendor-ledger": _simple_spec(
            "vendor-ledger",
            "Display the vendor payable ledger with running balances.",
            lambda parser: parser.add_argument("--vendor-id", default=None),
            run_vendor_ledger_report,
        ),
        "exposure": _simple_spec(
            "exposure",
            "Assess a customer's credit exposure and DSO.",
            exposure_arguments,
            run_exposure_report,
        ),
        "aging": _simple_spec(
            "aging",
            "Display receivables aging buckets.",
            lambda parser: None,
            run_aging_report,
        ),
        "fleet": _simple_spec(
            "fleet",
            "Display per-vehicle profit and loss for a month.",
            lambda parser: parser.add_argument("--month", required=True, help="Period as YYYY-MM."),
            run_fleet_report,
        ),
        "audit": _simple_spec(
            "audit",
            "Display the most recent audit entries.",
            lambda parser: parser.add_argument("--limit", type=int, default=20),
            run_audit_report,
        ),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_pay_invoice_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``pay-invoice``."""
    name = "pay-invoice"
    help_text = "Record a payment, adjustment, or reversal against an invoice."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--invoice-id", required=True)
        parser.add_argument("--amount", required=True)
        parser.add_argument(
            "--category",
            choices=[member.value for member in PaymentCategory],
            default=PaymentCategory.FULL_PAYMENT.value,
        )
        parser.add_argument(
            "--direction",
            choices=[member.value for member in Direction],
            default=Direction.CREDIT.value,
        )
        parser.add_argument("--date", dest="entry_date", default=None, help="Entry date as YYYY-MM-DD.")
        parser.add_argument("--reference", default="")
        parser.add_argument("--debit-note-no", default=None)
        parser.add_argument("--auto-tds", action="store_true", help="Treat the amount as the net 98%% bank receipt.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_pay_invoice)


def register_pay_vendor_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``pay-vendor``."""
    name = "pay-vendor"
    help_text = "Record the same payment to one or more vendors."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--vendor-id", dest="vendor_ids", action="append", required=True)
        parser.add_argument("--amount", required=True)
        parser.add_argument("--category", choices=VENDOR_PAYMENT_CATEGORIES, default="Payment")
        parser.add_argument("--reference", default="")
        parser.add_argument("--booking-id", default=None)
        parser.add_argument("--date", dest="entry_date", default=None, help="Entry date as YYYY-MM-DD.")
        parser.add_argument("--auto-tds", action="store_true", help="Deduct 2%% TDS on top of the bank payment.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_pay_vendor)


def register_create_invoice_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``create-invoice``."""
    name = "create-invoice"
    help_text = "Bill pending trips (or a single manual line) as a new invoice."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--booking-id", dest="booking_ids", action="append", default=None)
        parser.add_argument("--customer-id", default=None)
        parser.add_argument("--amount", default=None, help="Unit price of a manual line when no trip is billed.")
        parser.add_argument("--description", default="Logistics Services")
        parser.add_argument("--discount", default="0")
        parser.add_argument("--invoice-number", default=None)
        parser.add_argument("--due-days", type=int, default=INVOICE_DUE_DAYS)
        parser.add_argument("--date", dest="entry_date", default=None, help="Invoice date as YYYY-MM-DD.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_create_invoice)


def load_session(config_path: Optional[Path] = None, role: Optional[str] = None) -> LedgerStore:
    """Load the seed workbook into a store and optionally switch the acting role."""
    store = data_manager.bootstrap_store(config_path)
    if role is not None:
        store.dispatch(SwitchUser(role=UserRole(role)))
    return store


def dispatch_command(
    store: LedgerStore,
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(store, args)


def build_command_table(specs: Iterable[CommandSpec]) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


# ---------------------------------------------------------------------------
# Argument translation
# ---------------------------------------------------------------------------


def parse_amount(raw: str) -> Decimal:
    try:
        amount = Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {raw}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {raw}")
    return amount


def parse_entry_date(raw: Optional[str]) -> date:
    if raw is None:
        return datetime.now(UTC).date()
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid date (expected YYYY-MM-DD): {raw}") from exc


def translate_pay_invoice(args: argparse.Namespace) -> RecordPayment:
    """Translate CLI args into a ``RecordPayment`` action."""
    return RecordPayment(
        invoice_id=args.invoice_id,
        date=parse_entry_date(args.entry_date),
        reference=args.reference,
        amount=parse_amount(args.amount),
        direction=Direction(args.direction),
        category=args.category,
        debit_note_no=args.debit_note_no,
        auto_tds=args.auto_tds,
    )


def translate_pay_vendor(args: argparse.Namespace) -> RecordVendorPayment:
    """Translate CLI args into a ``RecordVendorPayment`` action."""
    return RecordVendorPayment(
        vendor_ids=tuple(args.vendor_ids),
        date=parse_entry_date(args.entry_date),
        amount=parse_amount(args.amount),
        category=args.category,
        reference=args.reference,
        auto_tds=args.auto_tds,
        booking_id=args.booking_id,
    )


# ---------------------------------------------------------------------------
# Write commands
# ---------------------------------------------------------------------------


def apply_action(store: LedgerStore, action: Action) -> int:
    """Validate, dispatch, and report one action.

    Returns:
        int: ``2`` when the ledger answered with an error notification,
            otherwise ``0``.
    """
    validate_action(action)
    before = store.state
    after = store.dispatch(action)

    seen_notifications = {notification.notification_id for notification in before.notifications}
    fresh_notifications = [
        notification
        for notification in after.notifications
        if notification.notification_id not in seen_notifications
    ]
    seen_logs = {entry.log_id for entry in before.audit_logs}
    fresh_logs = [entry for entry in after.audit_logs if entry.log_id not in seen_logs]

    for notification in fresh_notifications:
        print(f"[{notification.type.value.upper()}] {notification.message}")
    for entry in fresh_logs:
        print(format_audit_line(entry))

    if any(notification.type == NotificationType.ERROR for notification in fresh_notifications):
        return 2
    return 0


def run_pay_invoice(store: LedgerStore, args: argparse.Namespace) -> int:
    action = translate_pay_invoice(args)
    invoice = core_logic.get_invoice(store.state, action.invoice_id)
    validate_action(action)
    validate_payment_against_balance(invoice, action)
    return apply_action(store, action)


def run_pay_vendor(store: LedgerStore, args: argparse.Namespace) -> int:
    action = translate_pay_vendor(args)
    for vendor_id in action.vendor_ids:
        core_logic.get_vendor(store.state, vendor_id)
    return apply_action(store, action)


def generate_invoice_id(when: Optional[datetime] = None) -> str:
    moment = when or datetime.now(UTC)
    return f"inv_{moment:%Y%m%d%H%M%S%f}"


def run_create_invoice(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    bookings = [core_logic.get_booking(state, booking_id) for booking_id in args.booking_ids or ()]
    customer_id = args.customer_id or (bookings[0].customer_id if bookings else None)
    if customer_id is None:
        raise ValidationError("Provide --customer-id or at least one --booking-id")
    customer = core_logic.get_customer(state, customer_id)
    for booking in bookings:
        if booking.customer_id != customer.customer_id:
            raise ValidationError(f"Booking '{booking.booking_id}' belongs to another customer")
        if booking.status != BookingStatus.PENDING:
            raise ValidationError(f"Booking '{booking.booking_id}' is already invoiced")

    if bookings:
        line_items = derivations.booking_line_items(bookings, state.vehicles)
    elif args.amount is None:
        raise ValidationError("Provide --amount for an invoice without trips")
    else:
        unit_price = parse_amount(args.amount)
        line_items = (
            LineItem(
                line_id="li_1",
                description=args.description,
                quantity=Decimal("1"),
                unit_price=unit_price,
                total=unit_price,
            ),
        )

    invoice_number = args.invoice_number or derivations.next_invoice_number(state.invoices)
    if any(invoice.invoice_number == invoice_number for invoice in state.invoices):
        raise ValidationError(f"Invoice number '{invoice_number}' is already in use")

    issued = parse_entry_date(args.entry_date)
    invoice = derivations.compose_invoice(
        customer,
        line_items,
        invoice_id=generate_invoice_id(),
        invoice_number=invoice_number,
        issued=issued,
        discount=parse_amount(args.discount),
        due_in_days=args.due_days,
    )
    assessment = derivations.assess_credit(customer, state.invoices, proposed_amount=invoice.amount, today=issued)
    if assessment.breached:
        print(
            f"[WARNING] Credit limit {format_inr(assessment.credit_limit)} exceeded for "
            f"{customer.name}: projected exposure {format_inr(assessment.exposure + invoice.amount)}"
        )

    exit_code = apply_action(store, AddInvoice(invoice=invoice))
    if exit_code:
        return exit_code
    if bookings:
        apply_action(store, MarkBookingsInvoiced(booking_ids=tuple(booking.booking_id for booking in bookings)))
        message = "Invoice Generated & Bookings Closed"
    else:
        message = "Invoice Draft Created"
    apply_action(store, AddNotification(message=message, type=NotificationType.SUCCESS))
    print(f"{invoice.invoice_number}: {format_inr(invoice.amount)} due {invoice.due_date.isoformat()}")
    return 0


def run_complete_trip(store: LedgerStore, args: argparse.Namespace) -> int:
    core_logic.get_booking(store.state, args.booking_id)
    return apply_action(store, CompleteTrip(booking_id=args.booking_id))


def run_approve_expense(store: LedgerStore, args: argparse.Namespace) -> int:
    core_logic.get_expense(store.state, args.expense_id)
    return apply_action(store, ApproveExpense(expense_id=args.expense_id))


def run_delete_invoice(store: LedgerStore, args: argparse.Namespace) -> int:
    # Existence is checked by the reducer so the role gate answers first.
    return apply_action(store, DeleteInvoice(invoice_id=args.invoice_id))


def run_send_reminders(store: LedgerStore, args: argparse.Namespace) -> int:
    for invoice_id in args.invoice_ids:
        core_logic.get_invoice(store.state, invoice_id)
    return apply_action(store, SendReminders(invoice_ids=tuple(args.invoice_ids)))


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


def format_audit_line(entry) -> str:
    change = ""
    if entry.old_value or entry.new_value:
        change = f" [{entry.old_value or '-'} -> {entry.new_value or '-'}]"
    return (
        f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.user_name} ({entry.user_role.value}) "
        f"{entry.action} {entry.entity_type.value} {entry.entity_id}: {entry.details}{change}"
    )


def _print_table(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> None:
    rendered = [[str(cell) for cell in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in rendered:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]
    print("  ".join(header.ljust(width) for header, width in zip(headers, widths)))
    for row in rendered:
        print("  ".join(cell.ljust(width) for cell, width in zip(row, widths)))


def _today() -> date:
    return datetime.now(UTC).date()


def run_invoices_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    invoices = [
        invoice
        for invoice in state.invoices
        if args.customer_id is None or invoice.customer_id == args.customer_id
    ]
    views = derivations.derive_invoice_views(invoices, today=_today())
    if args.status:
        views = [view for view in views if view.display_status.value in args.status]
    _print_table(
        ("Invoice", "Customer", "Due", "Amount", "Collected", "Balance", "Overdue", "Status"),
        (
            (
                view.invoice.invoice_number,
                view.invoice.customer_name,
                view.invoice.due_date.isoformat(),
                format_inr(view.invoice.amount),
                format_inr(view.collected),
                format_inr(view.balance),
                view.overdue_days,
                view.display_status.value,
            )
            for view in views
        ),
    )
    summary = derivations.summarize_invoices(views)
    print(
        f"\nTotal {format_inr(summary.total)} | Collected {format_inr(summary.collected)} | "
        f"Outstanding {format_inr(summary.balance)} | Overdue {format_inr(summary.overdue)}"
    )
    return 0


def run_customer_ledger_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    rows = derivations.build_customer_ledger(
        state.invoices,
        state.transactions,
        args.customer_id,
        search=args.search,
    )
    _print_table(
        ("Date", "Invoice", "Type", "Particulars", "Debit", "Credit", "Balance", "Short"),
        (
            (
                row.date.isoformat(),
                row.invoice_number,
                row.entry_type.value,
                row.category,
                format_inr(row.debit) if row.debit else "-",
                format_inr(row.credit) if row.credit else "-",
                format_inr(row.balance),
                format_inr(row.short_payment) if row.show_short_payment and row.short_payment else "",
            )
            for row in rows
        ),
    )
    return 0


def run_vendor_ledger_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    if args.vendor_id is not None:
        core_logic.get_vendor(state, args.vendor_id)
    rows = derivations.build_vendor_ledger(state.expenses, state.transactions, args.vendor_id)
    _print_table(
        ("Date", "Vendor", "Trip", "Category", "Mode", "Ref", "Freight", "Paid", "Balance", "Disputed"),
        (
            (
                row.date.isoformat(),
                row.vendor_id,
                row.booking_id or "-",
                row.category,
                row.payment_mode,
                row.reference_no,
                format_inr(row.freight_amount) if row.freight_amount else "-",
                format_inr(row.paid_amount) if row.paid_amount else "-",
                format_inr(row.balance),
                "yes" if row.is_disputed else "",
            )
            for row in rows
        ),
    )
    return 0


def run_exposure_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    customer = core_logic.get_customer(state, args.customer_id)
    assessment = derivations.assess_credit(
        customer,
        state.invoices,
        proposed_amount=parse_amount(args.proposed_amount),
        today=_today(),
    )
    print(f"Customer:        {customer.name} ({customer.customer_id})")
    print(f"Credit limit:    {format_inr(assessment.credit_limit)}")
    print(f"Exposure:        {format_inr(assessment.exposure)}")
    print(f"Remaining limit: {format_inr(assessment.remaining_limit)}")
    print(f"Utilization:     {assessment.utilization_pct}%")
    print(f"DSO:             {assessment.dso} days{' (poor)' if assessment.dso_poor else ''}")
    if assessment.breached:
        print("[WARNING] Credit limit exceeded.")
    return 0


def run_aging_report(store: LedgerStore, args: argparse.Namespace) -> int:
    buckets = derivations.aging_buckets(store.state.invoices, today=_today())
    _print_table(
        ("Bucket", "Invoices", "Amount"),
        ((bucket.label, bucket.count, format_inr(bucket.amount)) for bucket in buckets),
    )
    return 0


def run_fleet_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state = store.state
    results = derivations.fleet_financials(state.vehicles, state.bookings, state.expenses, args.month)
    _print_table(
        ("Vehicle", "Trips", "Revenue", "Km", "Direct", "Indirect", "Net", "Margin %", "Cost/km"),
        (
            (
                result.reg_number,
                result.trip_count,
                format_inr(result.revenue),
                result.total_distance,
                format_inr(result.direct_costs),
                format_inr(result.indirect_costs),
                format_inr(result.net_profit),
                round(result.profit_margin_pct, 1),
                round(result.cost_per_km, 2),
            )
            for result in results
        ),
    )
    return 0


def run_audit_report(store: LedgerStore, args: argparse.Namespace) -> int:
    state: LedgerState = store.state
    for entry in state.audit_logs[: max(args.limit, 0)]:
        print(format_audit_line(entry))
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(error, LedgerError):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    try:
        store = load_session(args.config, args.role)
        return dispatch_command(store, args, command_table)
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
