"""Derived views over the ledger state.

Every function in this module is pure: it reads records and, where a result
depends on the calendar, an explicit ``today`` argument that defaults to the
current UTC date. The reducer uses the same helpers for status re-derivation,
so every consumer computes invoice balances, ledgers, and analytics one way.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from . import log
from .constants import (
    DIRECT_COST_CATEGORIES,
    DISPUTE_CATEGORIES,
    DSO_GRACE_DAYS,
    DSO_LOOKBACK_DAYS,
    GST_RATE,
    INDIRECT_COST_CATEGORIES,
    INVOICE_DUE_DAYS,
    NON_CASH_CATEGORIES,
    PAID_TOLERANCE,
    RECONCILIATION_TOLERANCE,
    SHORT_PAYMENT_TOLERANCE,
    TDS_NET_FACTOR,
    TDS_RATE,
    BookingStatus,
    Direction,
    DisplayStatus,
    EntryType,
    ExpenseCategory,
    InvoiceStatus,
)
from .errors import ValidationError
from .models import (
    BankTransaction,
    Booking,
    Customer,
    Expense,
    Invoice,
    LineItem,
    Transaction,
    Vehicle,
)


ZERO = Decimal("0")


def _resolve_today(candidate: Optional[date]) -> date:
    """Return ``candidate`` or the current UTC calendar date."""

    return candidate if candidate is not None else datetime.now(UTC).date()


def round_currency(value: Decimal) -> Decimal:
    """Round to whole currency units, halves away from zero for positive amounts."""

    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def compute_tds(net_amount: Decimal) -> Decimal:
    """Return the withholding implied by a net receipt or payment.

    The supplied amount is treated as the 98% that actually moved through the
    bank. The gross is reconstructed as ``net / 0.98`` and 2% of it is
    withheld, rounded to whole units: ``round((net / 0.98) * 0.02)``.

    Args:
        net_amount (Decimal): Amount received or paid through the bank.

    Returns:
        Decimal: Tax deducted at source on top of ``net_amount``.
    """

    return round_currency(net_amount / TDS_NET_FACTOR * TDS_RATE)


def preview_tds(net_amount: Decimal) -> Tuple[Decimal, Decimal]:
    """Return ``(tds, gross)`` for a prospective auto-TDS entry."""

    tds = compute_tds(net_amount)
    return tds, net_amount + tds


# ---------------------------------------------------------------------------
# Invoice views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceView:
    """An invoice together with the figures derived from its monetary fields."""

    invoice: Invoice
    paid_amount: Decimal
    balance: Decimal
    overdue_days: int
    display_status: DisplayStatus

    @property
    def adjustments(self) -> Decimal:
        return self.invoice.adjustments

    @property
    def collected(self) -> Decimal:
        return self.paid_amount + self.invoice.adjustments


def _infer_missing_paid_amount(invoice: Invoice) -> Decimal:
    """Guess a paid amount for seed records that never recorded one.

    Only incompletely seeded invoices reach this path. Invoices stored as
    ``paid`` are assumed fully collected; roughly a third of ``sent``
    invoices (picked by a checksum of the identifier) are assumed 40% paid.
    """

    if invoice.status == InvoiceStatus.PAID:
        return invoice.amount
    if invoice.status == InvoiceStatus.SENT:
        checksum = sum(ord(char) for char in invoice.invoice_id)
        if checksum % 3 == 0:
            return (invoice.amount * Decimal("0.4")).to_integral_value(rounding=ROUND_FLOOR)
    return ZERO


def invoice_balance(invoice: Invoice) -> Decimal:
    """Raw open balance from the stored fields; negative when overpaid."""

    paid = invoice.paid_amount if invoice.paid_amount is not None else ZERO
    return invoice.amount - (paid + invoice.adjustments)


def derive_invoice_view(invoice: Invoice, *, today: Optional[date] = None) -> InvoiceView:
    """Derive balance, overdue days, and display status for one invoice.

    Args:
        invoice (Invoice): Stored invoice record.
        today (date | None): Reference date for overdue calculations.

    Returns:
        InvoiceView: ``balance`` floored at zero, ``overdue_days`` positive
            only while money is outstanding past the due date, and the
            display status following the order Paid, Overdue, Partially paid,
            Unpaid.
    """

    today = _resolve_today(today)
    if invoice.paid_amount is not None:
        paid = invoice.paid_amount
    else:
        paid = _infer_missing_paid_amount(invoice)
    adjustments = invoice.adjustments

    balance = max(ZERO, invoice.amount - (paid + adjustments))

    days_past_due = (today - invoice.due_date).days
    overdue_days = days_past_due if balance > 0 and days_past_due > 0 else 0

    if balance <= PAID_TOLERANCE:
        status = DisplayStatus.PAID
    elif overdue_days > 0:
        status = DisplayStatus.OVERDUE
    elif paid > 0 or adjustments > 0:
        status = DisplayStatus.PARTIALLY_PAID
    else:
        status = DisplayStatus.UNPAID

    return InvoiceView(
        invoice=invoice,
        paid_amount=paid,
        balance=balance,
        overdue_days=overdue_days,
        display_status=status,
    )


def derive_invoice_views(invoices: Iterable[Invoice], *, today: Optional[date] = None) -> List[InvoiceView]:
    today = _resolve_today(today)
    return [derive_invoice_view(invoice, today=today) for invoice in invoices]


def derive_persisted_status(invoice: Invoice, balance: Decimal, *, today: date) -> InvoiceStatus:
    """Status written back to the invoice after a payment is recorded.

    ``paid`` within the tolerance, ``sent`` while partially settled, and for
    an untouched (or over-reversed) balance ``overdue`` once the due date has
    passed, ``sent`` otherwise.
    """

    if balance <= PAID_TOLERANCE:
        return InvoiceStatus.PAID
    if balance < invoice.amount:
        return InvoiceStatus.SENT
    if today > invoice.due_date:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.SENT


@dataclass(frozen=True)
class InvoiceSummary:
    total: Decimal
    collected: Decimal
    balance: Decimal
    overdue: Decimal


def summarize_invoices(views: Iterable[InvoiceView]) -> InvoiceSummary:
    """Aggregate a (possibly filtered) list of invoice views."""

    total = collected = balance = overdue = ZERO
    for view in views:
        total += view.invoice.amount
        collected += view.collected
        balance += view.balance
        if view.overdue_days > 0:
            overdue += view.balance
    return InvoiceSummary(total=total, collected=collected, balance=balance, overdue=overdue)


def suggest_payment_amount(invoice: Invoice, *, auto_tds: bool) -> Decimal:
    """Prefill for a full payment: the open balance, or its net 98% under auto TDS."""

    balance = invoice_balance(invoice)
    suggested = (balance * TDS_NET_FACTOR).to_integral_value(rounding=ROUND_FLOOR) if auto_tds else balance
    return suggested if suggested > 0 else ZERO


# ---------------------------------------------------------------------------
# Invoice composition
# ---------------------------------------------------------------------------


def booking_line_items(bookings: Iterable[Booking], vehicles: Iterable[Vehicle] = ()) -> Tuple[LineItem, ...]:
    """One single-quantity line per trip, priced at the booking's billable amount."""

    registrations = {vehicle.vehicle_id: vehicle.reg_number for vehicle in vehicles}
    return tuple(
        LineItem(
            line_id=f"li_{booking.booking_id}",
            description=(
                f"Trip #{booking.booking_id}: {booking.origin} to {booking.destination} "
                f"({registrations.get(booking.vehicle_id, booking.vehicle_id)})"
            ),
            quantity=Decimal("1"),
            unit_price=booking.amount,
            total=booking.amount,
        )
        for booking in bookings
    )


def next_invoice_number(invoices: Iterable[Invoice]) -> str:
    """Next ``INV-NNN`` number after the highest numeric suffix in use."""

    highest = 0
    for invoice in invoices:
        prefix, _, suffix = invoice.invoice_number.partition("-")
        if prefix == "INV" and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"INV-{highest + 1:03d}"


def compose_invoice(
    customer: Customer,
    line_items: Sequence[LineItem],
    *,
    invoice_id: str,
    invoice_number: str,
    issued: date,
    discount: Decimal = ZERO,
    due_in_days: int = INVOICE_DUE_DAYS,
) -> Invoice:
    """Build a sent invoice from line items.

    Each line total is recomputed as ``quantity * unit_price``. A flat 18% GST
    is charged on the subtotal and the discount comes off afterwards, so
    ``amount = subtotal + tax - discount``.

    Args:
        customer (Customer): Billed customer.
        line_items (Sequence[LineItem]): Lines to bill; at least one.
        invoice_id (str): Identifier chosen by the caller.
        invoice_number (str): Human-facing invoice number.
        issued (date): Invoice date; the due date follows ``due_in_days`` later.
        discount (Decimal): Flat discount on the taxed subtotal.
        due_in_days (int): Credit period in days.

    Returns:
        Invoice: New invoice with status ``sent`` and nothing collected.

    Raises:
        ValidationError: If there are no lines, a line has a negative
            quantity or price, or the discount is negative or not finite.
    """

    if not line_items:
        raise ValidationError("An invoice needs at least one line item")
    if not discount.is_finite() or discount < 0:
        raise ValidationError(f"Invalid discount: {discount}")

    priced: List[LineItem] = []
    for item in line_items:
        if not (item.quantity.is_finite() and item.unit_price.is_finite()):
            raise ValidationError(f"Invalid quantity or price on line '{item.line_id}'")
        if item.quantity < 0 or item.unit_price < 0:
            raise ValidationError(f"Negative quantity or price on line '{item.line_id}'")
        priced.append(replace(item, total=item.quantity * item.unit_price))

    subtotal = sum((item.total for item in priced), ZERO)
    tax_amount = (subtotal * GST_RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    amount = subtotal + tax_amount - discount
    log.debug(
        "Composed invoice '%s' for customer '%s': subtotal=%s tax=%s discount=%s",
        invoice_number,
        customer.customer_id,
        subtotal,
        tax_amount,
        discount,
    )
    return Invoice(
        invoice_id=invoice_id,
        customer_id=customer.customer_id,
        customer_name=customer.name,
        invoice_number=invoice_number,
        status=InvoiceStatus.SENT,
        date=issued,
        due_date=issued + timedelta(days=due_in_days),
        amount=amount,
        paid_amount=ZERO,
        tax_amount=tax_amount,
        discount=discount,
        line_items=tuple(priced),
    )


# ---------------------------------------------------------------------------
# Credit analytics
# ---------------------------------------------------------------------------


def derive_customer_exposure(customer: Customer, invoices: Iterable[Invoice]) -> Decimal:
    """Sum the open balances of every invoice that belongs to ``customer``.

    The caller must pass the unfiltered invoice collection; invoices for
    other customers are skipped here so a display filter can never shrink
    the exposure figure.

    Args:
        customer (Customer): Customer whose exposure is computed.
        invoices (Iterable[Invoice]): Invoice collection, typically the whole
            ledger.

    Returns:
        Decimal: Total of ``max(0, amount - paid - adjustments)``.
    """

    exposure = ZERO
    for invoice in invoices:
        if invoice.customer_id != customer.customer_id:
            continue
        exposure += max(ZERO, invoice_balance(invoice))
    return exposure


def derive_dso(
    invoices: Iterable[Invoice],
    current_exposure: Decimal,
    lookback_days: int = DSO_LOOKBACK_DAYS,
    *,
    today: Optional[date] = None,
) -> int:
    """Days sales outstanding over a trailing window.

    ``round(exposure / sales_in_window * lookback_days)``; zero when nothing
    was invoiced inside the window.
    """

    today = _resolve_today(today)
    window_start = today - timedelta(days=lookback_days)
    sales = sum((invoice.amount for invoice in invoices if invoice.date >= window_start), ZERO)
    if sales == 0:
        return 0
    return int(round_currency(current_exposure / sales * lookback_days))


@dataclass(frozen=True)
class CreditAssessment:
    customer_id: str
    credit_limit: Decimal
    exposure: Decimal
    remaining_limit: Decimal
    utilization_pct: Decimal
    breached: bool
    dso: int
    dso_poor: bool


def assess_credit(
    customer: Customer,
    invoices: Sequence[Invoice],
    *,
    proposed_amount: Decimal = ZERO,
    today: Optional[date] = None,
) -> CreditAssessment:
    """Advisory credit check used before building an invoice action.

    The ledger never blocks on a breached limit; the result only informs the
    caller. ``proposed_amount`` lets a caller ask whether a new invoice would
    push the customer over the limit.
    """

    own_invoices = [invoice for invoice in invoices if invoice.customer_id == customer.customer_id]
    exposure = derive_customer_exposure(customer, own_invoices)
    projected = exposure + proposed_amount
    if customer.credit_limit > 0:
        utilization = (projected / customer.credit_limit * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    else:
        utilization = ZERO
    dso = derive_dso(own_invoices, exposure, today=today)
    assessment = CreditAssessment(
        customer_id=customer.customer_id,
        credit_limit=customer.credit_limit,
        exposure=exposure,
        remaining_limit=customer.credit_limit - projected,
        utilization_pct=utilization,
        breached=projected > customer.credit_limit,
        dso=dso,
        dso_poor=dso > customer.payment_terms + DSO_GRACE_DAYS,
    )
    if assessment.breached:
        log.warning(
            "Customer '%s' exposure %s exceeds credit limit %s",
            customer.customer_id,
            projected,
            customer.credit_limit,
        )
    return assessment


@dataclass(frozen=True)
class AgingBucket:
    label: str
    amount: Decimal
    count: int


AGING_RANGES: Tuple[Tuple[str, Optional[int]], ...] = (
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
)


def aging_buckets(invoices: Iterable[Invoice], *, today: Optional[date] = None) -> List[AgingBucket]:
    """Receivables aging over every invoice not stored as paid.

    Invoices are bucketed by days past due; invoices that are not yet due
    fall into the first bucket. Gross amounts are summed.
    """

    today = _resolve_today(today)
    amounts: Dict[str, Decimal] = {label: ZERO for label, _ in AGING_RANGES}
    counts: Dict[str, int] = {label: 0 for label, _ in AGING_RANGES}
    for invoice in invoices:
        if invoice.status == InvoiceStatus.PAID:
            continue
        days = (today - invoice.due_date).days
        for label, upper in AGING_RANGES:
            if upper is None or days <= upper:
                amounts[label] += invoice.amount
                counts[label] += 1
                break
    return [
        AgingBucket(label=f"{label} Days", amount=amounts[label], count=counts[label])
        for label, _ in AGING_RANGES
    ]


# ---------------------------------------------------------------------------
# Running-balance ledgers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CustomerLedgerRow:
    entry_id: str
    date: date
    invoice_id: Optional[str]
    invoice_number: str
    customer_id: str
    customer_name: str
    entry_type: EntryType
    category: str
    debit: Decimal
    credit: Decimal
    balance: Decimal = ZERO
    short_payment: Decimal = ZERO
    show_short_payment: bool = False
    linked_to_previous: bool = False
    is_invoice: bool = False


def transaction_category(transaction: Transaction) -> str:
    """Category tag of a transaction, falling back to its description prefix."""

    if transaction.category:
        return transaction.category
    return transaction.description.split(" - ")[0]


def is_non_cash(category: str) -> bool:
    return category in NON_CASH_CATEGORIES


def build_customer_ledger(
    invoices: Sequence[Invoice],
    transactions: Sequence[Transaction],
    customer_id: Optional[str] = None,
    *,
    search: Optional[str] = None,
) -> List[CustomerLedgerRow]:
    """Reconstruct a customer statement with running balances.

    Invoices contribute debits at gross value; customer transactions
    contribute credits or debits by direction. Rows are ordered by date with
    invoices ahead of transactions on the same day, balances are accumulated
    oldest-first, and the result is returned newest-first.

    Each transaction linked to an invoice carries the invoice's *current*
    open balance as ``short_payment``. Only the most recent non-invoice row
    of each invoice is flagged with ``show_short_payment``.

    Args:
        invoices (Sequence[Invoice]): Invoice collection; filtered here by
            ``customer_id``.
        transactions (Sequence[Transaction]): Transaction collection; rows
            without a customer are ignored.
        customer_id (str | None): Restrict to one customer, ``None`` for all.
        search (str | None): Optional case-insensitive filter applied after
            balances are computed, matching invoice number, category, and
            (for the all-customers view) customer name.

    Returns:
        list[CustomerLedgerRow]: Newest-first rows with running balances.
    """

    invoices_by_id = {invoice.invoice_id: invoice for invoice in invoices}
    rows: List[CustomerLedgerRow] = []

    for invoice in invoices:
        if customer_id is not None and invoice.customer_id != customer_id:
            continue
        rows.append(
            CustomerLedgerRow(
                entry_id=f"led_inv_{invoice.invoice_id}",
                date=invoice.date,
                invoice_id=invoice.invoice_id,
                invoice_number=invoice.invoice_number,
                customer_id=invoice.customer_id,
                customer_name=invoice.customer_name,
                entry_type=EntryType.AUTO,
                category="Invoice",
                debit=invoice.amount,
                credit=ZERO,
                is_invoice=True,
            )
        )

    for transaction in transactions:
        if transaction.customer_id is None:
            continue
        if customer_id is not None and transaction.customer_id != customer_id:
            continue
        linked = invoices_by_id.get(transaction.reference_id) if transaction.reference_id else None
        category = transaction_category(transaction)
        adjustment = is_non_cash(category)

        short_payment = ZERO
        if linked is not None and (transaction.direction == Direction.CREDIT or adjustment):
            outstanding = invoice_balance(linked)
            short_payment = outstanding if outstanding > SHORT_PAYMENT_TOLERANCE else ZERO

        is_credit = transaction.direction == Direction.CREDIT
        rows.append(
            CustomerLedgerRow(
                entry_id=f"led_tx_{transaction.transaction_id}",
                date=transaction.date,
                invoice_id=linked.invoice_id if linked else None,
                invoice_number=linked.invoice_number if linked else "-",
                customer_id=transaction.customer_id,
                customer_name=linked.customer_name if linked else "Unknown",
                entry_type=EntryType.ADJUSTMENT if adjustment else EntryType.MANUAL,
                category=transaction.description,
                debit=ZERO if is_credit else transaction.amount,
                credit=transaction.amount if is_credit else ZERO,
                short_payment=short_payment,
                linked_to_previous="TDS" in category,
            )
        )

    # sorted() is stable, so same-day transactions keep their input order.
    rows.sort(key=lambda row: (row.date, 0 if row.is_invoice else 1))

    running = ZERO
    balanced: List[CustomerLedgerRow] = []
    for row in rows:
        running = running + row.debit - row.credit
        balanced.append(replace(row, balance=running))

    if search:
        needle = search.lower()
        balanced = [
            row
            for row in balanced
            if needle in row.invoice_number.lower()
            or needle in row.category.lower()
            or (customer_id is None and needle in row.customer_name.lower())
        ]

    balanced.reverse()

    seen: Set[str] = set()
    result: List[CustomerLedgerRow] = []
    for row in balanced:
        show = False
        if row.invoice_id is not None and not row.is_invoice and row.invoice_id not in seen:
            show = True
            seen.add(row.invoice_id)
        result.append(replace(row, show_short_payment=show))
    return result


@dataclass(frozen=True)
class VendorLedgerRow:
    entry_id: str
    date: date
    vendor_id: str
    booking_id: Optional[str]
    entry_type: EntryType
    category: str
    payment_mode: str
    reference_no: str
    debit: Decimal
    credit: Decimal
    balance: Decimal = ZERO
    is_disputed: bool = False

    @property
    def freight_amount(self) -> Decimal:
        return self.debit

    @property
    def paid_amount(self) -> Decimal:
        return self.credit


def disputed_bookings(transactions: Iterable[Transaction]) -> Set[Tuple[str, str]]:
    """``(vendor_id, booking_id)`` pairs carrying a shortage or damage deduction."""

    return {
        (transaction.vendor_id, transaction.reference_id)
        for transaction in transactions
        if transaction.vendor_id
        and transaction.reference_id
        and (transaction.category or "") in DISPUTE_CATEGORIES
    }


def build_vendor_ledger(
    expenses: Sequence[Expense],
    transactions: Sequence[Transaction],
    vendor_id: Optional[str] = None,
) -> List[VendorLedgerRow]:
    """Vendor payable statement: expenses are debits, credit transactions reduce the liability."""

    disputed = disputed_bookings(transactions)
    rows: List[VendorLedgerRow] = []

    for expense in expenses:
        if expense.vendor_id is None:
            continue
        if vendor_id is not None and expense.vendor_id != vendor_id:
            continue
        rows.append(
            VendorLedgerRow(
                entry_id=expense.expense_id,
                date=expense.date,
                vendor_id=expense.vendor_id,
                booking_id=expense.booking_id,
                entry_type=expense.entry_type,
                category=ExpenseCategory(expense.category).value,
                payment_mode="-",
                reference_no="-",
                debit=expense.amount,
                credit=ZERO,
                is_disputed=bool(expense.booking_id) and (expense.vendor_id, expense.booking_id) in disputed,
            )
        )

    for transaction in transactions:
        if transaction.vendor_id is None or transaction.direction != Direction.CREDIT:
            continue
        if vendor_id is not None and transaction.vendor_id != vendor_id:
            continue
        rows.append(
            VendorLedgerRow(
                entry_id=transaction.transaction_id,
                date=transaction.date,
                vendor_id=transaction.vendor_id,
                booking_id=transaction.reference_id,
                entry_type=EntryType.MANUAL,
                category=transaction.category or "Payment",
                payment_mode=transaction.payment_mode or "NA",
                reference_no=transaction.reference_no or "-",
                debit=ZERO,
                credit=transaction.amount,
                is_disputed=bool(transaction.reference_id)
                and (transaction.vendor_id, transaction.reference_id) in disputed,
            )
        )

    rows.sort(key=lambda row: row.date)

    running = ZERO
    result: List[VendorLedgerRow] = []
    for row in rows:
        running = running + row.debit - row.credit
        result.append(replace(row, balance=running))
    result.reverse()
    return result


# ---------------------------------------------------------------------------
# Fleet and trip economics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VehicleFinancials:
    vehicle_id: str
    reg_number: str
    trip_count: int
    revenue: Decimal
    total_distance: Decimal
    direct_costs: Decimal
    indirect_costs: Decimal
    operating_margin: Decimal
    net_profit: Decimal
    profit_margin_pct: Decimal
    cost_per_km: Decimal


def _in_month(value: date, month: str) -> bool:
    return value.strftime("%Y-%m") == month


def fleet_financials(
    vehicles: Sequence[Vehicle],
    bookings: Sequence[Booking],
    expenses: Sequence[Expense],
    month: str,
) -> List[VehicleFinancials]:
    """Per-vehicle profit and loss for a ``YYYY-MM`` period.

    Revenue comes from bookings completed or booked in the month. Fuel, toll,
    and driver costs are direct; maintenance, insurance, and EMI are
    indirect. Cost per km divides direct costs by the distance run.
    """

    period_bookings = [
        booking
        for booking in bookings
        if _in_month(booking.completed_date, month) or _in_month(booking.booked_date, month)
    ]
    period_expenses = [expense for expense in expenses if _in_month(expense.date, month)]

    results: List[VehicleFinancials] = []
    for vehicle in vehicles:
        trips = [booking for booking in period_bookings if booking.vehicle_id == vehicle.vehicle_id]
        revenue = sum((booking.amount for booking in trips), ZERO)
        distance = sum((booking.distance for booking in trips), ZERO)
        own_expenses = [expense for expense in period_expenses if expense.vehicle_id == vehicle.vehicle_id]
        direct = sum(
            (expense.amount for expense in own_expenses if expense.category in DIRECT_COST_CATEGORIES),
            ZERO,
        )
        indirect = sum(
            (expense.amount for expense in own_expenses if expense.category in INDIRECT_COST_CATEGORIES),
            ZERO,
        )
        operating_margin = revenue - direct
        net_profit = operating_margin - indirect
        margin_pct = (net_profit / revenue * 100) if revenue > 0 else ZERO
        cost_per_km = (direct / distance) if distance > 0 else ZERO
        results.append(
            VehicleFinancials(
                vehicle_id=vehicle.vehicle_id,
                reg_number=vehicle.reg_number,
                trip_count=len(trips),
                revenue=revenue,
                total_distance=distance,
                direct_costs=direct,
                indirect_costs=indirect,
                operating_margin=operating_margin,
                net_profit=net_profit,
                profit_margin_pct=margin_pct,
                cost_per_km=cost_per_km,
            )
        )
    log.debug("Computed fleet financials for %d vehicles in %s", len(results), month)
    return results


def odometer_cost_per_km(amount: Decimal, odometer: Decimal, previous_mileage: Decimal) -> Decimal:
    """Cost per km for an expense entered against an odometer reading.

    Raises:
        ValidationError: If ``odometer`` is below the vehicle's recorded
            mileage.
    """

    if odometer < previous_mileage:
        raise ValidationError(
            f"Odometer reading cannot be less than previous reading ({previous_mileage} km)"
        )
    distance = odometer - previous_mileage
    return amount / distance if distance > 0 else ZERO


def loss_making_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    """Pending trips whose vendor cost exceeds the billable amount."""

    return [
        booking
        for booking in bookings
        if booking.status == BookingStatus.PENDING and booking.expense > booking.amount
    ]


def is_booking_posted(expenses: Iterable[Expense], booking_id: str) -> bool:
    return any(
        expense.booking_id == booking_id and expense.category == ExpenseCategory.FREIGHT
        for expense in expenses
    )


# ---------------------------------------------------------------------------
# Bank reconciliation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationCandidate:
    record_id: str
    date: date
    description: str
    amount: Decimal
    kind: str


def suggest_reconciliation_matches(
    bank_transaction: BankTransaction,
    invoices: Iterable[Invoice],
    expenses: Iterable[Expense],
) -> List[ReconciliationCandidate]:
    """Ledger records whose amount is within 1% of a bank feed line.

    Deposits are matched against invoices, withdrawals against expenses.
    """

    target = abs(bank_transaction.amount)
    tolerance = target * RECONCILIATION_TOLERANCE
    if bank_transaction.direction == Direction.CREDIT:
        return [
            ReconciliationCandidate(
                record_id=invoice.invoice_id,
                date=invoice.date,
                description=f"Invoice #{invoice.invoice_number} - {invoice.customer_name}",
                amount=invoice.amount,
                kind="Invoice",
            )
            for invoice in invoices
            if abs(invoice.amount - target) < tolerance
        ]
    return [
        ReconciliationCandidate(
            record_id=expense.expense_id,
            date=expense.date,
            description=f"{ExpenseCategory(expense.category).value} - {expense.vendor}",
            amount=expense.amount,
            kind="Expense",
        )
        for expense in expenses
        if abs(expense.amount - target) < tolerance
    ]


__all__ = [
    "round_currency",
    "compute_tds",
    "preview_tds",
    "InvoiceView",
    "invoice_balance",
    "derive_invoice_view",
    "derive_invoice_views",
    "derive_persisted_status",
    "InvoiceSummary",
    "summarize_invoices",
    "suggest_payment_amount",
    "booking_line_items",
    "next_invoice_number",
    "compose_invoice",
    "derive_customer_exposure",
    "derive_dso",
    "CreditAssessment",
    "assess_credit",
    "AgingBucket",
    "aging_buckets",
    "CustomerLedgerRow",
    "transaction_category",
    "is_non_cash",
    "build_customer_ledger",
    "VendorLedgerRow",
    "disputed_bookings",
    "build_vendor_ledger",
    "VehicleFinancials",
    "fleet_financials",
    "odometer_cost_per_km",
    "loss_making_bookings",
    "is_booking_posted",
    "ReconciliationCandidate",
    "suggest_reconciliation_matches",
]
