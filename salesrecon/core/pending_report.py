import csv
import io
import logging
import uuid
from decimal import Decimal
from typing import List, Optional
from salesrecon.core.tax_calculator import ZERO, quantize_money
from salesrecon.db.memory import MemoryStore
from salesrecon.schemas.order import OrderStatus, SalesOrder
from salesrecon.schemas.report import (
    PendingOrderRow, PendingOrdersFilter, PendingOrdersReport, PendingOrdersTotals,
)

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Sales Order No", "Customer", "Invoice Numbers", "Unit", "SO Qty",
    "Invoiced Qty", "Pending Qty", "SO Amount", "Invoiced Amount", "Pending Amount", "Status",
]


def _contains(haystack: str, needle: Optional[str]) -> bool:
    return not needle or needle.strip().lower() in (haystack or "").lower()


def build_order_row(store: MemoryStore, order: SalesOrder) -> PendingOrderRow:
    """
    Join one order to its links. Invoiced amount is pro-rated per link:
    linked quantity x invoice total / invoice quantity.
    """
    invoiced_qty = ZERO
    invoiced_amount = ZERO
    invoice_numbers: List[str] = []

    for link in store.links_for_order(order.id):
        invoice = store.get_invoice(link.invoice_id)
        if invoice is None or not invoice.is_active:
            continue
        invoiced_qty += link.quantity
        invoice_qty = invoice.total_quantity
        if invoice_qty > ZERO:
            invoiced_amount += link.quantity * invoice.total_amount / invoice_qty
        if invoice.invoice_number not in invoice_numbers:
            invoice_numbers.append(invoice.invoice_number)

    ordered_amount = quantize_money(order.total_amount)
    invoiced_amount = quantize_money(invoiced_amount)
    return PendingOrderRow(
        order_id=order.id,
        order_number=order.order_number,
        buyer_name=order.buyer_name,
        status=order.status,
        unit=order.unit,
        invoice_numbers=invoice_numbers,
        ordered_qty=order.ordered_quantity,
        invoiced_qty=invoiced_qty,
        pending_qty=max(order.ordered_quantity - invoiced_qty, ZERO),
        ordered_amount=ordered_amount,
        invoiced_amount=invoiced_amount,
        pending_amount=ordered_amount - invoiced_amount,
        created_at=order.created_at,
    )


def _matches(row: PendingOrderRow, flt: PendingOrdersFilter) -> bool:
    if not _contains(row.order_number, flt.order_number):
        return False
    if not _contains(row.buyer_name, flt.buyer_name):
        return False
    if flt.invoice_number and not any(_contains(n, flt.invoice_number) for n in row.invoice_numbers):
        return False
    if flt.only_open and row.pending_qty <= ZERO:
        return False
    return True


def build_pending_orders_report(
    store: MemoryStore,
    flt: Optional[PendingOrdersFilter] = None,
    max_rows: Optional[int] = None,
) -> PendingOrdersReport:
    """Pending-orders view over every non-cancelled sales order, newest first."""
    flt = flt or PendingOrdersFilter()
    orders = [o for o in list(store.orders.values()) if o.status != OrderStatus.CANCELLED]
    orders.sort(key=lambda o: o.created_at, reverse=True)

    rows = [row for row in (build_order_row(store, o) for o in orders) if _matches(row, flt)]
    if max_rows is not None:
        rows = rows[:max_rows]

    totals = PendingOrdersTotals(
        order_count=len(rows),
        open_order_count=sum(1 for r in rows if r.pending_qty > ZERO),
        ordered_qty=sum((r.ordered_qty for r in rows), ZERO),
        invoiced_qty=sum((r.invoiced_qty for r in rows), ZERO),
        pending_qty=sum((r.pending_qty for r in rows), ZERO),
        ordered_amount=quantize_money(sum((r.ordered_amount for r in rows), ZERO)),
        invoiced_amount=quantize_money(sum((r.invoiced_amount for r in rows), ZERO)),
        pending_amount=quantize_money(sum((r.pending_amount for r in rows), ZERO)),
    )

    logger.info(f"Pending orders report built: {totals.order_count} orders, {totals.open_order_count} open")
    return PendingOrdersReport(report_id=str(uuid.uuid4()), filter=flt, rows=rows, totals=totals)


def _fmt(value: Decimal) -> str:
    return f"{value:.2f}"


def report_to_csv(report: PendingOrdersReport) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for row in report.rows:
        writer.writerow([
            row.order_number,
            row.buyer_name,
            row.invoice_numbers_display,
            row.unit,
            _fmt(row.ordered_qty),
            _fmt(row.invoiced_qty),
            _fmt(row.pending_qty),
            _fmt(row.ordered_amount),
            _fmt(row.invoiced_amount),
            _fmt(row.pending_amount),
            row.status.value,
        ])
    return output.getvalue()
