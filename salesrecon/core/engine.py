import csv
import io
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple
from pydantic import ValidationError as SchemaValidationError
from salesrecon.core.audit import AuditRepository, audit_repo
from salesrecon.core.config import settings
from salesrecon.core.errors import (
    DuplicateInvoiceNumber, InvoiceNotFound, ValidationError,
)
from salesrecon.core.jurisdiction import resolve_classification
from salesrecon.core.ledger import OrderFulfillmentLedger
from salesrecon.core.numbering import INVOICE_NUMBER_LOCK, NumberingSequencer
from salesrecon.core.pending_report import build_pending_orders_report
from salesrecon.core.tax_calculator import compute_invoice_totals, compute_lines, quantize_money
from salesrecon.core.tax_summary import summarize_by_hsn
from salesrecon.db.memory import STORE, MemoryStore
from salesrecon.schemas.invoice import Invoice, InvoiceStatus, LineInput
from salesrecon.schemas.order import OrderStatus, PendingQuantity, SalesOrder, SalesOrderCreate
from salesrecon.schemas.party import PartyTaxProfile
from salesrecon.schemas.report import PendingOrdersFilter, PendingOrdersReport
from salesrecon.schemas.series import NumberSeries
from salesrecon.schemas.tax import TaxSummaryEntry

logger = logging.getLogger(__name__)

ORDER_CSV_COLUMNS = {"order_no", "buyer_name", "quantity", "rate"}


def default_seller() -> PartyTaxProfile:
    return PartyTaxProfile(
        name=settings.SELLER_NAME,
        state_name=settings.SELLER_STATE_NAME,
        state_code=settings.SELLER_STATE_CODE,
        gstin=settings.SELLER_GSTIN or None,
    )


class FulfillmentEngine:
    """Entry point used by request handlers: one call is one unit of work."""

    def __init__(self, store: MemoryStore, audit: AuditRepository):
        self.store = store
        self.audit = audit
        self.ledger = OrderFulfillmentLedger(store)
        self.sequencer = NumberingSequencer(store, audit)

    # ---- number series -------------------------------------------------

    def register_series(self, series: NumberSeries) -> NumberSeries:
        return self.sequencer.register(series)

    def issue_invoice_number(self, series_name: str) -> str:
        return self.sequencer.next(series_name)

    def rename_invoice_number(self, invoice_id: str, old_number: str, new_number: str, actor: str = "system") -> Invoice:
        return self.sequencer.correct(invoice_id, old_number, new_number, actor=actor)

    # ---- orders --------------------------------------------------------

    @staticmethod
    def _validate_order(data: SalesOrderCreate) -> None:
        if not data.order_number.strip():
            raise ValidationError("Order number is required", field="order_number")
        if not data.ordered_quantity.is_finite() or data.ordered_quantity <= 0:
            raise ValidationError("Ordered quantity must be greater than zero", field="ordered_quantity")
        if not data.rate.is_finite() or data.rate < 0:
            raise ValidationError("Rate cannot be negative", field="rate")
        if data.total_amount is not None and (not data.total_amount.is_finite() or data.total_amount < 0):
            raise ValidationError("Total amount cannot be negative", field="total_amount")

    @staticmethod
    def _build_order(data: SalesOrderCreate) -> SalesOrder:
        total = data.total_amount if data.total_amount is not None else data.ordered_quantity * data.rate
        return SalesOrder(
            order_number=data.order_number.strip(),
            buyer_id=data.buyer_id,
            buyer_name=data.buyer_name,
            ordered_quantity=data.ordered_quantity,
            unit=data.unit,
            rate=data.rate,
            total_amount=quantize_money(total),
        )

    def create_order(self, data: SalesOrderCreate) -> SalesOrder:
        self._validate_order(data)
        order = self._build_order(data)
        with self.store.locks("order-numbers"):
            if self.store.order_number_exists(order.order_number):
                raise ValidationError(f"Order number '{order.order_number}' already exists", field="order_number")
            self.store.orders[order.id] = order

        logger.info(f"Sales order {order.order_number} created: {order.ordered_quantity} {order.unit}")
        return order

    def import_orders_csv(self, content: str) -> List[SalesOrder]:
        """
        Bulk order entry. Every row is validated before any order is stored,
        and all orders are stored under one lock; the first bad row rejects
        the whole upload.
        """
        reader = csv.DictReader(io.StringIO(content))
        columns = {c.strip() for c in (reader.fieldnames or []) if c}
        missing = ORDER_CSV_COLUMNS - columns
        if missing:
            raise ValidationError(f"Missing required columns: {', '.join(sorted(missing))}", field="file")

        rows: List[Tuple[int, SalesOrder]] = []
        seen = set()
        for index, row in enumerate(reader):
            row_no = index + 2
            clean_row = {k.strip(): v.strip() for k, v in row.items() if k and v is not None}
            try:
                data = SalesOrderCreate(**clean_row)
            except SchemaValidationError as e:
                raise ValidationError(f"Row {row_no}: {e.errors()[0]['msg']}", field="file")
            try:
                self._validate_order(data)
            except ValidationError as e:
                raise ValidationError(f"Row {row_no}: {e.message}", field="file")
            order = self._build_order(data)
            if order.order_number in seen:
                raise ValidationError(f"Row {row_no}: duplicate order number {order.order_number}", field="file")
            seen.add(order.order_number)
            rows.append((row_no, order))

        with self.store.locks("order-numbers"):
            for row_no, order in rows:
                if self.store.order_number_exists(order.order_number):
                    raise ValidationError(f"Row {row_no}: duplicate order number {order.order_number}", field="file")
            for _, order in rows:
                self.store.orders[order.id] = order

        orders = [order for _, order in rows]

        logger.info(f"Imported {len(orders)} sales orders from CSV")
        return orders

    def cancel_order(self, order_id: str) -> SalesOrder:
        return self.ledger.cancel_order(order_id)

    # ---- invoices ------------------------------------------------------

    def create_invoice(
        self,
        lines: Sequence[LineInput],
        buyer: PartyTaxProfile,
        seller: Optional[PartyTaxProfile] = None,
        invoice_date: Optional[date] = None,
        series_name: Optional[str] = None,
        invoice_number: Optional[str] = None,
        status: InvoiceStatus = InvoiceStatus.SUBMITTED,
    ) -> Invoice:
        """
        Classify, tax every line and total the invoice. The number is either
        given explicitly or drawn from a series; all validation happens before
        a number is drawn so a rejected invoice never consumes one.
        """
        seller = seller or default_seller()
        if status == InvoiceStatus.CANCELLED:
            raise ValidationError("An invoice cannot be created cancelled", field="status")

        classification = resolve_classification(seller.state_code, buyer.state_code, buyer.gstin)
        items = compute_lines(lines, classification)
        totals = compute_invoice_totals(items)

        explicit = (invoice_number or "").strip()
        series_name = series_name or settings.DEFAULT_INVOICE_SERIES

        with self.store.locks(INVOICE_NUMBER_LOCK):
            if explicit:
                if self.store.find_active_invoice_by_number(explicit) is not None:
                    raise DuplicateInvoiceNumber(f"Invoice number '{explicit}' is already in use", field="invoice_number")
                number = explicit
            else:
                number = self.sequencer.next(series_name)

            invoice = Invoice(
                invoice_number=number,
                invoice_date=invoice_date or date.today(),
                buyer=buyer,
                seller=seller,
                classification=classification,
                line_items=items,
                subtotal=totals.subtotal,
                cgst=totals.cgst,
                sgst=totals.sgst,
                igst=totals.igst,
                total_amount=totals.total_amount,
                round_off=totals.round_off,
                grand_total=totals.grand_total,
                status=status,
            )
            self.store.invoices[invoice.id] = invoice

        logger.info(
            f"Invoice {invoice.invoice_number} created: {classification.value}, "
            f"total {invoice.total_amount}, round off {invoice.round_off}"
        )
        return invoice

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.store.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFound(f"Invoice '{invoice_id}' does not exist", field="invoice_id")
        return invoice

    def cancel_invoice(self, invoice_id: str) -> Invoice:
        """Cancel an invoice and release every order quantity it covered."""
        invoice = self.ledger.cancel_invoice(invoice_id)
        logger.info(f"Invoice {invoice.invoice_number} cancelled")
        return invoice

    # ---- fulfillment ---------------------------------------------------

    def link_invoice_to_order(self, order_id: str, invoice_id: str, quantity: Decimal) -> OrderStatus:
        return self.ledger.link_invoice_to_order(order_id, invoice_id, quantity)

    def unlink_invoice_from_order(self, order_id: str, invoice_id: str) -> OrderStatus:
        return self.ledger.unlink(order_id, invoice_id)

    def pending_quantity(self, order_id: str) -> PendingQuantity:
        return self.ledger.pending_state(order_id)

    # ---- reporting -----------------------------------------------------

    def pending_orders_report(self, flt: Optional[PendingOrdersFilter] = None) -> PendingOrdersReport:
        return build_pending_orders_report(self.store, flt, max_rows=settings.REPORT_MAX_ROWS)

    def tax_summary(
        self,
        invoice_ids: Optional[Iterable[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[TaxSummaryEntry]:
        """HSN-wise summary over the given invoices, or every active invoice in a date range."""
        if invoice_ids is not None:
            invoices = [self.get_invoice(i) for i in invoice_ids]
        else:
            invoices = sorted(list(self.store.invoices.values()), key=lambda inv: (inv.invoice_date, inv.created_at))
            if date_from is not None:
                invoices = [inv for inv in invoices if inv.invoice_date >= date_from]
            if date_to is not None:
                invoices = [inv for inv in invoices if inv.invoice_date <= date_to]

        lines = [item for inv in invoices if inv.is_active for item in inv.line_items]
        return summarize_by_hsn(lines)


# Global engine bound to the in-memory store
engine = FulfillmentEngine(STORE, audit_repo)
