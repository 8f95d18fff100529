import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from salesrecon.core.config import settings
from salesrecon.core.errors import (
    InvoiceNotFound, OrderNotFound, OverInvoicing, ValidationError,
)
from salesrecon.db.memory import MemoryStore
from salesrecon.schemas.invoice import Invoice, InvoiceStatus
from salesrecon.schemas.order import (
    OrderInvoiceLink, OrderStatus, PendingQuantity, SalesOrder,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def derive_status(ordered: Decimal, linked: Decimal, epsilon: Decimal) -> OrderStatus:
    if ordered - linked <= epsilon:
        return OrderStatus.FULLY_INVOICED
    if linked > ZERO:
        return OrderStatus.PARTIALLY_INVOICED
    return OrderStatus.PENDING


class OrderFulfillmentLedger:
    """
    Authoritative record of how much of each sales order has been invoiced.

    Invoiced quantity is always the sum of OrderInvoiceLink rows of active
    invoices, never inferred from invoice totals. Every write takes the
    per-order lock so the over-invoicing check and the link write are atomic
    for that order.
    """

    def __init__(self, store: MemoryStore, epsilon: Optional[Decimal] = None):
        self.store = store
        self.epsilon = settings.QUANTITY_EPSILON if epsilon is None else epsilon

    def _order_lock(self, order_id: str):
        return self.store.locks(f"order:{order_id}")

    def _invoice_lock(self, invoice_id: str):
        return self.store.locks(f"invoice:{invoice_id}")

    def _require_order(self, order_id: str) -> SalesOrder:
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(f"Sales order '{order_id}' does not exist", field="order_id")
        return order

    def _require_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.store.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFound(f"Invoice '{invoice_id}' does not exist", field="invoice_id")
        return invoice

    def _counts(self, link: OrderInvoiceLink) -> bool:
        # links of cancelled invoices never count towards fulfillment
        invoice = self.store.get_invoice(link.invoice_id)
        return invoice is not None and invoice.is_active

    def linked_quantity(self, order_id: str, exclude_invoice_id: Optional[str] = None) -> Decimal:
        return sum(
            (
                l.quantity for l in self.store.links_for_order(order_id)
                if l.invoice_id != exclude_invoice_id and self._counts(l)
            ),
            ZERO,
        )

    def invoice_allocated_quantity(self, invoice_id: str, exclude_order_id: Optional[str] = None) -> Decimal:
        return sum(
            (l.quantity for l in self.store.links_for_invoice(invoice_id) if l.order_id != exclude_order_id),
            ZERO,
        )

    def _refresh_status(self, order: SalesOrder) -> OrderStatus:
        if order.status != OrderStatus.CANCELLED:
            order.status = derive_status(order.ordered_quantity, self.linked_quantity(order.id), self.epsilon)
        return order.status

    def link_invoice_to_order(self, order_id: str, invoice_id: str, quantity: Decimal) -> OrderStatus:
        """
        Record that `quantity` of the order is fulfilled by the invoice.

        The link row is keyed on (order_id, invoice_id): calling again with the
        same pair replaces the quantity in place, so retries never double count.
        """
        quantity = Decimal(quantity)
        if not quantity.is_finite() or quantity <= ZERO:
            raise ValidationError("Linked quantity must be greater than zero", field="quantity")

        with self._order_lock(order_id), self._invoice_lock(invoice_id):
            order = self._require_order(order_id)
            invoice = self._require_invoice(invoice_id)
            if order.status == OrderStatus.CANCELLED:
                raise ValidationError(f"Sales order {order.order_number} is cancelled", field="order_id")
            if not invoice.is_active:
                raise ValidationError(f"Invoice {invoice.invoice_number} is cancelled", field="invoice_id")

            key = (order_id, invoice_id)
            existing = self.store.links.get(key)
            if existing is not None and existing.quantity == quantity:
                logger.info(f"Link {order.order_number} <- {invoice.invoice_number} already recorded ({quantity})")
                return order.status

            remaining = order.ordered_quantity - self.linked_quantity(order_id, exclude_invoice_id=invoice_id)
            if quantity > remaining:
                logger.warning(
                    f"Over-invoicing rejected on {order.order_number}: requested {quantity}, pending {remaining}"
                )
                raise OverInvoicing(
                    f"Cannot link {quantity} {order.unit} to order {order.order_number}; only {remaining} pending",
                    field="quantity",
                )

            unallocated = invoice.total_quantity - self.invoice_allocated_quantity(invoice_id, exclude_order_id=order_id)
            if quantity > unallocated:
                raise OverInvoicing(
                    f"Invoice {invoice.invoice_number} has only {unallocated} {order.unit} left to allocate",
                    field="quantity",
                )

            now = datetime.now(timezone.utc)
            if existing is None:
                self.store.links[key] = OrderInvoiceLink(order_id=order_id, invoice_id=invoice_id, quantity=quantity)
            else:
                existing.quantity = quantity
                existing.updated_at = now

            status = self._refresh_status(order)

        logger.info(
            f"Linked {quantity} {order.unit} of {order.order_number} to {invoice.invoice_number}; status {status.value}"
        )
        return status

    def unlink(self, order_id: str, invoice_id: str) -> OrderStatus:
        """Remove a wrongly recorded invoice reference from an order."""
        with self._order_lock(order_id), self._invoice_lock(invoice_id):
            order = self._require_order(order_id)
            link = self.store.links.pop((order_id, invoice_id), None)
            status = self._refresh_status(order)
        if link is not None:
            logger.info(f"Unlinked invoice {invoice_id} from {order.order_number}; status {status.value}")
        return status

    def release_invoice(self, invoice_id: str) -> None:
        """Drop every link of an invoice (used when the invoice is cancelled)."""
        for link in self.store.links_for_invoice(invoice_id):
            self.unlink(link.order_id, invoice_id)

    def cancel_invoice(self, invoice_id: str) -> Invoice:
        """
        Mark the invoice cancelled under its lock, then release its links.
        Linking checks the invoice status under the same lock, so nothing can
        attach to the invoice once it is cancelled.
        """
        with self._invoice_lock(invoice_id):
            invoice = self._require_invoice(invoice_id)
            invoice.status = InvoiceStatus.CANCELLED
        self.release_invoice(invoice_id)
        return invoice

    def cancel_order(self, order_id: str) -> SalesOrder:
        with self._order_lock(order_id):
            order = self._require_order(order_id)
            order.status = OrderStatus.CANCELLED
        logger.info(f"Sales order {order.order_number} cancelled")
        return order

    def pending_quantity(self, order_id: str) -> Decimal:
        order = self._require_order(order_id)
        return max(order.ordered_quantity - self.linked_quantity(order_id), ZERO)

    def pending_state(self, order_id: str) -> PendingQuantity:
        order = self._require_order(order_id)
        invoiced = self.linked_quantity(order_id)
        return PendingQuantity(
            order_id=order.id,
            order_number=order.order_number,
            ordered_quantity=order.ordered_quantity,
            invoiced_quantity=invoiced,
            pending_quantity=max(order.ordered_quantity - invoiced, ZERO),
            status=order.status,
        )
