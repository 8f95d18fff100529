import threading
import weakref
from typing import Dict, List, Optional, Tuple
from salesrecon.schemas.invoice import Invoice
from salesrecon.schemas.order import OrderInvoiceLink, SalesOrder
from salesrecon.schemas.series import NumberSeries

# In-memory store only. Mutations go through the ledger / sequencer, which hold
# the matching lock from `locks` around every check-then-write.


class KeyedLocks:
    """
    One lock per key (order id, series name, ...), created on first use.
    A lock is dropped once no caller holds a reference to it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    def __call__(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class MemoryStore:
    def __init__(self):
        self.orders: Dict[str, SalesOrder] = {}
        self.invoices: Dict[str, Invoice] = {}
        self.links: Dict[Tuple[str, str], OrderInvoiceLink] = {}
        self.series: Dict[str, NumberSeries] = {}
        self.locks = KeyedLocks()

    def get_order(self, order_id: str) -> Optional[SalesOrder]:
        return self.orders.get(order_id)

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self.invoices.get(invoice_id)

    def find_active_invoice_by_number(self, number: str) -> Optional[Invoice]:
        for invoice in list(self.invoices.values()):
            if invoice.invoice_number == number and invoice.is_active:
                return invoice
        return None

    def order_number_exists(self, order_number: str) -> bool:
        return any(o.order_number == order_number for o in list(self.orders.values()))

    def links_for_order(self, order_id: str) -> List[OrderInvoiceLink]:
        links = [l for (oid, _), l in list(self.links.items()) if oid == order_id]
        return sorted(links, key=lambda l: l.created_at)

    def links_for_invoice(self, invoice_id: str) -> List[OrderInvoiceLink]:
        return [l for (_, iid), l in list(self.links.items()) if iid == invoice_id]

    def clear(self):
        self.orders.clear()
        self.invoices.clear()
        self.links.clear()
        self.series.clear()


# Global store used by the HTTP layer
STORE = MemoryStore()
