from pydantic import BaseModel, Field, computed_field
from typing import List, Optional
from datetime import datetime, timezone
from decimal import Decimal
from salesrecon.schemas.order import OrderStatus

# Any change to the row shape must be reflected in the JSON, CSV and PDF exports.


class PendingOrdersFilter(BaseModel):
    order_number: Optional[str] = None
    buyer_name: Optional[str] = None
    invoice_number: Optional[str] = None
    only_open: bool = False


class PendingOrderRow(BaseModel):
    order_id: str
    order_number: str
    buyer_name: str
    status: OrderStatus
    unit: str
    invoice_numbers: List[str] = []
    ordered_qty: Decimal
    invoiced_qty: Decimal
    pending_qty: Decimal
    ordered_amount: Decimal
    invoiced_amount: Decimal
    # ordered_amount - invoiced_amount; invoiced amounts include tax, so this can go negative
    pending_amount: Decimal
    created_at: datetime

    @computed_field
    @property
    def invoice_numbers_display(self) -> str:
        return ", ".join(self.invoice_numbers)


class PendingOrdersTotals(BaseModel):
    order_count: int = 0
    open_order_count: int = 0
    ordered_qty: Decimal = Decimal("0")
    invoiced_qty: Decimal = Decimal("0")
    pending_qty: Decimal = Decimal("0")
    ordered_amount: Decimal = Decimal("0.00")
    invoiced_amount: Decimal = Decimal("0.00")
    pending_amount: Decimal = Decimal("0.00")


class PendingOrdersReport(BaseModel):
    report_id: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    filter: PendingOrdersFilter = PendingOrdersFilter()
    rows: List[PendingOrderRow] = []
    totals: PendingOrdersTotals = PendingOrdersTotals()
