from pydantic import AliasChoices, BaseModel, Field, field_validator, ValidationInfo
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
import re
import uuid
from typing import Optional


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PARTIALLY_INVOICED = "PARTIALLY_INVOICED"
    FULLY_INVOICED = "FULLY_INVOICED"
    CANCELLED = "CANCELLED"


class SalesOrder(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_number: str
    buyer_id: Optional[str] = None
    buyer_name: str = "-"
    ordered_quantity: Decimal
    unit: str = "MT"
    rate: Decimal
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SalesOrderCreate(BaseModel):
    order_number: str = Field(..., validation_alias=AliasChoices("order_number", "order_no"))
    buyer_id: Optional[str] = None
    buyer_name: str = "-"
    ordered_quantity: Decimal = Field(..., validation_alias=AliasChoices("ordered_quantity", "quantity"))
    unit: str = "MT"
    rate: Decimal
    total_amount: Optional[Decimal] = None

    @field_validator('ordered_quantity', 'rate', 'total_amount', mode='before')
    @classmethod
    def validate_numeric(cls, v, info: ValidationInfo):
        # Strict numeric check for CSV strings
        if isinstance(v, str):
            if not v.strip() and info.field_name == 'total_amount':
                return None
            if not re.match(r'^-?\d+(\.\d+)?$', v.strip()):
                raise ValueError(f"{info.field_name} must be strictly numeric")
            return v.strip()
        return v


class OrderInvoiceLink(BaseModel):
    """Quantity of one order covered by one invoice. Keyed on (order_id, invoice_id)."""
    order_id: str
    invoice_id: str
    quantity: Decimal
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LinkRequest(BaseModel):
    invoice_id: str
    quantity: Decimal


class PendingQuantity(BaseModel):
    order_id: str
    order_number: str
    ordered_quantity: Decimal
    invoiced_quantity: Decimal
    pending_quantity: Decimal
    status: OrderStatus
