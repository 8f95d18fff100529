from pydantic import BaseModel, Field, field_validator, ValidationInfo
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
import re
import uuid
from typing import List, Optional
from salesrecon.schemas.party import PartyTaxProfile
from salesrecon.schemas.tax import TaxClassification


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    CANCELLED = "CANCELLED"


class LineInput(BaseModel):
    """One invoice line as entered. Product data (HSN, tax rate) comes from the catalog."""
    product_id: Optional[str] = None
    description: str = ""
    hsn_code: str = ""
    quantity: Decimal
    unit: str = "MT"
    rate: Decimal
    discount_percent: Decimal = Decimal("0")
    tax_rate: Decimal

    @field_validator('quantity', 'rate', 'discount_percent', 'tax_rate', mode='before')
    @classmethod
    def validate_numeric(cls, v, info: ValidationInfo):
        # Strict numeric check for CSV / form strings
        if isinstance(v, str):
            if not re.match(r'^-?\d+(\.\d+)?$', v.strip()):
                raise ValueError(f"{info.field_name} must be strictly numeric")
            return v.strip()
        return v

    @field_validator('hsn_code', mode='before')
    @classmethod
    def strip_hsn(cls, v):
        return (v or "").strip()


class InvoiceLineItem(LineInput):
    line_no: int
    gross_amount: Decimal
    discount_amount: Decimal
    taxable_value: Decimal
    cgst_rate: Decimal = Decimal("0")
    cgst_amount: Decimal = Decimal("0.00")
    sgst_rate: Decimal = Decimal("0")
    sgst_amount: Decimal = Decimal("0.00")
    igst_rate: Decimal = Decimal("0")
    igst_amount: Decimal = Decimal("0.00")
    line_total: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount


class Invoice(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    invoice_number: str
    invoice_date: date
    buyer: PartyTaxProfile
    seller: PartyTaxProfile
    classification: TaxClassification
    line_items: List[InvoiceLineItem]
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_amount: Decimal
    round_off: Decimal
    grand_total: Decimal
    status: InvoiceStatus = InvoiceStatus.SUBMITTED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_quantity(self) -> Decimal:
        return sum((item.quantity for item in self.line_items), Decimal("0"))

    @property
    def is_active(self) -> bool:
        return self.status != InvoiceStatus.CANCELLED


class CreateInvoiceRequest(BaseModel):
    lines: List[LineInput]
    buyer: PartyTaxProfile
    # Defaults to the configured seller when omitted
    seller: Optional[PartyTaxProfile] = None
    invoice_date: Optional[date] = None
    series_name: Optional[str] = None
    invoice_number: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.SUBMITTED

    @field_validator('invoice_date', mode='before')
    @classmethod
    def validate_date_format(cls, v):
        if isinstance(v, str):
            try:
                datetime.strptime(v, '%Y-%m-%d')
            except ValueError:
                raise ValueError("Date must be in YYYY-MM-DD format")
        return v


class RenameInvoiceRequest(BaseModel):
    old_number: str
    new_number: str
