from enum import Enum
from decimal import Decimal
from pydantic import BaseModel


class TaxClassification(str, Enum):
    INTRA_STATE = "INTRA_STATE"  # CGST + SGST, split evenly
    INTER_STATE = "INTER_STATE"  # IGST, full rate


class TaxSummaryEntry(BaseModel):
    hsn_code: str
    taxable_value: Decimal = Decimal("0.00")
    cgst_rate: Decimal = Decimal("0")
    cgst_amount: Decimal = Decimal("0.00")
    sgst_rate: Decimal = Decimal("0")
    sgst_amount: Decimal = Decimal("0.00")
    igst_rate: Decimal = Decimal("0")
    igst_amount: Decimal = Decimal("0.00")
    total_tax: Decimal = Decimal("0.00")
