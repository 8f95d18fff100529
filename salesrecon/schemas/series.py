from pydantic import BaseModel, Field
from typing import Optional


class NumberSeries(BaseModel):
    """Admin-controlled counter for a document series (invoices, purchase orders, ...)."""
    name: str
    prefix: str
    current_number: int = Field(0, ge=0)  # last number issued
    number_length: int = Field(4, ge=1)   # zero padding
    # Appends "/25-26" style suffix and restarts the counter every April
    include_financial_year: bool = False
    financial_year: Optional[str] = None
    is_active: bool = True


class IssuedNumber(BaseModel):
    series_name: str
    number: str
