from decimal import Decimal
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Sales Order Fulfillment & Tax Reconciliation"
    LOG_LEVEL: str = "INFO"

    # Registered seller (the company raising invoices)
    SELLER_NAME: str = "Seller"
    SELLER_STATE_NAME: str = "ASSAM"
    SELLER_STATE_CODE: str = "18"
    SELLER_GSTIN: str = ""

    DEFAULT_INVOICE_SERIES: str = "INV"

    # Linked quantities within this distance of the ordered quantity count as fully invoiced
    QUANTITY_EPSILON: Decimal = Decimal("0.001")

    REPORT_MAX_ROWS: int = 1000

    class Config:
        case_sensitive = True

settings = Settings()
