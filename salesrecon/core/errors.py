from typing import Any, Dict, Optional

# Every error here is scoped to a single operation and is raised before any
# state is written. Nothing in the core retries.


class ReconciliationError(Exception):
    code = "RECONCILIATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "field": self.field}


class ValidationError(ReconciliationError):
    code = "VALIDATION_ERROR"
    status_code = 422


class OverInvoicing(ReconciliationError):
    code = "OVER_INVOICING"
    status_code = 409


class MissingTaxJurisdiction(ReconciliationError):
    code = "MISSING_TAX_JURISDICTION"
    status_code = 422


class SeriesNotFound(ReconciliationError):
    code = "SERIES_NOT_FOUND"
    status_code = 404


class SeriesInactive(ReconciliationError):
    code = "SERIES_INACTIVE"
    status_code = 409


class StaleInvoiceReference(ReconciliationError):
    """The invoice number passed by the caller no longer matches the stored one.

    Callers are expected to re-fetch the invoice and retry.
    """
    code = "STALE_INVOICE_REFERENCE"
    status_code = 409


class DuplicateInvoiceNumber(ReconciliationError):
    code = "DUPLICATE_INVOICE_NUMBER"
    status_code = 409


class OrderNotFound(ReconciliationError):
    code = "ORDER_NOT_FOUND"
    status_code = 404


class InvoiceNotFound(ReconciliationError):
    code = "INVOICE_NOT_FOUND"
    status_code = 404
