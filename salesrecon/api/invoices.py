from fastapi import APIRouter, Header, Query
from datetime import date
from typing import List, Optional
import logging
from salesrecon.api.errors import to_http
from salesrecon.core.engine import engine
from salesrecon.core.errors import ReconciliationError
from salesrecon.schemas.invoice import CreateInvoiceRequest, Invoice, RenameInvoiceRequest
from salesrecon.schemas.tax import TaxSummaryEntry

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/invoices", response_model=Invoice)
async def create_invoice(request: CreateInvoiceRequest):
    try:
        return engine.create_invoice(
            lines=request.lines,
            buyer=request.buyer,
            seller=request.seller,
            invoice_date=request.invoice_date,
            series_name=request.series_name,
            invoice_number=request.invoice_number,
            status=request.status,
        )
    except ReconciliationError as e:
        raise to_http(e)

# Declared before /invoices/{invoice_id} so the path is not taken as an id
@router.get("/invoices/tax-summary", response_model=List[TaxSummaryEntry])
async def tax_summary(
    invoice_id: Optional[List[str]] = Query(None),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    try:
        return engine.tax_summary(invoice_ids=invoice_id, date_from=date_from, date_to=date_to)
    except ReconciliationError as e:
        raise to_http(e)

@router.get("/invoices/{invoice_id}", response_model=Invoice)
async def get_invoice(invoice_id: str):
    try:
        return engine.get_invoice(invoice_id)
    except ReconciliationError as e:
        raise to_http(e)

@router.post("/invoices/{invoice_id}/rename", response_model=Invoice)
async def rename_invoice(
    invoice_id: str,
    request: RenameInvoiceRequest,
    x_actor: str = Header("system", alias="X-Actor"),
):
    logger.info(f"Rename requested for invoice {invoice_id} by {x_actor}")
    try:
        return engine.rename_invoice_number(invoice_id, request.old_number, request.new_number, actor=x_actor)
    except ReconciliationError as e:
        raise to_http(e)

@router.post("/invoices/{invoice_id}/cancel", response_model=Invoice)
async def cancel_invoice(invoice_id: str):
    try:
        return engine.cancel_invoice(invoice_id)
    except ReconciliationError as e:
        raise to_http(e)
