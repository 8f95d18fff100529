from fastapi import APIRouter, File, UploadFile, HTTPException
from typing import Any, Dict
import logging
from salesrecon.api.errors import to_http
from salesrecon.core.engine import engine
from salesrecon.core.errors import ReconciliationError
from salesrecon.schemas.order import LinkRequest, PendingQuantity, SalesOrder, SalesOrderCreate

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_UPLOAD_ROWS = 1000

@router.post("/orders", response_model=SalesOrder)
async def create_order(data: SalesOrderCreate):
    try:
        return engine.create_order(data)
    except ReconciliationError as e:
        raise to_http(e)

@router.post("/orders/upload")
async def upload_orders(file: UploadFile = File(...)):
    if not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="Invalid file format.")

    content = await file.read()
    try:
        decoded_content = content.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Invalid encoding.")

    if decoded_content.count("\n") > MAX_UPLOAD_ROWS + 1:
        raise HTTPException(status_code=413, detail=f"Upload limit of {MAX_UPLOAD_ROWS} orders exceeded")

    try:
        orders = engine.import_orders_csv(decoded_content)
    except ReconciliationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return {
        "status": "success",
        "total_orders": len(orders),
        "orders": [o.model_dump(mode="json") for o in orders],
    }

@router.get("/orders/{order_id}/pending", response_model=PendingQuantity)
async def pending_quantity(order_id: str):
    try:
        return engine.pending_quantity(order_id)
    except ReconciliationError as e:
        raise to_http(e)

@router.post("/orders/{order_id}/links")
async def link_invoice(order_id: str, request: LinkRequest) -> Dict[str, Any]:
    try:
        status = engine.link_invoice_to_order(order_id, request.invoice_id, request.quantity)
        pending = engine.pending_quantity(order_id)
    except ReconciliationError as e:
        raise to_http(e)
    return {"order_id": order_id, "status": status, "pending_quantity": pending.pending_quantity}

@router.delete("/orders/{order_id}/links/{invoice_id}")
async def unlink_invoice(order_id: str, invoice_id: str) -> Dict[str, Any]:
    try:
        status = engine.unlink_invoice_from_order(order_id, invoice_id)
    except ReconciliationError as e:
        raise to_http(e)
    return {"order_id": order_id, "status": status}

@router.post("/orders/{order_id}/cancel", response_model=SalesOrder)
async def cancel_order(order_id: str):
    try:
        return engine.cancel_order(order_id)
    except ReconciliationError as e:
        raise to_http(e)
