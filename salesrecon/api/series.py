from fastapi import APIRouter
import logging
from salesrecon.api.errors import to_http
from salesrecon.core.engine import engine
from salesrecon.core.errors import ReconciliationError
from salesrecon.schemas.series import IssuedNumber, NumberSeries

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/series", response_model=NumberSeries)
async def register_series(series: NumberSeries):
    try:
        return engine.register_series(series)
    except ReconciliationError as e:
        raise to_http(e)

@router.post("/series/{series_name}/next", response_model=IssuedNumber)
async def issue_number(series_name: str):
    try:
        number = engine.issue_invoice_number(series_name)
    except ReconciliationError as e:
        raise to_http(e)
    return IssuedNumber(series_name=series_name, number=number)

@router.post("/series/{series_name}/deactivate", response_model=NumberSeries)
async def deactivate_series(series_name: str):
    try:
        return engine.sequencer.deactivate(series_name)
    except ReconciliationError as e:
        raise to_http(e)
