from fastapi import HTTPException
from salesrecon.core.errors import ReconciliationError


def to_http(error: ReconciliationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
