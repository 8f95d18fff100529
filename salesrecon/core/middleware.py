from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import hashlib
from salesrecon.core.audit import audit_repo
from salesrecon.schemas.audit import AuditLogEntry, AuditStatus
import logging
from typing import Callable

logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-Actor"


def action_type_for(endpoint: str, method: str) -> str:
    if "health" in endpoint:
        return "HEALTH_CHECK"
    if "upload" in endpoint:
        return "UPLOAD"
    if endpoint.startswith("/reports"):
        return "REPORT"
    if "rename" in endpoint:
        return "INVOICE_RENAME"
    if "/links" in endpoint:
        return "ORDER_UNLINK" if method == "DELETE" else "ORDER_LINK"
    if endpoint.endswith("/cancel"):
        return "CANCEL"
    if endpoint.startswith("/series"):
        return "SERIES"
    if endpoint.startswith("/invoices"):
        return "INVOICE_CREATE" if method == "POST" else "INVOICE_QUERY"
    if endpoint.startswith("/orders"):
        return "ORDER_CREATE" if method == "POST" else "ORDER_QUERY"
    return "UNKNOWN"


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        # 1. Capture Request Details
        endpoint = request.url.path
        method = request.method
        action_type = action_type_for(endpoint, method)
        actor = request.headers.get(ACTOR_HEADER) or "anonymous"

        # 2. Capture & Hash Input (hash of empty body for GET, for determinism)
        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()

        # 3. Process Request
        response = None
        status = AuditStatus.FAILURE
        output_hash = None

        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            # 4. Capture & Hash Output
            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            # Reconstruct response
            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            # 5. Log Event
            audit_repo.save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                actor=actor,
                input_hash=input_hash,
                output_hash=output_hash,
                status=status
            ))

        return response
