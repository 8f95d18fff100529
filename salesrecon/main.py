from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from salesrecon.core.config import settings
from salesrecon.core.engine import engine
from salesrecon.core.middleware import AuditMiddleware
from salesrecon.schemas.series import NumberSeries
from salesrecon.api import health, invoices, orders, reports, series

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Default invoice series so invoices can be raised without admin setup
    if settings.DEFAULT_INVOICE_SERIES not in engine.store.series:
        engine.register_series(NumberSeries(
            name=settings.DEFAULT_INVOICE_SERIES,
            prefix=f"{settings.DEFAULT_INVOICE_SERIES}-",
        ))
    logger.info(f"{settings.PROJECT_NAME} started")
    yield

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(series.router)
app.include_router(orders.router)
app.include_router(invoices.router)
app.include_router(reports.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
