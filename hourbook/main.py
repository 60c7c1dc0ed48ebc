from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hourbook.core.logging import configure_logging
from hourbook.models import invoice, invoice_item, project, time_entry  # noqa: F401
from hourbook.routers.invoices import router as invoices_router
from hourbook.routers.projects import router as projects_router
from hourbook.routers.time_entries import router as time_entries_router
from hourbook.services.errors import StoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Hourbook",
    lifespan=lifespan,
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("store error", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=500, content={"error": exc.message})


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(projects_router)
app.include_router(time_entries_router)
app.include_router(invoices_router)


@app.get("/")
def root():
    return {"status": "Hourbook running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
