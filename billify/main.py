from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billify.api.auth import router as auth_router
from billify.api.directory import router as directory_router
from billify.api.invoices import router as invoices_router
from billify.core.config import settings
from billify.core.errors import InvoicingError, ValidationFailure
from billify.db.base import Base
from billify.db.session import engine
import billify.models  # noqa: F401 - register models with Base.metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s %(message)s",
)
request_logger = logging.getLogger("billify.request")
error_logger = logging.getLogger("billify.errors")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Billify API",
    description="Invoices for small businesses: numbering, line items and PDF documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app_cors_origins.split(",") if settings.app_cors_origins else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request, call_next):
    req_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        request_logger.exception(
            "request_failed id=%s method=%s path=%s ms=%s",
            req_id,
            request.method,
            request.url.path,
            elapsed_ms,
        )
        raise
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    response.headers["x-request-id"] = req_id
    request_logger.info(
        "request_done id=%s method=%s path=%s status=%s ms=%s",
        req_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(InvoicingError)
async def invoicing_error_handler(request: Request, exc: InvoicingError):
    if exc.status_code >= 500:
        error_logger.error(
            "invoicing_failed kind=%s path=%s error=%s",
            type(exc).__name__,
            request.url.path,
            exc,
            exc_info=exc,
        )
    else:
        error_logger.info("invoicing_rejected kind=%s path=%s error=%s", type(exc).__name__, request.url.path, exc)
    content: dict = {"detail": exc.detail}
    if isinstance(exc, ValidationFailure):
        content["errors"] = [{"field": v.field, "message": v.message} for v in exc.violations]
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=jsonable_encoder({"detail": "Validation failed", "errors": errors}))


app.include_router(auth_router)
app.include_router(directory_router)
app.include_router(invoices_router)


@app.get("/health", include_in_schema=False)
def health():
    return {"ok": True}
