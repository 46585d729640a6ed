from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from common.core.config import settings
from common.core.constants import Environment
from common.core.exceptions import (
    AppException,
    DataSourceError,
    ExternalProcessorError,
    NotFoundError,
    ValidationError,
)
from api.v1.routes.router import api_router
from packages.metering.exceptions import ReconciliationInProgressError

# Initialize Axiom OpenTelemetry exporter (must be first)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from common.core.otel_axiom_exporter import (
    _initialize_telemetry,
    get_logger,
)  # noqa


_initialize_telemetry()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    yield
    logger.info("Shutting down application...")


# Only expose OpenAPI docs in local development
is_local = settings.environment == Environment.LOCAL
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if is_local else None,
    redoc_url="/redoc" if is_local else None,
    openapi_url="/openapi.json" if is_local else None,
)

# Domain errors -> HTTP. Order matters: subclasses before their bases.
_STATUS_BY_ERROR: list[tuple[type[AppException], int]] = [
    (ReconciliationInProgressError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_409_CONFLICT),
    (ExternalProcessorError, status.HTTP_502_BAD_GATEWAY),
    (DataSourceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"{type(exc).__name__}: {exc}",
        extra={"path": request.url.path, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Instrument FastAPI with OpenTelemetry
FastAPIInstrumentor.instrument_app(app)

# Add gzip compression middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


# Internal health endpoint for k8s probes - not under /api/v1 to avoid external spam
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}
