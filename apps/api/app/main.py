import logging
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request
from starlette.responses import Response

from .errors import DomainError
from .logging_config import configure_logging
from .routers.admin_email import router as admin_email_router
from .routers.audit import router as audit_router
from .routers.compliance import router as compliance_router
from .routers.customers import router as customers_router
from .routers.health import router as health_router
from .routers.public import router as public_router
from .routers.trackings import router as trackings_router
from .routers.trackings import types_router as tracking_types_router
from .settings import settings

configure_logging()
logger = logging.getLogger("app")

app = FastAPI(title="OneClickTag API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[override]
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    content: dict[str, object] = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity error request_id=%s: %s", _request_id(request), exc.orig)
    return JSONResponse(status_code=409, content={"detail": "conflict with existing data"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error request_id=%s path=%s", _request_id(request), request.url.path)
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


app.include_router(health_router)
app.include_router(customers_router)
app.include_router(trackings_router)
app.include_router(tracking_types_router)
app.include_router(admin_email_router)
app.include_router(compliance_router)
app.include_router(public_router)
app.include_router(audit_router)
