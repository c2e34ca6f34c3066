"""Maps router exceptions to HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arbitrage_router.errors import (
    ArbitrageRouterError, ExecutionTooEarly, InvalidTransactionStatus, ProgramPaused,
    ProtectionInactive, ReportNotFound, RouterInactive, TransactionNotFound, Unauthorized,
    ValidationError
)

logger = logging.getLogger(__name__)


# Checked in order; the first matching class wins, anything else is 422
STATUS_CODES = [
    (ValidationError, 400),
    (Unauthorized, 403),
    (TransactionNotFound, 404),
    (ReportNotFound, 404),
    (InvalidTransactionStatus, 409),
    (ExecutionTooEarly, 409),
    (RouterInactive, 409),
    (ProgramPaused, 409),
    (ProtectionInactive, 409),
]
DEFAULT_STATUS_CODE = 422


def status_code_for(error: ArbitrageRouterError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return DEFAULT_STATUS_CODE


async def router_error_handler(request: Request, exc: ArbitrageRouterError) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.warning if status_code >= 422 else logger.info
    log(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArbitrageRouterError, router_error_handler)
