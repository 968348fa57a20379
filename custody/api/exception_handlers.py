from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from custody.core.metrics import count_rejection
from custody.domain.exceptions import (
    BusinessValidationError,
    CustodyError,
    Forbidden,
    InvalidTarget,
    NotFound,
    Unauthorized,
)

logger = logging.getLogger("custody.access")

_STATUS_BY_ERROR: dict[type[CustodyError], int] = {
    Unauthorized: status.HTTP_403_FORBIDDEN,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTarget: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _route_template(request: Request) -> str:
    # /records/{record_id} rather than /records/17
    return getattr(request.scope.get("route"), "path", None) or "unmatched"


def _status_for(exc: CustodyError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(CustodyError)
    async def handle_custody_error(request: Request, exc: CustodyError) -> JSONResponse:
        status_code = _status_for(exc)
        count_rejection(error=exc.code)
        logger.info(
            "Custody operation rejected",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "http_method": request.method,
                "request_path": _route_template(request),
                "status_code": status_code,
                "error": exc.code,
            },
        )
        return JSONResponse(
            status_code=status_code, content={"detail": exc.message, "error": exc.code}
        )

    @app.exception_handler(BusinessValidationError)
    async def handle_business_validation_error(
        request: Request,
        exc: BusinessValidationError,
    ) -> JSONResponse:
        logger.info(
            "Business validation failed",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "http_method": request.method,
                "request_path": _route_template(request),
                "status_code": 400,
                "error": "business_validation",
            },
        )
        return JSONResponse(
            status_code=400, content={"detail": exc.message, "error": "business_validation"}
        )
