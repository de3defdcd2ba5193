import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from meetcmu.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def http_error_from_service(err: ServiceError) -> HTTPException:
    if isinstance(err, NotFoundError):
        status = 404
    elif isinstance(err, PermissionDeniedError):
        status = 403
    elif isinstance(err, ConflictError):
        status = 409
    elif isinstance(err, ValidationError):
        status = 422
    else:
        status = 500

    return HTTPException(
        status_code=status,
        detail={"code": err.code, "message": err.message},
    )


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "BAD_REQUEST", "message": message})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "DATABASE_ERROR", "message": "please try again"}},
    )
