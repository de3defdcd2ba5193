from __future__ import annotations

from meetcmu.services.error_codes import ErrorCode


class ServiceError(Exception):
    default_code = "SERVICE_ERROR"

    def __init__(self, code: ErrorCode | str | None = None, message: str | None = None) -> None:
        if isinstance(code, ErrorCode):
            code = code.value
        self.code = code or self.default_code
        self.message = message or self.code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    default_code = "NOT_FOUND"


class PermissionDeniedError(ServiceError):
    default_code = "PERMISSION_DENIED"


class ConflictError(ServiceError):
    default_code = "CONFLICT"


class ValidationError(ServiceError):
    default_code = ErrorCode.VALIDATION_ERROR.value
