from fastapi import HTTPException
from stockroom.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# -------------------------
# LEDGER ERRORS
# -------------------------
class NotFoundError(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NOT_FOUND, details: dict | None = None):
        super().__init__(404, message, error_code, details)


class InvalidInputError(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.VALIDATION_ERROR, details: dict | None = None):
        super().__init__(400, message, error_code, details)


class InsufficientStockError(AppException):
    def __init__(self, current_stock: int, requested: int, unit: str):
        super().__init__(
            400,
            f"Insufficient stock. Current stock: {current_stock}{unit}, "
            f"requested: {requested}{unit}",
            ErrorCode.INSUFFICIENT_STOCK,
            {
                "current_stock": current_stock,
                "requested_quantity": requested,
                "unit": unit,
            },
        )
        self.current_stock = current_stock
        self.requested = requested
        self.unit = unit


class InvariantViolationError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(400, message, ErrorCode.INVARIANT_VIOLATION, details)


class StoreFailureError(AppException):
    """Persistence failed; 409 for constraint conflicts, 500 otherwise."""
