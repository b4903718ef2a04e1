# stockroom/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORE_FAILURE = "STORE_FAILURE"

    # ---------------- LEDGER ----------------
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

    # ---------------- PRODUCTS ----------------
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_UNIQUE_CODE_EXISTS = "PRODUCT_UNIQUE_CODE_EXISTS"
    PRODUCT_VERSION_CONFLICT = "PRODUCT_VERSION_CONFLICT"

    # ---------------- USERS ----------------
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_ROLE_INVALID = "USER_ROLE_INVALID"
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    USER_VERSION_CONFLICT = "USER_VERSION_CONFLICT"
    USER_SELF_DEACTIVATION = "USER_SELF_DEACTIVATION"

    # ---------------- FILES ----------------
    INVALID_FILE = "INVALID_FILE"
    BACKUP_NOT_FOUND = "BACKUP_NOT_FOUND"
    BACKUP_UNSUPPORTED = "BACKUP_UNSUPPORTED"
