# stockroom/constants/activity_codes.py

from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- AUTH ----------------
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # ---------------- USERS ----------------
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"

    # ---------------- PRODUCTS ----------------
    CREATE_PRODUCT = "CREATE_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"

    # ---------------- LEDGER ----------------
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    DELETE_TRANSACTION = "DELETE_TRANSACTION"
    RECOMPUTE_STOCK = "RECOMPUTE_STOCK"

    # ---------------- FILES ----------------
    IMPORT_SPREADSHEET = "IMPORT_SPREADSHEET"
    CREATE_BACKUP = "CREATE_BACKUP"
    RESTORE_BACKUP = "RESTORE_BACKUP"
    DELETE_BACKUP = "DELETE_BACKUP"
    CLEANUP_BACKUPS = "CLEANUP_BACKUPS"
