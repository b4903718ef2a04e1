from stockroom.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- AUTH ----------------
    ActivityCode.LOGIN:
        "{actor_role} ({actor_name}) logged in",

    ActivityCode.LOGOUT:
        "{actor_role} ({actor_name}) logged out",

    # ---------------- USERS ----------------
    ActivityCode.CREATE_USER:
        "{actor_role} ({actor_name}) created user {target_name} with role {target_role}",

    ActivityCode.UPDATE_USER:
        "{actor_role} ({actor_name}) updated user {target_name}: {changes}",

    ActivityCode.DEACTIVATE_USER:
        "{actor_role} ({actor_name}) deactivated user {target_name}",

    # ---------------- PRODUCTS ----------------
    ActivityCode.CREATE_PRODUCT:
        "{actor_role} ({actor_name}) created product {target_name} ({internal_code})",

    ActivityCode.UPDATE_PRODUCT:
        "{actor_role} ({actor_name}) updated product {target_name}: {changes}",

    ActivityCode.DELETE_PRODUCT:
        "{actor_role} ({actor_name}) deleted product {target_name} ({internal_code})",

    # ---------------- LEDGER ----------------
    ActivityCode.INBOUND:
        "{actor_role} ({actor_name}) received {quantity}{unit} of {target_name} "
        "on {transaction_date}",

    ActivityCode.OUTBOUND:
        "{actor_role} ({actor_name}) shipped {quantity}{unit} of {target_name} "
        "on {transaction_date}",

    ActivityCode.DELETE_TRANSACTION:
        "{actor_role} ({actor_name}) deleted {transaction_type} transaction #{target_id} "
        "of {quantity} for product {product_id}",

    ActivityCode.RECOMPUTE_STOCK:
        "{actor_role} ({actor_name}) recomputed stock: "
        "{corrected} of {examined} products corrected",

    # ---------------- FILES ----------------
    ActivityCode.IMPORT_SPREADSHEET:
        "{actor_role} ({actor_name}) imported {kind} spreadsheet: "
        "{success_count} succeeded, {failed_count} failed",

    ActivityCode.CREATE_BACKUP:
        "{actor_role} ({actor_name}) created backup {filename}",

    ActivityCode.RESTORE_BACKUP:
        "{actor_role} ({actor_name}) restored backup {filename}",

    ActivityCode.DELETE_BACKUP:
        "{actor_role} ({actor_name}) deleted backup {filename}",

    ActivityCode.CLEANUP_BACKUPS:
        "{actor_role} ({actor_name}) removed {deleted_count} backups older than {days} days",
}
