# stockroom/constants/roles.py

ADMIN = "admin"
USER = "user"

ALLOWED_ROLES = {ADMIN, USER}
