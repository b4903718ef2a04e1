# stockroom/routers/__init__.py

from .auth.auth_router import router as auth_router
from .auth.activity_router import router as activity_router
from .users.user_router import router as user_router

from .products.product_router import router as product_router
from .ledger.transaction_router import router as transaction_router
from .inventory.inventory_router import router as inventory_router

from .exports.export_router import router as export_router
from .backups.backup_router import router as backup_router


__all__ = [
"auth_router",
"activity_router",
"user_router",

"product_router",
"transaction_router",
"inventory_router",

"export_router",
"backup_router",
]
