# Catalog
from stockroom.models.products.product_models import Product

# Ledger
from stockroom.models.ledger.transaction_models import StockTransaction

# users and auth
from stockroom.models.users.user_models import User, RefreshToken
from stockroom.models.support.activity_models import UserActivity
