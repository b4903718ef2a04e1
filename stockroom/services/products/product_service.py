# stockroom/services/products/product_service.py

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, asc, desc, or_, cast, Integer

from stockroom.core.db import unit_of_work
from stockroom.core.exceptions import AppException, NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.activity_codes import ActivityCode
from stockroom.models.products.product_models import Product
from stockroom.schemas.products.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
)
from stockroom.utils.activity_helpers import emit_activity, actor_context
from stockroom.utils.response import page_fields

logger = logging.getLogger(__name__)

INTERNAL_CODE_PREFIX = "P"
INTERNAL_CODE_DIGITS = 6

ALLOWED_SORT_FIELDS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "internal_code": Product.internal_code,
    "unique_code": Product.unique_code,
    "current_stock": Product.current_stock,
    "unit_price": Product.unit_price,
}


def _map_product(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        internal_code=product.internal_code,
        unique_code=product.unique_code,
        name=product.name,
        description=product.description,
        unit=product.unit,
        unit_price=product.unit_price,
        min_stock=product.min_stock,
        current_stock=product.current_stock,
        version=product.version,

        created_by=product.created_by_id,
        updated_by=product.updated_by_id,
        created_by_name=product.created_by_username,
        updated_by_name=product.updated_by_username,

        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def format_internal_code(number: int) -> str:
    return f"{INTERNAL_CODE_PREFIX}{number:0{INTERNAL_CODE_DIGITS}d}"


async def _next_internal_code(db: AsyncSession) -> str:
    # One past the highest code in use; gaps left by deletes are not refilled
    highest = await db.scalar(
        select(func.max(cast(func.substr(Product.internal_code, 2), Integer)))
    )
    return format_internal_code((highest or 0) + 1)


async def _load_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    product = result.unique().scalar_one_or_none()
    if not product:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )
    return product


# ---------------- CREATE ----------------
async def create_product(db: AsyncSession, payload: ProductCreate, user):
    unique_code = payload.unique_code.strip()

    exists = await db.scalar(
        select(Product.id).where(Product.unique_code == unique_code)
    )
    if exists:
        raise AppException(
            409,
            f"Unique code '{unique_code}' already exists",
            ErrorCode.PRODUCT_UNIQUE_CODE_EXISTS,
        )

    actor_id = user.id
    actor = actor_context(user)

    async with unit_of_work(db):
        product = Product(
            **payload.model_dump(exclude={"unique_code"}),
            unique_code=unique_code,
            internal_code=await _next_internal_code(db),
            current_stock=0,
            created_by_id=actor_id,
            updated_by_id=actor_id,
        )
        db.add(product)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_name"],
            code=ActivityCode.CREATE_PRODUCT,
            table_name="products",
            record_id=product.id,
            target_name=product.name,
            internal_code=product.internal_code,
            **actor,
        )

    logger.info(
        "Product created",
        extra={"product_id": product.id, "internal_code": product.internal_code},
    )
    return _map_product(await _load_product(db, product.id))


# ---------------- LIST ----------------
async def list_products(
    db: AsyncSession,
    *,
    search: str | None = None,
    product_ids: list[int] | None = None,
    low_stock_only: bool = False,
    page: int = 1,
    page_size: int | None = 20,
    sort_by: str = "created_at",
    order: str = "desc",
) -> ProductListData:
    filters = []

    if search:
        filters.append(
            or_(
                Product.internal_code.ilike(f"%{search}%"),
                Product.unique_code.ilike(f"%{search}%"),
                Product.name.ilike(f"%{search}%"),
            )
        )

    if product_ids:
        filters.append(Product.id.in_(product_ids))

    if low_stock_only:
        filters.append(Product.current_stock <= Product.min_stock)

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(
            400,
            "Invalid sort field",
            ErrorCode.VALIDATION_ERROR,
        )

    order_by = desc(sort_col) if order == "desc" else asc(sort_col)

    stmt = select(Product).where(*filters).order_by(order_by, desc(Product.id))
    if page_size is not None:
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)

    products = (await db.execute(stmt)).unique().scalars().all()

    total = await db.scalar(
        select(func.count()).select_from(
            select(Product.id).where(*filters).subquery()
        )
    )

    return ProductListData(**page_fields([_map_product(p) for p in products], total, page, page_size))


# ---------------- GET ----------------
async def get_product(db: AsyncSession, product_id: int) -> ProductOut:
    return _map_product(await _load_product(db, product_id))


async def get_product_by_code(
    db: AsyncSession,
    *,
    internal_code: str | None = None,
    unique_code: str | None = None,
) -> ProductOut:
    if not internal_code and not unique_code:
        raise AppException(
            400,
            "internal_code or unique_code is required",
            ErrorCode.VALIDATION_ERROR,
        )

    product = await find_product_id_by_code(
        db, internal_code=internal_code, unique_code=unique_code
    )
    if product is None:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"internal_code": internal_code, "unique_code": unique_code},
        )
    return _map_product(await _load_product(db, product))


async def find_product_id_by_code(
    db: AsyncSession,
    *,
    internal_code: str | None = None,
    unique_code: str | None = None,
) -> int | None:
    """Internal code wins when both are given and both match something."""
    if internal_code:
        product_id = await db.scalar(
            select(Product.id).where(Product.internal_code == internal_code.strip())
        )
        if product_id:
            return product_id

    if unique_code:
        return await db.scalar(
            select(Product.id).where(Product.unique_code == unique_code.strip())
        )

    return None


# ---------------- LOW STOCK ----------------
async def list_low_stock_products(db: AsyncSession) -> list[ProductOut]:
    result = await db.execute(
        select(Product)
        .where(Product.current_stock <= Product.min_stock)
        .order_by(asc(Product.name))
    )
    return [_map_product(p) for p in result.unique().scalars().all()]


# ---------------- UPDATE ----------------
async def update_product(
    db: AsyncSession,
    product_id: int,
    payload: ProductUpdate,
    user,
) -> ProductOut:
    current = await _load_product(db, product_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    updates = {k: v for k, v in updates.items() if v is not None or k == "description"}
    if not updates:
        raise AppException(
            400,
            "No changes detected",
            ErrorCode.VALIDATION_ERROR,
        )

    # -------------------------------------------------
    # CHANGE TRACKING
    # -------------------------------------------------
    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(current, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} -> {new_value}")

    if not changes:
        raise AppException(
            400,
            "No actual changes detected",
            ErrorCode.VALIDATION_ERROR,
        )

    actor_id = user.id
    actor = actor_context(user)

    async with unit_of_work(db):
        # -------------------------------------------------
        # OPTIMISTIC UPDATE
        # -------------------------------------------------
        result = await db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.version == payload.version,
            )
            .values(
                **updates,
                version=Product.version + 1,
                updated_by_id=actor_id,
            )
            .returning(Product.id, Product.name)
            .execution_options(synchronize_session=False)
        )
        row = result.first()

        if not row:
            raise AppException(
                409,
                "Product was modified by another process",
                ErrorCode.PRODUCT_VERSION_CONFLICT,
            )

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_name"],
            code=ActivityCode.UPDATE_PRODUCT,
            table_name="products",
            record_id=product_id,
            target_name=row.name,
            changes=", ".join(changes),
            **actor,
        )

    logger.info("Product updated", extra={"product_id": product_id})
    return _map_product(await _load_product(db, product_id))


# ---------------- DELETE ----------------
async def delete_product(db: AsyncSession, product_id: int, user) -> ProductOut:
    """Hard delete; the store cascades to the product's transactions."""
    product = _map_product(await _load_product(db, product_id))

    actor_id = user.id
    actor = actor_context(user)

    async with unit_of_work(db):
        await db.execute(
            delete(Product)
            .where(Product.id == product_id)
            .execution_options(synchronize_session=False)
        )

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_name"],
            code=ActivityCode.DELETE_PRODUCT,
            table_name="products",
            record_id=product_id,
            target_name=product.name,
            internal_code=product.internal_code,
            **actor,
        )

    logger.info("Product deleted", extra={"product_id": product_id})
    return product
