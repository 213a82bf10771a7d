"""Product catalogue service.

Listing is public (active products only). Mutations run after the route
has passed the permission gate; ownership for a product is its
`created_by` user and its `merchant_id` scope.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Role
from app.config import settings
from app.errors import InvalidState, NotFound
from app.models.product import Product
from app.schemas.common import PaginatedResponse
from app.schemas.product import ProductCreate, ProductOut, ProductUpdate
from app.utils.cache import cached, invalidate_cache


@cached(ttl=settings.products_list_cache_ttl, prefix="products")
async def list_products(
    db: AsyncSession,
    *,
    search: str | None = None,
    merchant_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    stmt = select(Product).where(Product.is_active.is_(True))
    count_stmt = select(func.count(Product.id)).where(Product.is_active.is_(True))

    if merchant_id is not None:
        stmt = stmt.where(Product.merchant_id == merchant_id)
        count_stmt = count_stmt.where(Product.merchant_id == merchant_id)
    if search:
        pattern = f"%{search}%"
        cond = or_(Product.name.ilike(pattern), Product.sku.ilike(pattern))
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)

    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(
        stmt.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).offset(offset)
    )
    page = PaginatedResponse[ProductOut](
        items=[ProductOut.model_validate(p) for p in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )
    return page.model_dump(mode="json")


async def get_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product).where(Product.id == product_id, Product.is_active.is_(True))
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFound("Product", product_id)
    return product


async def create_product(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    body: ProductCreate,
) -> Product:
    """Create a product in the caller's merchant scope.

    Admins and super admins must say which merchant the product belongs to.
    """
    if principal.role in (Role.ADMIN, Role.SUPER_ADMIN):
        if body.merchant_id is None:
            raise InvalidState("merchant_id is required", error_code="MERCHANT_REQUIRED")
        merchant_id = body.merchant_id
    else:
        merchant_id = principal.effective_merchant_id

    product = Product(
        **body.model_dump(exclude={"merchant_id"}),
        merchant_id=merchant_id,
        created_by=principal.id,
    )
    db.add(product)
    await db.flush()

    await invalidate_cache("products:*")
    return product


async def update_product(
    db: AsyncSession,
    product_id: int,
    body: ProductUpdate,
) -> Product:
    product = await get_product(db, product_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(product, field, value)
    await db.flush()

    await invalidate_cache("products:*")
    return product


async def delete_product(db: AsyncSession, product_id: int) -> None:
    """Soft delete: the product drops out of listings and lookups."""
    product = await get_product(db, product_id)
    product.is_active = False
    await db.flush()

    await invalidate_cache("products:*")
