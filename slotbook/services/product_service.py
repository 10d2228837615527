"""
Product service: read-only catalog lookups.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.errors import STORE_ERRORS, NotFoundError, store_error
from slotbook.models.product import Product


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    """Get a single product by ID."""
    try:
        result = await db.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get product") from exc

    if not product:
        raise NotFoundError("product", product_id)
    return product


async def list_products(db: AsyncSession) -> list[Product]:
    """All products, ordered by name."""
    try:
        result = await db.execute(select(Product).order_by(Product.name.asc(), Product.id.asc()))
    except STORE_ERRORS as exc:
        raise store_error(exc, "list products") from exc
    return list(result.scalars().all())
