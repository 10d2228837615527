"""
Product catalog endpoints with Redis caching.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.product import ProductResponse
from slotbook.services.product_service import get_product, list_products
from slotbook.services.cache_service import (
    get_cached_product,
    get_cached_products,
    set_cached_product,
    set_cached_products,
)
from slotbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=list[ProductResponse])
async def list_products_endpoint(db: AsyncSession = Depends(get_db)):
    """List all products. Cached in Redis; products are immutable."""
    cached = await get_cached_products()
    if cached is not None:
        logger.info("products_list_cache_hit")
        return [ProductResponse.model_validate(p) for p in cached]

    products = await list_products(db)
    response = [ProductResponse.model_validate(p) for p in products]
    await set_cached_products([p.model_dump(mode="json") for p in response])
    return response


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product_endpoint(product_id: UUID, db: AsyncSession = Depends(get_db)):
    """Get a single product by ID."""
    cached = await get_cached_product(product_id)
    if cached is not None:
        return ProductResponse.model_validate(cached)

    product = await get_product(db, product_id)
    response = ProductResponse.model_validate(product)
    await set_cached_product(product_id, response.model_dump(mode="json"))
    return response
