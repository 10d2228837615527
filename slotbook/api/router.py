"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from slotbook.api.routes import products, availability, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(products.router)
api_router.include_router(availability.router)
api_router.include_router(bookings.router)
