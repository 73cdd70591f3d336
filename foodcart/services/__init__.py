"""
Business logic services.
Contains the cart pricing engine and the service layer used by the API.
"""

from .validation_service import ValidationService, validation_service
from .discount_service import DiscountService, discount_service
from .delivery_service import DeliveryService, delivery_service, haversine_km
from .pricing_service import PricingService, pricing_service
from .cart_aggregate import CartAggregate
from .cart_repository import CartRepository, cart_repository
from .providers import (
    RestaurantProvider,
    MenuSnapshotProvider,
    DiscountCatalogProvider,
    OrderHistoryProvider,
)
from .cart_service import CartService, cart_service

__all__ = [
    "ValidationService",
    "DiscountService",
    "DeliveryService",
    "PricingService",
    "CartAggregate",
    "CartRepository",
    "RestaurantProvider",
    "MenuSnapshotProvider",
    "DiscountCatalogProvider",
    "OrderHistoryProvider",
    "CartService",
    "haversine_km",
    "validation_service",
    "discount_service",
    "delivery_service",
    "pricing_service",
    "cart_repository",
    "cart_service",
]
