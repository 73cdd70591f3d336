"""
Domain models for the cart pricing engine.
"""

from .cart import Cart, CartItem, CartItemStatus, SelectedOption, MIN_QUANTITY, MAX_QUANTITY
from .menu import MenuSnapshot, MenuItemSnapshot, MenuOptionSnapshot, MenuOptionGroup
from .discount import DiscountKind, DiscountRule, DiscountContext, DiscountApplication
from .delivery import Coordinates, DistanceBand, DeliveryContext, DeliveryQuote
from .restaurant import RestaurantInfo
from .order import PastOrder, PastOrderItem, ReorderQuantityPolicy
from .pricing import (
    ValidatedCart,
    PriceBreakdown,
    RestaurantSummary,
    CartSnapshot,
    CartValidationReport,
)

__all__ = [
    "Cart", "CartItem", "CartItemStatus", "SelectedOption", "MIN_QUANTITY", "MAX_QUANTITY",
    "MenuSnapshot", "MenuItemSnapshot", "MenuOptionSnapshot", "MenuOptionGroup",
    "DiscountKind", "DiscountRule", "DiscountContext", "DiscountApplication",
    "Coordinates", "DistanceBand", "DeliveryContext", "DeliveryQuote",
    "RestaurantInfo", "PastOrder", "PastOrderItem", "ReorderQuantityPolicy",
    "ValidatedCart", "PriceBreakdown", "RestaurantSummary", "CartSnapshot", "CartValidationReport",
]
