"""
Request/response schemas for the HTTP API.
"""

from .cart import (
    AddCartItemRequest,
    UpdateCartItemRequest,
    DeliveryLocationRequest,
    QuickReorderRequest,
)

__all__ = [
    "AddCartItemRequest",
    "UpdateCartItemRequest",
    "DeliveryLocationRequest",
    "QuickReorderRequest",
]
