"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import carts

api_router = APIRouter()

api_router.include_router(carts.router, prefix="/carts", tags=["购物车"])
