"""
计价结果相关数据模型
"""

from pydantic import BaseModel, Field, computed_field, field_serializer
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from .base import decimal_to_number
from .cart import Cart, CartItem, CartItemStatus
from .delivery import DeliveryQuote
from .discount import DiscountApplication


class ValidatedCart(BaseModel):
    """校验后的购物车副本，条目状态和消息已按实时菜单更新"""
    cart: Cart = Field(..., description="购物车副本")
    warnings: List[str] = Field(default_factory=list, description="不影响下单的提醒")

    @property
    def items(self) -> List[CartItem]:
        return self.cart.items

    @property
    def usable_items(self) -> List[CartItem]:
        """参与计价的条目（非 unavailable）"""
        return [item for item in self.cart.items if item.status != CartItemStatus.UNAVAILABLE]

    @property
    def active_items(self) -> List[CartItem]:
        """可下单的条目（active），modified 条目需顾客确认后才算"""
        return [item for item in self.cart.items if item.status == CartItemStatus.ACTIVE]

    @property
    def changed_items(self) -> List[CartItem]:
        return [item for item in self.cart.items if item.status == CartItemStatus.MODIFIED]

    @property
    def unavailable_items(self) -> List[CartItem]:
        return [item for item in self.cart.items if item.status == CartItemStatus.UNAVAILABLE]


class PriceBreakdown(BaseModel):
    """价格明细，每次调用重新计算"""
    subtotal: int = Field(..., ge=0, description="有效条目小计")
    delivery_fee: int = Field(..., ge=0, description="配送费")
    discount_amount: Decimal = Field(..., ge=0, description="优惠合计")
    total_amount: int = Field(..., ge=0, description="应付金额")
    applied_discounts: List[DiscountApplication] = Field(default_factory=list, description="生效的优惠")
    amount_for_free_delivery: Optional[int] = Field(None, description="距免配送费还差的金额")

    @field_serializer("discount_amount", when_used="json")
    def _serialize_discount_amount(self, value: Decimal):
        return decimal_to_number(value)


class RestaurantSummary(BaseModel):
    """餐厅摘要"""
    restaurant_id: str = Field(..., description="餐厅ID")
    name: str = Field(..., description="餐厅名称")
    image_url: str = Field("", description="图片地址")
    minimum_order_amount: int = Field(0, description="最低起送金额")
    is_open: bool = Field(True, description="是否营业中")
    business_status: str = Field("", description="营业状态")
    preparation_time: int = Field(0, description="出餐时间（分钟）")


class CartSnapshot(BaseModel):
    """对外暴露的完整、自洽的购物车计价结果"""
    cart: Cart = Field(..., description="购物车（含条目状态）")
    restaurant: Optional[RestaurantSummary] = Field(None, description="餐厅摘要")
    pricing: PriceBreakdown = Field(..., description="价格明细")
    delivery: DeliveryQuote = Field(..., description="配送报价")
    warnings: List[str] = Field(default_factory=list, description="提醒")
    can_order: bool = Field(..., description="是否可下单")
    order_block_reason: Optional[str] = Field(None, description="不可下单的原因")

    @computed_field
    @property
    def total_items(self) -> int:
        return len(self.cart.items)

    @computed_field
    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.cart.items)


class CartValidationReport(BaseModel):
    """购物车校验报告"""
    is_valid: bool = Field(..., description="所有条目是否均可下单")
    can_proceed_to_order: bool = Field(..., description="能否进入结算")
    messages: List[str] = Field(default_factory=list, description="提示消息")
    warnings: List[str] = Field(default_factory=list, description="提醒")
    changed_items: List[str] = Field(default_factory=list, description="有变动的菜品名称")
    unavailable_items: List[str] = Field(default_factory=list, description="不可下单的菜品名称")
    validated_at: datetime = Field(..., description="校验时间")
