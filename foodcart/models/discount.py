"""
优惠相关数据模型
"""

from pydantic import BaseModel, Field, field_serializer
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from enum import Enum
from .base import decimal_to_number


class DiscountKind(str, Enum):
    """优惠类型枚举"""
    PERCENTAGE = "percentage"        # 按比例
    FIXED = "fixed"                  # 固定金额
    FREE_DELIVERY = "free_delivery"  # 免配送费

    @property
    def is_amount(self) -> bool:
        """是否为作用于小计的金额类优惠"""
        return self is not DiscountKind.FREE_DELIVERY


class DiscountRule(BaseModel):
    """优惠目录中的一条规则

    eligible 由目录提供方根据顾客/餐厅/时间窗口预先求值，本引擎不解释其含义。
    """
    id: str = Field(..., description="规则ID")
    name: str = Field(..., description="优惠名称")
    kind: DiscountKind = Field(..., description="优惠类型")
    value: Decimal = Field(Decimal(0), ge=0, description="比例(%)或金额")
    min_order_amount: int = Field(0, ge=0, description="最低订单金额")
    max_discount_amount: Optional[int] = Field(None, ge=0, description="最高优惠金额")
    stackable: bool = Field(False, description="是否可与其他优惠叠加")
    stackable_with: List[str] = Field(default_factory=list, description="明确可叠加的规则ID")
    eligible: bool = Field(True, description="资格判定结果")
    description: str = Field("", description="优惠说明")

    def compatible_with(self, other: "DiscountRule") -> bool:
        """两条规则能否同时生效"""
        if self.stackable and other.stackable:
            return True
        return other.id in self.stackable_with or self.id in other.stackable_with


class DiscountContext(BaseModel):
    """优惠资格判定上下文"""
    customer_id: Optional[str] = Field(None, description="顾客ID")
    restaurant_id: str = Field(..., description="餐厅ID")
    at: datetime = Field(..., description="判定时间")


class DiscountApplication(BaseModel):
    """一次计价中实际生效的优惠，每次重新计算，不随购物车保存"""
    id: str = Field(..., description="应用ID")
    discount_id: str = Field(..., description="来源规则ID")
    name: str = Field(..., description="优惠名称")
    kind: DiscountKind = Field(..., description="优惠类型")
    value: Decimal = Field(..., description="规则原始值")
    discount_amount: Decimal = Field(..., ge=0, description="实际优惠金额")
    min_order_amount: int = Field(0, description="最低订单金额")
    max_discount_amount: Optional[int] = Field(None, description="最高优惠金额")
    description: str = Field("", description="优惠说明")

    @field_serializer("value", "discount_amount", when_used="json")
    def _serialize_amounts(self, value: Decimal):
        return decimal_to_number(value)
