"""
历史订单数据模型（仅用于快速再来一单，订单本身不由本系统创建）
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class ReorderQuantityPolicy(str, Enum):
    """再来一单时的数量处理策略"""
    KEEP = "keep"                      # 保持原数量
    RESET_TO_ONE = "reset_to_one"      # 数量重置为1
    CLAMP_TO_STOCK = "clamp_to_stock"  # 按选项库存截断
    REJECT = "reject"                  # 库存不足时拒绝


class PastOrderItem(BaseModel):
    """历史订单条目"""
    menu_item_id: str = Field(..., description="菜品ID")
    quantity: int = Field(..., ge=1, description="数量")
    option_ids: List[str] = Field(default_factory=list, description="已选选项ID")
    special_instructions: Optional[str] = Field(None, description="备注")


class PastOrder(BaseEntity, TimestampMixin):
    """历史订单"""
    order_id: str = Field(..., description="订单ID")
    customer_id: str = Field(..., description="顾客ID")
    restaurant_id: str = Field(..., description="餐厅ID")
    items: List[PastOrderItem] = Field(default_factory=list, description="订单条目")
