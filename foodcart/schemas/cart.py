"""
购物车相关的请求模式
数量范围在领域层校验（InvalidQuantityError），这里不做限制
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from ..models.order import ReorderQuantityPolicy


class AddCartItemRequest(BaseModel):
    """添加条目请求"""
    menu_item_id: str = Field(..., description="菜品ID")
    quantity: int = Field(1, description="数量")
    option_ids: List[str] = Field(default_factory=list, description="选择的选项ID")
    special_instructions: Optional[str] = Field(None, max_length=200, description="备注")


class UpdateCartItemRequest(BaseModel):
    """修改条目请求，未提供的字段保持不变"""
    quantity: Optional[int] = Field(None, description="数量")
    option_ids: Optional[List[str]] = Field(None, description="选择的选项ID")
    special_instructions: Optional[str] = Field(None, max_length=200, description="备注")


class DeliveryLocationRequest(BaseModel):
    """配送地址请求"""
    latitude: float = Field(..., ge=-90, le=90, description="纬度")
    longitude: float = Field(..., ge=-180, le=180, description="经度")


class QuickReorderRequest(BaseModel):
    """快速再来一单请求"""
    order_id: str = Field(..., description="历史订单ID")
    exclude_unavailable: bool = Field(True, description="跳过已不可下单的菜品")
    quantity_policy: Optional[ReorderQuantityPolicy] = Field(None, description="数量处理策略")
