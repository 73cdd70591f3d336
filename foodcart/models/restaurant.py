"""
餐厅元数据模型
"""

from pydantic import BaseModel, Field
from typing import Optional
from .delivery import Coordinates


class RestaurantInfo(BaseModel):
    """餐厅信息（外部数据源，只读）"""
    restaurant_id: str = Field(..., description="餐厅ID")
    name: str = Field(..., description="餐厅名称")
    image_url: str = Field("", description="图片地址")
    minimum_order_amount: int = Field(0, ge=0, description="最低起送金额")
    is_open: bool = Field(True, description="是否营业中")
    delivery_available: bool = Field(True, description="是否提供配送")
    preparation_time: int = Field(0, ge=0, description="出餐时间（分钟）")
    delivery_fee: Optional[int] = Field(None, ge=0, description="基础配送费")
    free_delivery_min_amount: Optional[int] = Field(None, ge=0, description="免配送费门槛")
    service_radius_km: Optional[float] = Field(None, gt=0, description="可配送半径（公里）")
    location: Optional[Coordinates] = Field(None, description="餐厅位置")

    @property
    def business_status(self) -> str:
        return "营业中" if self.is_open else "已打烊"
