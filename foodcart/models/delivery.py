"""
配送相关数据模型
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class Coordinates(BaseModel):
    """经纬度坐标"""
    latitude: float = Field(..., ge=-90, le=90, description="纬度")
    longitude: float = Field(..., ge=-180, le=180, description="经度")


class DistanceBand(BaseModel):
    """距离阶梯：距离不超过 max_distance_km 时收取 additional_fee"""
    max_distance_km: float = Field(..., gt=0, description="阶梯上限（公里）")
    additional_fee: int = Field(..., ge=0, description="附加配送费")


class DeliveryContext(BaseModel):
    """一次报价所需的全部配送参数，每次调用显式传入"""
    origin: Optional[Coordinates] = Field(None, description="餐厅位置")
    destination: Optional[Coordinates] = Field(None, description="配送地址")
    delivery_available: bool = Field(True, description="餐厅是否提供配送")
    service_radius_km: float = Field(..., gt=0, description="可配送半径（公里）")
    base_fee: int = Field(..., ge=0, description="基础配送费")
    distance_bands: List[DistanceBand] = Field(default_factory=list, description="距离附加费阶梯")
    free_delivery_min_amount: Optional[int] = Field(None, ge=0, description="免配送费门槛")
    preparation_time: int = Field(0, ge=0, description="出餐时间（分钟）")
    courier_speed_kmh: float = Field(20.0, gt=0, description="骑手平均速度")


class DeliveryQuote(BaseModel):
    """配送报价"""
    is_available: bool = Field(..., description="是否可配送")
    base_fee: int = Field(0, description="基础配送费")
    additional_fee: int = Field(0, description="距离附加费")
    total_fee: int = Field(0, description="实收配送费")
    free_delivery_min_amount: Optional[int] = Field(None, description="免配送费门槛")
    unavailable_reason: Optional[str] = Field(None, description="不可配送原因")
    distance_km: Optional[float] = Field(None, description="配送距离（公里）")
    estimated_time: Optional[int] = Field(None, description="预计送达时间（分钟）")
    fee_waived: bool = Field(False, description="配送费是否被减免")
