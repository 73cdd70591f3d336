"""
基础数据模型
定义通用的模型基类和常用字段
"""

from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union


class TimestampMixin(BaseModel):
    """时间戳混入类"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """基础实体模型"""

    model_config = {"from_attributes": True, "use_enum_values": False}


def decimal_to_number(value: Decimal) -> Union[int, float]:
    """金额类 Decimal 输出为 JSON 数字：整数金额为 int，含小数时为 float"""
    if value == value.to_integral_value():
        return int(value)
    return float(value)
