"""
购物车相关数据模型

条目同时保存两份数据：
- 加入时捕获的展示快照（name/description/base_price/image_url、选项价格），仅用于展示和差异提示
- 校验时写入的实时价格（current_base_price、current_additional_price），是计价的唯一依据
"""

from pydantic import BaseModel, Field, computed_field
from datetime import datetime
from typing import List, Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin
from .delivery import Coordinates

MIN_QUANTITY = 1
MAX_QUANTITY = 99


class CartItemStatus(str, Enum):
    """购物车条目状态枚举"""
    ACTIVE = "active"             # 正常
    MODIFIED = "modified"         # 菜单信息有变动
    UNAVAILABLE = "unavailable"   # 售罄/下架

    @property
    def severity(self) -> int:
        """严重程度: unavailable > modified > active"""
        return _STATUS_SEVERITY[self]

    def worse(self, other: "CartItemStatus") -> "CartItemStatus":
        """返回两者中更严重的状态"""
        return self if self.severity >= other.severity else other


_STATUS_SEVERITY = {
    CartItemStatus.ACTIVE: 0,
    CartItemStatus.MODIFIED: 1,
    CartItemStatus.UNAVAILABLE: 2,
}


class SelectedOption(BaseModel):
    """已选选项"""
    option_id: str = Field(..., description="选项ID")
    option_group_id: str = Field(..., description="所属选项组ID")
    name: str = Field(..., description="选项名称（加入时捕获）")
    additional_price: int = Field(0, ge=0, description="附加价格（加入时捕获）")
    stock_quantity: Optional[int] = Field(None, description="库存（加入时捕获）")
    current_additional_price: Optional[int] = Field(None, description="实时附加价格")
    is_stale: bool = Field(False, description="选项已失效，需重新选择")

    @property
    def effective_price(self) -> int:
        """计价使用的价格：有实时价格时以实时价格为准"""
        if self.current_additional_price is not None:
            return self.current_additional_price
        return self.additional_price


class CartItem(BaseEntity):
    """购物车条目"""
    item_id: str = Field(..., description="条目ID")
    menu_item_id: str = Field(..., description="菜品ID")
    restaurant_id: str = Field(..., description="菜品所属餐厅ID")
    name: str = Field(..., description="菜品名称（加入时捕获）")
    description: str = Field("", description="菜品描述（加入时捕获）")
    base_price: int = Field(..., ge=0, description="基础价格（加入时捕获）")
    image_url: str = Field("", description="图片地址（加入时捕获）")
    current_base_price: Optional[int] = Field(None, description="实时基础价格")
    quantity: int = Field(..., ge=MIN_QUANTITY, le=MAX_QUANTITY, description="数量")
    selected_options: List[SelectedOption] = Field(default_factory=list, description="已选选项")
    special_instructions: Optional[str] = Field(None, max_length=500, description="备注")
    status: CartItemStatus = Field(CartItemStatus.ACTIVE, description="条目状态")
    status_message: Optional[str] = Field(None, description="状态说明")
    added_at: Optional[datetime] = Field(None, description="加入时间")
    updated_at: Optional[datetime] = Field(None, description="更新时间")

    @property
    def effective_base_price(self) -> int:
        if self.current_base_price is not None:
            return self.current_base_price
        return self.base_price

    @computed_field
    @property
    def options_price(self) -> int:
        """有效选项的附加价格合计（失效选项不计价）"""
        return sum(opt.effective_price for opt in self.selected_options if not opt.is_stale)

    @computed_field
    @property
    def total_price(self) -> int:
        """(基础价格 + 选项价格) × 数量，每次由当前值推导"""
        return (self.effective_base_price + self.options_price) * self.quantity

    @property
    def option_ids(self) -> frozenset:
        return frozenset(opt.option_id for opt in self.selected_options)


class Cart(BaseEntity, TimestampMixin):
    """购物车"""
    cart_id: str = Field(..., description="购物车ID")
    customer_id: str = Field(..., description="顾客ID")
    restaurant_id: Optional[str] = Field(None, description="餐厅ID，首次加菜时确定")
    items: List[CartItem] = Field(default_factory=list, description="条目，按加入顺序排列")
    delivery_location: Optional[Coordinates] = Field(None, description="配送地址坐标")
    version: int = Field(0, ge=0, description="乐观锁版本号")

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None
