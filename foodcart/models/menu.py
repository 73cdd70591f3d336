"""
菜单快照数据模型
菜单由外部目录服务提供，本系统只读，不拥有
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class MenuOptionSnapshot(BaseModel):
    """菜品选项的实时状态"""
    option_id: str = Field(..., description="选项ID")
    option_group_id: str = Field(..., description="所属选项组ID")
    name: str = Field("", description="选项名称")
    available: bool = Field(True, description="是否可选")
    additional_price: int = Field(0, ge=0, description="附加价格")
    stock: Optional[int] = Field(None, description="库存，None表示不跟踪库存")

    @property
    def in_stock(self) -> bool:
        """库存是否充足（不跟踪库存视为充足）"""
        return self.stock is None or self.stock >= 1

    @property
    def orderable(self) -> bool:
        return self.available and self.in_stock


class MenuOptionGroup(BaseModel):
    """选项组定义"""
    group_id: str = Field(..., description="选项组ID")
    name: str = Field("", description="选项组名称")
    is_required: bool = Field(False, description="是否必选")
    min_selections: int = Field(0, ge=0, description="最少选择数")
    max_selections: Optional[int] = Field(None, ge=1, description="最多选择数")

    @property
    def effective_min(self) -> int:
        """必选组至少选择一项"""
        if self.is_required:
            return max(self.min_selections, 1)
        return self.min_selections


class MenuItemSnapshot(BaseModel):
    """菜品的实时状态"""
    item_id: str = Field(..., description="菜品ID")
    restaurant_id: Optional[str] = Field(None, description="餐厅ID")
    available: bool = Field(True, description="是否可下单")
    base_price: int = Field(..., ge=0, description="基础价格")
    name: str = Field(..., description="菜品名称")
    description: str = Field("", description="菜品描述")
    image_url: str = Field("", description="图片地址")
    options: Dict[str, MenuOptionSnapshot] = Field(default_factory=dict, description="选项，按选项ID索引")
    option_groups: Dict[str, MenuOptionGroup] = Field(default_factory=dict, description="选项组，按组ID索引")


class MenuSnapshot(BaseModel):
    """某一时刻餐厅菜单的只读快照"""
    restaurant_id: str = Field(..., description="餐厅ID")
    items: Dict[str, MenuItemSnapshot] = Field(default_factory=dict, description="菜品，按菜品ID索引")

    def get(self, item_id: str) -> Optional[MenuItemSnapshot]:
        return self.items.get(item_id)

    @classmethod
    def from_items(cls, restaurant_id: str, items: List[MenuItemSnapshot]) -> "MenuSnapshot":
        """由菜品列表构建快照"""
        return cls(restaurant_id=restaurant_id, items={item.item_id: item for item in items})
