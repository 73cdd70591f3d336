"""
购物车校验服务
将购物车中每个条目与实时菜单快照逐一比对，写回条目状态和说明

校验规则：
- 菜品不存在或不可下单 → unavailable，不参与计价
- 基础价格、名称或选项价格发生变化 → modified，按实时价格计价
- 选项下架、不存在或库存不足1 → 选项标记为失效；
  若该选项不能单独移除（必选组移除后低于最少选择数），整个条目 unavailable，否则 modified
- 状态取最严重者：unavailable > modified > active
- unavailable 条目不会自动恢复，需顾客删除后重新添加

校验不修改菜单快照，也不修改传入的购物车，只返回带状态的副本。
"""

from typing import List, Optional, Tuple
from ..core.exceptions import InconsistentCartError
from ..models.cart import Cart, CartItem, CartItemStatus, SelectedOption
from ..models.menu import MenuItemSnapshot, MenuSnapshot
from ..models.pricing import ValidatedCart


class ValidationService:
    """购物车校验服务"""

    def validate(self, cart: Cart, menu_snapshot: MenuSnapshot) -> ValidatedCart:
        """
        按实时菜单校验购物车

        Args:
            cart: 待校验的购物车
            menu_snapshot: 该餐厅的实时菜单快照

        Returns:
            ValidatedCart: 条目状态已更新的购物车副本及提醒

        Raises:
            InconsistentCartError: 条目或菜单快照属于其他餐厅时
        """
        self._check_single_restaurant(cart, menu_snapshot)

        validated = cart.model_copy(deep=True)
        warnings: List[str] = []

        for item in validated.items:
            live = menu_snapshot.get(item.menu_item_id)
            status, messages = self._validate_item(item, live)
            item.status = status
            item.status_message = "；".join(messages) if messages else None
            if status != CartItemStatus.UNAVAILABLE:
                warnings.extend(self._stock_warnings(item, live))

        return ValidatedCart(cart=validated, warnings=warnings)

    def _check_single_restaurant(self, cart: Cart, menu_snapshot: MenuSnapshot):
        """所有条目必须属于购物车所在餐厅"""
        restaurant_ids = [item.restaurant_id for item in cart.items]
        if cart.restaurant_id is not None:
            restaurant_ids.append(cart.restaurant_id)
        if len(set(restaurant_ids)) > 1:
            raise InconsistentCartError(cart.cart_id, restaurant_ids)
        if restaurant_ids and menu_snapshot.restaurant_id != restaurant_ids[0]:
            raise InconsistentCartError(cart.cart_id, restaurant_ids + [menu_snapshot.restaurant_id])

    def _validate_item(self, item: CartItem,
                       live: Optional[MenuItemSnapshot]) -> Tuple[CartItemStatus, List[str]]:
        """校验单个条目，返回状态和说明"""
        if item.status == CartItemStatus.UNAVAILABLE:
            # 不自动恢复
            return CartItemStatus.UNAVAILABLE, [item.status_message or "该菜品已不可下单，请删除后重新添加"]

        if live is None:
            item.current_base_price = None
            return CartItemStatus.UNAVAILABLE, ["菜品已下架"]
        if not live.available:
            item.current_base_price = live.base_price
            return CartItemStatus.UNAVAILABLE, ["菜品暂时无法下单"]

        status = CartItemStatus.ACTIVE
        messages: List[str] = []

        item.current_base_price = live.base_price
        if live.base_price != item.base_price:
            status = status.worse(CartItemStatus.MODIFIED)
            messages.append(f"价格由{item.base_price}变为{live.base_price}")
        if live.name != item.name:
            status = status.worse(CartItemStatus.MODIFIED)
            messages.append(f"菜品名称已由「{item.name}」更新为「{live.name}」")

        # 先确定所有选项的失效情况，再判断能否单独移除
        for option in item.selected_options:
            live_option = live.options.get(option.option_id)
            option.is_stale = live_option is None or not live_option.orderable

        for option in item.selected_options:
            option_status, option_message = self._validate_option(item, option, live)
            status = status.worse(option_status)
            if option_message:
                messages.append(option_message)

        return status, messages

    def _validate_option(self, item: CartItem, option: SelectedOption,
                         live: MenuItemSnapshot) -> Tuple[CartItemStatus, Optional[str]]:
        """校验单个选项，返回该选项隐含的条目状态"""
        live_option = live.options.get(option.option_id)

        if option.is_stale:
            option.current_additional_price = live_option.additional_price if live_option else None
            if live_option is None:
                reason = f"选项「{option.name}」已不存在"
            elif not live_option.available:
                reason = f"选项「{option.name}」已下架"
            else:
                reason = f"选项「{option.name}」已售罄"
            if self._is_removable(item, option, live):
                return CartItemStatus.MODIFIED, f"{reason}，请重新选择"
            return CartItemStatus.UNAVAILABLE, f"{reason}，该菜品暂时无法下单"

        option.current_additional_price = live_option.additional_price
        if live_option.additional_price != option.additional_price:
            return CartItemStatus.MODIFIED, (
                f"选项「{option.name}」价格由{option.additional_price}变为{live_option.additional_price}"
            )
        return CartItemStatus.ACTIVE, None

    def _is_removable(self, item: CartItem, option: SelectedOption, live: MenuItemSnapshot) -> bool:
        """选项能否单独移除：所属必选组移除后不低于最少选择数"""
        group = live.option_groups.get(option.option_group_id)
        if group is None:
            return True
        remaining = sum(
            1 for other in item.selected_options
            if other.option_group_id == option.option_group_id
            and other.option_id != option.option_id
            and not other.is_stale
        )
        return remaining >= group.effective_min

    def _stock_warnings(self, item: CartItem, live: Optional[MenuItemSnapshot]) -> List[str]:
        """选项库存少于所需数量时给出提醒"""
        if live is None:
            return []
        warnings = []
        for option in item.selected_options:
            live_option = live.options.get(option.option_id)
            if option.is_stale or live_option is None or live_option.stock is None:
                continue
            if live_option.stock < item.quantity:
                warnings.append(f"{item.name}的{option.name}选项库存不足")
        return warnings


# 全局服务实例
validation_service = ValidationService()
