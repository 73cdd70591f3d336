"""
购物车服务模块
为HTTP层提供购物车的查询、增删改、校验和快速再来一单

主要功能：
- 获取购物车（触发重新校验和计价）
- 添加/修改/删除条目、清空购物车
- 设置配送地址
- 校验报告
- 按历史订单快速再来一单

业务规则：
- 上游数据（餐厅、菜单、优惠）在调用计价引擎前全部取回，任何一项失败则整个调用失败
- 计价引擎本身是纯函数，本服务负责取数、持久化和日志
- 写回购物车时做乐观锁版本校验，不合并并发结果
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from ..config.settings import Settings, settings as default_settings
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import InvalidOptionSelectionError, InvalidQuantityError, NotFoundError
from ..models.cart import Cart, CartItemStatus, MAX_QUANTITY
from ..models.delivery import Coordinates, DeliveryContext, DistanceBand
from ..models.discount import DiscountContext
from ..models.menu import MenuItemSnapshot
from ..models.order import PastOrderItem, ReorderQuantityPolicy
from ..models.pricing import CartSnapshot, CartValidationReport
from ..models.restaurant import RestaurantInfo
from .cart_aggregate import CartAggregate
from .cart_repository import CartRepository, cart_repository
from .providers import (
    DiscountCatalogProvider,
    MenuSnapshotProvider,
    OrderHistoryProvider,
    RestaurantProvider,
    discount_provider,
    menu_provider,
    order_history_provider,
    restaurant_provider,
)


class CartService:
    """购物车服务类，封装购物车相关的业务流程"""

    def __init__(self,
                 repository: CartRepository = None,
                 restaurants: RestaurantProvider = None,
                 menus: MenuSnapshotProvider = None,
                 discounts: DiscountCatalogProvider = None,
                 orders: OrderHistoryProvider = None,
                 db: DatabaseManager = None,
                 config: Settings = None,
                 clock: Callable[[], datetime] = None):
        if db is None:
            self.db = db_manager
            self.repository = repository or cart_repository
            self.restaurants = restaurants or restaurant_provider
            self.menus = menus or menu_provider
            self.discounts = discounts or discount_provider
            self.orders = orders or order_history_provider
        else:
            self.db = db
            self.repository = repository or CartRepository(db)
            self.restaurants = restaurants or RestaurantProvider(db)
            self.menus = menus or MenuSnapshotProvider(db)
            self.discounts = discounts or DiscountCatalogProvider(db)
            self.orders = orders or OrderHistoryProvider(db)
        self.config = config or default_settings
        self.clock = clock or datetime.now

    # ---- 查询 ----

    def get_cart(self, customer_id: str) -> CartSnapshot:
        """
        获取购物车快照（重新校验并计价）

        Raises:
            NotFoundError: 购物车所在餐厅不存在
            UpstreamUnavailableError: 上游数据获取失败
            InconsistentCartError: 购物车数据不一致
        """
        aggregate = self._load(customer_id)
        return self._revalidate(aggregate)

    def validate_cart(self, customer_id: str) -> CartValidationReport:
        """生成购物车校验报告"""
        snapshot = self.get_cart(customer_id)
        items = snapshot.cart.items
        changed = [item.name for item in items if item.status == CartItemStatus.MODIFIED]
        unavailable = [item.name for item in items if item.status == CartItemStatus.UNAVAILABLE]

        messages = []
        if not items:
            messages.append("购物车为空")
        if unavailable:
            messages.append("部分菜品已售罄或下架")
        if changed:
            messages.append("部分菜品信息有变动，请确认")
        is_open = snapshot.restaurant is None or snapshot.restaurant.is_open
        if not is_open:
            messages.append("餐厅当前未营业")
        if snapshot.order_block_reason and snapshot.order_block_reason not in messages:
            messages.append(snapshot.order_block_reason)

        return CartValidationReport(
            is_valid=not unavailable,
            can_proceed_to_order=snapshot.can_order and is_open,
            messages=messages,
            warnings=snapshot.warnings,
            changed_items=changed,
            unavailable_items=unavailable,
            validated_at=self.clock(),
        )

    # ---- 变更 ----

    def add_item(self, customer_id: str, menu_item_id: str, quantity: int,
                 option_ids: List[str] = None,
                 special_instructions: Optional[str] = None) -> CartSnapshot:
        """
        添加条目

        Raises:
            NotFoundError: 菜品或餐厅不存在
            InvalidQuantityError: 数量无效
            InvalidOptionSelectionError: 选项选择无效
            RestaurantMismatchError: 购物车中已有其他餐厅的菜品
        """
        menu_item = self.menus.get_menu_item(menu_item_id)
        restaurant = self.restaurants.get_restaurant(menu_item.restaurant_id)

        aggregate = self._load(customer_id)
        item = aggregate.add_item(
            menu_item, restaurant.restaurant_id, quantity, option_ids or [],
            special_instructions, now=self.clock())
        aggregate.cart = self.repository.save(aggregate.cart, "cart_item_add", {
            "cart_id": aggregate.cart.cart_id,
            "item_id": item.item_id,
            "menu_item_id": menu_item_id,
            "quantity": item.quantity,
            "option_ids": option_ids or [],
        })
        return self._revalidate(aggregate)

    def update_item(self, customer_id: str, item_id: str, quantity: Optional[int] = None,
                    option_ids: Optional[List[str]] = None,
                    special_instructions: Optional[str] = None) -> CartSnapshot:
        """修改条目"""
        aggregate = self._load(customer_id)
        current = aggregate.cart.find_item(item_id)
        if current is None:
            raise NotFoundError("购物车中不存在该条目", "cart_item", item_id)

        menu_item = self.menus.get_menu_item(current.menu_item_id)
        item = aggregate.update_item(
            item_id, menu_item, quantity, option_ids, special_instructions, now=self.clock())
        aggregate.cart = self.repository.save(aggregate.cart, "cart_item_update", {
            "cart_id": aggregate.cart.cart_id,
            "item_id": item_id,
            "quantity": item.quantity,
            "option_ids": [opt.option_id for opt in item.selected_options],
        })
        return self._revalidate(aggregate)

    def remove_item(self, customer_id: str, item_id: str) -> CartSnapshot:
        """删除条目"""
        aggregate = self._load(customer_id)
        removed = aggregate.remove_item(item_id, now=self.clock())
        aggregate.cart = self.repository.save(aggregate.cart, "cart_item_remove", {
            "cart_id": aggregate.cart.cart_id,
            "item_id": item_id,
            "menu_item_id": removed.menu_item_id,
        })
        return self._revalidate(aggregate)

    def clear_cart(self, customer_id: str):
        """清空购物车"""
        cart = self.repository.get_by_customer(customer_id)
        if cart is None:
            return
        self.repository.delete(cart, "cart_clear", {"cart_id": cart.cart_id, "item_count": len(cart.items)})

    def set_delivery_location(self, customer_id: str, location: Coordinates) -> CartSnapshot:
        """设置配送地址"""
        aggregate = self._load(customer_id)
        aggregate.cart.delivery_location = location
        aggregate.cart.updated_at = self.clock()
        aggregate.cart = self.repository.save(aggregate.cart)
        return self._revalidate(aggregate)

    def quick_reorder(self, customer_id: str, order_id: str, exclude_unavailable: bool = True,
                      quantity_policy: Optional[ReorderQuantityPolicy] = None) -> CartSnapshot:
        """
        按历史订单重建购物车

        Args:
            customer_id: 顾客ID
            order_id: 历史订单ID
            exclude_unavailable: 跳过菜品或选项已不可下单的条目；为False时遇到即失败
            quantity_policy: 数量处理策略，缺省使用配置值

        Raises:
            NotFoundError: 订单或餐厅不存在
            InvalidQuantityError: reject 策略下库存不足
        """
        policy = quantity_policy or ReorderQuantityPolicy(self.config.reorder_quantity_policy)
        order = self.orders.get_order(order_id, customer_id)
        restaurant = self.restaurants.get_restaurant(order.restaurant_id)
        menu = self.menus.get_menu_snapshot(order.restaurant_id)

        aggregate = self._load(customer_id)
        now = self.clock()
        aggregate.clear(now=now)

        skipped = []
        for order_item in order.items:
            live = menu.get(order_item.menu_item_id)
            try:
                if live is None:
                    raise NotFoundError("菜品不存在", "menu_item", order_item.menu_item_id)
                quantity = self._reorder_quantity(order_item, live, policy)
                aggregate.add_item(
                    live, restaurant.restaurant_id, quantity, order_item.option_ids,
                    order_item.special_instructions, now=now)
            except (NotFoundError, InvalidOptionSelectionError):
                if not exclude_unavailable:
                    raise
                skipped.append(live.name if live else order_item.menu_item_id)

        aggregate.cart = self.repository.save(aggregate.cart, "cart_quick_reorder", {
            "cart_id": aggregate.cart.cart_id,
            "order_id": order_id,
            "policy": policy.value,
            "added": len(aggregate.cart.items),
            "skipped": skipped,
        })

        snapshot = self._revalidate(aggregate)
        if skipped:
            warnings = snapshot.warnings + [f"「{name}」已无法下单，未加入购物车" for name in skipped]
            snapshot = snapshot.model_copy(update={"warnings": warnings})
        return snapshot

    # ---- 内部方法 ----

    def _load(self, customer_id: str) -> CartAggregate:
        cart = self.repository.get_by_customer(customer_id)
        if cart is None:
            return CartAggregate.new(customer_id, now=self.clock())
        return CartAggregate(cart)

    def _revalidate(self, aggregate: CartAggregate) -> CartSnapshot:
        """取回上游数据，重新计价，并持久化发生变化的条目状态"""
        cart = aggregate.cart
        if cart.restaurant_id is None:
            return aggregate.empty_snapshot()

        restaurant = self.restaurants.get_restaurant(cart.restaurant_id)
        menu = self.menus.get_menu_snapshot(cart.restaurant_id)
        discount_context = DiscountContext(
            customer_id=cart.customer_id,
            restaurant_id=cart.restaurant_id,
            at=self.clock(),
        )
        catalog = self.discounts.get_catalog(discount_context)
        delivery_context = self.build_delivery_context(restaurant, cart)

        snapshot = aggregate.revalidate_and_price(
            menu, catalog, discount_context, delivery_context, restaurant)

        changes = self._status_changes(cart, snapshot.cart)
        if changes:
            aggregate.cart = self.repository.save(self._with_statuses(cart, snapshot.cart), "cart_revalidate", {
                "cart_id": cart.cart_id,
                "changes": changes,
                "total_amount": snapshot.pricing.total_amount,
            })
            snapshot = snapshot.model_copy(update={
                "cart": snapshot.cart.model_copy(update={"version": aggregate.cart.version})
            })
        return snapshot

    def build_delivery_context(self, restaurant: RestaurantInfo, cart: Cart) -> DeliveryContext:
        """由餐厅信息和配置默认值构造配送参数"""
        config = self.config
        threshold = restaurant.free_delivery_min_amount
        if threshold is None:
            threshold = config.default_free_delivery_min_amount
        return DeliveryContext(
            origin=restaurant.location,
            destination=cart.delivery_location,
            delivery_available=restaurant.delivery_available,
            service_radius_km=restaurant.service_radius_km or config.default_service_radius_km,
            base_fee=restaurant.delivery_fee if restaurant.delivery_fee is not None else config.default_delivery_fee,
            distance_bands=[
                DistanceBand(max_distance_km=limit, additional_fee=fee)
                for limit, fee in config.default_distance_bands
            ],
            free_delivery_min_amount=threshold,
            preparation_time=restaurant.preparation_time or config.default_estimated_delivery_time,
            courier_speed_kmh=config.courier_speed_kmh,
        )

    def _status_changes(self, stored: Cart, validated: Cart) -> List[Dict[str, Any]]:
        """对比状态字段，返回发生变化的条目"""
        changes = []
        for before, after in zip(stored.items, validated.items):
            stale_before = [opt.is_stale for opt in before.selected_options]
            stale_after = [opt.is_stale for opt in after.selected_options]
            if (before.status != after.status
                    or before.status_message != after.status_message
                    or stale_before != stale_after):
                changes.append({
                    "item_id": after.item_id,
                    "from": before.status.value,
                    "to": after.status.value,
                })
        return changes

    def _with_statuses(self, stored: Cart, validated: Cart) -> Cart:
        """只把状态、说明和选项失效标记写回存储的购物车"""
        cart = stored.model_copy(deep=True)
        for item, checked in zip(cart.items, validated.items):
            item.status = checked.status
            item.status_message = checked.status_message
            for option, checked_option in zip(item.selected_options, checked.selected_options):
                option.is_stale = checked_option.is_stale
        return cart

    def _reorder_quantity(self, order_item: PastOrderItem, live: MenuItemSnapshot,
                          policy: ReorderQuantityPolicy) -> int:
        """按策略确定再来一单的数量"""
        quantity = min(order_item.quantity, MAX_QUANTITY)
        if policy == ReorderQuantityPolicy.RESET_TO_ONE:
            return 1
        if policy == ReorderQuantityPolicy.KEEP:
            return quantity

        stock, name = self._min_option_stock(order_item, live)
        if stock is None or stock < 1 or stock >= quantity:
            return quantity
        if policy == ReorderQuantityPolicy.REJECT:
            raise InvalidQuantityError(quantity, f"「{live.name}」的{name}选项库存仅剩{stock}")
        return stock

    def _min_option_stock(self, order_item: PastOrderItem,
                          live: MenuItemSnapshot) -> Tuple[Optional[int], Optional[str]]:
        stock, name = None, None
        for option_id in order_item.option_ids:
            option = live.options.get(option_id)
            if option is None or option.stock is None:
                continue
            if stock is None or option.stock < stock:
                stock, name = option.stock, option.name
        return stock, name


# 全局服务实例
cart_service = CartService()
