"""
购物车聚合
持有购物车条目和餐厅引用，负责条目的增删改以及唯一的协调操作 revalidate_and_price

条目状态机：
- active → modified（实时菜单有变动）
- active/modified → unavailable（下架、售罄）
- unavailable 不会自动回到 active，需删除后重新添加

revalidate_and_price 是纯函数：不做I/O，不修改所持有的购物车，
相同的菜单/优惠/配送输入重复调用得到完全相同的结果。
"""

import uuid
from datetime import datetime
from typing import List, Optional
from ..core.exceptions import (
    InconsistentCartError,
    InvalidOptionSelectionError,
    InvalidQuantityError,
    NotFoundError,
    RestaurantMismatchError,
    ValidationError,
)
from ..models.cart import Cart, CartItem, CartItemStatus, SelectedOption, MIN_QUANTITY, MAX_QUANTITY
from ..models.delivery import DeliveryContext, DeliveryQuote
from ..models.discount import DiscountContext, DiscountKind, DiscountRule
from ..models.menu import MenuItemSnapshot, MenuSnapshot
from ..models.pricing import CartSnapshot, PriceBreakdown, RestaurantSummary
from ..models.restaurant import RestaurantInfo
from .delivery_service import DeliveryService, delivery_service
from .discount_service import DiscountService, discount_service
from .pricing_service import EMPTY_CART_REASON, PricingService, pricing_service
from .validation_service import ValidationService, validation_service


class CartAggregate:
    """购物车聚合根"""

    def __init__(self, cart: Cart,
                 validator: ValidationService = None,
                 resolver: DiscountService = None,
                 delivery: DeliveryService = None,
                 pricing: PricingService = None):
        self.cart = cart
        self.validator = validator or validation_service
        self.resolver = resolver or discount_service
        self.delivery = delivery or delivery_service
        self.pricing = pricing or pricing_service

    @classmethod
    def new(cls, customer_id: str, now: Optional[datetime] = None, **services) -> "CartAggregate":
        """创建空购物车"""
        now = now or datetime.now()
        cart = Cart(
            cart_id=uuid.uuid4().hex,
            customer_id=customer_id,
            created_at=now,
            updated_at=now,
        )
        return cls(cart, **services)

    # ---- 条目变更 ----

    def add_item(self, menu_item: MenuItemSnapshot, restaurant_id: str, quantity: int,
                 option_ids: List[str] = None, special_instructions: Optional[str] = None,
                 now: Optional[datetime] = None) -> CartItem:
        """
        添加条目；相同菜品且选项组合相同的条目合并数量

        Raises:
            InvalidQuantityError: 数量不在 1..99 范围内，或合并后超出上限
            NotFoundError: 菜品当前不可下单
            RestaurantMismatchError: 购物车中已有其他餐厅的菜品
            InvalidOptionSelectionError: 选项选择无效
        """
        now = now or datetime.now()
        self._check_quantity(quantity)
        self._check_orderable(menu_item)

        if self.cart.items and self.cart.restaurant_id != restaurant_id:
            raise RestaurantMismatchError(self.cart.restaurant_id, restaurant_id)

        options = self._select_options(menu_item, option_ids or [])
        option_key = frozenset(opt.option_id for opt in options)

        existing = self._find_mergeable(menu_item.item_id, option_key)
        if existing is not None:
            merged_quantity = existing.quantity + quantity
            if merged_quantity > MAX_QUANTITY:
                raise InvalidQuantityError(merged_quantity)
            existing.quantity = merged_quantity
            if special_instructions:
                existing.special_instructions = special_instructions
            existing.updated_at = now
            self._touch(now)
            return existing

        item = CartItem(
            item_id=uuid.uuid4().hex,
            menu_item_id=menu_item.item_id,
            restaurant_id=restaurant_id,
            name=menu_item.name,
            description=menu_item.description,
            base_price=menu_item.base_price,
            image_url=menu_item.image_url,
            quantity=quantity,
            selected_options=options,
            special_instructions=special_instructions,
            added_at=now,
            updated_at=now,
        )
        self.cart.restaurant_id = restaurant_id
        self.cart.items.append(item)
        self._touch(now)
        return item

    def update_item(self, item_id: str, menu_item: MenuItemSnapshot,
                    quantity: Optional[int] = None, option_ids: Optional[List[str]] = None,
                    special_instructions: Optional[str] = None,
                    now: Optional[datetime] = None) -> CartItem:
        """
        修改条目；按实时菜单重新捕获快照，视为顾客已确认变动，条目恢复为 active

        Raises:
            NotFoundError: 条目不存在或菜品不可下单
            ValidationError: 条目已不可下单（需删除后重新添加）
            InvalidQuantityError / InvalidOptionSelectionError: 参数无效
        """
        now = now or datetime.now()
        item = self._get_item(item_id)
        if item.status == CartItemStatus.UNAVAILABLE:
            raise ValidationError("该菜品已不可下单，请删除后重新添加", {"item_id": item_id})
        if quantity is not None:
            self._check_quantity(quantity)
        self._check_orderable(menu_item)

        if option_ids is None:
            option_ids = [opt.option_id for opt in item.selected_options]
        options = self._select_options(menu_item, option_ids)

        item.name = menu_item.name
        item.description = menu_item.description
        item.base_price = menu_item.base_price
        item.image_url = menu_item.image_url
        item.current_base_price = None
        item.selected_options = options
        if quantity is not None:
            item.quantity = quantity
        if special_instructions is not None:
            item.special_instructions = special_instructions
        item.status = CartItemStatus.ACTIVE
        item.status_message = None
        item.updated_at = now
        self._touch(now)
        return item

    def remove_item(self, item_id: str, now: Optional[datetime] = None) -> CartItem:
        """删除条目"""
        item = self._get_item(item_id)
        self.cart.items.remove(item)
        if not self.cart.items:
            self.cart.restaurant_id = None
        self._touch(now or datetime.now())
        return item

    def clear(self, now: Optional[datetime] = None):
        """清空购物车"""
        self.cart.items = []
        self.cart.restaurant_id = None
        self._touch(now or datetime.now())

    # ---- 计价 ----

    def revalidate_and_price(self, menu_snapshot: MenuSnapshot,
                             discount_catalog: List[DiscountRule],
                             discount_context: DiscountContext,
                             delivery_context: DeliveryContext,
                             restaurant: RestaurantInfo) -> CartSnapshot:
        """
        重新校验并计价，返回完整自洽的购物车快照

        Raises:
            InconsistentCartError: 购物车与餐厅或菜单数据不属于同一餐厅
        """
        if self.cart.restaurant_id is not None and self.cart.restaurant_id != restaurant.restaurant_id:
            raise InconsistentCartError(
                self.cart.cart_id, [self.cart.restaurant_id, restaurant.restaurant_id])

        validated = self.validator.validate(self.cart, menu_snapshot)
        subtotal = self.pricing.subtotal(validated)

        applications = self.resolver.resolve(
            subtotal, validated.usable_items, discount_catalog, discount_context)
        free_delivery = any(app.kind == DiscountKind.FREE_DELIVERY for app in applications)

        quote = self.delivery.quote(delivery_context, subtotal, free_delivery)
        breakdown = self.pricing.price(validated, applications, quote)
        can_order, reason = self.pricing.evaluate_order_eligibility(
            validated, breakdown, quote, restaurant.minimum_order_amount)

        return CartSnapshot(
            cart=validated.cart,
            restaurant=self._summarize(restaurant),
            pricing=breakdown,
            delivery=quote,
            warnings=validated.warnings,
            can_order=can_order,
            order_block_reason=reason,
        )

    def empty_snapshot(self) -> CartSnapshot:
        """空购物车（尚未确定餐厅）的快照"""
        return CartSnapshot(
            cart=self.cart.model_copy(deep=True),
            pricing=PriceBreakdown(subtotal=0, delivery_fee=0, discount_amount=0, total_amount=0),
            delivery=DeliveryQuote(is_available=False, unavailable_reason="购物车为空"),
            can_order=False,
            order_block_reason=EMPTY_CART_REASON,
        )

    # ---- 内部方法 ----

    def _summarize(self, restaurant: RestaurantInfo) -> RestaurantSummary:
        return RestaurantSummary(
            restaurant_id=restaurant.restaurant_id,
            name=restaurant.name,
            image_url=restaurant.image_url,
            minimum_order_amount=restaurant.minimum_order_amount,
            is_open=restaurant.is_open,
            business_status=restaurant.business_status,
            preparation_time=restaurant.preparation_time,
        )

    def _check_quantity(self, quantity: int):
        if quantity is None or quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
            raise InvalidQuantityError(quantity)

    def _check_orderable(self, menu_item: MenuItemSnapshot):
        if not menu_item.available:
            raise NotFoundError("菜品不存在或当前无法下单", "menu_item", menu_item.item_id)

    def _get_item(self, item_id: str) -> CartItem:
        item = self.cart.find_item(item_id)
        if item is None:
            raise NotFoundError("购物车中不存在该条目", "cart_item", item_id)
        return item

    def _find_mergeable(self, menu_item_id: str, option_key: frozenset) -> Optional[CartItem]:
        for item in self.cart.items:
            if (item.menu_item_id == menu_item_id
                    and item.option_ids == option_key
                    and item.status != CartItemStatus.UNAVAILABLE):
                return item
        return None

    def _select_options(self, menu_item: MenuItemSnapshot, option_ids: List[str]) -> List[SelectedOption]:
        """按实时菜单校验选项并捕获快照"""
        if len(set(option_ids)) != len(option_ids):
            raise InvalidOptionSelectionError("选项不能重复选择")

        selected = []
        group_counts = {}
        for option_id in option_ids:
            live = menu_item.options.get(option_id)
            if live is None:
                raise InvalidOptionSelectionError(f"选项{option_id}不存在", option_id)
            if not live.available:
                raise InvalidOptionSelectionError(f"选项「{live.name}」已下架", option_id)
            if not live.in_stock:
                raise InvalidOptionSelectionError(f"选项「{live.name}」已售罄", option_id)
            group_counts[live.option_group_id] = group_counts.get(live.option_group_id, 0) + 1
            selected.append(SelectedOption(
                option_id=live.option_id,
                option_group_id=live.option_group_id,
                name=live.name,
                additional_price=live.additional_price,
                stock_quantity=live.stock,
            ))

        for group in menu_item.option_groups.values():
            count = group_counts.get(group.group_id, 0)
            if count < group.effective_min:
                raise InvalidOptionSelectionError(f"「{group.name}」至少需要选择{group.effective_min}项")
            if group.max_selections is not None and count > group.max_selections:
                raise InvalidOptionSelectionError(f"「{group.name}」最多只能选择{group.max_selections}项")
        return selected

    def _touch(self, now: datetime):
        self.cart.updated_at = now
