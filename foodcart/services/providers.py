"""
外部数据源的本地实现
餐厅、菜单、优惠目录和历史订单均为只读数据，本系统只查询不维护

任何数据库错误都转换为 UpstreamUnavailableError，由调用方决定是否重试。
"""

import json
from functools import wraps
from typing import Any, List, Optional
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import DatabaseError, NotFoundError, UpstreamUnavailableError
from ..models.delivery import Coordinates
from ..models.discount import DiscountContext, DiscountKind, DiscountRule
from ..models.menu import MenuItemSnapshot, MenuOptionGroup, MenuOptionSnapshot, MenuSnapshot
from ..models.order import PastOrder, PastOrderItem
from ..models.restaurant import RestaurantInfo


def _load_json(value) -> Any:
    """JSON列可能以字符串或已解析对象返回"""
    if value is None:
        return []
    if isinstance(value, str):
        return json.loads(value) if value else []
    return value


def upstream(source: str):
    """将数据库错误转换为上游不可用错误"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (DatabaseError, ValueError) as e:
                raise UpstreamUnavailableError(source, str(e)) from e
        return wrapper
    return decorator


class RestaurantProvider:
    """餐厅元数据"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    @upstream("restaurant")
    def get_restaurant(self, restaurant_id: str) -> RestaurantInfo:
        row = self.db.execute_one(
            """SELECT restaurant_id, name, image_url, minimum_order_amount, is_open,
                      delivery_available, preparation_time, delivery_fee,
                      free_delivery_min_amount, service_radius_km, latitude, longitude
               FROM restaurants WHERE restaurant_id=?""",
            [restaurant_id]
        )
        if not row:
            raise NotFoundError("餐厅不存在", "restaurant", restaurant_id)

        return RestaurantInfo(
            restaurant_id=row[0],
            name=row[1],
            image_url=row[2] or "",
            minimum_order_amount=row[3] or 0,
            is_open=bool(row[4]),
            delivery_available=bool(row[5]),
            preparation_time=row[6] or 0,
            delivery_fee=row[7],
            free_delivery_min_amount=row[8],
            service_radius_km=row[9],
            location=coordinates_or_none(row[10], row[11]),
        )


class MenuSnapshotProvider:
    """菜单实时快照"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    @upstream("menu")
    def get_menu_snapshot(self, restaurant_id: str) -> MenuSnapshot:
        """读取餐厅全部菜品（包括不可下单的）"""
        rows = self.db.execute_query(
            """SELECT item_id, restaurant_id, name, description, image_url, base_price,
                      available, options_json, option_groups_json
               FROM menu_items WHERE restaurant_id=? ORDER BY item_id""",
            [restaurant_id]
        )
        return MenuSnapshot.from_items(restaurant_id, [self._to_snapshot(row) for row in rows])

    @upstream("menu")
    def get_menu_item(self, item_id: str) -> MenuItemSnapshot:
        row = self.db.execute_one(
            """SELECT item_id, restaurant_id, name, description, image_url, base_price,
                      available, options_json, option_groups_json
               FROM menu_items WHERE item_id=?""",
            [item_id]
        )
        if not row:
            raise NotFoundError("菜品不存在", "menu_item", item_id)
        return self._to_snapshot(row)

    def _to_snapshot(self, row) -> MenuItemSnapshot:
        options = {}
        for o in _load_json(row[7]):
            option = MenuOptionSnapshot(
                option_id=str(o["id"]),
                option_group_id=str(o.get("group_id", "")),
                name=o.get("name", ""),
                available=bool(o.get("available", True)),
                additional_price=int(o.get("additional_price", 0)),
                stock=o.get("stock"),
            )
            options[option.option_id] = option

        groups = {}
        for g in _load_json(row[8]):
            group = MenuOptionGroup(
                group_id=str(g["id"]),
                name=g.get("name", ""),
                is_required=bool(g.get("is_required", False)),
                min_selections=int(g.get("min_selections", 0)),
                max_selections=g.get("max_selections"),
            )
            groups[group.group_id] = group

        return MenuItemSnapshot(
            item_id=row[0],
            restaurant_id=row[1],
            name=row[2],
            description=row[3] or "",
            image_url=row[4] or "",
            base_price=row[5],
            available=bool(row[6]),
            options=options,
            option_groups=groups,
        )


class DiscountCatalogProvider:
    """优惠目录，同时负责资格判定（顾客/餐厅/时间窗口）"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    @upstream("discount")
    def get_catalog(self, context: DiscountContext) -> List[DiscountRule]:
        rows = self.db.execute_query(
            """SELECT discount_id, restaurant_id, customer_id, name, kind, value,
                      min_order_amount, max_discount_amount, stackable, stackable_with_json,
                      is_active, valid_from, valid_until, description
               FROM discounts
               WHERE restaurant_id IS NULL OR restaurant_id=?
               ORDER BY sort_order, discount_id""",
            [context.restaurant_id]
        )
        return [
            DiscountRule(
                id=row[0],
                name=row[3],
                kind=DiscountKind(row[4]),
                value=row[5] or 0,
                min_order_amount=row[6] or 0,
                max_discount_amount=row[7],
                stackable=bool(row[8]),
                stackable_with=[str(x) for x in _load_json(row[9])],
                eligible=self._is_eligible(row, context),
                description=row[13] or "",
            )
            for row in rows
        ]

    def _is_eligible(self, row, context: DiscountContext) -> bool:
        restaurant_id, customer_id = row[1], row[2]
        is_active, valid_from, valid_until = row[10], row[11], row[12]
        if not is_active:
            return False
        if restaurant_id is not None and restaurant_id != context.restaurant_id:
            return False
        if customer_id is not None and customer_id != context.customer_id:
            return False
        if valid_from is not None and context.at < valid_from:
            return False
        if valid_until is not None and context.at > valid_until:
            return False
        return True


class OrderHistoryProvider:
    """历史订单"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    @upstream("order")
    def get_order(self, order_id: str, customer_id: str) -> PastOrder:
        row = self.db.execute_one(
            "SELECT order_id, customer_id, restaurant_id, items_json, created_at FROM orders WHERE order_id=?",
            [order_id]
        )
        if not row or row[1] != customer_id:
            raise NotFoundError("订单不存在", "order", order_id)

        items = [
            PastOrderItem(
                menu_item_id=str(i["menu_item_id"]),
                quantity=int(i.get("quantity", 1)),
                option_ids=[str(x) for x in i.get("option_ids", [])],
                special_instructions=i.get("special_instructions"),
            )
            for i in _load_json(row[3])
        ]
        return PastOrder(
            order_id=row[0],
            customer_id=row[1],
            restaurant_id=row[2],
            items=items,
            created_at=row[4],
        )


def coordinates_or_none(latitude: Optional[float], longitude: Optional[float]) -> Optional[Coordinates]:
    if latitude is None or longitude is None:
        return None
    return Coordinates(latitude=latitude, longitude=longitude)


# 全局实例
restaurant_provider = RestaurantProvider()
menu_provider = MenuSnapshotProvider()
discount_provider = DiscountCatalogProvider()
order_history_provider = OrderHistoryProvider()
