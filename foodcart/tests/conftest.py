"""
测试配置文件
提供测试所需的fixtures和样例数据
"""

import json
import pytest
from datetime import datetime
from fastapi.testclient import TestClient

from ..app import create_app
from ..api.v1.carts import get_cart_service
from ..config.settings import Settings
from ..core.database import DatabaseManager
from ..core.security import create_access_token
from ..models.cart import Cart
from ..models.delivery import Coordinates, DeliveryContext, DistanceBand
from ..models.discount import DiscountContext
from ..models.menu import MenuItemSnapshot, MenuOptionGroup, MenuOptionSnapshot, MenuSnapshot
from ..models.restaurant import RestaurantInfo
from ..services.cart_service import CartService

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)
CUSTOMER_ID = "customer-1"
RESTAURANT_ID = "r1"
OTHER_RESTAURANT_ID = "r2"

RESTAURANT_LOCATION = Coordinates(latitude=31.2304, longitude=121.4737)
# 约1.1公里，落在第一档距离阶梯内
NEAR_LOCATION = Coordinates(latitude=31.2404, longitude=121.4737)
# 约11公里，超出5公里配送半径
FAR_LOCATION = Coordinates(latitude=31.3304, longitude=121.4737)


def _options(*options):
    return json.dumps(list(options), ensure_ascii=False)


@pytest.fixture
def test_settings():
    """测试配置"""
    return Settings(
        database_url="duckdb://:memory:",
        jwt_secret_key="test-secret-key",
        api_title="Food Cart API (Test)",
        api_version="1.0.0-test",
        reorder_quantity_policy="keep",
    )


@pytest.fixture
def test_db():
    """测试数据库（内存）"""
    db = DatabaseManager(":memory:")
    db.init_database()

    yield db

    db.close()


@pytest.fixture
def sample_restaurants(test_db):
    """示例餐厅"""
    test_db.execute_query(
        """INSERT INTO restaurants(restaurant_id, name, minimum_order_amount, is_open,
                                   delivery_available, preparation_time, delivery_fee,
                                   free_delivery_min_amount, service_radius_km, latitude, longitude)
           VALUES (?,?,?,?,?,?,?,?,?,?,?)""",
        [RESTAURANT_ID, "老王面馆", 15000, True, True, 15, 3000, 50000, 5.0,
         RESTAURANT_LOCATION.latitude, RESTAURANT_LOCATION.longitude]
    )
    test_db.execute_query(
        """INSERT INTO restaurants(restaurant_id, name, minimum_order_amount, is_open,
                                   delivery_available, preparation_time, latitude, longitude)
           VALUES (?,?,?,?,?,?,?,?)""",
        [OTHER_RESTAURANT_ID, "隔壁饭店", 0, True, True, 10, 31.2310, 121.4740]
    )
    return {"restaurant_id": RESTAURANT_ID, "other_restaurant_id": OTHER_RESTAURANT_ID}


@pytest.fixture
def sample_menu(test_db, sample_restaurants):
    """示例菜单"""
    rows = [
        ("m-beef", RESTAURANT_ID, "牛肉面", 18000, True,
         _options(
             {"id": "o-egg", "group_id": "g-extra", "name": "加蛋", "additional_price": 1000},
             {"id": "o-chili", "group_id": "g-extra", "name": "加辣", "additional_price": 500, "stock": 5},
         ),
         _options({"id": "g-extra", "name": "加料", "max_selections": 2})),
        ("m-rice", RESTAURANT_ID, "盖浇饭", 12000, True,
         _options(
             {"id": "o-large", "group_id": "g-size", "name": "大份", "additional_price": 2000, "stock": 3},
             {"id": "o-regular", "group_id": "g-size", "name": "标准份", "additional_price": 0},
         ),
         _options({"id": "g-size", "name": "份量", "is_required": True, "max_selections": 1})),
        ("m-soup", RESTAURANT_ID, "例汤", 5000, True, _options(), _options()),
        ("m-off", RESTAURANT_ID, "停售菜", 8000, False, _options(), _options()),
        ("m-r2", OTHER_RESTAURANT_ID, "隔壁炒饭", 9000, True, _options(), _options()),
    ]
    for row in rows:
        test_db.execute_query(
            """INSERT INTO menu_items(item_id, restaurant_id, name, base_price, available,
                                      options_json, option_groups_json)
               VALUES (?,?,?,?,?,?,?)""",
            list(row)
        )
    return {row[0]: row for row in rows}


@pytest.fixture
def add_discount(test_db):
    """向优惠目录插入一条规则"""
    def _add(discount_id: str, kind: str, value, min_order_amount: int = 0,
             max_discount_amount: int = None, stackable: bool = False,
             stackable_with: list = None, restaurant_id: str = RESTAURANT_ID,
             customer_id: str = None, is_active: bool = True,
             valid_from: datetime = None, valid_until: datetime = None,
             sort_order: int = 0, name: str = None):
        test_db.execute_query(
            """INSERT INTO discounts(discount_id, restaurant_id, customer_id, name, kind, value,
                                     min_order_amount, max_discount_amount, stackable,
                                     stackable_with_json, is_active, valid_from, valid_until, sort_order)
               VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)""",
            [discount_id, restaurant_id, customer_id, name or discount_id, kind, value,
             min_order_amount, max_discount_amount, stackable,
             json.dumps(stackable_with or []), is_active, valid_from, valid_until, sort_order]
        )
    return _add


@pytest.fixture
def sample_order(test_db, sample_menu):
    """示例历史订单"""
    items = [
        {"menu_item_id": "m-beef", "quantity": 2, "option_ids": ["o-egg"]},
        {"menu_item_id": "m-off", "quantity": 1, "option_ids": []},
        {"menu_item_id": "m-rice", "quantity": 5, "option_ids": ["o-large"], "special_instructions": "少饭"},
    ]
    test_db.execute_query(
        "INSERT INTO orders(order_id, customer_id, restaurant_id, items_json, created_at) VALUES (?,?,?,?,?)",
        ["order-1", CUSTOMER_ID, RESTAURANT_ID, json.dumps(items, ensure_ascii=False), FIXED_NOW]
    )
    return {"order_id": "order-1", "items": items}


@pytest.fixture
def cart_service(test_db, test_settings):
    """使用测试数据库的购物车服务"""
    return CartService(db=test_db, config=test_settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def app_instance(cart_service):
    """测试应用"""
    app = create_app()
    app.dependency_overrides[get_cart_service] = lambda: cart_service

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app_instance):
    """测试客户端"""
    return TestClient(app_instance)


@pytest.fixture
def auth_headers():
    """认证头"""
    return {"Authorization": f"Bearer {create_access_token(CUSTOMER_ID)}"}


# ---- 纯计价引擎用的快照构造 ----

def make_restaurant(**overrides) -> RestaurantInfo:
    data = {
        "restaurant_id": RESTAURANT_ID,
        "name": "老王面馆",
        "minimum_order_amount": 15000,
        "is_open": True,
        "delivery_available": True,
        "preparation_time": 15,
        "delivery_fee": 3000,
        "service_radius_km": 5.0,
        "location": RESTAURANT_LOCATION,
    }
    data.update(overrides)
    return RestaurantInfo(**data)


def make_menu_item(item_id: str = "m-beef", base_price: int = 18000, name: str = "牛肉面",
                   available: bool = True, options=None, groups=None) -> MenuItemSnapshot:
    if options is None:
        options = [MenuOptionSnapshot(option_id="o-egg", option_group_id="g-extra",
                                      name="加蛋", additional_price=1000)]
    if groups is None:
        groups = [MenuOptionGroup(group_id="g-extra", name="加料", max_selections=2)]
    return MenuItemSnapshot(
        item_id=item_id,
        restaurant_id=RESTAURANT_ID,
        available=available,
        base_price=base_price,
        name=name,
        options={opt.option_id: opt for opt in options},
        option_groups={group.group_id: group for group in groups},
    )


def make_menu(*items: MenuItemSnapshot) -> MenuSnapshot:
    return MenuSnapshot.from_items(RESTAURANT_ID, list(items))


def make_delivery_context(destination=NEAR_LOCATION, free_delivery_min_amount=None,
                          **overrides) -> DeliveryContext:
    data = {
        "origin": RESTAURANT_LOCATION,
        "destination": destination,
        "service_radius_km": 5.0,
        "base_fee": 3000,
        "distance_bands": [
            DistanceBand(max_distance_km=2.0, additional_fee=0),
            DistanceBand(max_distance_km=4.0, additional_fee=500),
            DistanceBand(max_distance_km=6.0, additional_fee=1000),
        ],
        "free_delivery_min_amount": free_delivery_min_amount,
        "preparation_time": 15,
    }
    data.update(overrides)
    return DeliveryContext(**data)


def make_discount_context() -> DiscountContext:
    return DiscountContext(customer_id=CUSTOMER_ID, restaurant_id=RESTAURANT_ID, at=FIXED_NOW)


def make_cart() -> Cart:
    return Cart(cart_id="cart-1", customer_id=CUSTOMER_ID, created_at=FIXED_NOW, updated_at=FIXED_NOW)
