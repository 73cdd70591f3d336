"""
购物车校验服务测试
"""

import pytest
from ..core.exceptions import InconsistentCartError
from ..models.cart import CartItem, CartItemStatus, SelectedOption
from ..models.menu import MenuOptionGroup, MenuOptionSnapshot, MenuSnapshot
from ..services.validation_service import ValidationService
from .conftest import RESTAURANT_ID, FIXED_NOW, make_cart, make_menu, make_menu_item


def _item(item_id="i-1", menu_item_id="m-beef", base_price=18000, name="牛肉面", quantity=1,
          options=None, status=CartItemStatus.ACTIVE, restaurant_id=RESTAURANT_ID):
    return CartItem(
        item_id=item_id,
        menu_item_id=menu_item_id,
        restaurant_id=restaurant_id,
        name=name,
        base_price=base_price,
        quantity=quantity,
        selected_options=options or [],
        status=status,
        added_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def _egg(price=1000):
    return SelectedOption(option_id="o-egg", option_group_id="g-extra", name="加蛋", additional_price=price)


def _cart(*items):
    cart = make_cart()
    cart.restaurant_id = RESTAURANT_ID
    cart.items = list(items)
    return cart


class TestValidationService:
    """购物车校验服务测试"""

    def setup_method(self):
        self.service = ValidationService()

    def test_unchanged_item_stays_active(self):
        """测试菜单无变化时条目保持active"""
        cart = _cart(_item(options=[_egg()]))
        result = self.service.validate(cart, make_menu(make_menu_item()))

        item = result.items[0]
        assert item.status == CartItemStatus.ACTIVE
        assert item.status_message is None
        assert item.current_base_price == 18000
        assert result.warnings == []

    def test_price_change_marks_modified(self):
        """测试价格变动时条目变为modified并按实时价格计价"""
        cart = _cart(_item(quantity=2))
        result = self.service.validate(cart, make_menu(make_menu_item(base_price=20000)))

        item = result.items[0]
        assert item.status == CartItemStatus.MODIFIED
        assert "18000" in item.status_message and "20000" in item.status_message
        assert item.base_price == 18000
        assert item.total_price == 40000

    def test_name_change_marks_modified(self):
        """测试菜品改名时条目变为modified"""
        cart = _cart(_item())
        result = self.service.validate(cart, make_menu(make_menu_item(name="招牌牛肉面")))

        assert result.items[0].status == CartItemStatus.MODIFIED

    def test_option_price_change_marks_modified(self):
        """测试选项价格变动时条目变为modified"""
        cart = _cart(_item(options=[_egg(1000)]))
        menu = make_menu(make_menu_item(options=[
            MenuOptionSnapshot(option_id="o-egg", option_group_id="g-extra", name="加蛋", additional_price=1500),
        ]))
        result = self.service.validate(cart, menu)

        item = result.items[0]
        assert item.status == CartItemStatus.MODIFIED
        assert item.options_price == 1500
        assert item.total_price == 19500

    def test_missing_menu_item_marks_unavailable(self):
        """测试菜品下架时条目变为unavailable"""
        cart = _cart(_item())
        result = self.service.validate(cart, make_menu())

        item = result.items[0]
        assert item.status == CartItemStatus.UNAVAILABLE
        assert item.status_message == "菜品已下架"
        assert result.usable_items == []

    def test_unavailable_menu_item_marks_unavailable(self):
        """测试菜品暂停售卖时条目变为unavailable"""
        cart = _cart(_item())
        result = self.service.validate(cart, make_menu(make_menu_item(available=False)))

        assert result.items[0].status == CartItemStatus.UNAVAILABLE

    def test_unavailable_is_sticky(self):
        """测试unavailable条目不会自动恢复"""
        cart = _cart(_item(status=CartItemStatus.UNAVAILABLE))
        result = self.service.validate(cart, make_menu(make_menu_item()))

        assert result.items[0].status == CartItemStatus.UNAVAILABLE

    def test_sold_out_optional_option_is_removable(self):
        """测试可选选项售罄时条目为modified，选项不计价"""
        cart = _cart(_item(options=[_egg()]))
        menu = make_menu(make_menu_item(options=[
            MenuOptionSnapshot(option_id="o-egg", option_group_id="g-extra", name="加蛋",
                               additional_price=1000, stock=0),
        ]))
        result = self.service.validate(cart, menu)

        item = result.items[0]
        assert item.status == CartItemStatus.MODIFIED
        assert item.selected_options[0].is_stale is True
        assert item.options_price == 0
        assert item.total_price == 18000

    def test_sold_out_required_option_makes_item_unavailable(self):
        """测试必选组唯一选项失效时整个条目不可下单"""
        size = SelectedOption(option_id="o-large", option_group_id="g-size", name="大份", additional_price=2000)
        cart = _cart(_item(menu_item_id="m-rice", base_price=12000, name="盖浇饭", options=[size]))
        menu = make_menu(make_menu_item(
            item_id="m-rice", base_price=12000, name="盖浇饭",
            options=[MenuOptionSnapshot(option_id="o-large", option_group_id="g-size", name="大份",
                                        available=False, additional_price=2000)],
            groups=[MenuOptionGroup(group_id="g-size", name="份量", is_required=True, max_selections=1)],
        ))
        result = self.service.validate(cart, menu)

        assert result.items[0].status == CartItemStatus.UNAVAILABLE
        assert result.usable_items == []

    def test_option_unavailable_never_active(self):
        """测试只要有选项不可用，条目状态就不会是active"""
        for stock, available in [(0, True), (None, False)]:
            cart = _cart(_item(options=[_egg()]))
            menu = make_menu(make_menu_item(options=[
                MenuOptionSnapshot(option_id="o-egg", option_group_id="g-extra", name="加蛋",
                                   available=available, additional_price=1000, stock=stock),
            ]))
            result = self.service.validate(cart, menu)
            assert result.items[0].status != CartItemStatus.ACTIVE

    def test_removed_option_is_stale(self):
        """测试选项从菜单中删除时标记为失效"""
        cart = _cart(_item(options=[_egg()]))
        result = self.service.validate(cart, make_menu(make_menu_item(options=[])))

        item = result.items[0]
        assert item.status == CartItemStatus.MODIFIED
        assert item.selected_options[0].is_stale is True

    def test_low_stock_warning(self):
        """测试选项库存少于数量时给出提醒但不影响状态"""
        chili = SelectedOption(option_id="o-chili", option_group_id="g-extra", name="加辣", additional_price=500)
        cart = _cart(_item(quantity=3, options=[chili]))
        menu = make_menu(make_menu_item(options=[
            MenuOptionSnapshot(option_id="o-chili", option_group_id="g-extra", name="加辣",
                               additional_price=500, stock=2),
        ]))
        result = self.service.validate(cart, menu)

        assert result.items[0].status == CartItemStatus.ACTIVE
        assert result.warnings == ["牛肉面的加辣选项库存不足"]

    def test_input_cart_not_mutated(self):
        """测试校验不修改传入的购物车"""
        cart = _cart(_item())
        self.service.validate(cart, make_menu())

        assert cart.items[0].status == CartItemStatus.ACTIVE
        assert cart.items[0].current_base_price is None

    def test_items_from_multiple_restaurants_raise(self):
        """测试购物车中混入其他餐厅条目时抛出完整性错误"""
        cart = _cart(_item(), _item(item_id="i-2", menu_item_id="m-r2", restaurant_id="r2"))
        with pytest.raises(InconsistentCartError):
            self.service.validate(cart, make_menu(make_menu_item()))

    def test_menu_from_other_restaurant_raises(self):
        """测试菜单快照属于其他餐厅时抛出完整性错误"""
        cart = _cart(_item())
        with pytest.raises(InconsistentCartError):
            self.service.validate(cart, MenuSnapshot(restaurant_id="r2"))
