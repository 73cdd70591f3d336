"""
优惠解析服务测试
"""

from decimal import Decimal
from ..models.cart import CartItem
from ..models.discount import DiscountKind, DiscountRule
from ..services.discount_service import DiscountService
from .conftest import RESTAURANT_ID, make_discount_context


def _items():
    return [CartItem(item_id="i-1", menu_item_id="m-beef", restaurant_id=RESTAURANT_ID,
                     name="牛肉面", base_price=18000, quantity=2)]


def _rule(rule_id, kind, value, **kwargs):
    return DiscountRule(id=rule_id, name=rule_id, kind=kind, value=Decimal(value), **kwargs)


class TestDiscountService:
    """优惠解析服务测试"""

    def setup_method(self):
        self.service = DiscountService()
        self.context = make_discount_context()

    def test_percentage_with_cap(self):
        """测试按比例优惠不超过单条封顶"""
        rule = _rule("pct", DiscountKind.PERCENTAGE, 10, min_order_amount=15000, max_discount_amount=5000)
        apps = self.service.resolve(38000, _items(), [rule], self.context)

        assert len(apps) == 1
        assert apps[0].discount_amount == Decimal("3800")

        apps = self.service.resolve(80000, _items(), [rule], self.context)
        assert apps[0].discount_amount == Decimal("5000")

    def test_min_order_amount_filters(self):
        """测试未达到最低订单金额的优惠不生效"""
        rule = _rule("fixed", DiscountKind.FIXED, 2000, min_order_amount=40000)
        assert self.service.resolve(38000, _items(), [rule], self.context) == []

    def test_ineligible_rule_skipped(self):
        """测试资格判定未通过的优惠不生效"""
        rule = _rule("fixed", DiscountKind.FIXED, 2000, eligible=False)
        assert self.service.resolve(38000, _items(), [rule], self.context) == []

    def test_no_active_items_no_discount(self):
        """测试没有有效条目时不计算优惠"""
        rule = _rule("fixed", DiscountKind.FIXED, 2000)
        assert self.service.resolve(0, [], [rule], self.context) == []

    def test_largest_non_stackable_wins(self):
        """测试不可叠加的优惠只取金额最大的一条"""
        small = _rule("small", DiscountKind.FIXED, 2000)
        large = _rule("large", DiscountKind.FIXED, 3000)
        apps = self.service.resolve(38000, _items(), [small, large], self.context)

        assert [app.discount_id for app in apps] == ["large"]

    def test_equal_amounts_keep_catalog_order(self):
        """测试金额相同时保持目录顺序"""
        first = _rule("first", DiscountKind.FIXED, 2000)
        second = _rule("second", DiscountKind.FIXED, 2000)
        apps = self.service.resolve(38000, _items(), [first, second], self.context)

        assert [app.discount_id for app in apps] == ["first"]

    def test_stackable_rules_combine(self):
        """测试双方都可叠加时同时生效"""
        a = _rule("a", DiscountKind.FIXED, 2000, stackable=True)
        b = _rule("b", DiscountKind.PERCENTAGE, 10, stackable=True)
        apps = self.service.resolve(38000, _items(), [a, b], self.context)

        assert [app.discount_id for app in apps] == ["b", "a"]
        assert sum(app.discount_amount for app in apps) == Decimal("5800")

    def test_explicit_stackable_with(self):
        """测试通过stackable_with单方声明即可叠加"""
        a = _rule("a", DiscountKind.FIXED, 3000, stackable_with=["b"])
        b = _rule("b", DiscountKind.FIXED, 1000)
        c = _rule("c", DiscountKind.FIXED, 500)
        apps = self.service.resolve(38000, _items(), [a, b, c], self.context)

        assert [app.discount_id for app in apps] == ["a", "b"]

    def test_total_discount_never_exceeds_subtotal(self):
        """测试优惠合计永远不超过小计"""
        rules = [
            _rule("big", DiscountKind.FIXED, 30000, stackable=True),
            _rule("pct", DiscountKind.PERCENTAGE, 90, stackable=True),
            _rule("more", DiscountKind.FIXED, 25000, stackable=True),
        ]
        for subtotal in (1000, 5000, 20000, 38000):
            apps = self.service.resolve(subtotal, _items(), rules, self.context)
            total = sum((app.discount_amount for app in apps), Decimal(0))
            assert total <= subtotal

    def test_exhausted_amount_skips_later_rules(self):
        """测试剩余可优惠金额为0后不再应用金额类优惠"""
        a = _rule("a", DiscountKind.FIXED, 5000, stackable=True)
        b = _rule("b", DiscountKind.FIXED, 1000, stackable=True)
        apps = self.service.resolve(5000, _items(), [a, b], self.context)

        assert [app.discount_id for app in apps] == ["a"]
        assert apps[0].discount_amount == Decimal("5000")

    def test_free_delivery_applied_last_with_zero_amount(self):
        """测试免配送费优惠排在最后且金额为0"""
        free = _rule("free", DiscountKind.FREE_DELIVERY, 0, stackable=True)
        fixed = _rule("fixed", DiscountKind.FIXED, 1000, stackable=True)
        apps = self.service.resolve(38000, _items(), [free, fixed], self.context)

        assert [app.discount_id for app in apps] == ["fixed", "free"]
        assert apps[1].kind == DiscountKind.FREE_DELIVERY
        assert apps[1].discount_amount == Decimal(0)

    def test_application_ids_and_description(self):
        """测试应用ID和默认说明"""
        rule = _rule("pct", DiscountKind.PERCENTAGE, 10, min_order_amount=15000, max_discount_amount=5000)
        app = self.service.resolve(38000, _items(), [rule], self.context)[0]

        assert app.id == f"{RESTAURANT_ID}:pct:0"
        assert app.description == "满15000享10%折扣，最高优惠5000"

    def test_resolve_is_deterministic(self):
        """测试相同输入得到相同结果"""
        rules = [
            _rule("a", DiscountKind.FIXED, 2000, stackable=True),
            _rule("b", DiscountKind.PERCENTAGE, 5, stackable=True),
            _rule("c", DiscountKind.FREE_DELIVERY, 0, stackable=True),
        ]
        first = self.service.resolve(38000, _items(), rules, self.context)
        second = self.service.resolve(38000, _items(), rules, self.context)
        assert first == second
