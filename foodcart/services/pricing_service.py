"""
计价服务
将校验结果、优惠和配送报价组合成价格明细，并判断能否下单
"""

from decimal import Decimal, ROUND_DOWN
from typing import List, Optional, Tuple
from ..models.discount import DiscountApplication
from ..models.delivery import DeliveryQuote
from ..models.pricing import PriceBreakdown, ValidatedCart
from .delivery_service import amount_for_free_delivery

EMPTY_CART_REASON = "购物车中没有可下单的菜品"
BELOW_MINIMUM_REASON = "未达到最低起送金额{minimum}，还差{gap}"
DELIVERY_UNAVAILABLE_REASON = "当前地址无法配送"


class PricingService:
    """计价服务"""

    def subtotal(self, validated_cart: ValidatedCart) -> int:
        """非 unavailable 条目按实时价格的小计"""
        return sum(item.total_price for item in validated_cart.usable_items)

    def price(self, validated_cart: ValidatedCart,
              discount_applications: List[DiscountApplication],
              delivery_quote: DeliveryQuote) -> PriceBreakdown:
        """
        计算价格明细

        应付金额 = max(0, 小计 + 配送费 - 优惠)，只在最后按整数单位截断一次
        """
        subtotal = self.subtotal(validated_cart)
        discount_amount = sum((app.discount_amount for app in discount_applications), Decimal(0))
        delivery_fee = delivery_quote.total_fee if delivery_quote.is_available else 0

        raw_total = Decimal(subtotal) + Decimal(delivery_fee) - discount_amount
        total_amount = int(max(raw_total, Decimal(0)).quantize(Decimal(1), rounding=ROUND_DOWN))

        return PriceBreakdown(
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            discount_amount=discount_amount,
            total_amount=total_amount,
            applied_discounts=list(discount_applications),
            amount_for_free_delivery=amount_for_free_delivery(delivery_quote, subtotal),
        )

    def evaluate_order_eligibility(self, validated_cart: ValidatedCart,
                                   breakdown: PriceBreakdown,
                                   delivery_quote: DeliveryQuote,
                                   minimum_order_amount: int) -> Tuple[bool, Optional[str]]:
        """
        判断能否下单，只返回第一个不满足的条件

        优先级：没有 active 条目 > 未达起送金额 > 无法配送
        modified 条目计入小计，但只有它们时仍按空购物车处理
        """
        if not validated_cart.active_items:
            return False, EMPTY_CART_REASON
        if breakdown.subtotal < minimum_order_amount:
            gap = minimum_order_amount - breakdown.subtotal
            return False, BELOW_MINIMUM_REASON.format(minimum=minimum_order_amount, gap=gap)
        if not delivery_quote.is_available:
            reason = delivery_quote.unavailable_reason
            return False, f"{DELIVERY_UNAVAILABLE_REASON}：{reason}" if reason else DELIVERY_UNAVAILABLE_REASON
        return True, None


# 全局服务实例
pricing_service = PricingService()
