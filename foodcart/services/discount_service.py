"""
优惠解析服务
从优惠目录中筛选、排序并逐条累计适用的优惠

处理顺序：
1. 过滤：最低订单金额 <= 小计，且资格判定通过
2. 排序：金额类优惠（固定金额、按比例）在前，按封顶后的金额从大到小；
   金额相同保持目录顺序；免配送费优惠最后
3. 逐条累计：原始金额 → 按单条封顶截断 → 按剩余可优惠金额截断，
   保证优惠合计永远不超过小计
4. 叠加：候选优惠必须与所有已生效优惠兼容，
   不可叠加的优惠生效后，只有明确声明可与其叠加的优惠还能生效
"""

from decimal import Decimal
from typing import List, Tuple
from ..models.cart import CartItem
from ..models.discount import DiscountApplication, DiscountContext, DiscountKind, DiscountRule

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class DiscountService:
    """优惠解析服务"""

    def resolve(self, subtotal: int, active_items: List[CartItem],
                discount_catalog: List[DiscountRule],
                context: DiscountContext) -> List[DiscountApplication]:
        """
        计算本次计价生效的优惠

        Args:
            subtotal: 有效条目小计
            active_items: 参与计价的条目
            discount_catalog: 目录提供方返回的候选优惠（已完成资格判定）
            context: 资格判定上下文

        Returns:
            list: 按应用顺序排列的 DiscountApplication
        """
        if not active_items or subtotal <= 0:
            return []

        candidates = [
            rule for rule in discount_catalog
            if rule.eligible and rule.min_order_amount <= subtotal
        ]

        applied_rules: List[DiscountRule] = []
        applications: List[DiscountApplication] = []
        remaining = Decimal(subtotal)

        for rule, capped_amount in self._order(candidates, subtotal):
            if not all(rule.compatible_with(prev) for prev in applied_rules):
                continue

            if rule.kind.is_amount:
                amount = min(capped_amount, remaining)
                if amount <= ZERO:
                    continue
                remaining -= amount
            else:
                amount = ZERO

            applied_rules.append(rule)
            applications.append(self._to_application(rule, amount, context, len(applications)))

        return applications

    def _order(self, candidates: List[DiscountRule],
               subtotal: int) -> List[Tuple[DiscountRule, Decimal]]:
        """确定性排序：金额类按封顶后金额降序，免配送费在最后"""
        amount_rules = []
        free_delivery_rules = []
        for position, rule in enumerate(candidates):
            if rule.kind.is_amount:
                amount_rules.append((rule, self.capped_amount(rule, subtotal), position))
            else:
                free_delivery_rules.append((rule, ZERO, position))

        amount_rules.sort(key=lambda entry: (-entry[1], entry[2]))
        return [(rule, amount) for rule, amount, _ in amount_rules + free_delivery_rules]

    def capped_amount(self, rule: DiscountRule, subtotal: int) -> Decimal:
        """单条优惠的原始金额（已按单条封顶截断）"""
        if rule.kind == DiscountKind.PERCENTAGE:
            raw = Decimal(subtotal) * rule.value / HUNDRED
        elif rule.kind == DiscountKind.FIXED:
            raw = rule.value
        else:
            raw = ZERO

        if rule.max_discount_amount is not None:
            raw = min(raw, Decimal(rule.max_discount_amount))
        return max(raw, ZERO)

    def _to_application(self, rule: DiscountRule, amount: Decimal,
                        context: DiscountContext, index: int) -> DiscountApplication:
        return DiscountApplication(
            id=f"{context.restaurant_id}:{rule.id}:{index}",
            discount_id=rule.id,
            name=rule.name,
            kind=rule.kind,
            value=rule.value,
            discount_amount=amount,
            min_order_amount=rule.min_order_amount,
            max_discount_amount=rule.max_discount_amount,
            description=rule.description or self._describe(rule),
        )

    def _describe(self, rule: DiscountRule) -> str:
        """生成优惠说明"""
        if rule.kind == DiscountKind.PERCENTAGE:
            text = f"满{rule.min_order_amount}享{rule.value.normalize():f}%折扣"
            if rule.max_discount_amount is not None:
                text += f"，最高优惠{rule.max_discount_amount}"
            return text
        if rule.kind == DiscountKind.FIXED:
            return f"满{rule.min_order_amount}减{rule.value.normalize():f}"
        return f"满{rule.min_order_amount}免配送费"


# 全局服务实例
discount_service = DiscountService()
