"""
配送费计算服务
根据餐厅与配送地址的距离、订单小计给出配送报价

- 超出配送半径 → 不可配送，下游必须禁止下单
- 配送费 = 基础费 + 距离阶梯附加费（阶梯函数，不做插值）
- 小计达到免配送费门槛或已有免配送费优惠 → 实收配送费为0
"""

import math
from typing import List, Optional
from ..models.delivery import Coordinates, DeliveryContext, DeliveryQuote, DistanceBand

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Coordinates, destination: Coordinates) -> float:
    """两点间球面距离（公里）"""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(destination.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(destination.longitude - origin.longitude)

    a = (math.sin(d_lat / 2) ** 2
         + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


class DeliveryService:
    """配送费计算服务"""

    def quote(self, context: DeliveryContext, subtotal: int,
              free_delivery_discount_applied: bool = False) -> DeliveryQuote:
        """
        计算配送报价

        Args:
            context: 配送参数（位置、半径、费用阶梯、免配送费门槛）
            subtotal: 有效条目小计
            free_delivery_discount_applied: 是否已有免配送费优惠生效

        Returns:
            DeliveryQuote: 配送报价
        """
        if not context.delivery_available:
            return self._unavailable(context, "该餐厅暂不提供配送服务")
        if context.destination is None:
            return self._unavailable(context, "请先设置配送地址")
        if context.origin is None:
            return self._unavailable(context, "餐厅位置信息缺失，暂时无法配送")

        distance = round(haversine_km(context.origin, context.destination), 3)
        if distance > context.service_radius_km:
            return self._unavailable(
                context,
                f"配送地址超出配送范围（{context.service_radius_km:g}km）",
                distance_km=distance,
            )

        additional_fee = self.distance_surcharge(context.distance_bands, distance)
        threshold = context.free_delivery_min_amount
        waived = free_delivery_discount_applied or (threshold is not None and subtotal >= threshold)
        total_fee = 0 if waived else context.base_fee + additional_fee

        return DeliveryQuote(
            is_available=True,
            base_fee=context.base_fee,
            additional_fee=additional_fee,
            total_fee=total_fee,
            free_delivery_min_amount=threshold,
            distance_km=distance,
            estimated_time=self.estimate_minutes(context, distance),
            fee_waived=waived,
        )

    def distance_surcharge(self, bands: List[DistanceBand], distance_km: float) -> int:
        """距离阶梯附加费：取第一个上限不小于距离的阶梯，超出所有阶梯取最后一档"""
        if not bands:
            return 0
        ordered = sorted(bands, key=lambda band: band.max_distance_km)
        for band in ordered:
            if distance_km <= band.max_distance_km:
                return band.additional_fee
        return ordered[-1].additional_fee

    def estimate_minutes(self, context: DeliveryContext, distance_km: float) -> int:
        """预计送达时间 = 出餐时间 + 路程时间（向上取整）"""
        travel = math.ceil(distance_km / context.courier_speed_kmh * 60)
        return context.preparation_time + travel

    def _unavailable(self, context: DeliveryContext, reason: str,
                     distance_km: Optional[float] = None) -> DeliveryQuote:
        return DeliveryQuote(
            is_available=False,
            base_fee=context.base_fee,
            additional_fee=0,
            total_fee=0,
            free_delivery_min_amount=context.free_delivery_min_amount,
            unavailable_reason=reason,
            distance_km=distance_km,
        )


def amount_for_free_delivery(quote: DeliveryQuote, subtotal: int) -> Optional[int]:
    """距免配送费门槛还差的金额；不可配送、无门槛、已达到或已减免时返回 None"""
    threshold = quote.free_delivery_min_amount
    if not quote.is_available or threshold is None or quote.fee_waived or subtotal >= threshold:
        return None
    return max(0, threshold - subtotal)


# 全局服务实例
delivery_service = DeliveryService()
