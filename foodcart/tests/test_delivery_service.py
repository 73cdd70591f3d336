"""
配送费计算服务测试
"""

import pytest
from ..models.delivery import Coordinates, DistanceBand
from ..services.delivery_service import DeliveryService, amount_for_free_delivery, haversine_km
from .conftest import FAR_LOCATION, NEAR_LOCATION, RESTAURANT_LOCATION, make_delivery_context


class TestHaversine:
    """球面距离测试"""

    def test_same_point_is_zero(self):
        """测试同一点距离为0"""
        assert haversine_km(RESTAURANT_LOCATION, RESTAURANT_LOCATION) == 0

    def test_one_hundredth_degree_latitude(self):
        """测试纬度相差0.01度约为1.11公里"""
        assert haversine_km(RESTAURANT_LOCATION, NEAR_LOCATION) == pytest.approx(1.112, abs=0.01)

    def test_symmetric(self):
        """测试距离与方向无关"""
        a = Coordinates(latitude=39.9042, longitude=116.4074)
        b = Coordinates(latitude=31.2304, longitude=121.4737)
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))
        assert haversine_km(a, b) == pytest.approx(1067, rel=0.01)


class TestDeliveryService:
    """配送费计算服务测试"""

    def setup_method(self):
        self.service = DeliveryService()

    def test_base_fee_within_first_band(self):
        """测试第一档距离只收基础配送费"""
        quote = self.service.quote(make_delivery_context(), 38000)

        assert quote.is_available is True
        assert quote.total_fee == 3000
        assert quote.additional_fee == 0
        assert quote.distance_km == pytest.approx(1.112, abs=0.01)
        # 15分钟出餐 + 1.1公里 / 20km/h 向上取整4分钟
        assert quote.estimated_time == 19

    def test_distance_surcharge_is_step_function(self):
        """测试距离附加费按阶梯取值"""
        bands = [
            DistanceBand(max_distance_km=2.0, additional_fee=0),
            DistanceBand(max_distance_km=4.0, additional_fee=500),
            DistanceBand(max_distance_km=6.0, additional_fee=1000),
        ]
        assert self.service.distance_surcharge(bands, 1.0) == 0
        assert self.service.distance_surcharge(bands, 2.0) == 0
        assert self.service.distance_surcharge(bands, 2.5) == 500
        assert self.service.distance_surcharge(bands, 5.9) == 1000
        assert self.service.distance_surcharge(bands, 8.0) == 1000
        assert self.service.distance_surcharge([], 8.0) == 0

    def test_out_of_radius_unavailable(self):
        """测试超出配送半径时不可配送"""
        quote = self.service.quote(make_delivery_context(destination=FAR_LOCATION), 38000)

        assert quote.is_available is False
        assert quote.total_fee == 0
        assert "超出配送范围" in quote.unavailable_reason
        assert quote.distance_km > 5.0

    def test_missing_destination_unavailable(self):
        """测试未设置配送地址时不可配送"""
        quote = self.service.quote(make_delivery_context(destination=None), 38000)

        assert quote.is_available is False
        assert quote.unavailable_reason == "请先设置配送地址"

    def test_restaurant_without_delivery(self):
        """测试餐厅不提供配送"""
        quote = self.service.quote(make_delivery_context(delivery_available=False), 38000)
        assert quote.is_available is False

    def test_free_delivery_threshold(self):
        """测试达到免配送费门槛时配送费为0"""
        context = make_delivery_context(free_delivery_min_amount=30000)

        assert self.service.quote(context, 29999).total_fee == 3000
        quote = self.service.quote(context, 30000)
        assert quote.total_fee == 0
        assert quote.fee_waived is True

    def test_free_delivery_discount_waives_fee(self):
        """测试免配送费优惠生效时配送费为0"""
        quote = self.service.quote(make_delivery_context(), 20000, free_delivery_discount_applied=True)
        assert quote.total_fee == 0
        assert quote.fee_waived is True

    def test_amount_for_free_delivery(self):
        """测试距免配送费门槛的差额"""
        context = make_delivery_context(free_delivery_min_amount=30000)

        assert amount_for_free_delivery(self.service.quote(context, 25000), 25000) == 5000
        assert amount_for_free_delivery(self.service.quote(context, 30000), 30000) is None
        no_threshold = make_delivery_context()
        assert amount_for_free_delivery(self.service.quote(no_threshold, 25000), 25000) is None

    def test_no_free_delivery_gap_when_unavailable(self):
        """测试无法配送时不提示免配送费差额"""
        context = make_delivery_context(destination=FAR_LOCATION, free_delivery_min_amount=30000)
        quote = self.service.quote(context, 25000)

        assert quote.is_available is False
        assert amount_for_free_delivery(quote, 25000) is None
