"""
自定义异常类
提供购物车计价与校验相关的精确错误信息

单项问题（售罄、价格变动）不会抛出异常，而是写回条目的状态和消息；
只有整体调用失败（上游不可用、数据完整性破坏）才向调用方传播。
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""

    def __init__(self, message: str):
        super().__init__(message, "AUTHENTICATION_REQUIRED")


class ValidationError(BaseApplicationError):
    """数据验证异常"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(BaseApplicationError):
    """餐厅、菜品或购物车不存在"""

    def __init__(self, message: str, resource: Optional[str] = None,
                 resource_id: Optional[str] = None):
        details = {}
        if resource:
            details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = resource_id
        super().__init__(message, "RESOURCE_NOT_FOUND", details)


class InvalidQuantityError(BaseApplicationError):
    """数量超出 1..99 范围，仅在添加/修改条目时抛出"""

    def __init__(self, quantity: int, message: Optional[str] = None):
        super().__init__(
            message or f"数量必须在1到99之间，当前为{quantity}",
            "INVALID_QUANTITY",
            {"quantity": quantity}
        )


class InvalidOptionSelectionError(BaseApplicationError):
    """选项选择无效，仅在添加/修改条目时抛出"""

    def __init__(self, message: str, option_id: Optional[str] = None):
        details = {"option_id": option_id} if option_id else {}
        super().__init__(message, "INVALID_OPTION_SELECTION", details)


class RestaurantMismatchError(BaseApplicationError):
    """向购物车添加了其他餐厅的菜品"""

    def __init__(self, cart_restaurant_id: str, restaurant_id: str):
        super().__init__(
            "不同餐厅的菜品不能一起下单，请清空购物车后重试",
            "RESTAURANT_MISMATCH",
            {"cart_restaurant_id": cart_restaurant_id, "restaurant_id": restaurant_id}
        )


class UpstreamUnavailableError(BaseApplicationError):
    """菜单、优惠或配送数据获取失败，整个重新计价调用失败"""

    def __init__(self, source: str, reason: str = ""):
        super().__init__(
            "服务暂时不可用，请稍后重试",
            "UPSTREAM_UNAVAILABLE",
            {"source": source, "reason": reason}
        )


class InconsistentCartError(BaseApplicationError):
    """购物车引用了多个餐厅的菜品，属于完整性错误，不应重试"""

    def __init__(self, cart_id: str, restaurant_ids: list):
        super().__init__(
            "购物车数据不一致",
            "INCONSISTENT_CART",
            {"cart_id": cart_id, "restaurant_ids": sorted(set(restaurant_ids))}
        )


class ConcurrencyError(BaseApplicationError):
    """并发控制错误（乐观锁版本冲突）"""

    def __init__(self, message: str = "购物车已被修改，请刷新后重试",
                 details: Dict[str, Any] = None):
        super().__init__(message, "CART_VERSION_CONFLICT", details)
