"""
购物车路由模块
所有接口均针对当前登录顾客自己的购物车，返回重新校验和计价后的完整快照
"""

from fastapi import APIRouter, Depends

from ...schemas.cart import (
    AddCartItemRequest,
    UpdateCartItemRequest,
    DeliveryLocationRequest,
    QuickReorderRequest,
)
from ...core.security import get_customer_id
from ...core.error_handler import create_success_response
from ...models.delivery import Coordinates
from ...services.cart_service import CartService, cart_service

router = APIRouter()


def get_cart_service() -> CartService:
    """购物车服务依赖"""
    return cart_service


@router.get("/me")
def get_my_cart(customer_id: str = Depends(get_customer_id),
                service: CartService = Depends(get_cart_service)):
    """获取购物车（重新校验并计价）"""
    snapshot = service.get_cart(customer_id)
    return create_success_response(snapshot.model_dump(mode="json"), "查询成功")


@router.post("/me/items")
def add_cart_item(req: AddCartItemRequest,
                  customer_id: str = Depends(get_customer_id),
                  service: CartService = Depends(get_cart_service)):
    """添加条目"""
    snapshot = service.add_item(
        customer_id,
        req.menu_item_id,
        req.quantity,
        req.option_ids,
        req.special_instructions,
    )
    return create_success_response(snapshot.model_dump(mode="json"), "已加入购物车")


@router.patch("/me/items/{item_id}")
def update_cart_item(item_id: str, req: UpdateCartItemRequest,
                     customer_id: str = Depends(get_customer_id),
                     service: CartService = Depends(get_cart_service)):
    """修改条目数量、选项或备注"""
    snapshot = service.update_item(
        customer_id,
        item_id,
        quantity=req.quantity,
        option_ids=req.option_ids,
        special_instructions=req.special_instructions,
    )
    return create_success_response(snapshot.model_dump(mode="json"), "修改成功")


@router.delete("/me/items/{item_id}")
def remove_cart_item(item_id: str,
                     customer_id: str = Depends(get_customer_id),
                     service: CartService = Depends(get_cart_service)):
    """删除条目"""
    snapshot = service.remove_item(customer_id, item_id)
    return create_success_response(snapshot.model_dump(mode="json"), "删除成功")


@router.delete("/me")
def clear_my_cart(customer_id: str = Depends(get_customer_id),
                  service: CartService = Depends(get_cart_service)):
    """清空购物车"""
    service.clear_cart(customer_id)
    return create_success_response(message="购物车已清空")


@router.put("/me/delivery-location")
def set_delivery_location(req: DeliveryLocationRequest,
                          customer_id: str = Depends(get_customer_id),
                          service: CartService = Depends(get_cart_service)):
    """设置配送地址"""
    location = Coordinates(latitude=req.latitude, longitude=req.longitude)
    snapshot = service.set_delivery_location(customer_id, location)
    return create_success_response(snapshot.model_dump(mode="json"), "配送地址已更新")


@router.post("/me/validate")
def validate_my_cart(customer_id: str = Depends(get_customer_id),
                     service: CartService = Depends(get_cart_service)):
    """结算前校验购物车"""
    report = service.validate_cart(customer_id)
    return create_success_response(report.model_dump(mode="json"), "校验完成")


@router.post("/me/quick-reorder")
def quick_reorder(req: QuickReorderRequest,
                  customer_id: str = Depends(get_customer_id),
                  service: CartService = Depends(get_cart_service)):
    """按历史订单再来一单"""
    snapshot = service.quick_reorder(
        customer_id,
        req.order_id,
        exclude_unavailable=req.exclude_unavailable,
        quantity_policy=req.quantity_policy,
    )
    return create_success_response(snapshot.model_dump(mode="json"), "已按历史订单加入购物车")
