"""
购物车存储
每位顾客一个购物车；写入时做乐观锁版本校验，冲突时抛出 ConcurrencyError
"""

import json
from typing import Any, Dict, Optional
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ConcurrencyError
from ..models.cart import Cart, CartItem
from .providers import coordinates_or_none

# 派生字段不作为数据来源保存
_DERIVED_FIELDS = {"options_price", "total_price"}


class CartRepository:
    """购物车仓储"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def get_by_customer(self, customer_id: str) -> Optional[Cart]:
        """按顾客获取购物车"""
        row = self.db.execute_one(
            """SELECT cart_id, customer_id, restaurant_id, items_json,
                      delivery_latitude, delivery_longitude, version, created_at, updated_at
               FROM carts WHERE customer_id=?""",
            [customer_id]
        )
        if not row:
            return None

        items_data = json.loads(row[3]) if isinstance(row[3], str) else (row[3] or [])
        return Cart(
            cart_id=row[0],
            customer_id=row[1],
            restaurant_id=row[2],
            items=[CartItem.model_validate(data) for data in items_data],
            delivery_location=coordinates_or_none(row[4], row[5]),
            version=row[6],
            created_at=row[7],
            updated_at=row[8],
        )

    def save(self, cart: Cart, action: Optional[str] = None,
             detail: Optional[Dict[str, Any]] = None) -> Cart:
        """
        保存购物车

        新购物车（version=0 且不存在）直接插入；已存在的购物车只有在版本号一致时才更新，
        成功后返回版本号加一的购物车。给出 action 时在同一事务内写入操作日志，
        日志写入失败则购物车也不会保存。

        Raises:
            ConcurrencyError: 版本号不一致（其他请求已修改）
        """
        params = self._to_row(cart)
        with self.db.transaction() as conn:
            if cart.version == 0:
                exists = conn.execute(
                    "SELECT 1 FROM carts WHERE cart_id=?", [cart.cart_id]
                ).fetchone()
                if not exists:
                    conn.execute(
                        """INSERT INTO carts(cart_id, customer_id, restaurant_id, items_json,
                                             delivery_latitude, delivery_longitude, version,
                                             created_at, updated_at)
                           VALUES (?,?,?,?,?,?,1,?,?)""",
                        [cart.cart_id, cart.customer_id, params["restaurant_id"], params["items_json"],
                         params["latitude"], params["longitude"], cart.created_at, cart.updated_at]
                    )
                    self._log_action(conn, cart.customer_id, action, detail)
                    return cart.model_copy(update={"version": 1})

            row = conn.execute(
                """UPDATE carts SET restaurant_id=?, items_json=?, delivery_latitude=?,
                                    delivery_longitude=?, version=version+1, updated_at=?
                   WHERE cart_id=? AND version=? RETURNING version""",
                [params["restaurant_id"], params["items_json"], params["latitude"],
                 params["longitude"], cart.updated_at, cart.cart_id, cart.version]
            ).fetchone()
            if not row:
                raise ConcurrencyError(details={"cart_id": cart.cart_id, "version": cart.version})
            self._log_action(conn, cart.customer_id, action, detail)

        return cart.model_copy(update={"version": row[0]})

    def delete(self, cart: Cart, action: Optional[str] = None,
               detail: Optional[Dict[str, Any]] = None):
        """删除购物车（清空或结算完成时）"""
        with self.db.transaction() as conn:
            row = conn.execute(
                "DELETE FROM carts WHERE cart_id=? AND version=? RETURNING cart_id",
                [cart.cart_id, cart.version]
            ).fetchone()
            if not row and cart.version != 0:
                raise ConcurrencyError(details={"cart_id": cart.cart_id, "version": cart.version})
            self._log_action(conn, cart.customer_id, action, detail)

    def _log_action(self, conn, customer_id: str, action: Optional[str],
                    detail: Optional[Dict[str, Any]]):
        """在当前事务内记录操作日志"""
        if action is None:
            return
        conn.execute(
            "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
            [customer_id, customer_id, action, json.dumps(detail or {}, ensure_ascii=False)]
        )

    def _to_row(self, cart: Cart) -> Dict[str, Any]:
        items = [item.model_dump(mode="json", exclude=_DERIVED_FIELDS) for item in cart.items]
        location = cart.delivery_location
        return {
            "restaurant_id": cart.restaurant_id,
            "items_json": json.dumps(items, ensure_ascii=False),
            "latitude": location.latitude if location else None,
            "longitude": location.longitude if location else None,
        }


# 全局仓储实例
cart_repository = CartRepository()
