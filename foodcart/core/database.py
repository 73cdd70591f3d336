"""
数据库连接和管理模块
使用 DuckDB 保存购物车，同时作为餐厅、菜单、优惠和历史订单等外部数据源的本地实现
"""

import duckdb
from pathlib import Path
from typing import Optional, Generator
from contextlib import contextmanager
import threading
from .exceptions import BaseApplicationError, ConcurrencyError, DatabaseError
from ..config.settings import settings

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS restaurants (
  restaurant_id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  image_url TEXT DEFAULT '',
  minimum_order_amount INTEGER DEFAULT 0,
  is_open BOOLEAN DEFAULT TRUE,
  delivery_available BOOLEAN DEFAULT TRUE,
  preparation_time INTEGER DEFAULT 0,
  delivery_fee INTEGER,
  free_delivery_min_amount INTEGER,
  service_radius_km DOUBLE,
  latitude DOUBLE,
  longitude DOUBLE
);

CREATE TABLE IF NOT EXISTS menu_items (
  item_id TEXT PRIMARY KEY,
  restaurant_id TEXT NOT NULL,
  name TEXT NOT NULL,
  description TEXT DEFAULT '',
  image_url TEXT DEFAULT '',
  base_price INTEGER NOT NULL,
  available BOOLEAN DEFAULT TRUE,
  options_json JSON,
  option_groups_json JSON
);

CREATE INDEX IF NOT EXISTS idx_menu_items_restaurant ON menu_items(restaurant_id);

CREATE TABLE IF NOT EXISTS discounts (
  discount_id TEXT PRIMARY KEY,
  restaurant_id TEXT,
  customer_id TEXT,
  name TEXT NOT NULL,
  kind TEXT CHECK(kind IN ('percentage','fixed','free_delivery')) NOT NULL,
  value DECIMAL(12,2) DEFAULT 0,
  min_order_amount INTEGER DEFAULT 0,
  max_discount_amount INTEGER,
  stackable BOOLEAN DEFAULT FALSE,
  stackable_with_json JSON,
  is_active BOOLEAN DEFAULT TRUE,
  valid_from TIMESTAMP,
  valid_until TIMESTAMP,
  description TEXT DEFAULT '',
  sort_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS carts (
  cart_id TEXT PRIMARY KEY,
  customer_id TEXT UNIQUE NOT NULL,
  restaurant_id TEXT,
  items_json JSON,
  delivery_latitude DOUBLE,
  delivery_longitude DOUBLE,
  version INTEGER DEFAULT 0,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS orders (
  order_id TEXT PRIMARY KEY,
  customer_id TEXT NOT NULL,
  restaurant_id TEXT NOT NULL,
  items_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders(customer_id);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id TEXT,
  actor_id TEXT,
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_user ON logs(user_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """数据库管理器，封装所有数据库操作"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        """从设置中获取数据库路径"""
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "")
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self.db_path)
            self._init_schema()
        return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            # JSON扩展随发行版内置，只需加载
            try:
                self._connection.execute("LOAD json")
            except duckdb.Error:
                pass

            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """数据库事务上下文管理器"""
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN")
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    pass  # 忽略回滚错误

                if isinstance(e, BaseApplicationError):
                    raise
                # 不自动重试，直接返回错误
                if "conflict" in str(e).lower() or "serialization" in str(e).lower():
                    raise ConcurrencyError("系统繁忙，请稍后重试")
                raise DatabaseError(f"数据库操作失败: {str(e)}")

    def init_database(self):
        """初始化数据库"""
        self.get_connection()

    def execute_query(self, query: str, params: list = None) -> list:
        """执行查询并返回结果"""
        try:
            with self._lock:
                con = self.get_connection()
                if params:
                    return con.execute(query, params).fetchall()
                return con.execute(query).fetchall()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        try:
            with self._lock:
                con = self.get_connection()
                if params:
                    return con.execute(query, params).fetchone()
                return con.execute(query).fetchone()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def close(self):
        """关闭连接"""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


# 全局数据库管理器实例
db_manager = DatabaseManager()
