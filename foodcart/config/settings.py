from pydantic_settings import BaseSettings
from typing import List, Optional, Tuple


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./foodcart/data/foodcart.duckdb"

    # JWT配置
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # API配置
    api_title: str = "Food Cart API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 配送费默认值（餐厅未配置时使用）
    default_delivery_fee: int = 3000
    default_free_delivery_min_amount: Optional[int] = 15000
    default_service_radius_km: float = 10.0
    default_estimated_delivery_time: int = 30  # 分钟
    # (最大距离km, 附加费) 阶梯，按距离升序
    default_distance_bands: List[Tuple[float, int]] = [
        (2.0, 0),
        (4.0, 500),
        (6.0, 1000),
        (10.0, 2000),
    ]
    courier_speed_kmh: float = 20.0

    # 快速再来一单的数量策略: keep / reset_to_one / clamp_to_stock / reject
    reorder_quantity_policy: str = "keep"

    # 开发模式
    debug: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False


# 全局设置实例
settings = Settings()
