"""
安全相关功能
顾客身份由JWT中的 customer_id 声明确定
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .exceptions import AuthenticationError
from ..config.settings import settings


class SecurityManager:
    """安全管理器"""

    def __init__(self, secret_key: str = None, algorithm: str = None, expire_hours: int = None):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_hours = expire_hours or settings.jwt_expire_hours

    def create_jwt_token(self, customer_id: str, additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "customer_id": customer_id,
            "exp": now + timedelta(hours=self.expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_customer_id_from_token(self, token: str) -> str:
        """从token中提取customer_id"""
        payload = self.decode_jwt_token(token)
        customer_id = payload.get("customer_id")
        if not customer_id:
            raise AuthenticationError("Token missing customer_id")
        return str(customer_id)


# 全局安全管理器实例
security_manager = SecurityManager()


async def get_customer_id(
    credentials: HTTPAuthorizationCredentials = Depends(HTTPBearer())
) -> str:
    """从Authorization header中提取并验证customer_id"""
    try:
        return security_manager.get_customer_id_from_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)


def create_access_token(customer_id: str) -> str:
    """创建访问token"""
    return security_manager.create_jwt_token(customer_id)
