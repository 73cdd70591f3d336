"""
统一错误处理模块
将领域异常转换为统一的JSON错误响应

错误响应中的 retryable 标记告诉调用方能否原样重试：
上游数据暂时不可用、购物车版本冲突可以刷新后重试，其余错误重试也不会成功。
服务端本身不做任何重试。
"""

import json
import traceback
from typing import Dict, Any, List, Optional
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from .exceptions import BaseApplicationError
from .database import db_manager

# 错误代码到HTTP状态码的映射
ERROR_CODE_STATUS_MAP = {
    "VALIDATION_ERROR": 400,
    "INVALID_QUANTITY": 400,
    "INVALID_OPTION_SELECTION": 400,
    "AUTHENTICATION_REQUIRED": 401,
    "RESOURCE_NOT_FOUND": 404,
    "RESTAURANT_MISMATCH": 409,
    "INCONSISTENT_CART": 409,
    "CART_VERSION_CONFLICT": 409,
    "DATABASE_ERROR": 500,
    "INTERNAL_ERROR": 500,
    "UPSTREAM_UNAVAILABLE": 503,
}

RETRYABLE_ERROR_CODES = {"UPSTREAM_UNAVAILABLE", "CART_VERSION_CONFLICT"}


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    @property
    def retryable(self) -> bool:
        return self.error_code in RETRYABLE_ERROR_CODES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.http_status, content=self.to_dict())


class ErrorHandler:
    """全局错误处理器"""

    @classmethod
    def status_for(cls, error_code: str) -> int:
        return ERROR_CODE_STATUS_MAP.get(error_code, 400)

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError, path: str = "") -> ErrorResponse:
        """处理领域异常，服务端错误额外写入日志表"""
        http_status = cls.status_for(error.error_code)
        if http_status >= 500:
            cls._log_system_error({
                "path": path,
                "type": type(error).__name__,
                "error_code": error.error_code,
                "message": error.message,
                "details": error.details,
            })

        return ErrorResponse(error.error_code, error.message, error.details, http_status)

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理认证失败等HTTP异常"""
        if error.status_code in (401, 403):
            error_code = "AUTHENTICATION_REQUIRED"
        elif error.status_code == 404:
            error_code = "RESOURCE_NOT_FOUND"
        else:
            error_code = "HTTP_ERROR"
        return ErrorResponse(error_code, str(error.detail), {"status_code": error.status_code},
                             error.status_code)

    @classmethod
    def handle_validation_error(cls, error: RequestValidationError) -> ErrorResponse:
        """处理请求体验证错误，按字段列出问题"""
        return ErrorResponse(
            "VALIDATION_ERROR",
            "请求参数验证失败",
            {"fields": cls._field_errors(error.errors())},
            422
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception, path: str = "") -> ErrorResponse:
        """未预期的异常只返回通用消息，细节写入日志表"""
        cls._log_system_error({
            "path": path,
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc()
        })
        return ErrorResponse("INTERNAL_ERROR", "系统内部错误", {"error_type": type(error).__name__}, 500)

    @staticmethod
    def _field_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        fields = []
        for err in errors:
            location = [str(part) for part in err.get("loc", ()) if part != "body"]
            fields.append({"field": ".".join(location), "message": err.get("msg", "")})
        return fields

    @classmethod
    def _log_system_error(cls, error_details: Dict[str, Any]):
        """记录系统错误到数据库"""
        try:
            db_manager.execute_query(
                "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
                [None, None, "system_error", json.dumps(error_details, ensure_ascii=False, default=str)]
            )
        except Exception:
            # 日志表不可写时退回到控制台
            print(f"Failed to log error to database: {error_details}")


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    return ErrorHandler.handle_application_error(exc, request.url.path).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return ErrorHandler.handle_unknown_error(exc, request.url.path).to_json_response()


def create_success_response(data: Any = None, message: str = "操作成功") -> Dict[str, Any]:
    """创建标准成功响应"""
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = data

    return response
