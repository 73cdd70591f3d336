"""
外卖购物车服务 - 主应用入口
提供购物车校验与计价的后端API服务

主要功能模块：
- 购物车条目管理（单一餐厅约束）
- 按实时菜单重新校验条目
- 优惠叠加、配送费计算和下单资格判断
- 快速再来一单

技术栈：FastAPI + DuckDB + JWT认证
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import settings
from .core.database import db_manager
from .core.exceptions import BaseApplicationError
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时建表，关闭时释放连接"""
    try:
        db_manager.init_database()
        print(f"Database ready: {db_manager.db_path}")
    except Exception as e:
        # 允许在首次请求时重试
        print(f"Database initialization failed: {e}")

    yield

    db_manager.close()


def _register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def create_app() -> FastAPI:
    """创建FastAPI应用"""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="外卖购物车校验与计价API",
        debug=settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    def health_check():
        try:
            db_manager.execute_one("SELECT 1")
            database = "connected"
        except BaseApplicationError as e:
            database = f"error: {e.message}"
        return {
            "status": "healthy" if database == "connected" else "unhealthy",
            "version": settings.api_version,
            "database": database,
        }

    @app.get("/")
    def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": "/docs",
        }

    return app


# 应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
