#!/usr/bin/env python3
"""
员工培训管理平台 - FastAPI 主应用入口
Description: 提供培训、报名考勤、测验和反馈的 REST API
"""

import logging
import platform
import time
from contextlib import asynccontextmanager

import psutil
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from training_portal.config.settings import settings
from training_portal.utils.logger import setup_logging
from training_portal.utils.database import Database, create_database
from training_portal.utils.exceptions import TrainingPortalError
from training_portal.utils.helpers import format_timestamp
from training_portal.api.routes import auth, trainings, attendance, feedback, quizzes, employee

# 设置日志
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时创建数据库句柄并建表
    - 关闭时释放连接池
    """
    logger.info(f"初始化{settings.APP_NAME} ({settings.ENVIRONMENT})...")

    database = getattr(app.state, "database", None)
    owns_database = database is None
    try:
        if owns_database:
            database = create_database()
            app.state.database = database
        database.init_db()
        logger.info("数据库初始化完成")
    except Exception as e:
        logger.error(f"应用启动失败: {e}", exc_info=True)
        raise

    logger.info(f"{settings.APP_NAME} 启动完成")

    yield  # 应用运行期间

    logger.info(f"正在关闭{settings.APP_NAME}...")
    if owns_database:
        database.dispose()
        app.state.database = None
    logger.info(f"{settings.APP_NAME} 已安全关闭")


def create_application(database: Database = None) -> FastAPI:
    """
    创建并配置FastAPI应用实例

    Args:
        database: 可选的数据库句柄，测试时注入；为空时在启动阶段按配置创建
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="员工培训管理平台：培训、报名考勤、测验和反馈",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    if database is not None:
        app.state.database = database

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        return response

    # 全局异常处理
    @app.exception_handler(TrainingPortalError)
    async def business_exception_handler(request: Request, exc: TrainingPortalError):
        if exc.status_code >= 500:
            logger.error(f"请求处理失败: {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict())
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
            for error in exc.errors()
        ]
        logger.warning(f"请求参数校验失败: {request.method} {request.url.path}: {errors}")
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "errors": errors}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        content = {"message": "Internal server error"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(
            status_code=500,
            content=content
        )

    # 注册API路由
    app.include_router(auth.router, prefix="/api/auth", tags=["用户认证"])
    app.include_router(trainings.router, prefix="/api/trainings", tags=["培训管理"])
    app.include_router(attendance.router, prefix="/api/trainings", tags=["考勤管理"])
    app.include_router(feedback.router, prefix="/api/trainings", tags=["培训反馈"])
    app.include_router(quizzes.router, prefix="/api/quizzes", tags=["测验"])
    app.include_router(employee.router, prefix="/api/employee", tags=["员工视图"])

    @app.get("/")
    def root():
        """根端点 - 服务状态检查"""
        return {
            "status": "running",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": format_timestamp()
        }

    @app.get("/health")
    def health_check(request: Request):
        """健康检查端点"""
        database = getattr(request.app.state, "database", None)
        db_status = database is not None and database.check_connection()

        return JSONResponse(
            status_code=200 if db_status else 503,
            content={
                "status": "healthy" if db_status else "unhealthy",
                "database": "connected" if db_status else "disconnected",
                "timestamp": format_timestamp()
            }
        )

    @app.get("/api/v1/system/info")
    def system_info():
        """系统信息端点"""
        return {
            "python_version": platform.python_version(),
            "platform": platform.platform(),
            "cpu_usage": psutil.cpu_percent(),
            "memory_usage": psutil.virtual_memory().percent,
            "environment": settings.ENVIRONMENT,
            "default_quiz_time_limit": settings.DEFAULT_QUIZ_TIME_LIMIT,
            "default_passing_score": settings.DEFAULT_PASSING_SCORE,
            "enforce_quiz_time_limit": settings.ENFORCE_QUIZ_TIME_LIMIT,
        }

    return app


# 创建应用实例
app = create_application()
