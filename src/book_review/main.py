"""
FastAPI 应用入口 - 类似 Java Spring Boot 的 Application.java
"""
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from book_review.core import setup_logging, get_settings, get_logger, log_uuid_var
from book_review.core.database import init_db
from book_review.api import api_router

# 初始化日志
settings = get_settings()
setup_logging(settings.log_level)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    init_db()
    logger.info("📚 书评服务 API 启动中...")
    yield
    # 关闭时执行
    logger.info("👋 书评服务 API 关闭")


# 创建 FastAPI 应用
app = FastAPI(
    title="书评润色 API",
    description="书评 AI 润色、费用估算、汇率换算与 Google Drive 归档",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_uuid_middleware(request: Request, call_next):
    """为每个请求生成日志 ID，并通过 X-Request-ID 返回"""
    log_uuid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    token = log_uuid_var.set(log_uuid)
    try:
        response = await call_next(request)
    finally:
        log_uuid_var.reset(token)
    response.headers["X-Request-ID"] = log_uuid
    return response


# 注册 API 路由
app.include_router(api_router)


@app.get("/")
async def root():
    """健康检查"""
    return {"status": "ok", "message": "书评服务 API 运行中"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"启动服务: http://{settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "book_review.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
