"""
API 路由模块
"""
from fastapi import APIRouter
from .reviews import router as reviews_router

# 创建主路由
api_router = APIRouter(prefix="/api")

# 注册子路由
api_router.include_router(reviews_router)

__all__ = ["api_router"]
