"""
书评 API 路由
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import AliasChoices, BaseModel, Field

from book_review.core import get_logger
from book_review.models import IntegrationStatus, Review
from book_review.services.review_service import (
    ReviewNotFoundError,
    ReviewPersistenceError,
    ReviewValidationError,
    get_review_service,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/reviews", tags=["书评"])

# 服务实例
review_service = get_review_service()


# ============ 请求/响应模型 ============

class CreateReviewRequest(BaseModel):
    """创建书评请求"""
    title: str = ""
    original_content: str = Field(
        default="",
        validation_alias=AliasChoices("original_content", "originalContent"),
    )


class ReviewResponse(BaseModel):
    """书评响应"""
    id: str
    title: str
    original_content: str
    improved_content: Optional[str]
    model: Optional[str]
    token_count: Optional[int]
    usd_cost: Optional[Decimal]
    krw_cost: Optional[Decimal]
    google_file_id: Optional[str]
    integration_status: IntegrationStatus
    formatted_usd_cost: str
    formatted_krw_cost: str
    formatted_created_at: str
    created_at: datetime


class ReviewCreationResponse(BaseModel):
    """创建书评响应"""
    saved_review_id: str
    integration_status: IntegrationStatus
    message: str
    review: ReviewResponse


class ReviewListResponse(BaseModel):
    """书评列表响应"""
    items: list[ReviewResponse]
    total: int


class DeleteReviewResponse(BaseModel):
    """删除书评响应"""
    deleted: bool
    drive_deleted: bool
    warnings: list[str]


def _to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        title=review.title,
        original_content=review.original_content,
        improved_content=review.improved_content,
        model=review.model,
        token_count=review.token_count,
        usd_cost=review.usd_cost,
        krw_cost=review.krw_cost,
        google_file_id=review.google_file_id,
        integration_status=review.integration_status,
        formatted_usd_cost=review.formatted_usd_cost,
        formatted_krw_cost=review.formatted_krw_cost,
        formatted_created_at=review.formatted_created_at,
        created_at=review.created_at,
    )


# ============ API 接口 ============

@router.post("", response_model=ReviewCreationResponse, status_code=201)
def create_review(request: CreateReviewRequest, response: Response):
    """
    创建书评

    依次执行 AI 润色 → 费用/汇率换算 → Drive 归档；外部集成失败不影响保存
    """
    try:
        creation = review_service.create_review(
            title=request.title,
            original_content=request.original_content,
        )
    except ReviewValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReviewPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    response.headers["Location"] = f"/api/reviews/{creation.review.id}"
    return ReviewCreationResponse(
        saved_review_id=creation.review.id,
        integration_status=creation.integration_status,
        message=creation.message,
        review=_to_response(creation.review),
    )


@router.get("", response_model=ReviewListResponse)
def list_reviews():
    """获取书评列表"""
    reviews = review_service.list_reviews()
    return ReviewListResponse(
        items=[_to_response(r) for r in reviews],
        total=len(reviews),
    )


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: str):
    """获取书评详情"""
    review = review_service.get_review(review_id)
    if not review:
        raise HTTPException(status_code=404, detail="书评不存在")
    return _to_response(review)


@router.delete("/{review_id}", response_model=DeleteReviewResponse)
def delete_review(review_id: str):
    """删除书评（Drive 文件删除失败只返回警告）"""
    try:
        result = review_service.delete_review(review_id)
    except ReviewNotFoundError:
        raise HTTPException(status_code=404, detail="书评不存在")

    return DeleteReviewResponse(
        deleted=result.deleted,
        drive_deleted=result.drive_deleted,
        warnings=result.warnings,
    )
