"""
服务模块
"""
from .outcome import AdapterResult, FailureReason
from .llm_service import LLMService, ImprovedReview, get_llm_service
from .cost_service import TokenCostService, CostEstimate, get_token_cost_service
from .currency_service import CurrencyService, get_currency_service
from .drive_service import GoogleDriveService, get_drive_service
from .review_store import ReviewStore, get_review_store
from .review_service import (
    ReviewService,
    ReviewCreation,
    DeleteReviewResult,
    ReviewValidationError,
    ReviewNotFoundError,
    ReviewPersistenceError,
    get_review_service,
)

__all__ = [
    "AdapterResult",
    "FailureReason",
    "LLMService",
    "ImprovedReview",
    "get_llm_service",
    "TokenCostService",
    "CostEstimate",
    "get_token_cost_service",
    "CurrencyService",
    "get_currency_service",
    "GoogleDriveService",
    "get_drive_service",
    "ReviewStore",
    "get_review_store",
    "ReviewService",
    "ReviewCreation",
    "DeleteReviewResult",
    "ReviewValidationError",
    "ReviewNotFoundError",
    "ReviewPersistenceError",
    "get_review_service",
]
