"""
测试配置
"""
import os
import sys
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

# 添加 src 目录到 Python 路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# 设置测试环境变量（必须在导入 book_review 之前）
os.environ["DATABASE_URL"] = "sqlite:///./data/test_book_review.db"
os.environ["OPENAI_API_KEY"] = ""
os.environ["EXCHANGE_RATE_API_KEY"] = ""
os.environ["GOOGLE_DRIVE_CREDENTIALS_PATH"] = ""
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture
def test_db():
    """测试数据库 fixture（内存 SQLite，跨线程共享同一连接）"""
    from sqlalchemy.pool import StaticPool
    from sqlmodel import create_engine, SQLModel
    from book_review.models import Review  # noqa: F401

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def adapters():
    """全部成功的外部服务替身"""
    from book_review.services import (
        AdapterResult,
        CostEstimate,
        CurrencyService,
        GoogleDriveService,
        ImprovedReview,
        LLMService,
        TokenCostService,
    )

    llm = Mock(spec=LLMService)
    llm.improve_review.return_value = AdapterResult.success(ImprovedReview(
        content="It was truly excellent.",
        model="gpt-4o-mini",
        prompt_tokens=8,
        completion_tokens=4,
    ))

    cost = Mock(spec=TokenCostService)
    cost.estimate.return_value = AdapterResult.success(
        CostEstimate(total_tokens=12, usd_cost=Decimal("0.001"))
    )

    currency = Mock(spec=CurrencyService)
    currency.convert.return_value = AdapterResult.success(Decimal("1.3"))

    drive = Mock(spec=GoogleDriveService)
    drive.upload_markdown.return_value = AdapterResult.success("drive-123")
    drive.delete_file.return_value = AdapterResult.success(None)

    return SimpleNamespace(llm=llm, cost=cost, currency=currency, drive=drive)


@pytest.fixture
def review_service(test_db, adapters):
    """使用替身适配器和内存数据库的书评服务"""
    from book_review.services import ReviewService, ReviewStore

    return ReviewService(
        llm_service=adapters.llm,
        cost_service=adapters.cost,
        currency_service=adapters.currency,
        drive_service=adapters.drive,
        store=ReviewStore(test_db),
    )
