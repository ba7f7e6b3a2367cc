"""
书评存储 - 基于 SQLModel 的简单仓储
"""
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from book_review.core.database import engine as default_engine
from book_review.models import Review


class ReviewStore:
    """书评仓储：save / find_by_id / find_all / delete_by_id"""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or default_engine

    def save(self, review: Review) -> Review:
        with Session(self.engine) as session:
            session.add(review)
            session.commit()
            session.refresh(review)
            return review

    def find_by_id(self, review_id: str) -> Optional[Review]:
        with Session(self.engine) as session:
            return session.get(Review, review_id)

    def find_all(self) -> list[Review]:
        """按创建时间倒序返回全部书评"""
        with Session(self.engine) as session:
            statement = select(Review).order_by(Review.created_at.desc())
            return list(session.exec(statement).all())

    def delete_by_id(self, review_id: str) -> bool:
        with Session(self.engine) as session:
            review = session.get(Review, review_id)
            if not review:
                return False
            session.delete(review)
            session.commit()
            return True


# 全局单例
_review_store: Optional[ReviewStore] = None


def get_review_store() -> ReviewStore:
    """获取书评仓储单例"""
    global _review_store
    if _review_store is None:
        _review_store = ReviewStore()
    return _review_store
