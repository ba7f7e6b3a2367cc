"""
数据库连接管理 - 统一管理数据库连接
"""
import os
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from book_review.core.config import get_settings

# 创建全局数据库引擎
_settings = get_settings()
_connect_args = (
    {"check_same_thread": False}
    if _settings.database_url.startswith("sqlite")
    else {}
)
engine = create_engine(_settings.database_url, echo=False, connect_args=_connect_args)


def init_db(target: Optional[Engine] = None) -> None:
    """创建所有数据表（SQLite 文件库会先创建所在目录）"""
    # 导入模型，确保表已注册到 metadata
    from book_review import models  # noqa: F401

    target = target or engine
    url = target.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        directory = os.path.dirname(url.database)
        if directory:
            os.makedirs(directory, exist_ok=True)

    SQLModel.metadata.create_all(target)


__all__ = ["engine", "init_db"]
