"""
创建数据库表
"""
from book_review.core import get_settings
from book_review.core.database import engine, init_db

settings = get_settings()

if __name__ == "__main__":
    # 创建所有表
    init_db(engine)

    print(f"✅ 数据库表创建完成: {settings.database_url}")
