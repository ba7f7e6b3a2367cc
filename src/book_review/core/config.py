"""
配置管理 - 类似 Java 的 @ConfigurationProperties
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API 配置
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    # OpenAI 兼容 API 配置
    openai_api_key: str = ""
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "OPENAI_API_URL"),
    )
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7
    openai_timeout: float = 60.0

    # 汇率 API 配置（exchangerate-api.com 格式）
    exchange_rate_api_key: str = ""
    exchange_rate_api_url: str = "https://v6.exchangerate-api.com/v6/{api_key}/latest/{base}"
    source_currency: str = "USD"
    target_currency: str = "KRW"
    exchange_rate_timeout: float = 10.0
    # 汇率缓存秒数，0 表示不缓存
    exchange_rate_cache_ttl: int = 3600

    # Google Drive 配置（服务账号）
    google_drive_credentials_path: str = ""
    google_drive_parent_folder_id: str = ""
    google_drive_timeout: float = 30.0

    # 数据库配置
    database_url: str = "sqlite:///./data/book_review.db"

    # 日志配置
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
