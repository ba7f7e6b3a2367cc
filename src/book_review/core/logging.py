"""
日志配置 - Python logging 最佳实践
"""
import logging
import sys
from contextvars import ContextVar

# 当前请求的日志 ID，由 HTTP 中间件设置
log_uuid_var: ContextVar[str] = ContextVar("log_uuid", default="-")


class LogUuidFilter(logging.Filter):
    """把当前请求的日志 ID 注入到每条日志记录"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.loguuid = log_uuid_var.get()
        return True


def setup_logging(log_level: str = "INFO") -> None:
    """
    配置日志系统

    类似于 Java 的 logback.xml 配置，日志格式中带有请求级别的 loguuid（MDC）
    """
    # 日志格式
    fmt = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | [%(loguuid)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    # 创建 formatter
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(LogUuidFilter())

    # 根日志记录器（重复调用时替换掉之前的处理器）
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.StreamHandler) and any(
            isinstance(f, LogUuidFilter) for f in handler.filters
        ):
            root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)

    # 设置第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    """
    获取日志记录器

    用法:
        logger = get_logger(__name__)
        logger.info("信息日志")
    """
    return logging.getLogger(name)
