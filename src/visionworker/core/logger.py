"""
日志配置模块

stdout 是结果通道，所有日志一律输出到 stderr 或文件。
"""
import sys
from pathlib import Path

from loguru import logger

from .config import settings

_configured = False


def setup_logger(force: bool = False):
    """配置日志系统（重复调用时除非 force 否则直接返回）"""
    global _configured
    if _configured and not force:
        return logger

    # 移除默认处理器（默认处理器同样写 stderr，这里统一重建）
    logger.remove()

    # 控制台输出
    console = sys.stderr or sys.__stderr__
    if settings.log_console_enabled and console is not None:
        logger.add(
            console,
            level=settings.log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        )

    if settings.log_file_enabled:
        log_dir = Path(settings.log_path)
        log_dir.mkdir(parents=True, exist_ok=True)

        # 文件输出 - 全局日志
        logger.add(
            log_dir / "worker_{time:YYYY-MM-DD}.log",
            level=settings.log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="00:00",  # 每天午夜轮转
            retention=f"{settings.log_retention_days} days",
            encoding="utf-8",
        )

        # 错误日志单独记录
        logger.add(
            log_dir / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="00:00",
            retention=f"{settings.log_retention_days * 2} days",
            encoding="utf-8",
        )

    _configured = True
    return logger


# 初始化日志系统
logger = setup_logger()
