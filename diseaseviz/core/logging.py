"""
DiseaseViz 日志系统

基于 loguru 的统一日志管理：
- 控制台：彩色输出
- 文件：按天轮转的完整日志 + 单独的错误日志
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .config import get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"

# 全局标记，避免重复初始化
_logging_initialized = False


def _add_file_sink(path: Path, level: str, retention: str, format: str = FILE_FORMAT, **kwargs) -> None:
    logger.add(
        path,
        format=format,
        level=level,
        rotation="00:00",  # 每天轮转
        retention=retention,
        compression="zip",
        encoding="utf-8",
        **kwargs,
    )


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    force: bool = False,
) -> None:
    """
    配置日志系统

    Args:
        level: 日志级别，默认读取配置中的 log_level
        log_dir: 日志目录，默认读取配置中的 log_dir
        force: 已初始化时是否重新配置（例如命令行指定了日志级别）
    """
    global _logging_initialized

    if _logging_initialized and not force:
        return

    config = get_config()
    level = (level or config.log_level).upper()
    log_dir = Path(log_dir) if log_dir is not None else config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    # 未 bind 名称的日志也能正常格式化
    logger.configure(extra={"name": "diseaseviz"})
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=config.debug,
    )
    _add_file_sink(log_dir / "diseaseviz_{time:YYYY-MM-DD}.log", level, "30 days")
    _add_file_sink(
        log_dir / "diseaseviz_error_{time:YYYY-MM-DD}.log",
        "ERROR",
        "90 days",
        format=FILE_FORMAT + "\n{exception}",
        backtrace=True,
    )

    _logging_initialized = True
    logger.bind(name=__name__).debug(f"Logging configured - Level: {level}, Log dir: {log_dir}")


def get_logger(name: str):
    """
    获取logger实例

    Args:
        name: logger名称，通常使用 __name__

    Returns:
        绑定了名称的logger实例
    """
    if not _logging_initialized:
        setup_logging()
    return logger.bind(name=name)
