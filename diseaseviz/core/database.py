"""
DiseaseViz 数据库连接管理

基于 SQLAlchemy 2.0 的异步数据库连接（缓存 SQL 后端使用）
"""
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from .logging import get_logger

logger = get_logger(__name__)


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    按 URL 创建异步引擎

    sqlite 文件数据库会先创建父目录
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(url, echo=echo)
    else:
        engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,  # 连接前测试
            pool_recycle=3600,  # 1小时回收连接
        )
    logger.debug(f"Database engine created: {parsed.render_as_string(hide_password=True)}")
    return engine


def session_maker_for(engine: AsyncEngine) -> async_sessionmaker:
    """为引擎创建 session maker"""
    return async_sessionmaker(engine, expire_on_commit=False)
