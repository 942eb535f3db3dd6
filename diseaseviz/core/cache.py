"""
DiseaseViz 缓存服务

抓取结果的持久化缓存。CacheStore 是尽力而为的门面：后端的任何异常都会被记录并
当作未命中/空操作处理，绝不会影响调用方的正确性。
"""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import redis.asyncio as redis
from sqlalchemy import delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncEngine

from diseaseviz.domain.base import Base
from diseaseviz.domain.cache_entry import CacheEntry, CacheEntryRecord

from .config import CacheSettings, get_config
from .database import create_engine_for, session_maker_for
from .errors import CacheUnavailableError
from .logging import get_logger

logger = get_logger(__name__)


class CacheStatus(str, Enum):
    """缓存观测状态（只用于诊断，不影响数据结果）"""

    HIT = "hit"
    MISS = "miss"
    STALE = "stale"
    OFFLINE = "offline"
    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheLookup:
    """一次读取的结果：条目 + 状态"""

    entry: Optional[CacheEntry]
    status: CacheStatus


class CacheBackend(ABC):
    """缓存后端接口，失败时抛出 CacheUnavailableError"""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        """释放连接"""


class MemoryCacheBackend(CacheBackend):
    """进程内缓存，载荷按 JSON 往返一次以保证与持久化后端行为一致"""

    def __init__(self):
        self._entries: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        raw = self._entries.get(key)
        if raw is None:
            return None
        data = json.loads(raw)
        return CacheEntry(key=key, value=data["value"], timestamp=data["timestamp"])

    async def put(self, entry: CacheEntry) -> None:
        try:
            self._entries[entry.key] = json.dumps(
                {"value": entry.value, "timestamp": entry.timestamp}, ensure_ascii=False
            )
        except (TypeError, ValueError) as e:
            raise CacheUnavailableError(f"payload is not serializable: {e}") from e

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()


class SqlCacheBackend(CacheBackend):
    """SQLAlchemy 异步后端（默认 sqlite + aiosqlite）"""

    def __init__(self, url: Optional[str] = None, engine: Optional[AsyncEngine] = None):
        self._engine = engine or create_engine_for(url or get_config().cache.url)
        self._session_maker = session_maker_for(self._engine)
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True

    async def get(self, key: str) -> Optional[CacheEntry]:
        try:
            await self._ensure_schema()
            async with self._session_maker() as session:
                record = await session.get(CacheEntryRecord, key)
                return record.to_entry() if record is not None else None
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def put(self, entry: CacheEntry) -> None:
        try:
            await self._ensure_schema()
            async with self._session_maker() as session:
                await session.merge(
                    CacheEntryRecord(key=entry.key, value=entry.value, timestamp=entry.timestamp)
                )
                await session.commit()
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._ensure_schema()
            async with self._session_maker() as session:
                await session.execute(sql_delete(CacheEntryRecord).where(CacheEntryRecord.key == key))
                await session.commit()
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def clear(self) -> None:
        try:
            await self._ensure_schema()
            async with self._session_maker() as session:
                await session.execute(sql_delete(CacheEntryRecord))
                await session.commit()
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def close(self) -> None:
        await self._engine.dispose()


class RedisCacheBackend(CacheBackend):
    """Redis 后端，条目以 JSON 存储（含写入时间）"""

    def __init__(self, url: Optional[str] = None, prefix: str = "diseaseviz"):
        self.url = url or get_config().cache.redis_url
        self.prefix = prefix
        self._redis: Optional[redis.Redis] = None

    def _make_key(self, key: str) -> str:
        """生成 Redis key"""
        return f"{self.prefix}:{key}"

    async def _connect(self) -> redis.Redis:
        if self._redis is None:
            try:
                client = redis.from_url(
                    self.url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await client.ping()
            except Exception as e:
                raise CacheUnavailableError(f"Redis connection failed: {e}") from e
            self._redis = client
            logger.info(f"Redis connected: {self.url}")
        return self._redis

    async def get(self, key: str) -> Optional[CacheEntry]:
        client = await self._connect()
        try:
            raw = await client.get(self._make_key(key))
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e
        if not raw:
            return None
        data = json.loads(raw)
        return CacheEntry(key=key, value=data["value"], timestamp=data["timestamp"])

    async def put(self, entry: CacheEntry) -> None:
        client = await self._connect()
        try:
            payload = json.dumps({"value": entry.value, "timestamp": entry.timestamp}, ensure_ascii=False)
            await client.set(self._make_key(entry.key), payload)
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def delete(self, key: str) -> None:
        client = await self._connect()
        try:
            await client.delete(self._make_key(key))
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def clear(self) -> None:
        client = await self._connect()
        try:
            keys = [key async for key in client.scan_iter(match=self._make_key("*"))]
            if keys:
                await client.delete(*keys)
        except Exception as e:
            raise CacheUnavailableError(str(e)) from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis disconnected")


class CacheStore:
    """
    尽力而为的缓存门面

    get/set/delete/clear 永远不抛出；后端失败时 get 返回 None，写操作返回 False。
    lookup() 额外返回 CacheStatus，便于观测"缓存不可用"的情况。
    """

    def __init__(
        self,
        backend: CacheBackend,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.enabled = enabled
        self.clock = clock

    async def lookup(self, key: str) -> CacheLookup:
        if not self.enabled:
            return CacheLookup(entry=None, status=CacheStatus.DISABLED)
        try:
            entry = await self.backend.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return CacheLookup(entry=None, status=CacheStatus.UNAVAILABLE)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return CacheLookup(entry=None, status=CacheStatus.MISS)
        logger.debug(f"Cache hit: {key}")
        return CacheLookup(entry=entry, status=CacheStatus.HIT)

    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        获取缓存

        Returns:
            缓存条目，不存在或后端不可用时返回 None
        """
        return (await self.lookup(key)).entry

    async def set(self, key: str, value: Any) -> bool:
        """
        设置缓存，记录当前时间为写入时间

        Returns:
            是否成功
        """
        if not self.enabled:
            return False
        entry = CacheEntry(key=key, value=value, timestamp=self.clock())
        try:
            await self.backend.put(entry)
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False
        logger.debug(f"Cache set: {key}")
        return True

    async def delete(self, key: str) -> bool:
        """删除缓存"""
        try:
            await self.backend.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False
        logger.debug(f"Cache deleted: {key}")
        return True

    async def clear(self) -> bool:
        """清空缓存"""
        try:
            await self.backend.clear()
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")
            return False
        logger.info("Cache cleared")
        return True

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as e:
            logger.warning(f"Cache close failed: {e}")


def create_backend(settings: Optional[CacheSettings] = None) -> CacheBackend:
    """按配置创建缓存后端"""
    settings = settings or get_config().cache
    if settings.backend == "redis":
        return RedisCacheBackend(settings.redis_url)
    if settings.backend == "memory":
        return MemoryCacheBackend()
    return SqlCacheBackend(settings.url)


def create_cache_store(settings: Optional[CacheSettings] = None) -> CacheStore:
    """按配置创建缓存门面"""
    settings = settings or get_config().cache
    store = CacheStore(create_backend(settings), enabled=settings.enabled)
    logger.info(f"Cache store ready (backend: {settings.backend}, enabled: {settings.enabled})")
    return store
