"""
DiseaseViz Cache Entry

缓存条目：内存里是一个不可变 dataclass，落到 SQL 后端时是一张键值表
"""
import time
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import JSON, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


@dataclass(frozen=True)
class CacheEntry:
    """一次抓取结果的持久化快照"""

    key: str
    value: Any
    timestamp: float  # 写入时间（epoch 秒）

    def age(self, now: Optional[float] = None) -> float:
        """距离写入已过去的秒数"""
        return (time.time() if now is None else now) - self.timestamp

    def is_fresh(self, ttl_seconds: float, now: Optional[float] = None) -> bool:
        """now - timestamp < ttl"""
        return self.age(now) < ttl_seconds


class CacheEntryRecord(Base):
    """SQL 后端使用的缓存表"""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(200), primary_key=True, comment="带版本号的缓存键")
    value = mapped_column(JSON, nullable=False, comment="序列化后的载荷")
    timestamp: Mapped[float] = mapped_column(Float, nullable=False, comment="写入时间（epoch 秒）")

    def to_entry(self) -> CacheEntry:
        return CacheEntry(key=self.key, value=self.value, timestamp=self.timestamp)

    def __repr__(self) -> str:
        return f"<CacheEntryRecord(key='{self.key}', timestamp={self.timestamp})>"
