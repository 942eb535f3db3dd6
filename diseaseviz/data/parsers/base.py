"""
DiseaseViz Base Parser

解析结果的数据结构和通用解析器接口
"""
import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from diseaseviz.core import get_logger


@dataclass(frozen=True)
class FeedRow:
    """
    宽表中的一行（一个省份或国家）

    地理字段是固定的可选字段；country 为空的行只计入全球合计。
    values 与 ParsedFeed.columns 一一对应，
    缺失或非数字的单元格已经被转换为 0。
    """

    country: str
    province: Optional[str]
    lat: Optional[float]
    lng: Optional[float]
    lat_raw: str
    lng_raw: str
    values: Tuple[float, ...]

    @property
    def has_coordinates(self) -> bool:
        """坐标是否可用：两个都是数字，且不是 (0, 0) 这个"缺失"哨兵值"""
        if self.lat is None or self.lng is None:
            return False
        return not (self.lat == 0 and self.lng == 0)

    @property
    def key(self) -> str:
        """跨数据源关联同一行的组合键：省份 + 国家 + 原始坐标"""
        return f"{self.province or ''}__{self.country}__{self.lat_raw}__{self.lng_raw}"

    @property
    def display_name(self) -> str:
        return self.province or self.country

    def value_at(self, index: int) -> float:
        if 0 <= index < len(self.values):
            return self.values[index]
        return 0.0


@dataclass(frozen=True)
class ParsedFeed:
    """一个 CSV 数据源的解析结果：日期列 + 行"""

    columns: Tuple[str, ...] = ()
    dates: Tuple[datetime.date, ...] = ()
    rows: Tuple[FeedRow, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.columns

    @property
    def last_index(self) -> Optional[int]:
        return len(self.columns) - 1 if self.columns else None

    def column_total(self, index: int) -> float:
        """某一日期列在所有行上的合计"""
        return sum(row.value_at(index) for row in self.rows)


class BaseParser(ABC):
    """
    基础解析器类

    定义解析器的通用接口和功能
    """

    def __init__(self):
        """初始化解析器"""
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def parse(self, content: str, **kwargs) -> ParsedFeed:
        """
        解析内容

        Args:
            content: 待解析的原始文本
            **kwargs: 额外参数

        Returns:
            ParsedFeed: 解析结果
        """

    @staticmethod
    def _clean_text(text: object) -> str:
        """去除多余空白"""
        if text is None:
            return ""
        return " ".join(str(text).split())
