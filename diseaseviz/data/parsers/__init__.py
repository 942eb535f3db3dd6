"""
DiseaseViz Data Parsers

把原始 CSV 文本解析为带日期列的结构化行
"""

from .base import BaseParser, FeedRow, ParsedFeed
from .csv_parser import TimeSeriesCsvParser, decode_date, parse_csv

__all__ = [
    "BaseParser",
    "FeedRow",
    "ParsedFeed",
    "TimeSeriesCsvParser",
    "decode_date",
    "parse_csv",
]
