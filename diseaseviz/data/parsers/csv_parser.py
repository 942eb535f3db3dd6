"""
DiseaseViz Time Series CSV Parser

解析 JHU CSSE 风格的宽表 CSV：每行一个地理单元，每个日期一列。

解析策略：
1. 去掉 BOM，统一换行符
2. 严格模式解析（C 引擎，字段数不一致直接报错）
3. 如果是字段数错误，使用宽松模式重试一次（python 引擎，截断多余字段）
4. 只保留列名符合 M/D/YY 的日期列，地理字段按列名读取
"""
import csv
import datetime
import io
import math
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from diseaseviz.core.errors import FeedParseError
from .base import BaseParser, FeedRow, ParsedFeed

DATE_COLUMN_PATTERN = re.compile(r"^\d{1,2}/\d{1,2}/\d{2}$")
FIELD_COUNT_ERROR = re.compile(r"expected \d+ fields|too (many|few) fields", re.IGNORECASE)

COUNTRY_COLUMNS = ("Country/Region", "Country_Region", "Country", "country")
PROVINCE_COLUMNS = ("Province/State", "Province_State", "Province", "province")
LAT_COLUMNS = ("Lat", "lat", "Latitude")
LNG_COLUMNS = ("Long", "Long_", "lng", "Longitude")


def decode_date(column: str) -> Optional[datetime.date]:
    """把 "M/D/YY" 列名转换为日期（两位年份 + 2000），非法日期返回 None"""
    column = column.strip()
    if not DATE_COLUMN_PATTERN.match(column):
        return None
    month, day, year = (int(part) for part in column.split("/"))
    try:
        return datetime.date(2000 + year, month, day)
    except ValueError:
        return None


def to_coordinate(cell: object) -> Optional[float]:
    """坐标单元格转 float，空值或非数字返回 None"""
    if cell is None:
        return None
    text = str(cell).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _first_present(header: Sequence[str], candidates: Iterable[str]) -> Optional[str]:
    for name in candidates:
        if name in header:
            return name
    return None


class TimeSeriesCsvParser(BaseParser):
    """宽表时间序列 CSV 解析器"""

    def parse(self, content: str, source: str = "<memory>", **kwargs) -> ParsedFeed:
        """
        解析 CSV 文本

        Args:
            content: 原始 CSV 文本
            source: 数据来源（仅用于日志）

        Returns:
            ParsedFeed

        Raises:
            FeedParseError: 宽松模式重试后仍然失败，或缺少国家列
        """
        text = content[1:] if content.startswith("\ufeff") else content
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        if not text.strip():
            self.logger.warning(f"Empty CSV body from {source}")
            return ParsedFeed()

        messages: List[str] = []
        try:
            frame = self._read(text, relaxed=False)
        except (ValueError, csv.Error) as e:
            messages.append(self._clean_text(e))
            if not FIELD_COUNT_ERROR.search(str(e)):
                raise FeedParseError(messages) from e
            self.logger.warning(f"Malformed rows in {source}, retrying in relaxed mode: {e}")
            try:
                frame = self._read(text, relaxed=True)
            except (ValueError, csv.Error) as retry_error:
                messages.append(self._clean_text(retry_error))
                raise FeedParseError(messages) from retry_error

        return self._build_feed(frame, source)

    @staticmethod
    def _read(text: str, relaxed: bool) -> pd.DataFrame:
        """用 pandas 读取 CSV，所有单元格都保留为字符串"""
        options = dict(
            sep=",",
            quotechar='"',
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
            index_col=False,
        )
        if relaxed:
            width = len(pd.read_csv(io.StringIO(text), nrows=0, sep=",").columns)
            frame = pd.read_csv(
                io.StringIO(text),
                engine="python",
                on_bad_lines=lambda fields: fields[:width],
                **options,
            )
        else:
            frame = pd.read_csv(io.StringIO(text), engine="c", on_bad_lines="error", **options)

        # 短行补齐的字段是 NaN；整行都为空白的行跳过
        frame = frame.fillna("").astype(str)
        blank = frame.apply(lambda column: column.str.strip().eq("")).all(axis=1)
        return frame.loc[~blank].reset_index(drop=True)

    def _build_feed(self, frame: pd.DataFrame, source: str) -> ParsedFeed:
        header = [str(column) for column in frame.columns]

        columns: List[str] = []
        dates: List[datetime.date] = []
        for name in header:
            if not DATE_COLUMN_PATTERN.match(name.strip()):
                continue
            decoded = decode_date(name)
            if decoded is None:
                self.logger.warning(f"Ignoring invalid date column '{name}' in {source}")
                continue
            columns.append(name)
            dates.append(decoded)

        country_column = _first_present(header, COUNTRY_COLUMNS)
        if country_column is None:
            if columns:
                raise FeedParseError([f"Missing country column (expected one of {', '.join(COUNTRY_COLUMNS)})"])
            self.logger.warning(f"No date or country columns found in {source}")
            return ParsedFeed()

        geo = {
            "country": country_column,
            "province": _first_present(header, PROVINCE_COLUMNS),
            "lat": _first_present(header, LAT_COLUMNS),
            "lng": _first_present(header, LNG_COLUMNS),
        }

        # 日期列整体转数值：空白/非数字/无穷大 -> 0
        if columns:
            numeric = (
                frame[columns]
                .apply(lambda column: pd.to_numeric(column.str.strip(), errors="coerce"))
                .replace([math.inf, -math.inf], math.nan)
                .fillna(0.0)
                .astype(float)
            )
            values = list(numeric.itertuples(index=False, name=None))
        else:
            values = [()] * len(frame)

        records = frame.to_dict(orient="records")
        rows = [self._build_row(record, geo, row_values) for record, row_values in zip(records, values)]

        unassigned = sum(1 for row in rows if not row.country)
        if unassigned:
            # 计入全球合计，但不参与国家汇总和点位
            self.logger.warning(f"{unassigned} rows without country in {source}")
        self.logger.debug(f"Parsed {source}: {len(rows)} rows, {len(columns)} date columns")
        return ParsedFeed(columns=tuple(columns), dates=tuple(dates), rows=tuple(rows))

    @staticmethod
    def _build_row(
        record: Dict[str, str],
        geo: Dict[str, Optional[str]],
        row_values: Tuple[float, ...],
    ) -> FeedRow:
        country = record.get(geo["country"], "").strip()
        province = record.get(geo["province"], "").strip() if geo["province"] else ""
        lat_raw = record.get(geo["lat"], "").strip() if geo["lat"] else ""
        lng_raw = record.get(geo["lng"], "").strip() if geo["lng"] else ""
        return FeedRow(
            country=country,
            province=province or None,
            lat=to_coordinate(lat_raw),
            lng=to_coordinate(lng_raw),
            lat_raw=lat_raw,
            lng_raw=lng_raw,
            values=tuple(float(v) for v in row_values),
        )


_default_parser: Optional[TimeSeriesCsvParser] = None


def parse_csv(text: str, source: str = "<memory>") -> ParsedFeed:
    """使用默认解析器解析 CSV 文本"""
    global _default_parser
    if _default_parser is None:
        _default_parser = TimeSeriesCsvParser()
    return _default_parser.parse(text, source=source)
