"""
DiseaseViz Aggregation Engine

从解析后的数据源派生三种视图：
1. 全球每日时间序列
2. 按国家汇总（最新一天）+ 近似中心点
3. 地图点位列表
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from diseaseviz.core import get_logger
from diseaseviz.data.parsers import FeedRow, ParsedFeed
from diseaseviz.domain import Centroid, Metric, TimeSeriesPoint

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_global_series(feed: ParsedFeed) -> List[TimeSeriesPoint]:
    """每个日期列在所有行上求和（包括没有国家的行），按表头顺序输出"""
    return [
        TimeSeriesPoint(date=day, value=feed.column_total(index))
        for index, day in enumerate(feed.dates)
    ]


def latest_column(feed: ParsedFeed, metric: Metric) -> Optional[int]:
    """
    选择用于"最新值"的日期列

    一般是最后一列；会提前停止更新的指标（康复）从后往前找第一个合计 > 0 的列，
    全部为 0 时仍返回最后一列（结果自然为 0）。
    """
    last = feed.last_index
    if last is None or not metric.may_stall:
        return last
    for index in range(last, -1, -1):
        if feed.column_total(index) > 0:
            if index != last:
                logger.debug(f"{metric.value}: last reported column is {feed.columns[index]}")
            return index
    return last


def _ordered(feeds: Mapping[Metric, ParsedFeed], primary: Metric) -> List[Tuple[Metric, ParsedFeed]]:
    """主指标排在最前，保证国家顺序跟随主指标"""
    items = [(primary, feeds[primary])] if primary in feeds else []
    items.extend((metric, feed) for metric, feed in feeds.items() if metric is not primary)
    return items


@dataclass
class _CountryAccumulator:
    country: str
    totals: Dict[Metric, float] = field(default_factory=dict)
    lat_sum: float = 0.0
    lng_sum: float = 0.0
    count: int = 0

    def add(self, metric: Metric, value: float) -> None:
        self.totals[metric] = self.totals.get(metric, 0.0) + value

    def add_coordinates(self, row: FeedRow) -> None:
        self.lat_sum += row.lat
        self.lng_sum += row.lng
        self.count += 1

    def centroid(self) -> Optional[Centroid]:
        if self.count == 0:
            return None
        return Centroid(lat=self.lat_sum / self.count, lng=self.lng_sum / self.count)


def aggregate_countries(
    feeds: Mapping[Metric, ParsedFeed],
    primary: Metric,
    model: Type[ModelT],
    fallback: Optional[Mapping[str, Centroid]] = None,
) -> List[ModelT]:
    """
    按国家汇总最新值

    Args:
        feeds: 指标 -> 解析结果（缺失的指标不出现或为空）
        primary: 主指标（确诊/病例），中心点只取主指标数据源的坐标
        model: 输出模型，字段名与指标名一致
        fallback: 国家名 -> 中心点，自身没有可用坐标的国家使用它

    Returns:
        按主指标降序排列的国家汇总
    """
    by_country: Dict[str, _CountryAccumulator] = {}

    for metric, feed in _ordered(feeds, primary):
        column = latest_column(feed, metric)
        if column is None:
            continue
        for row in feed.rows:
            if not row.country:
                continue
            try:
                accumulator = by_country.get(row.country)
                if accumulator is None:
                    accumulator = by_country[row.country] = _CountryAccumulator(row.country)
                accumulator.add(metric, row.value_at(column))
                if metric is primary and row.has_coordinates:
                    accumulator.add_coordinates(row)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping {metric.value} row for {row.country!r}: {e}")

    results: List[ModelT] = []
    for accumulator in by_country.values():
        centroid = accumulator.centroid()
        if centroid is None and fallback:
            centroid = fallback.get(accumulator.country)
        results.append(
            model(
                country=accumulator.country,
                lat=centroid.lat if centroid else None,
                lng=centroid.lng if centroid else None,
                **{metric.value: total for metric, total in accumulator.totals.items()},
            )
        )

    results.sort(key=lambda item: getattr(item, primary.value), reverse=True)
    return results


def build_points(
    feeds: Mapping[Metric, ParsedFeed],
    primary: Metric,
    model: Type[ModelT],
    fallback: Optional[Mapping[str, Centroid]] = None,
) -> List[ModelT]:
    """
    构建地图点位

    以主指标数据源的行为基础，其他指标通过 省份+国家+坐标 组合键关联。
    坐标不可用（非数字或 (0,0)）的行跳过，除非提供了该国家的中心点；
    主指标值 <= 0 的点位丢弃。
    """
    base = feeds.get(primary)
    if base is None or base.is_empty:
        return []

    lookups: Dict[Metric, Dict[str, float]] = {}
    for metric, feed in _ordered(feeds, primary):
        column = latest_column(feed, metric)
        if column is None:
            continue
        lookups[metric] = {row.key: row.value_at(column) for row in feed.rows}

    points: List[ModelT] = []
    for row in base.rows:
        if not row.country:
            continue
        if row.has_coordinates:
            lat, lng = row.lat, row.lng
        elif fallback and row.country in fallback:
            centroid = fallback[row.country]
            lat, lng = centroid.lat, centroid.lng
        else:
            continue

        values = {metric.value: lookup.get(row.key, 0.0) for metric, lookup in lookups.items()}
        if values.get(primary.value, 0.0) <= 0:
            continue
        try:
            points.append(model(name=row.display_name, country=row.country, lat=lat, lng=lng, **values))
        except ValueError as e:
            logger.warning(f"Skipping point {row.key}: {e}")
    return points
