"""
DiseaseViz Year Views

按年份查看时间序列：
- 所有序列里出现过的年份
- 只保留某一年的点
- 汇总值：不限年份时取最后一天的值，指定年份时对该年内的点求和
"""
from typing import Dict, Iterable, List, Mapping, Optional

from diseaseviz.domain import TimeSeriesPoint


def available_years(*series: Iterable[TimeSeriesPoint]) -> List[int]:
    """所有序列中出现过的年份（升序）"""
    years = {point.date.year for points in series for point in points}
    return sorted(years)


def filter_year(series: List[TimeSeriesPoint], year: Optional[int] = None) -> List[TimeSeriesPoint]:
    """year 为 None 时原样返回"""
    if year is None:
        return series
    return [point for point in series if point.date.year == year]


def filter_series(
    series: Mapping[str, List[TimeSeriesPoint]], year: Optional[int] = None
) -> Dict[str, List[TimeSeriesPoint]]:
    return {name: filter_year(points, year) for name, points in series.items()}


def year_total(series: List[TimeSeriesPoint], year: Optional[int] = None) -> float:
    """
    汇总值

    Args:
        series: 一个指标的全球序列
        year: None 表示全部年份

    Returns:
        全部年份：最后一个点的值（没有数据时为 0）；
        指定年份：该年内所有点的值之和
    """
    if year is None:
        return series[-1].value if series else 0.0
    return sum(point.value for point in series if point.date.year == year)


def series_totals(
    series: Mapping[str, List[TimeSeriesPoint]], year: Optional[int] = None
) -> Dict[str, float]:
    """每个指标的汇总值"""
    return {name: year_total(points, year) for name, points in series.items()}
