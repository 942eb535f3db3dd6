"""
DiseaseViz Dataset Builder

把一个疾病的全部数据源组装成完整视图（时间序列 + 国家汇总 + 点位）
"""
import datetime
from typing import Dict, List, Mapping, Optional

from diseaseviz.core import get_logger
from diseaseviz.data.parsers import ParsedFeed
from diseaseviz.domain import (
    DISEASES,
    Centroid,
    CountryAggregate,
    DiseaseCountryAggregate,
    DiseaseDataset,
    DiseaseKey,
    DiseaseMapPoint,
    DiseaseSpec,
    MapPoint,
    PrimaryDataset,
    TimeSeriesPoint,
)
from .aggregation import aggregate_countries, build_global_series, build_points

logger = get_logger(__name__)


def _series_for(spec: DiseaseSpec, feeds: Mapping) -> Dict[str, List[TimeSeriesPoint]]:
    series: Dict[str, List[TimeSeriesPoint]] = {}
    for metric in spec.series_metrics:
        feed: Optional[ParsedFeed] = feeds.get(metric)
        series[metric.value] = build_global_series(feed) if feed is not None and not feed.is_empty else []
    return series


def _last_updated(series: List[TimeSeriesPoint]) -> datetime.date:
    return series[-1].date if series else datetime.date.today()


def build_primary_dataset(feeds: Mapping) -> PrimaryDataset:
    """
    组装 COVID-19 视图

    Args:
        feeds: Metric -> ParsedFeed；康复数据缺失时传空的 ParsedFeed 或不传
    """
    spec = DISEASES[DiseaseKey.COVID]
    series = _series_for(spec, feeds)
    countries = aggregate_countries(feeds, spec.primary_metric, CountryAggregate)
    points = build_points(feeds, spec.primary_metric, MapPoint)
    dataset = PrimaryDataset(
        series=series,
        countries=countries,
        points=points,
        last_updated=_last_updated(series[spec.primary_metric.value]),
    )
    logger.info(
        f"COVID-19 dataset built: {len(series[spec.primary_metric.value])} days, "
        f"{len(countries)} countries, {len(points)} points"
    )
    return dataset


def build_disease_dataset(
    spec: DiseaseSpec,
    feeds: Mapping,
    centroids: Optional[Mapping[str, Centroid]] = None,
) -> DiseaseDataset:
    """
    组装其他疾病视图，自身缺少坐标的国家/行使用 COVID-19 的中心点
    """
    series = _series_for(spec, feeds)
    countries = aggregate_countries(feeds, spec.primary_metric, DiseaseCountryAggregate, fallback=centroids)
    points = build_points(feeds, spec.primary_metric, DiseaseMapPoint, fallback=centroids)
    dataset = DiseaseDataset(
        key=spec.key.value,
        name=spec.name,
        series=series,
        countries=countries,
        points=points,
        last_updated=_last_updated(series[spec.primary_metric.value]),
    )
    logger.info(f"{spec.name} dataset built: {len(countries)} countries, {len(points)} points")
    return dataset
