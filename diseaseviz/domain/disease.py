"""
DiseaseViz Disease Registry

支持的疾病是一个封闭的枚举，每种疾病的指标和缓存键集中在 DISEASES 一张表里
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

CACHE_VERSION = "v2"

# 旧版本缓存键，刷新时一并删除
LEGACY_CACHE_KEYS = ("covid:data:v1", "disease:data:v1", "disease:data:v2")


class Metric(str, Enum):
    """时间序列指标"""

    CONFIRMED = "confirmed"
    DEATHS = "deaths"
    RECOVERED = "recovered"
    CASES = "cases"
    HOSPITALIZATIONS = "hospitalizations"

    @property
    def may_stall(self) -> bool:
        """该指标的数据源是否会比其他指标更早停止更新"""
        return self is Metric.RECOVERED


class DiseaseKey(str, Enum):
    """支持的疾病"""

    COVID = "covid"
    FLU = "flu"
    MEASLES = "measles"
    MALARIA = "malaria"
    TUBERCULOSIS = "tuberculosis"


@dataclass(frozen=True)
class DiseaseSpec:
    """一种疾病的数据源和指标定义"""

    key: DiseaseKey
    name: str
    primary_metric: Metric
    metrics: Tuple[Metric, ...]
    # 数据集暴露的全部指标（没有数据源的指标为空序列）
    series_metrics: Tuple[Metric, ...]

    @property
    def cache_key(self) -> str:
        if self.key is DiseaseKey.COVID:
            return f"covid:data:{CACHE_VERSION}"
        return f"disease:{self.key.value}:data:{CACHE_VERSION}"

    @property
    def is_primary(self) -> bool:
        return self.key is DiseaseKey.COVID

    def is_required(self, metric: Metric) -> bool:
        """该指标的数据源失败时是否让整个数据集失败"""
        if metric is self.primary_metric:
            return True
        return self.is_primary and not metric.may_stall

    def feed_name(self, metric: Metric) -> str:
        return f"{self.key.value}_{metric.value}"


_COVID_METRICS = (Metric.CONFIRMED, Metric.DEATHS, Metric.RECOVERED)
_DISEASE_METRICS = (Metric.CASES, Metric.DEATHS, Metric.HOSPITALIZATIONS, Metric.RECOVERED)

DISEASES: Dict[DiseaseKey, DiseaseSpec] = {
    DiseaseKey.COVID: DiseaseSpec(
        key=DiseaseKey.COVID,
        name="COVID-19",
        primary_metric=Metric.CONFIRMED,
        metrics=_COVID_METRICS,
        series_metrics=_COVID_METRICS,
    ),
    DiseaseKey.FLU: DiseaseSpec(
        key=DiseaseKey.FLU,
        name="Influenza (Flu)",
        primary_metric=Metric.CASES,
        metrics=(Metric.CASES, Metric.DEATHS, Metric.HOSPITALIZATIONS),
        series_metrics=_DISEASE_METRICS,
    ),
    DiseaseKey.MEASLES: DiseaseSpec(
        key=DiseaseKey.MEASLES,
        name="Measles",
        primary_metric=Metric.CASES,
        metrics=(Metric.CASES, Metric.DEATHS),
        series_metrics=_DISEASE_METRICS,
    ),
    DiseaseKey.MALARIA: DiseaseSpec(
        key=DiseaseKey.MALARIA,
        name="Malaria",
        primary_metric=Metric.CASES,
        metrics=(Metric.CASES, Metric.DEATHS),
        series_metrics=_DISEASE_METRICS,
    ),
    DiseaseKey.TUBERCULOSIS: DiseaseSpec(
        key=DiseaseKey.TUBERCULOSIS,
        name="Tuberculosis (TB)",
        primary_metric=Metric.CASES,
        metrics=(Metric.CASES, Metric.DEATHS, Metric.RECOVERED),
        series_metrics=_DISEASE_METRICS,
    ),
}

SECONDARY_DISEASES: Tuple[DiseaseKey, ...] = tuple(k for k in DISEASES if k is not DiseaseKey.COVID)


def get_disease(key) -> DiseaseSpec:
    """按 key（枚举或字符串）查找疾病定义"""
    return DISEASES[DiseaseKey(key)]


def all_cache_keys() -> Tuple[str, ...]:
    """所有已知缓存键（当前版本 + 旧版本）"""
    return tuple(spec.cache_key for spec in DISEASES.values()) + LEGACY_CACHE_KEYS
