"""
DiseaseViz Snapshot Models

聚合结果的不可变快照，可直接序列化进缓存
"""
import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class Snapshot(BaseModel):
    """所有快照模型的基类：不可变、忽略未知字段"""

    model_config = ConfigDict(frozen=True, extra="ignore")


class TimeSeriesPoint(Snapshot):
    """某个指标在某一天的全球合计"""

    date: datetime.date
    value: float


class Centroid(Snapshot):
    """国家的近似中心点"""

    lat: float
    lng: float


class CountryAggregate(Snapshot):
    """COVID-19 国家汇总（最新一天）"""

    country: str
    confirmed: float = 0
    deaths: float = 0
    recovered: float = 0
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def centroid(self) -> Optional[Centroid]:
        if self.lat is None or self.lng is None:
            return None
        return Centroid(lat=self.lat, lng=self.lng)


class DiseaseCountryAggregate(Snapshot):
    """其他疾病的国家汇总"""

    country: str
    cases: float = 0
    deaths: float = 0
    hospitalizations: float = 0
    recovered: float = 0
    lat: Optional[float] = None
    lng: Optional[float] = None


class MapPoint(Snapshot):
    """地图上的一个 COVID-19 报告点（省份或国家）"""

    name: str
    country: str
    lat: float
    lng: float
    confirmed: float = 0
    deaths: float = 0
    recovered: float = 0


class DiseaseMapPoint(Snapshot):
    """地图上的其他疾病报告点"""

    name: str
    country: str
    lat: float
    lng: float
    cases: float = 0
    deaths: float = 0
    hospitalizations: float = 0
    recovered: float = 0


class PrimaryDataset(Snapshot):
    """COVID-19 完整视图"""

    series: Dict[str, List[TimeSeriesPoint]]
    countries: List[CountryAggregate]
    points: List[MapPoint]
    last_updated: datetime.date


class DiseaseDataset(Snapshot):
    """其他疾病的完整视图"""

    key: str
    name: str
    series: Dict[str, List[TimeSeriesPoint]]
    countries: List[DiseaseCountryAggregate]
    points: List[DiseaseMapPoint]
    last_updated: datetime.date


def centroids_from(dataset: PrimaryDataset) -> Dict[str, Centroid]:
    """从 COVID-19 国家汇总构建 国家名 -> 中心点 映射"""
    centroids: Dict[str, Centroid] = {}
    for country in dataset.countries:
        centroid = country.centroid
        if centroid is not None:
            centroids[country.country] = centroid
    return centroids
