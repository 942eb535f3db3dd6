"""
DiseaseViz Feed Catalog

每个疾病/指标的候选地址列表（声明式，与编排逻辑解耦）
"""
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from diseaseviz.core import SourceSettings, get_config
from diseaseviz.domain import DiseaseSpec, Metric
from .resolver import FeedSources, Source

COVID_LOCAL_DIR = "COVID-19-master/csse_covid_19_data/csse_covid_19_time_series"
DISEASE_LOCAL_DIR = "maladie"

# 第一个文件名是规范名称，之后是本地镜像里可能出现的旧文件名
COVID_FILES: Dict[Metric, Tuple[str, ...]] = {
    Metric.CONFIRMED: ("time_series_covid19_confirmed_global.csv",),
    Metric.DEATHS: (
        "time_series_covid19_deaths_global.csv",
        "time_series_covid_19_deaths_global.csv",  # 旧文件名（拼写错误）
    ),
    Metric.RECOVERED: ("time_series_covid19_recovered_global.csv",),
}


def join_location(base: str, *parts: str) -> str:
    """拼接地址：URL 用 / 连接，本地目录用 Path"""
    if base.startswith(("http://", "https://")):
        return "/".join([base.rstrip("/"), *(p.strip("/") for p in parts)])
    return str(Path(base).joinpath(*parts))


def covid_sources(metric: Metric, settings: Optional[SourceSettings] = None) -> FeedSources:
    """COVID-19 数据源：本地镜像（含旧文件名）-> JHU 远程"""
    settings = settings or get_config().source
    files = COVID_FILES[metric]
    candidates: List[Source] = [
        Source(join_location(settings.local_mirror_dir, COVID_LOCAL_DIR, name), local=True) for name in files
    ]
    candidates.append(Source(join_location(settings.covid_remote_base, files[0])))
    return FeedSources(name=f"covid_{metric.value}", candidates=tuple(candidates))


def disease_sources(
    spec: DiseaseSpec, metric: Metric, settings: Optional[SourceSettings] = None
) -> FeedSources:
    """其他疾病数据源：本地 maladie/ 目录 -> 可选的远程目录"""
    settings = settings or get_config().source
    filename = f"{spec.feed_name(metric)}.csv"
    candidates: List[Source] = [
        Source(join_location(settings.local_mirror_dir, DISEASE_LOCAL_DIR, filename), local=True)
    ]
    if settings.disease_remote_base:
        candidates.append(Source(join_location(settings.disease_remote_base, filename)))
    return FeedSources(name=spec.feed_name(metric), candidates=tuple(candidates))


def feed_sources(spec: DiseaseSpec, metric: Metric, settings: Optional[SourceSettings] = None) -> FeedSources:
    if spec.is_primary:
        return covid_sources(metric, settings)
    return disease_sources(spec, metric, settings)


def local_probe_source(settings: Optional[SourceSettings] = None) -> Source:
    """用于存活探测的本地镜像文件（COVID-19 确诊）"""
    return covid_sources(Metric.CONFIRMED, settings).candidates[0]
