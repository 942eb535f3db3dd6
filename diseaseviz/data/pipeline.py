"""
DiseaseViz Data Pipeline

编排：缓存检查 -> 数据源解析 -> CSV 解析 -> 聚合 -> 写入缓存 -> 返回

工作流程：
1. COVID-19（主数据集）：缓存新鲜或处于离线状态时直接返回缓存快照，
   否则并发抓取 确诊/死亡/康复 三个数据源
2. 由主数据集的国家汇总得到中心点映射
3. 其他疾病并发抓取，单个疾病失败只记录日志，不影响其他疾病
"""
import asyncio
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Generic, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from diseaseviz.core import (
    CacheStatus,
    CacheStore,
    SourceSettings,
    create_cache_store,
    get_config,
    get_logger,
)
from diseaseviz.core.errors import DataVizError, DiseaseFetchError
from diseaseviz.data.parsers import ParsedFeed
from diseaseviz.data.processors import build_disease_dataset, build_primary_dataset
from diseaseviz.data.sources import SourceResolver, feed_sources, local_probe_source
from diseaseviz.domain import (
    DISEASES,
    SECONDARY_DISEASES,
    Centroid,
    DiseaseDataset,
    DiseaseKey,
    DiseaseSpec,
    Metric,
    PrimaryDataset,
    all_cache_keys,
    centroids_from,
    get_disease,
)

logger = get_logger(__name__)

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class CacheNote:
    """缓存观测信息（与数据结果分开，只用于诊断）"""

    key: str
    status: CacheStatus
    age_seconds: Optional[float] = None
    written: Optional[bool] = None  # 重新抓取后写回缓存是否成功


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    """数据结果 + 缓存观测"""

    data: T
    cache: CacheNote
    # 数据源名 -> 实际提供数据的地址（来自缓存时为空）
    sources: Dict[str, str] = field(default_factory=dict)

    @property
    def from_cache(self) -> bool:
        return self.cache.status in (CacheStatus.HIT, CacheStatus.OFFLINE)


@dataclass(frozen=True)
class DashboardState:
    """一次完整加载的结果"""

    data: PrimaryDataset
    diseases: Dict[DiseaseKey, DiseaseDataset]
    using_local: bool
    cache: CacheNote


def _settings_offline() -> bool:
    return get_config().offline


class DataPipeline:
    """
    数据编排器

    resolver 和 cache 都通过构造函数注入，测试时可替换为假实现
    """

    def __init__(
        self,
        resolver: SourceResolver,
        cache: CacheStore,
        ttl_seconds: Optional[float] = None,
        is_offline: Optional[Callable[[], bool]] = None,
        settings: Optional[SourceSettings] = None,
    ):
        """
        初始化编排器

        Args:
            resolver: 数据源解析器
            cache: 缓存门面
            ttl_seconds: 默认缓存有效期，默认读取配置
            is_offline: 离线检测函数，默认读取配置中的 offline
            settings: 数据源配置，默认使用 resolver 的配置
        """
        self.resolver = resolver
        self.cache = cache
        self.ttl_seconds = get_config().cache.ttl_seconds if ttl_seconds is None else ttl_seconds
        self.is_offline = is_offline or _settings_offline
        self.settings = settings or resolver.settings

    async def _check_cache(
        self, key: str, ttl: float, model: Type[ModelT]
    ) -> Tuple[Optional[ModelT], CacheNote]:
        """读取缓存并判断是否可信：新鲜，或过期但处于离线状态"""
        lookup = await self.cache.lookup(key)
        entry = lookup.entry
        if entry is None:
            return None, CacheNote(key=key, status=lookup.status)

        age = entry.age(self.cache.clock())
        if entry.is_fresh(ttl, self.cache.clock()):
            status = CacheStatus.HIT
        elif self.is_offline():
            status = CacheStatus.OFFLINE
        else:
            return None, CacheNote(key=key, status=CacheStatus.STALE, age_seconds=age)

        try:
            value = model.model_validate(entry.value)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e.error_count()} errors")
            return None, CacheNote(key=key, status=CacheStatus.MISS, age_seconds=age)

        logger.info(f"Using cached dataset {key} (status: {status.value}, age: {age:.0f}s)")
        return value, CacheNote(key=key, status=status, age_seconds=age)

    async def _fetch_feeds(self, spec: DiseaseSpec) -> Tuple[Dict[Metric, ParsedFeed], Dict[str, str]]:
        """
        并发抓取一个疾病的全部数据源

        必需指标失败时抛出异常；可选指标失败时记录警告并使用空数据
        """
        metrics = spec.metrics
        results = await asyncio.gather(
            *(self.resolver.resolve(feed_sources(spec, metric, self.settings)) for metric in metrics),
            return_exceptions=True,
        )

        feeds: Dict[Metric, ParsedFeed] = {}
        served: Dict[str, str] = {}
        required_error: Optional[BaseException] = None
        for metric, result in zip(metrics, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                if spec.is_required(metric):
                    required_error = required_error or result
                else:
                    logger.warning(f"{spec.feed_name(metric)} unavailable, using empty series: {result}")
                    feeds[metric] = ParsedFeed()
                continue
            feeds[metric] = result.feed
            served[result.name] = result.source.location

        if required_error is not None:
            raise required_error
        return feeds, served

    async def _write_through(self, note: CacheNote, dataset: BaseModel) -> CacheNote:
        written = await self.cache.set(note.key, dataset.model_dump(mode="json"))
        if not written:
            logger.warning(f"Dataset {note.key} not cached")
        return replace(note, written=written)

    async def fetch_all_data(self, ttl: Optional[float] = None) -> LoadResult[PrimaryDataset]:
        """
        加载 COVID-19 主数据集

        数据源或解析错误直接抛给调用方；缓存错误只体现在 CacheNote 里
        """
        spec = DISEASES[DiseaseKey.COVID]
        ttl = self.ttl_seconds if ttl is None else ttl

        cached, note = await self._check_cache(spec.cache_key, ttl, PrimaryDataset)
        if cached is not None:
            return LoadResult(data=cached, cache=note)

        feeds, served = await self._fetch_feeds(spec)
        dataset = build_primary_dataset(feeds)
        note = await self._write_through(note, dataset)
        return LoadResult(data=dataset, cache=note, sources=served)

    async def fetch_disease(
        self,
        key,
        centroids: Optional[Mapping[str, Centroid]] = None,
        ttl: Optional[float] = None,
    ) -> LoadResult[DiseaseDataset]:
        """
        加载一个其他疾病的数据集

        Raises:
            DiseaseFetchError: 必需数据源不可用或无法解析
        """
        spec = get_disease(key)
        if spec.is_primary:
            raise ValueError("COVID-19 is the primary dataset, use fetch_all_data()")
        ttl = self.ttl_seconds if ttl is None else ttl

        cached, note = await self._check_cache(spec.cache_key, ttl, DiseaseDataset)
        if cached is not None:
            return LoadResult(data=cached, cache=note)

        try:
            feeds, served = await self._fetch_feeds(spec)
            dataset = build_disease_dataset(spec, feeds, centroids)
        except (DataVizError, ValueError) as e:
            raise DiseaseFetchError(spec.key.value, e) from e

        note = await self._write_through(note, dataset)
        return LoadResult(data=dataset, cache=note, sources=served)

    async def fetch_all_diseases(
        self,
        centroids: Optional[Mapping[str, Centroid]] = None,
        ttl: Optional[float] = None,
        keys: Iterable[DiseaseKey] = SECONDARY_DISEASES,
    ) -> Dict[DiseaseKey, DiseaseDataset]:
        """
        并发加载其他疾病，返回成功加载的部分映射

        每个疾病独立：失败会被记录并从结果中省略
        """
        keys = [DiseaseKey(k) for k in keys]
        results = await asyncio.gather(
            *(self.fetch_disease(key, centroids, ttl) for key in keys),
            return_exceptions=True,
        )

        datasets: Dict[DiseaseKey, DiseaseDataset] = {}
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"[diseases] {key.value} failed: {result}")
                continue
            datasets[key] = result.data

        logger.info(f"[diseases] Loaded {len(datasets)}/{len(keys)} datasets: {[k.value for k in datasets]}")
        return datasets

    async def probe_local_mirror(self) -> bool:
        """本地镜像是否可用（只用于向用户展示数据来源）"""
        return await self.resolver.probe(local_probe_source(self.settings))

    async def invalidate(self, keys: Optional[Iterable[str]] = None) -> int:
        """
        删除缓存键，默认删除所有已知键（含旧版本）

        Returns:
            成功删除的键数量
        """
        deleted = 0
        for key in keys if keys is not None else all_cache_keys():
            if await self.cache.delete(key):
                deleted += 1
        return deleted

    async def load_dashboard(self, ttl: Optional[float] = None) -> DashboardState:
        """
        完整加载：主数据集（错误向上抛）-> 中心点 -> 其他疾病（逐个隔离）-> 本地镜像探测
        """
        primary = await self.fetch_all_data(ttl)
        centroids = centroids_from(primary.data)
        logger.info(f"Built centroids map with {len(centroids)} entries")

        diseases = await self.fetch_all_diseases(centroids, ttl)
        using_local = await self.probe_local_mirror()
        return DashboardState(
            data=primary.data,
            diseases=diseases,
            using_local=using_local,
            cache=primary.cache,
        )

    async def close(self) -> None:
        await self.resolver.close()
        await self.cache.close()

    async def __aenter__(self) -> "DataPipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_pipeline(offline: Optional[bool] = None) -> DataPipeline:
    """按全局配置创建编排器"""
    config = get_config()
    is_offline = (lambda: offline) if offline is not None else None
    return DataPipeline(
        resolver=SourceResolver(config.source),
        cache=create_cache_store(config.cache),
        ttl_seconds=config.cache.ttl_seconds,
        is_offline=is_offline,
        settings=config.source,
    )
