"""
DiseaseViz Domain Models

领域模型导出
"""
from .base import Base
from .cache_entry import CacheEntry, CacheEntryRecord
from .disease import (
    CACHE_VERSION,
    DISEASES,
    SECONDARY_DISEASES,
    DiseaseKey,
    DiseaseSpec,
    Metric,
    all_cache_keys,
    get_disease,
)
from .models import (
    Centroid,
    CountryAggregate,
    DiseaseCountryAggregate,
    DiseaseDataset,
    DiseaseMapPoint,
    MapPoint,
    PrimaryDataset,
    TimeSeriesPoint,
    centroids_from,
)

__all__ = [
    # Base classes
    "Base",
    # Cache
    "CacheEntry",
    "CacheEntryRecord",
    # Registry
    "CACHE_VERSION",
    "DISEASES",
    "SECONDARY_DISEASES",
    "DiseaseKey",
    "DiseaseSpec",
    "Metric",
    "all_cache_keys",
    "get_disease",
    # Snapshots
    "Centroid",
    "CountryAggregate",
    "DiseaseCountryAggregate",
    "DiseaseDataset",
    "DiseaseMapPoint",
    "MapPoint",
    "PrimaryDataset",
    "TimeSeriesPoint",
    "centroids_from",
]
