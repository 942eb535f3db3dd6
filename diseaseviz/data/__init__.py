"""
DiseaseViz Data Pipeline

数据源解析、CSV 解析、聚合与编排
"""
from .pipeline import CacheNote, DashboardState, DataPipeline, LoadResult, create_pipeline

__all__ = [
    "CacheNote",
    "DashboardState",
    "DataPipeline",
    "LoadResult",
    "create_pipeline",
]
