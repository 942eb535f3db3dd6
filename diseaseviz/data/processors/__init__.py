"""
DiseaseViz Data Processors

聚合引擎、数据集组装与按年份查看
"""

from .aggregation import aggregate_countries, build_global_series, build_points, latest_column
from .dataset_builder import build_disease_dataset, build_primary_dataset
from .yearly import available_years, filter_series, filter_year, series_totals, year_total

__all__ = [
    "aggregate_countries",
    "build_global_series",
    "build_points",
    "latest_column",
    "build_disease_dataset",
    "build_primary_dataset",
    "available_years",
    "filter_series",
    "filter_year",
    "series_totals",
    "year_total",
]
