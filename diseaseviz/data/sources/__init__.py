"""
DiseaseViz Data Sources

数据源候选地址与解析
"""
from .catalog import covid_sources, disease_sources, feed_sources, local_probe_source
from .resolver import (
    FeedSources,
    NotCsvError,
    ResolvedFeed,
    Source,
    SourceResolver,
    looks_like_html,
    resolve_feed,
)

__all__ = [
    "FeedSources",
    "NotCsvError",
    "ResolvedFeed",
    "Source",
    "SourceResolver",
    "looks_like_html",
    "resolve_feed",
    "covid_sources",
    "disease_sources",
    "feed_sources",
    "local_probe_source",
]
