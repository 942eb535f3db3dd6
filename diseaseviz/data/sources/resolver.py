"""
DiseaseViz Source Resolver

按顺序尝试一个数据源的候选地址（本地镜像优先，其次远程），返回第一个可用的解析结果。
单个地址不做重试，失败立即尝试下一个。
"""
import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

import httpx

from diseaseviz.core import SourceSettings, get_config, get_logger
from diseaseviz.core.errors import DataVizError, SourceUnreachableError
from diseaseviz.data.parsers import ParsedFeed, TimeSeriesCsvParser

logger = get_logger(__name__)

HTML_MARKER = re.compile(r"<html|<!doctype", re.IGNORECASE)


class NotCsvError(ValueError):
    """服务器返回了 HTML 页面（例如开发服务器的 404 回退页）"""


@dataclass(frozen=True)
class Source:
    """一个候选地址：http(s) URL 或本地文件路径"""

    location: str
    local: bool = False

    @property
    def is_url(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    @property
    def label(self) -> str:
        return "local" if self.local else "remote"


@dataclass(frozen=True)
class FeedSources:
    """一个数据源的有序候选列表"""

    name: str
    candidates: Tuple[Source, ...]


@dataclass(frozen=True)
class ResolvedFeed:
    """解析成功的数据源及其实际来源"""

    name: str
    source: Source
    feed: ParsedFeed


FetchText = Callable[[Source], Awaitable[str]]
ParseText = Callable[[str, str], ParsedFeed]


def looks_like_html(text: str) -> bool:
    """轻量嗅探：正文里出现 <html 或 <!doctype 即视为 HTML 页面"""
    return HTML_MARKER.search(text) is not None


async def resolve_feed(sources: FeedSources, fetch_text: FetchText, parse: ParseText) -> ResolvedFeed:
    """
    依次尝试候选地址

    Args:
        sources: 有序候选列表
        fetch_text: 读取某个候选地址正文的协程函数
        parse: 把正文解析为 ParsedFeed 的函数 (text, source) -> ParsedFeed

    Returns:
        ResolvedFeed

    Raises:
        SourceUnreachableError: 所有候选都失败，携带最后一个错误
    """
    last_error: Optional[BaseException] = None
    for source in sources.candidates:
        try:
            text = await fetch_text(source)
            if looks_like_html(text):
                raise NotCsvError("Received HTML instead of CSV")
            feed = parse(text, source.location)
        except (httpx.HTTPError, OSError, ValueError, DataVizError) as e:
            logger.debug(f"{sources.name}: {source.label} source {source.location} failed: {e}")
            last_error = e
            continue

        if source.local:
            logger.info(f"[{sources.name}] Using local data: {source.location}")
        else:
            logger.info(f"[{sources.name}] Using remote data: {source.location}")
        return ResolvedFeed(name=sources.name, source=source, feed=feed)

    raise SourceUnreachableError(sources.name, last_error) from last_error


class SourceResolver:
    """
    数据源解析器

    http(s) 地址使用 httpx.AsyncClient 读取，其他地址按本地文件读取
    """

    def __init__(
        self,
        settings: Optional[SourceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        parser: Optional[TimeSeriesCsvParser] = None,
    ):
        """
        初始化解析器

        Args:
            settings: 数据源配置，默认读取全局配置
            client: 外部提供的 HTTP 客户端（测试时可注入 MockTransport）
            parser: CSV 解析器
        """
        self.settings = settings or get_config().source
        self.parser = parser or TimeSeriesCsvParser()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.timeout,
            follow_redirects=True,
            headers={
                "User-Agent": self.settings.user_agent,
                "Cache-Control": "no-cache",
            },
        )

    async def fetch_text(self, source: Source) -> str:
        """读取一个候选地址的正文，非 2xx 状态抛出 httpx.HTTPStatusError"""
        if source.is_url:
            response = await self.client.get(source.location)
            response.raise_for_status()
            logger.debug(f"GET {source.location} - Status: {response.status_code}")
            return response.text
        # 本地文件在工作线程中读取
        return await asyncio.to_thread(Path(source.location).read_text, encoding="utf-8")

    def _parse(self, text: str, location: str) -> ParsedFeed:
        return self.parser.parse(text, source=location)

    async def resolve(self, sources: FeedSources) -> ResolvedFeed:
        """解析一个数据源"""
        return await resolve_feed(sources, self.fetch_text, self._parse)

    async def probe(self, source: Source) -> bool:
        """
        存活探测：URL 发 HEAD 请求（不下载正文），本地路径检查文件是否存在

        永远不抛出异常
        """
        if not source.is_url:
            return Path(source.location).is_file()
        try:
            response = await self.client.head(source.location)
        except httpx.HTTPError as e:
            logger.debug(f"HEAD {source.location} failed: {e}")
            return False
        return response.is_success

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "SourceResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
