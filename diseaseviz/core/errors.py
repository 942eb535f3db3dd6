"""
DiseaseViz 异常定义

数据源、解析、缓存、疾病批量加载各自的错误类型
"""
from typing import Iterable, Optional


class DataVizError(Exception):
    """所有业务异常的基类"""


class SourceUnreachableError(DataVizError):
    """某个数据源的所有候选地址都失败"""

    def __init__(self, feed: str, last_error: Optional[BaseException] = None):
        self.feed = feed
        self.last_error = last_error
        super().__init__(
            f"Failed to fetch CSV for '{feed}' from all sources. Last error: {last_error}"
        )


class FeedParseError(DataVizError):
    """CSV 解析失败（包括宽松模式重试之后）"""

    def __init__(self, messages: Iterable[str]):
        # 去重但保留首次出现的顺序
        self.messages = list(dict.fromkeys(str(m) for m in messages))
        super().__init__("; ".join(self.messages))


class CacheUnavailableError(DataVizError):
    """缓存后端不可用，只在后端内部抛出，CacheStore 会吞掉"""


class DiseaseFetchError(DataVizError):
    """单个疾病数据集加载失败"""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to load disease '{key}': {cause}")
