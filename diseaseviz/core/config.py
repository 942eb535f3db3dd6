"""
DiseaseViz Core Configuration

统一的配置管理，支持环境变量和 .env 文件
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

JHU_REMOTE_BASE = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series"
)


class SourceSettings(BaseSettings):
    """数据源配置"""

    local_mirror_dir: str = Field(
        default="public",
        description="本地镜像目录（或 http 基础地址），构建步骤会把 CSV 复制到这里",
    )
    covid_remote_base: str = Field(default=JHU_REMOTE_BASE, description="JHU CSSE 远程时间序列目录")
    disease_remote_base: Optional[str] = Field(default=None, description="其他疾病 CSV 的远程目录")
    timeout: float = Field(default=30.0, gt=0, description="HTTP 超时（秒）")
    user_agent: str = Field(default="Mozilla/5.0 (compatible; DiseaseViz/1.0)", description="User-Agent")


class CacheSettings(BaseSettings):
    """缓存配置"""

    enabled: bool = Field(default=True, description="是否启用缓存")
    backend: str = Field(default="sqlite", description="缓存后端：sqlite / redis / memory")
    url: str = Field(
        default="sqlite+aiosqlite:///data/cache/diseaseviz.db",
        description="SQLAlchemy 异步连接URL（sqlite 后端）",
    )
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis连接URL（redis 后端）")
    ttl_seconds: int = Field(default=6 * 60 * 60, ge=0, description="快照有效期（秒）")

    @field_validator("backend")
    @classmethod
    def check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("sqlite", "redis", "memory"):
            raise ValueError(f"unknown cache backend: {v}")
        return v


class AppSettings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # 基本信息
    app_name: str = Field(default="DiseaseViz", description="应用名称")
    version: str = Field(default="1.0.0", description="版本号")
    app_env: str = Field(default="development", description="运行环境")
    debug: bool = Field(default=False, description="调试模式")

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    log_dir: Path = Field(default=Path("logs"), description="日志目录")

    # 数据目录
    data_dir: Path = Field(default=Path("data"), description="数据根目录")

    # 离线模式：有缓存快照时不访问网络
    offline: bool = Field(default=False, description="离线模式")

    # 子配置
    source: SourceSettings = Field(default_factory=SourceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @field_validator("log_dir", "data_dir")
    @classmethod
    def ensure_path_exists(cls, v: Path) -> Path:
        """确保目录存在"""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def is_development(self) -> bool:
        """是否开发环境"""
        return self.app_env.lower() in ("dev", "development")

    @property
    def is_production(self) -> bool:
        """是否生产环境"""
        return self.app_env.lower() in ("prod", "production")


@lru_cache
def get_config() -> AppSettings:
    """
    获取配置单例

    使用lru_cache确保全局只有一个配置实例
    """
    return AppSettings()
