"""
测试配置、日志与命令行
"""
import os
import sys
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from diseaseviz import __version__
from diseaseviz.cli import main as cli_main
from diseaseviz.cli.main import app
from diseaseviz.core import AppSettings, CacheSettings, get_config, get_logger, setup_logging
from diseaseviz.data.sources.catalog import COVID_LOCAL_DIR, DISEASE_LOCAL_DIR
from diseaseviz.domain import all_cache_keys

runner = CliRunner()

GEO = "Province/State,Country/Region,Lat,Long"
CONFIRMED_CSV = f"{GEO},12/31/20,1/1/21\nHubei,China,30.97,112.27,5,7\n,Italy,41.9,12.5,2,3\n"
DEATHS_CSV = f"{GEO},12/31/20,1/1/21\nHubei,China,30.97,112.27,0,1\n,Italy,41.9,12.5,0,0\n"
FLU_CASES_CSV = "Country,12/31/20,1/1/21\nItaly,4,6\n"


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """使用临时目录、内存缓存和不可达远程地址的全局配置"""
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SOURCE__LOCAL_MIRROR_DIR", str(tmp_path / "public"))
    monkeypatch.setenv("SOURCE__COVID_REMOTE_BASE", "http://127.0.0.1:9/ts")
    monkeypatch.setenv("CACHE__BACKEND", "memory")
    monkeypatch.setattr(cli_main, "console", Console(width=200))
    get_config.cache_clear()
    yield get_config()
    get_config.cache_clear()


@pytest.fixture
def mirror(isolated_config):
    """本地镜像：COVID-19 确诊和死亡（没有康复），以及流感病例"""
    root = Path(isolated_config.source.local_mirror_dir)
    covid_dir = root / COVID_LOCAL_DIR
    covid_dir.mkdir(parents=True)
    (covid_dir / "time_series_covid19_confirmed_global.csv").write_text(CONFIRMED_CSV, encoding="utf-8")
    (covid_dir / "time_series_covid19_deaths_global.csv").write_text(DEATHS_CSV, encoding="utf-8")
    disease_dir = root / DISEASE_LOCAL_DIR
    disease_dir.mkdir(parents=True)
    (disease_dir / "flu_cases.csv").write_text(FLU_CASES_CSV, encoding="utf-8")
    return covid_dir


def test_nested_settings_from_environment(isolated_config):
    assert isolated_config.cache.backend == "memory"
    assert isolated_config.source.local_mirror_dir.endswith("public")
    assert isolated_config.cache.ttl_seconds == 6 * 60 * 60
    assert isolated_config.data_dir.is_dir()


def test_environment_helpers(tmp_path):
    settings = AppSettings(app_env="production", log_dir=tmp_path / "logs", data_dir=tmp_path / "data")

    assert settings.is_production
    assert not settings.is_development


def test_unknown_cache_backend_is_rejected():
    with pytest.raises(ValueError):
        CacheSettings(backend="memcached")


def test_logging_writes_to_configured_directory(tmp_path):
    log_dir = tmp_path / "custom-logs"
    try:
        setup_logging(level="debug", log_dir=log_dir, force=True)
        get_logger("tests.cli").debug("hello from the cli tests")
    finally:
        setup_logging(force=True)

    log_files = list(log_dir.glob("diseaseviz_2*.log"))
    assert len(log_files) == 1
    content = log_files[0].read_text(encoding="utf-8")
    assert "tests.cli" in content
    assert "hello from the cli tests" in content
    assert list(log_dir.glob("diseaseviz_error_*.log"))


def test_version_command():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_log_level_option(isolated_config):
    try:
        result = runner.invoke(app, ["--log-level", "WARNING", "version"])
    finally:
        setup_logging(force=True)

    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_command(isolated_config):
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "memory" in result.output


def test_fetch_command(mirror):
    result = runner.invoke(app, ["fetch"])

    assert result.exit_code == 0, result.output
    assert "更新至 2021-01-01" in result.output
    assert "确诊 10" in result.output
    assert "死亡 1" in result.output
    # 康复数据源不可用
    assert "康复 n/a" in result.output
    assert "可选: 2020, 2021" in result.output
    assert "covid_confirmed:" in result.output
    assert "Hubei" not in result.output
    assert "China" in result.output
    assert "30.97, 112.27" in result.output
    assert "41.90, 12.50" in result.output


def test_fetch_command_for_one_year(mirror):
    result = runner.invoke(app, ["fetch", "--year", "2020"])

    assert result.exit_code == 0, result.output
    assert "年份: 2020" in result.output
    assert "确诊 7" in result.output
    assert "死亡 0" in result.output


def test_fetch_command_fails_without_confirmed_feed(mirror):
    (mirror / "time_series_covid19_confirmed_global.csv").unlink()

    result = runner.invoke(app, ["fetch"])

    assert result.exit_code == 1
    assert "数据加载失败" in result.output
    assert "covid_confirmed" in result.output


def test_diseases_command(mirror):
    result = runner.invoke(app, ["diseases"])

    assert result.exit_code == 0, result.output
    assert "COVID-19" in result.output
    assert "Influenza (Flu)" in result.output
    # 没有数据源的疾病被单独跳过
    assert "Measles" not in result.output
    assert "2020-2021" in result.output
    assert "本地镜像" in result.output


def test_diseases_command_fails_without_confirmed_feed(mirror):
    (mirror / "time_series_covid19_confirmed_global.csv").unlink()

    result = runner.invoke(app, ["diseases"])

    assert result.exit_code == 1
    assert "数据加载失败" in result.output


def test_refresh_command(isolated_config):
    result = runner.invoke(app, ["refresh"])

    assert result.exit_code == 0
    assert f"已删除 {len(all_cache_keys())} 个缓存键" in result.output


def test_probe_command_without_mirror(isolated_config):
    result = runner.invoke(app, ["probe"])

    assert result.exit_code == 0
    assert "本地镜像不可用" in result.output
