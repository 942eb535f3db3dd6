"""
DiseaseViz CLI - 命令行接口

加载数据集、查看缓存状态、刷新缓存
"""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from diseaseviz.core.errors import DataVizError

app = typer.Typer(
    name="diseaseviz",
    help="DiseaseViz - 全球疾病时间序列数据引擎",
    add_completion=False,
)
console = Console()


def _fmt(value: float) -> str:
    return f"{value:,.0f}"


def _years(years: List[int]) -> str:
    if not years:
        return "-"
    if len(years) == 1:
        return str(years[0])
    return f"{years[0]}-{years[-1]}"


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别（默认读取配置）"),
):
    """DiseaseViz - 全球疾病时间序列数据引擎"""
    if log_level:
        from diseaseviz.core import setup_logging

        setup_logging(level=log_level, force=True)


@app.command()
def version():
    """显示版本信息"""
    from diseaseviz import __version__

    console.print(f"[bold cyan]DiseaseViz[/bold cyan] [green]v{__version__}[/green]")


@app.command()
def fetch(
    ttl: Optional[int] = typer.Option(None, help="缓存有效期（秒），默认读取配置"),
    offline: bool = typer.Option(False, help="离线模式：有缓存快照时不访问网络"),
    top: int = typer.Option(10, help="显示确诊数最多的国家数量"),
    year: Optional[int] = typer.Option(None, help="只统计某一年（默认全部年份取最新值）"),
):
    """加载 COVID-19 数据集并显示汇总"""
    from diseaseviz.data import create_pipeline
    from diseaseviz.data.processors import available_years, filter_year, series_totals

    async def _fetch():
        async with create_pipeline(offline=offline or None) as pipeline:
            return await pipeline.fetch_all_data(ttl)

    try:
        result = asyncio.run(_fetch())
    except DataVizError as e:
        console.print(f"[bold red]✗ 数据加载失败: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)

    dataset = result.data
    years = available_years(dataset.series.get("confirmed", []))
    totals = series_totals(dataset.series, year)
    has_recovered = bool(filter_year(dataset.series.get("recovered", []), year))

    console.print(f"[bold cyan]COVID-19[/bold cyan] 更新至 [green]{dataset.last_updated}[/green]")
    console.print(f"  年份: {year if year is not None else '全部'}  可选: {', '.join(map(str, years)) or '-'}")
    console.print(
        f"  确诊 [yellow]{_fmt(totals.get('confirmed', 0))}[/yellow]  "
        f"死亡 [red]{_fmt(totals.get('deaths', 0))}[/red]  "
        f"康复 [green]{_fmt(totals.get('recovered', 0)) if has_recovered else 'n/a'}[/green]"
    )
    console.print(f"  缓存: {result.cache.status.value}  点位: {len(dataset.points)}")
    for feed, location in result.sources.items():
        console.print(f"  [dim]{feed}: {escape(location)}[/dim]")

    table = Table(title="Top Countries", show_header=True, header_style="bold magenta")
    table.add_column("国家", style="cyan")
    table.add_column("确诊", justify="right")
    table.add_column("死亡", justify="right")
    table.add_column("康复", justify="right")
    table.add_column("中心点", style="dim")
    for country in dataset.countries[:top]:
        centroid = f"{country.lat:.2f}, {country.lng:.2f}" if country.lat is not None else "-"
        table.add_row(
            country.country,
            _fmt(country.confirmed),
            _fmt(country.deaths),
            _fmt(country.recovered),
            centroid,
        )
    console.print(table)


@app.command()
def diseases(
    ttl: Optional[int] = typer.Option(None, help="缓存有效期（秒），默认读取配置"),
    offline: bool = typer.Option(False, help="离线模式"),
    year: Optional[int] = typer.Option(None, help="只统计某一年（默认全部年份取最新值）"),
):
    """加载全部疾病数据集（COVID-19 + 其他疾病）"""
    from diseaseviz.data import create_pipeline
    from diseaseviz.data.processors import available_years, year_total

    async def _load():
        async with create_pipeline(offline=offline or None) as pipeline:
            return await pipeline.load_dashboard(ttl)

    try:
        state = asyncio.run(_load())
    except DataVizError as e:
        console.print(f"[bold red]✗ 数据加载失败: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)

    table = Table(title="Disease Datasets", show_header=True, header_style="bold magenta")
    table.add_column("疾病", style="cyan")
    table.add_column("国家数", justify="right")
    table.add_column("点位", justify="right")
    table.add_column("病例", justify="right")
    table.add_column("死亡", justify="right")
    table.add_column("年份")
    table.add_column("更新至")

    series = state.data.series
    table.add_row(
        "COVID-19",
        str(len(state.data.countries)),
        str(len(state.data.points)),
        _fmt(year_total(series["confirmed"], year)),
        _fmt(year_total(series["deaths"], year)),
        _years(available_years(series["confirmed"])),
        str(state.data.last_updated),
    )
    for dataset in state.diseases.values():
        table.add_row(
            dataset.name,
            str(len(dataset.countries)),
            str(len(dataset.points)),
            _fmt(year_total(dataset.series["cases"], year)),
            _fmt(year_total(dataset.series["deaths"], year)),
            _years(available_years(*dataset.series.values())),
            str(dataset.last_updated),
        )
    console.print(table)
    source = "[green]本地镜像[/green]" if state.using_local else "[yellow]远程数据源[/yellow]"
    scope = year if year is not None else "全部"
    console.print(f"数据来源: {source}  缓存: {state.cache.status.value}  年份: {scope}")


@app.command()
def probe():
    """检查本地镜像是否可用"""
    from diseaseviz.data import create_pipeline

    async def _probe():
        async with create_pipeline() as pipeline:
            return await pipeline.probe_local_mirror()

    if asyncio.run(_probe()):
        console.print("✓ [green]本地镜像可用[/green]")
    else:
        console.print("✗ [yellow]本地镜像不可用，将使用远程数据源[/yellow]")


@app.command()
def refresh(
    key: Optional[List[str]] = typer.Option(None, "--key", "-k", help="只删除指定缓存键"),
):
    """删除缓存，下次加载时重新抓取"""
    from diseaseviz.data import create_pipeline

    async def _refresh():
        async with create_pipeline() as pipeline:
            return await pipeline.invalidate(key or None)

    deleted = asyncio.run(_refresh())
    console.print(f"[bold green]✓ 已删除 {deleted} 个缓存键[/bold green]")


@app.command()
def config():
    """显示当前配置"""
    from diseaseviz.core import get_config

    cfg = get_config()

    table = Table(title="DiseaseViz 配置", show_header=True, header_style="bold magenta")
    table.add_column("配置项", style="cyan", width=30)
    table.add_column("值", style="white")

    table.add_row("应用名称", cfg.app_name)
    table.add_row("版本", cfg.version)
    table.add_row("环境", cfg.app_env)
    table.add_row("日志级别", cfg.log_level)
    table.add_row("离线模式", "✓" if cfg.offline else "✗")
    table.add_row("", "")
    table.add_row("本地镜像", cfg.source.local_mirror_dir)
    table.add_row("COVID-19 远程", cfg.source.covid_remote_base)
    table.add_row("其他疾病远程", cfg.source.disease_remote_base or "未配置")
    table.add_row("", "")
    table.add_row("缓存", "✓" if cfg.cache.enabled else "✗")
    table.add_row("缓存后端", cfg.cache.backend)
    table.add_row("缓存有效期", f"{cfg.cache.ttl_seconds}s")

    console.print(table)


if __name__ == "__main__":
    app()
