"""
测试数据源解析

候选地址回退、HTML 检测、本地镜像优先、存活探测
"""
import asyncio
import os
import sys
import threading
from pathlib import Path

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from diseaseviz.core import SourceSettings
from diseaseviz.core.errors import SourceUnreachableError
from diseaseviz.data.sources import (
    FeedSources,
    NotCsvError,
    Source,
    SourceResolver,
    covid_sources,
    disease_sources,
    local_probe_source,
    looks_like_html,
)
from diseaseviz.domain import DISEASES, DiseaseKey, Metric

CSV = "Province/State,Country/Region,Lat,Long,1/22/20\n,Italy,41.9,12.5,3\n"
REMOTE = "https://mirror.test/ts"


def _settings(tmp_path, **overrides):
    values = dict(local_mirror_dir=str(tmp_path), covid_remote_base=REMOTE)
    values.update(overrides)
    return SourceSettings(**values)


def _resolver(settings, routes, calls=None):
    """routes: url -> (status, body)"""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append((request.method, str(request.url)))
        status, body = routes.get(str(request.url), (404, "not found"))
        return httpx.Response(status, text=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SourceResolver(settings, client=client)


def _feed(*urls):
    return FeedSources(name="covid_confirmed", candidates=tuple(Source(url) for url in urls))


def test_falls_back_to_next_candidate(tmp_path):
    resolver = _resolver(
        _settings(tmp_path),
        {"https://b.test/data.csv": (200, CSV)},
    )

    async def _run():
        async with resolver:
            return await resolver.resolve(_feed("https://a.test/data.csv", "https://b.test/data.csv"))

    resolved = asyncio.run(_run())

    assert resolved.source.location == "https://b.test/data.csv"
    assert resolved.name == "covid_confirmed"
    assert resolved.feed.rows[0].country == "Italy"


def test_html_body_is_rejected(tmp_path):
    html = "<!DOCTYPE html><html><body>index</body></html>"
    resolver = _resolver(
        _settings(tmp_path),
        {"https://a.test/data.csv": (200, html), "https://b.test/data.csv": (200, CSV)},
    )

    async def _run():
        async with resolver:
            return await resolver.resolve(_feed("https://a.test/data.csv", "https://b.test/data.csv"))

    assert asyncio.run(_run()).source.location == "https://b.test/data.csv"
    assert looks_like_html("  <HTML lang='en'>")
    assert not looks_like_html(CSV)


def test_all_candidates_failing_reports_last_error(tmp_path):
    resolver = _resolver(
        _settings(tmp_path),
        {"https://b.test/data.csv": (200, "<html>fallback page</html>")},
    )

    async def _run():
        async with resolver:
            return await resolver.resolve(_feed("https://a.test/data.csv", "https://b.test/data.csv"))

    with pytest.raises(SourceUnreachableError) as exc_info:
        asyncio.run(_run())

    error = exc_info.value
    assert error.feed == "covid_confirmed"
    assert isinstance(error.last_error, NotCsvError)
    assert "Failed to fetch CSV for 'covid_confirmed' from all sources" in str(error)


def test_unparseable_candidate_is_skipped(tmp_path):
    resolver = _resolver(
        _settings(tmp_path),
        {
            "https://a.test/data.csv": (200, 'Country,1/22/20\n"Italy,1\n'),
            "https://b.test/data.csv": (200, CSV),
        },
    )

    async def _run():
        async with resolver:
            return await resolver.resolve(_feed("https://a.test/data.csv", "https://b.test/data.csv"))

    assert asyncio.run(_run()).source.location == "https://b.test/data.csv"


def test_local_mirror_is_preferred(tmp_path):
    settings = _settings(tmp_path)
    sources = covid_sources(Metric.CONFIRMED, settings)
    local_file = sources.candidates[0].location
    os.makedirs(os.path.dirname(local_file))
    with open(local_file, "w", encoding="utf-8") as f:
        f.write(CSV)

    calls = []
    resolver = _resolver(settings, {}, calls)

    async def _run():
        async with resolver:
            return await resolver.resolve(sources)

    resolved = asyncio.run(_run())

    assert resolved.source.local
    assert resolved.source.location == local_file
    assert calls == []


def test_missing_local_file_falls_back_to_remote(tmp_path):
    settings = _settings(tmp_path)
    sources = covid_sources(Metric.CONFIRMED, settings)
    remote = f"{REMOTE}/time_series_covid19_confirmed_global.csv"

    resolver = _resolver(settings, {remote: (200, CSV)})

    async def _run():
        async with resolver:
            return await resolver.resolve(sources)

    resolved = asyncio.run(_run())

    assert not resolved.source.local
    assert resolved.source.location == remote


def test_covid_catalog_includes_legacy_deaths_file(tmp_path):
    sources = covid_sources(Metric.DEATHS, _settings(tmp_path))
    names = [os.path.basename(source.location) for source in sources.candidates]

    assert sources.name == "covid_deaths"
    assert names == [
        "time_series_covid19_deaths_global.csv",
        "time_series_covid_19_deaths_global.csv",
        "time_series_covid19_deaths_global.csv",
    ]
    assert [source.local for source in sources.candidates] == [True, True, False]


def test_disease_catalog(tmp_path):
    spec = DISEASES[DiseaseKey.MALARIA]

    local_only = disease_sources(spec, Metric.CASES, _settings(tmp_path))
    assert local_only.name == "malaria_cases"
    assert len(local_only.candidates) == 1
    assert local_only.candidates[0].location.endswith(os.path.join("maladie", "malaria_cases.csv"))

    with_remote = disease_sources(
        spec, Metric.DEATHS, _settings(tmp_path, disease_remote_base="https://data.test/maladie/")
    )
    assert with_remote.candidates[-1].location == "https://data.test/maladie/malaria_deaths.csv"


def test_probe(tmp_path):
    settings = _settings(tmp_path)
    calls = []
    resolver = _resolver(settings, {"https://a.test/ok.csv": (200, "")}, calls)
    local = local_probe_source(settings)

    async def _run():
        async with resolver:
            missing = await resolver.probe(local)
            os.makedirs(os.path.dirname(local.location))
            with open(local.location, "w", encoding="utf-8") as f:
                f.write(CSV)
            present = await resolver.probe(local)
            ok = await resolver.probe(Source("https://a.test/ok.csv"))
            gone = await resolver.probe(Source("https://a.test/gone.csv"))
            return missing, present, ok, gone

    assert asyncio.run(_run()) == (False, True, True, False)
    assert [method for method, _ in calls] == ["HEAD", "HEAD"]


def test_local_files_are_read_off_the_event_loop(tmp_path, monkeypatch):
    settings = _settings(tmp_path)
    main_thread = threading.get_ident()
    reader_threads = []
    original_read_text = Path.read_text

    def read_text(self, *args, **kwargs):
        reader_threads.append(threading.get_ident())
        return original_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", read_text)
    sources = [covid_sources(metric, settings) for metric in (Metric.CONFIRMED, Metric.DEATHS)]
    for feed in sources:
        local_file = Path(feed.candidates[0].location)
        local_file.parent.mkdir(parents=True, exist_ok=True)
        local_file.write_text(CSV, encoding="utf-8")

    resolver = _resolver(settings, {})

    async def _run():
        async with resolver:
            return await asyncio.gather(*(resolver.resolve(feed) for feed in sources))

    resolved = asyncio.run(_run())

    assert [r.source.local for r in resolved] == [True, True]
    assert len(reader_threads) == 2
    assert main_thread not in reader_threads
