"""
测试 CSV 解析器

BOM/换行处理、引号字段、数值容错、宽松模式重试、错误去重
"""
import datetime
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from diseaseviz.core.errors import FeedParseError
from diseaseviz.data.parsers import TimeSeriesCsvParser, decode_date, parse_csv

HEADER = "Province/State,Country/Region,Lat,Long,1/22/20,1/23/20"


@pytest.fixture
def parser():
    return TimeSeriesCsvParser()


def test_strips_bom_and_normalizes_newlines(parser):
    text = "\ufeff" + HEADER + "\r\nHubei,China,30.97,112.27,1,2\r\n,Italy,41.9,12.5,0,2\r"
    feed = parser.parse(text)

    assert feed.columns == ("1/22/20", "1/23/20")
    assert feed.dates == (datetime.date(2020, 1, 22), datetime.date(2020, 1, 23))
    assert len(feed.rows) == 2
    assert feed.rows[0].province == "Hubei"
    assert feed.rows[1].province is None
    assert feed.rows[1].country == "Italy"
    assert feed.rows[1].lat == pytest.approx(41.9)
    assert feed.rows[1].values == (0.0, 2.0)


def test_quoted_fields_keep_embedded_commas(parser):
    text = HEADER + '\n,"Korea, South",35.9,127.7,1,"1,5"\n'
    feed = parser.parse(text)

    row = feed.rows[0]
    assert row.country == "Korea, South"
    # "1,5" 不是数字，按 0 处理
    assert row.values == (1.0, 0.0)


def test_missing_and_non_numeric_cells_become_zero(parser):
    text = HEADER + "\nA,X,1,1,,abc\nB,X,1,1, 7 ,inf\n"
    feed = parser.parse(text)

    assert feed.rows[0].values == (0.0, 0.0)
    assert feed.rows[1].values == (7.0, 0.0)


def test_only_date_columns_are_kept(parser):
    text = (
        "UID,Province/State,Country/Region,Lat,Long,Combined_Key,1/22/2020,13/40/20,1/22/20,2/1/21\n"
        "1,,Italy,41.9,12.5,Italy,9,9,3,4\n"
    )
    feed = parser.parse(text)

    assert feed.columns == ("1/22/20", "2/1/21")
    assert feed.dates == (datetime.date(2020, 1, 22), datetime.date(2021, 2, 1))
    assert feed.rows[0].values == (3.0, 4.0)


def test_alternate_geo_headers(parser):
    text = "Province_State,Country_Region,lat,Long_,3/1/20\nNew York,US,40.7,-74.0,5\n"
    feed = parser.parse(text)

    row = feed.rows[0]
    assert row.country == "US"
    assert row.province == "New York"
    assert (row.lat, row.lng) == (pytest.approx(40.7), pytest.approx(-74.0))
    assert row.lat_raw == "40.7"


def test_feed_without_coordinates(parser):
    feed = parser.parse("Country,1/1/23,1/8/23\nFrance,10,25\n")

    row = feed.rows[0]
    assert row.lat is None and row.lng is None
    assert not row.has_coordinates
    assert row.key == "__France____"


def test_blank_rows_are_skipped_but_rows_without_country_are_kept(parser):
    text = HEADER + "\n,,,,,\n\nHubei,China,30.97,112.27,1,2\nX,,1,1,5,5\n"
    feed = parser.parse(text)

    assert [row.country for row in feed.rows] == ["China", ""]
    assert feed.rows[1].values == (5.0, 5.0)
    assert feed.column_total(0) == 6.0


def test_names_keep_inner_whitespace(parser):
    text = HEADER + '\n"  Hu\nbei ","Korea,  South",35.9,127.7,1,2\n'
    feed = parser.parse(text)

    row = feed.rows[0]
    assert row.province == "Hu\nbei"
    assert row.country == "Korea,  South"


def test_relaxed_retry_recovers_from_long_rows(parser):
    text = HEADER + "\nHubei,China,30.97,112.27,1,2\n,Italy,41.9,12.5,0,2,99,100\n"
    feed = parser.parse(text)

    assert feed.columns == ("1/22/20", "1/23/20")
    assert [row.country for row in feed.rows] == ["China", "Italy"]
    assert feed.rows[1].values == (0.0, 2.0)


def test_unrecoverable_error_is_reported(parser):
    text = HEADER + '\n"Hubei,China,30.97,112.27,1,2\n'
    with pytest.raises(FeedParseError) as exc_info:
        parser.parse(text)

    assert exc_info.value.messages
    assert str(exc_info.value) == "; ".join(exc_info.value.messages)


def test_parse_error_messages_are_deduplicated():
    error = FeedParseError(["Too many fields", "Too few fields", "Too many fields"])

    assert error.messages == ["Too many fields", "Too few fields"]
    assert str(error) == "Too many fields; Too few fields"


def test_missing_country_column_is_an_error(parser):
    with pytest.raises(FeedParseError):
        parser.parse("Region,1/22/20\nSomewhere,1\n")


def test_empty_body_is_an_empty_feed():
    feed = parse_csv("\ufeff \n\n")

    assert feed.is_empty
    assert feed.rows == ()
    assert feed.last_index is None


def test_decode_date():
    assert decode_date("1/22/20") == datetime.date(2020, 1, 22)
    assert decode_date("12/31/99") == datetime.date(2099, 12, 31)
    assert decode_date("2/30/20") is None
    assert decode_date("Lat") is None
