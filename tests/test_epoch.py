import re

import pytest

from dnstoys.service import QueryError
from dnstoys.services.epoch import Epoch

CYCLE_SECONDS = 146097 * 86400
TIME_FORMAT = re.compile(r"-?\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4} \S+")


def _times(answer):
    return re.findall(r'"([^"]*)"', answer)


def _utc(q):
    (answer,) = Epoch(False).query(q)
    (utc,) = _times(answer)
    return utc


def test_epoch_zero():
    assert Epoch(False).query("0") == ['0 900 TXT "1970-01-01 00:00:00 +0000 UTC"']


@pytest.mark.parametrize(
    "scaled", ["784783800000", "784783800000000", "784783800000000000"]
)
def test_sub_second_units_are_scaled(scaled):
    assert _utc(scaled) == _utc("784783800")


def test_utc_format():
    assert TIME_FORMAT.fullmatch(_utc("784783800"))
    assert _utc("784783800").endswith(" +0000 UTC")


def test_negative_milliseconds_truncate_toward_zero():
    assert _utc("-30000000001") == _utc("-30000000")
    assert _utc("-30000000999") == _utc("-30000000")


def test_years_before_datetime_range():
    a = -50000000000000
    b = a - CYCLE_SECONDS * 1000
    year_a, rest_a = re.fullmatch(r"(-?\d+)(-.*)", _utc(str(a))).groups()
    year_b, rest_b = re.fullmatch(r"(-?\d+)(-.*)", _utc(str(b))).groups()
    assert int(year_a) - int(year_b) == 400
    assert int(year_b) < 0
    assert rest_a == rest_b


def test_local_time_is_appended():
    (answer,) = Epoch(True).query("784783800")
    utc, local = _times(answer)
    assert utc == _utc("784783800")
    assert TIME_FORMAT.fullmatch(local)
    assert local[-12:-10] == utc[-12:-10] or local.split(" ")[1][-2:] == utc.split(" ")[1][-2:]


@pytest.mark.parametrize("q", ["abc", "1.5", " 12", "1_000", "99999999999999999999"])
def test_invalid_query(q):
    with pytest.raises(QueryError, match="invalid epoch query"):
        Epoch(False).query(q)


def test_dump_is_empty():
    assert Epoch(False).dump() is None