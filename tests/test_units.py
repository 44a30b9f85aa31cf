import json
import re

import pytest

from dnstoys.service import QueryError
from dnstoys.services.units import Units

DATA = {
    "length": {
        "base_symbol": "m",
        "base_name": "metre",
        "units": [
            {"symbol": "m", "name": "metre", "value": 1},
            {"symbol": "km", "name": "kilometre", "value": 0.001},
            {"symbol": "cm", "name": "centimetre", "value": 100},
        ],
    },
    "mass": {
        "base_symbol": "kg",
        "base_name": "kilogram",
        "units": [
            {"symbol": "kg", "name": "kilogram", "value": 1},
            {"symbol": "g", "name": "gram", "value": 1000},
        ],
    },
}

_RESULT = re.compile(r"= ([0-9.]+) ")


@pytest.fixture
def units():
    return Units(DATA)


def _converted(record):
    return float(_RESULT.search(record).group(1))


def test_documented_example(units):
    assert units.query("42km-cm") == [
        '42km-cm 900 TXT "42.00 kilometre (km) = 4200000.00 centimetre (cm)"'
    ]


def test_same_unit_is_identity(units):
    record = units.query("7.25kg-kg")[0]
    assert _converted(record) == pytest.approx(7.25)


def test_round_trip(units):
    there = _converted(units.query("3.5km-m")[0])
    back = _converted(units.query(f"{there}m-km")[0])
    assert back == pytest.approx(3.5)


def test_uppercase_symbols_fall_back_to_lowercase(units):
    record = units.query("1KM-M")[0]
    assert "(km)" in record and "(m)" in record


def test_unknown_unit(units):
    with pytest.raises(QueryError, match=r"unknown unit: xyz\. 'dig unit'"):
        units.query("1xyz-m")


def test_cross_group_conversion(units):
    with pytest.raises(QueryError) as exc:
        units.query("1km-kg")
    assert str(exc.value) == "cannot convert km (kilometre) to kg (kilogram)."


def test_invalid_query(units):
    with pytest.raises(QueryError, match="invalid unit query"):
        units.query("hello")


def test_invalid_number(units):
    with pytest.raises(QueryError, match="invalid number"):
        units.query("1.2.3km-m")


def test_unit_list_is_sorted(units):
    lines = units.unit_list()
    assert len(lines) == 5
    keys = [re.findall(r'"([^"]*)"', line) for line in lines]
    assert keys == sorted(keys)
    assert lines[0] == 'unit. 900 "length" "cm (centimetre)"'


def test_help_query_returns_list(units):
    assert units.query("unit.") == units.unit_list()


def test_from_file(tmp_path, units):
    path = tmp_path / "units.json"
    path.write_text(json.dumps(DATA))
    loaded = Units.from_file(path)
    assert loaded.query("2g-kg") == units.query("2g-kg")


def test_from_file_rejects_non_object(tmp_path):
    path = tmp_path / "units.json"
    path.write_text("[]")
    with pytest.raises(ValueError):
        Units.from_file(path)


def test_dump_is_empty(units):
    assert units.dump() is None