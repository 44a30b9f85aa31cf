from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from dnstoys.geo import Geo, Location
from dnstoys.service import QueryError
from dnstoys.services.weather import (
    Entry,
    Forecast,
    Options,
    RateLimiter,
    Weather,
    parse_forecasts,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _point(hour, temp=10.0):
    return {
        "time": (NOW + timedelta(hours=hour)).isoformat(),
        "data": {
            "instant": {"details": {"air_temperature": temp, "relative_humidity": 50.0}},
            "next_1_hours": {"summary": {"symbol_code": "rain"}},
        },
    }


def _payload(hours):
    return {"properties": {"timeseries": [_point(h) for h in hours]}}


def _weather():
    loc = Location("1", "Berlin", 52.5, 13.4, "Europe/Berlin", "DE", 100, ZoneInfo("UTC"))
    return Weather(Options(max_entries=3), Geo([loc]))


def test_parse_skips_stale_entries():
    out = parse_forecasts(_payload([-2, -1, 1, 2]), NOW, 0, 10)
    assert [f.time for f in out] == [NOW + timedelta(hours=1), NOW + timedelta(hours=2)]


def test_parse_respects_interval_and_max():
    out = parse_forecasts(_payload(range(0, 12)), NOW, 3 * 3600, 3)
    assert [f.time - NOW for f in out] == [timedelta(hours=h) for h in (0, 3, 6)]


def test_parse_fahrenheit():
    out = parse_forecasts(_payload([1]), NOW, 0, 5)
    assert out[0].temp_f == pytest.approx(out[0].temp_c * 1.8 + 32)
    assert out[0].forecast_1h == "rain"


def test_rate_limiter_burst():
    limiter = RateLimiter(1e-9, 2)
    assert [limiter.allow() for _ in range(3)] == [True, True, False]


def test_unknown_city():
    with pytest.raises(QueryError, match="unknown city"):
        _weather().query("nowhere")


def test_first_query_is_queued():
    out = _weather().query("berlin")
    assert out == ['berlin 1 TXT "weather data is being fetched. Try again in a few seconds."']


def test_invalid_entry_errors():
    w = _weather()
    w.entries["1"] = Entry(expires_at=datetime.now(timezone.utc) + timedelta(hours=1))
    with pytest.raises(QueryError, match="unavailable"):
        w.query("berlin")


def test_query_formats_forecasts():
    w = _weather()
    f = Forecast(NOW, 10.0, 50.0, 40.0, "rain")
    w.entries["1"] = Entry(
        forecasts=(f,), expires_at=datetime.now(timezone.utc) + timedelta(hours=1), valid=True
    )
    assert w.query("berlin") == [
        'berlin 3600 TXT "Berlin (DE)" "10.00C (50.00F)" "40.00% hu." "rain" "12:00, Mon"'
    ]


def test_dump_load_round_trip():
    w = _weather()
    w.entries["1"] = Entry(forecasts=(Forecast(NOW, 1.5, 34.7, 20.0, "sun"),), expires_at=NOW, valid=True)
    other = _weather()
    other.load(w.dump())
    assert other.entries == w.entries


def test_load_rejects_garbage():
    with pytest.raises(ValueError):
        _weather().load(b"not json")