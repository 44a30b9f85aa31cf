"""Weather forecasts for cities, fetched in the background and cached."""

from __future__ import annotations

import gzip
import json
import logging
import queue
import struct
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from dnstoys.geo import Geo, Location
from dnstoys.service import QueryError, Service

API_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact?lat=%0.5f&lon=%0.5f"
API_RATE_LIMIT = 15
TTL = 3600

_QUEUE_SIZE = 1000
_PENDING_DELAY = timedelta(minutes=1)
_BAD_ENTRY_TTL = timedelta(minutes=10)
_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

log = logging.getLogger(__name__)


def _f32(x: float) -> float:
    return struct.unpack("f", struct.pack("f", x))[0]


def _seconds(value: float | timedelta) -> timedelta:
    return value if isinstance(value, timedelta) else timedelta(seconds=float(value))


@dataclass
class Options:
    """Settings of the weather service; durations are in seconds or timedeltas."""

    forecast_interval: float | timedelta = 0.0
    max_entries: int = 0
    cache_ttl: float | timedelta = 0.0
    req_timeout: float = 3.0
    user_agent: str = ""


@dataclass(frozen=True)
class Forecast:
    """The forecast for one moment."""

    time: datetime
    temp_c: float
    temp_f: float
    humidity: float
    forecast_1h: str


@dataclass(frozen=True)
class Entry:
    """Cached forecasts for one location."""

    forecasts: tuple[Forecast, ...] = ()
    location: str = ""
    timezone: str = ""
    lat: float = 0.0
    lon: float = 0.0
    expires_at: datetime = datetime.min.replace(tzinfo=timezone.utc)
    valid: bool = False


class _Queued(Exception):
    pass


class RateLimiter:
    """A token bucket allowing ``rate`` events per second with bursts of ``burst``."""

    def __init__(self, rate: float, burst: int) -> None:
        self.rate = float(rate)
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def allow(self) -> bool:
        """Take a token if one is available."""
        with self._lock:
            now = time.monotonic()
            self._tokens = min(self.burst, self._tokens + (now - self._last) * self.rate)
            self._last = now
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False


def _parse_time(value: Any) -> datetime:
    dt = datetime.fromisoformat(str(value))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def parse_forecasts(
    payload: dict, now: datetime, interval: float | timedelta, max_entries: int
) -> list[Forecast]:
    """Pick future forecasts spaced at least ``interval`` apart from an API payload."""
    gap = _seconds(interval)
    series = ((payload.get("properties") or {}).get("timeseries")) or []
    out: list[Forecast] = []
    for point in series:
        at = _parse_time(point.get("time"))
        if at < now:
            continue
        data = point.get("data") or {}
        details = (data.get("instant") or {}).get("details") or {}
        summary = (data.get("next_1_hours") or {}).get("summary") or {}
        temp = _f32(float(details.get("air_temperature", 0.0)))
        forecast = Forecast(
            time=at,
            temp_c=temp,
            temp_f=_f32(_f32(temp * 1.8) + 32.0),
            humidity=_f32(float(details.get("relative_humidity", 0.0))),
            forecast_1h=str(summary.get("symbol_code", "")),
        )
        if out and out[-1].time + gap > at:
            continue
        out.append(forecast)
        if len(out) >= max_entries:
            break
    return out


def _entry_to_json(e: Entry) -> dict:
    return {
        "forecasts": [
            {
                "time": f.time.isoformat(),
                "temp_c": f.temp_c,
                "temp_f": f.temp_f,
                "humidity": f.humidity,
                "forecast_1h": f.forecast_1h,
            }
            for f in e.forecasts
        ],
        "location": e.location,
        "timezone": e.timezone,
        "lat": e.lat,
        "lon": e.lon,
        "expires_at": e.expires_at.isoformat(),
        "valid": e.valid,
    }


def _entry_from_json(obj: dict) -> Entry:
    return Entry(
        forecasts=tuple(
            Forecast(
                time=_parse_time(f["time"]),
                temp_c=float(f["temp_c"]),
                temp_f=float(f["temp_f"]),
                humidity=float(f["humidity"]),
                forecast_1h=str(f["forecast_1h"]),
            )
            for f in obj.get("forecasts") or []
        ),
        location=str(obj.get("location", "")),
        timezone=str(obj.get("timezone", "")),
        lat=float(obj.get("lat", 0.0)),
        lon=float(obj.get("lon", 0.0)),
        expires_at=_parse_time(obj["expires_at"]),
        valid=bool(obj.get("valid", False)),
    )


class Weather(Service):
    """Answers a city name with its upcoming weather forecasts."""

    def __init__(self, options: Options, geo: Geo) -> None:
        self.options = options
        self.geo = geo
        self.entries: dict[str, Entry] = {}
        self.limiter = RateLimiter(API_RATE_LIMIT, 1)
        self._queue: queue.Queue[Location] = queue.Queue(maxsize=_QUEUE_SIZE)
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def query(self, q: str) -> list[str]:
        locs = self.geo.query(q)
        if not locs:
            raise QueryError("unknown city.")

        out: list[str] = []
        for n, loc in enumerate(locs):
            try:
                entry = self._get(loc)
            except _Queued:
                return [
                    f'{q} 1 TXT "weather data is being fetched. Try again in a few seconds."'
                ]
            for f in entry.forecasts:
                t = f.time.astimezone(loc.zone)
                out.append(
                    f'{q} {TTL} TXT "{loc.name} ({loc.country})" '
                    f'"{f.temp_c:.2f}C ({f.temp_f:.2f}F)" "{f.humidity:.2f}% hu." '
                    f'"{f.forecast_1h}" "{t:%H:%M}, {_DAYS[t.weekday()]}"'
                )
            if n > 2:
                break
        return out

    def dump(self) -> bytes | None:
        with self._lock:
            data = {k: _entry_to_json(v) for k, v in self.entries.items()}
        return json.dumps(data).encode("utf-8")

    def load(self, blob: bytes) -> None:
        """Restore cached entries from a snapshot made by :meth:`dump`."""
        try:
            raw = json.loads(blob)
            if not isinstance(raw, dict):
                raise ValueError("expected a JSON object")
            entries = {str(k): _entry_from_json(v) for k, v in raw.items()}
        except (ValueError, KeyError, TypeError, UnicodeDecodeError) as e:
            raise ValueError(f"invalid weather snapshot: {e}") from e
        with self._lock:
            self.entries = entries

    def _get(self, loc: Location) -> Entry:
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self.entries.get(loc.id)
            if entry is None or entry.expires_at < now:
                try:
                    self._queue.put_nowait(loc)
                except queue.Full:
                    pass
                self.entries[loc.id] = replace(
                    entry or Entry(), expires_at=now + _PENDING_DELAY
                )
        if entry is None:
            raise _Queued()
        if not entry.valid:
            raise QueryError("weather data is unavailable. Try again in a few seconds.")
        return entry

    def fetch(self, lat: float, lon: float) -> Entry:
        """Fetch the forecasts for a point from the API."""
        request = urllib.request.Request(
            API_URL % (lat, lon),
            headers={"User-Agent": self.options.user_agent, "Accept-Encoding": "gzip"},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.options.req_timeout) as resp:
                status, headers, body = resp.status, resp.headers, resp.read()
        except urllib.error.HTTPError as e:
            status, headers, body = e.code, e.headers, e.read()

        if (headers.get("Content-Encoding") or "").lower() == "gzip":
            body = gzip.decompress(body)
        if status in (403, 429):
            raise ConnectionError("error fetching weather data.")

        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        now = datetime.now(timezone.utc)
        forecasts = parse_forecasts(
            payload, now, self.options.forecast_interval, self.options.max_entries
        )
        return Entry(
            forecasts=tuple(forecasts),
            expires_at=now + _seconds(self.options.cache_ttl),
            valid=True,
        )

    def start(self) -> None:
        """Start processing queued fetches in the background."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="weather-fetch", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background fetcher and wait for it to finish."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                loc = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            if not self.limiter.allow():
                log.warning("weather API rate limit exceeded")
                continue
            try:
                entry = self.fetch(loc.lat, loc.lon)
            except (OSError, ValueError) as e:
                log.error("error fetching weather API: %s", e)
                entry = Entry(expires_at=datetime.now(timezone.utc) + _BAD_ENTRY_TTL)
            # Failures are cached too, to avoid flooding the API.
            with self._lock:
                self.entries[loc.id] = entry