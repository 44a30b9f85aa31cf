"""Foreign exchange currency conversion."""

from __future__ import annotations

import json
import logging
import math
import re
import struct
import threading
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass, field
from datetime import timedelta

from dnstoys.service import QueryError, Service

API_URL = "https://open.er-api.com/v6/latest/USD"
TTL = 900

_QUERY = re.compile(r"([0-9.]+)([A-Z]{3})-([A-Z]{3})")
_FETCH_TIMEOUT = 6.0
_RETRY_AFTER_ERROR = 60.0
_RETRY_AFTER_BAD_BASE = 300.0

log = logging.getLogger(__name__)


@dataclass
class Rates:
    """Exchange rates relative to a base currency."""

    base: str = ""
    date: str = ""
    rates: dict[str, float] = field(default_factory=dict)


def _rates_from_json(obj: object) -> Rates:
    if not isinstance(obj, dict):
        raise ValueError("expected a JSON object")
    raw = obj.get("rates") or {}
    if not isinstance(raw, dict):
        raise ValueError("rates must be an object")
    rates = {}
    for code, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"rate of {code} is not a number")
        rates[code] = float(value)
    return Rates(
        base=str(obj.get("base_code") or ""),
        date=str(obj.get("time_last_update_utc") or ""),
        rates=rates,
    )


def _rates_to_json(rates: Rates) -> dict:
    return {
        "base_code": rates.base,
        "time_last_update_utc": rates.date,
        "rates": dict(rates.rates),
    }


def fetch_rates(url: str, timeout: float) -> Rates:
    """Fetch and parse the rates published at ``url``."""
    request = urllib.request.Request(url, method="GET")
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp:
            status = resp.status
            body = resp.read()
    except urllib.error.HTTPError as e:
        raise ConnectionError(f"request failed: {e.code}") from None
    if status != 200:
        raise ConnectionError(f"request failed: {status}")
    return _rates_from_json(json.loads(body))


def _parse_float32(s: str) -> float:
    try:
        return struct.unpack("f", struct.pack("f", float(s)))[0]
    except (ValueError, OverflowError):
        raise QueryError("invalid number.") from None


def _fdiv(a: float, b: float) -> float:
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


class FX(Service):
    """Answers ``<amount><FROM>-<TO>`` with the amount converted between currencies."""

    def __init__(self, refresh_interval: float | timedelta) -> None:
        if isinstance(refresh_interval, timedelta):
            refresh_interval = refresh_interval.total_seconds()
        self.refresh_interval = float(refresh_interval)
        self._rates = Rates()
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def set_rates(self, rates: Rates) -> None:
        """Replace the rates used for conversions."""
        with self._lock:
            self._rates = rates

    def query(self, q: str) -> list[str]:
        with self._lock:
            data = self._rates
        if not data.rates:
            raise QueryError("fx data unavailable. Please try later.")

        q = q.upper()
        match = _QUERY.search(q)
        if match is None:
            raise QueryError("invalid fx query.")

        val = _parse_float32(match.group(1))
        src, dst = match.group(2), match.group(3)

        if src not in data.rates:
            raise QueryError(f"unknown from currency '{src}'.")
        if dst not in data.rates:
            raise QueryError(f"unknown to currency '{dst}'.")

        base_rate = data.rates.get(data.base, 0.0)
        conv = _fdiv(_fdiv(base_rate, data.rates[src]), _fdiv(base_rate, data.rates[dst])) * val

        return [f'{q} {TTL} TXT "{val:.2f} {src} = {conv:.2f} {dst}" "{data.date}"']

    def dump(self) -> bytes | None:
        with self._lock:
            return json.dumps(_rates_to_json(self._rates)).encode("utf-8")

    def load(self, blob: bytes) -> None:
        """Restore rates from a snapshot made by :meth:`dump`."""
        try:
            rates = _rates_from_json(json.loads(blob))
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"invalid fx snapshot: {e}") from e
        self.set_rates(rates)

    def start(self) -> None:
        """Start refreshing the rates periodically in the background."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="fx-refresh", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background refresh and wait for it to finish."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._stopping.is_set():
            log.info("loading fx API")
            try:
                rates = fetch_rates(API_URL, _FETCH_TIMEOUT)
            except (OSError, ValueError) as e:
                log.error("error loading fx rates API: %s", e)
                self._stopping.wait(_RETRY_AFTER_ERROR)
                continue

            if rates.base not in rates.rates:
                log.error("base currency %s not found in rates", rates.base)
                self._stopping.wait(_RETRY_AFTER_BAD_BASE)
                continue

            log.info("%d fx currency pairs loaded", len(rates.rates))
            self.set_rates(rates)
            self._stopping.wait(self.refresh_interval)


__all__ = ["API_URL", "FX", "Rates", "TTL", "fetch_rates", "asdict"][:-1]