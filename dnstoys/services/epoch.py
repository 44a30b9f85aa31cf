"""Conversion of Unix timestamps into readable dates."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from dnstoys.service import QueryError, Service

TTL = 900

_INT = re.compile(r"[+-]?[0-9]+")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Seconds in a 400 year Gregorian cycle, used to reach years datetime cannot hold.
_CYCLE_SECONDS = 146097 * 86400
_MIN_SECONDS = (datetime(100, 1, 1, tzinfo=timezone.utc) - _EPOCH) // timedelta(seconds=1)


def _atoi(s: str) -> int:
    if not _INT.fullmatch(s):
        raise ValueError(s)
    value = int(s)
    if not -(2**63) <= value < 2**63:
        raise ValueError(s)
    return value


def _truncdiv(a: int, b: int) -> int:
    q = abs(a) // b
    return q if a >= 0 else -q


def _to_seconds(ts: int) -> int:
    """Scale a timestamp in ns, µs or ms down to seconds."""
    if ts >= 10**16 or ts <= -(10**16):
        return _truncdiv(ts, 10**9)
    if ts >= 10**14 or ts <= -(10**14):
        return _truncdiv(ts, 10**6)
    if ts >= 10**11 or ts <= -3 * 10**10:
        return _truncdiv(ts, 1000)
    return ts


def _from_unix(ts: int) -> tuple[datetime, int]:
    """Return the UTC datetime of ts and the number of years it was shifted by."""
    shift = 0
    while ts < _MIN_SECONDS:
        ts += _CYCLE_SECONDS
        shift -= 400
    return _EPOCH + timedelta(seconds=ts), shift


def _format(dt: datetime, year_shift: int) -> str:
    year = dt.year + year_shift
    year_str = f"-{-year:04d}" if year < 0 else f"{year:04d}"

    offset = int(dt.utcoffset().total_seconds())
    sign = "-" if offset < 0 else "+"
    hours, minutes = divmod(abs(offset) // 60, 60)
    zone_offset = f"{sign}{hours:02d}{minutes:02d}"
    name = dt.tzname() or zone_offset
    return f"{year_str}-{dt:%m-%d %H:%M:%S} {zone_offset} {name}"


class Epoch(Service):
    """Answers a Unix timestamp with its UTC (and optionally local) time."""

    def __init__(self, local_time: bool) -> None:
        self.local_time = local_time

    def query(self, q: str) -> list[str]:
        try:
            ts = _atoi(q)
        except ValueError:
            raise QueryError("invalid epoch query") from None

        utc, shift = _from_unix(_to_seconds(ts))
        out = f'{q} {TTL} TXT "{_format(utc, shift)}"'
        if self.local_time:
            out += f' "{_format(utc.astimezone(), shift)}"'
        return [out]

    def dump(self) -> bytes | None:
        return None