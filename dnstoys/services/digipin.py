"""Encoding of coordinates into India Post DIGIPINs and back."""

from __future__ import annotations

import math
import re

from dnstoys.service import QueryError, Service

TTL = 900

GRID = (
    ("F", "C", "9", "8"),
    ("J", "3", "2", "7"),
    ("K", "4", "5", "6"),
    ("L", "M", "P", "T"),
)

MIN_LAT = 2.5
MAX_LAT = 38.5
MIN_LON = 63.5
MAX_LON = 99.5

_POSITIONS = {ch: (r, c) for r, row in enumerate(GRID) for c, ch in enumerate(row)}

_LAT_LONG = re.compile(r"^(-?\d+\.?\d*),(-?\d+\.?\d*)$", re.ASCII)
_DIGIPIN = re.compile(r"^([FC98J327K456LMPT-]+)$")


def _clamp(value: int) -> int:
    return min(max(value, 0), 3)


def encode(lat: float, lon: float) -> str:
    """Return the 10 character DIGIPIN (dashed as XXX-XXX-XXXX) of a point."""
    if not MIN_LAT <= lat <= MAX_LAT:
        raise QueryError("latitude out of range")
    if not MIN_LON <= lon <= MAX_LON:
        raise QueryError("longitude out of range")

    min_lat, max_lat = MIN_LAT, MAX_LAT
    min_lon, max_lon = MIN_LON, MAX_LON
    chars: list[str] = []

    for level in range(1, 11):
        lat_div = (max_lat - min_lat) / 4
        lon_div = (max_lon - min_lon) / 4

        row = _clamp(3 - int((lat - min_lat) / lat_div))
        col = _clamp(int((lon - min_lon) / lon_div))

        chars.append(GRID[row][col])
        if level in (3, 6):
            chars.append("-")

        max_lat = min_lat + lat_div * (4 - row)
        min_lat = min_lat + lat_div * (3 - row)
        min_lon = min_lon + lon_div * col
        max_lon = min_lon + lon_div

    return "".join(chars)


def decode(pin: str) -> tuple[float, float]:
    """Return the latitude and longitude of the centre of a DIGIPIN's cell."""
    pin = pin.replace("-", "")
    if len(pin) != 10:
        raise QueryError("invalid digipin format")

    min_lat, max_lat = MIN_LAT, MAX_LAT
    min_lon, max_lon = MIN_LON, MAX_LON

    for ch in pin:
        try:
            row, col = _POSITIONS[ch]
        except KeyError:
            raise QueryError(f"invalid character in DIGIPIN: {ch}") from None

        lat_div = (max_lat - min_lat) / 4
        lon_div = (max_lon - min_lon) / 4

        min_lat, max_lat = max_lat - lat_div * (row + 1), max_lat - lat_div * row
        min_lon, max_lon = min_lon + lon_div * col, min_lon + lon_div * (col + 1)

    return (min_lat + max_lat) / 2, (min_lon + max_lon) / 2


def _parse_coordinate(s: str, what: str) -> float:
    try:
        value = float(s)
    except ValueError:
        raise QueryError(f"invalid {what}: invalid syntax") from None
    if math.isinf(value):
        raise QueryError(f"invalid {what}: value out of range")
    return value


class Digipin(Service):
    """Answers a ``lat,lng`` pair with its DIGIPIN, or a DIGIPIN with its centre."""

    def query(self, q: str) -> list[str]:
        q = q.upper()

        match = _DIGIPIN.match(q)
        if match:
            lat, lng = decode(match.group(1))
            return [f'{q} {TTL} TXT "{lat:.6f},{lng:.6f}"']

        match = _LAT_LONG.match(q)
        if match:
            lat = _parse_coordinate(match.group(1), "latitude")
            lng = _parse_coordinate(match.group(2), "longitude")
            return [f'{q} {TTL} TXT "{encode(lat, lng)}"']

        raise QueryError("invalid digipin format")

    def dump(self) -> bytes | None:
        return None