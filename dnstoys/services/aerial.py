"""Great-circle distance between two latitude/longitude pairs."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal

from dnstoys.service import QueryError, Service

TTL = 900

_POINT = r"(-?\d+.\d+)"
_PAIR = _POINT + "," + _POINT
_PARSE = re.compile("A" + _PAIR + "/" + _PAIR, re.ASCII)


@dataclass(frozen=True)
class Location:
    """A latitude/longitude pair in degrees."""

    lat: float
    long: float


class Aerial(Service):
    """Answers ``A<lat>,<lng>/<lat>,<lng>`` with the distance in kilometres."""

    def query(self, q: str) -> list[str]:
        match = _PARSE.search(q)
        if match is None:
            raise QueryError("invalid lat long format")

        lat1, lon1, lat2, lon2 = (_parse_point(p) for p in match.groups())
        d = calculate(Location(lat1, lon1), Location(lat2, lon2))
        return [f'{q} {TTL} TXT "aerial distance = {d:.2f} KM"']

    def dump(self) -> bytes | None:
        return None


def _parse_point(p: str) -> float:
    if "_" in p or not p.isascii():
        raise QueryError(f"invalid point {p}: invalid syntax")
    try:
        value = float(p)
    except ValueError:
        raise QueryError(f"invalid point {p}: invalid syntax") from None
    if math.isinf(value):
        raise QueryError(f"invalid point {p}: value out of range")
    return value


def _format_number(x: float) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "+Inf" if x > 0 else "-Inf"
    return format(Decimal(repr(x)).normalize(), "f")


def _validate(loc: Location) -> None:
    problems = []
    if not abs(loc.lat) <= 90:
        problems.append(f"{_format_number(loc.lat)}: lat out of bounds")
    if not abs(loc.long) <= 180:
        problems.append(f"{_format_number(loc.long)}: long out of bounds")
    if problems:
        raise QueryError(" ".join(problems))


def calculate(l1: Location, l2: Location) -> float:
    """Return the aerial distance between two locations in kilometres."""
    _validate(l1)
    _validate(l2)

    radlat1 = math.pi * l1.lat / 180
    radlat2 = math.pi * l2.lat / 180
    radtheta = math.pi * (l1.long - l2.long) / 180

    d = math.sin(radlat1) * math.sin(radlat2) + math.cos(radlat1) * math.cos(
        radlat2
    ) * math.cos(radtheta)
    d = min(d, 1.0)
    d = math.acos(d) if d >= -1 else math.nan
    d = d * 180 / math.pi
    return d * 60 * 1.1515 * 1.609344