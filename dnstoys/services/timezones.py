"""Current time in a city, and conversion of a time between cities."""

from __future__ import annotations

import re
from datetime import datetime

from dnstoys.geo import Geo, Location
from dnstoys.service import QueryError, Service

_CONVERT = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2})-([a-z/]+)-([a-z/]+)", re.IGNORECASE | re.ASCII
)
_IN_FORMAT = "%Y-%m-%dT%H:%M"

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _rfc1123z(dt: datetime) -> str:
    offset = int(dt.utcoffset().total_seconds()) // 60
    sign = "-" if offset < 0 else "+"
    hours, minutes = divmod(abs(offset), 60)
    return (
        f"{_DAYS[dt.weekday()]}, {dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year:04d} "
        f"{dt:%H:%M:%S} {sign}{hours:02d}{minutes:02d}"
    )


def _describe(loc: Location) -> str:
    return f"{loc.name} ({loc.timezone}, {loc.country})"


class Timezones(Service):
    """Answers a city with its current time, or ``<time>-<from>-<to>`` with a conversion."""

    def __init__(self, geo: Geo) -> None:
        self.geo = geo

    def query(self, q: str) -> list[str]:
        match = _CONVERT.search(q.strip())
        if match:
            return self._convert(q, *match.groups())

        locs = self.geo.query(q)
        if not locs:
            raise QueryError("unknown city.")

        return [
            f'{q} 1 TXT "{_describe(loc)}" "{_rfc1123z(datetime.now(loc.zone))}"'
            for loc in locs
        ]

    def dump(self) -> bytes | None:
        return None

    def _convert(self, q: str, ts: str, from_geo: str, to_geo: str) -> list[str]:
        from_locs = self.geo.query(from_geo)
        if not from_locs:
            raise QueryError("unknown `from` city.")
        to_locs = self.geo.query(to_geo)
        if not to_locs:
            raise QueryError("unknown `from` city.")

        try:
            naive = datetime.strptime(ts, _IN_FORMAT)
        except ValueError:
            raise QueryError("invalid time format") from None

        out = []
        for src in from_locs:
            tm = naive.replace(tzinfo=src.zone)
            for dst in to_locs:
                out.append(
                    f'{q} 1 TXT "{_describe(src)} {_rfc1123z(tm)}" = '
                    f'"{_describe(dst)} {_rfc1123z(tm.astimezone(dst.zone))}"'
                )
        return out